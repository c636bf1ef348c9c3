from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from cashledger.app.core.money import MAX_CENTS, to_cents
from cashledger.app.models.cash_flow import FlowSource, FlowType


class CashFlowCreate(BaseModel):
    biz_date: date
    type: FlowType
    account_id: UUID
    amount: Decimal
    # Left empty, a JZ<yyyymmdd>-<nnn> number is assigned
    voucher_no: str | None = Field(None, max_length=64)
    method: str | None = Field(None, max_length=50)
    counterparty: str | None = Field(None, max_length=255)
    memo: str | None = Field(None, max_length=1000)

    @field_validator("amount")
    @classmethod
    def amount_must_be_positive(cls, v: Decimal) -> Decimal:
        if not v.is_finite() or v <= 0:
            raise ValueError("Amount must be greater than 0")
        if v.as_tuple().exponent < -2:  # type: ignore[operator]
            raise ValueError("Amount must have at most 2 decimal places")
        try:
            too_large = to_cents(v) > MAX_CENTS
        except InvalidOperation:
            too_large = True
        if too_large:
            raise ValueError("Amount is too large")
        return v


class CashFlowOut(BaseModel):
    id: UUID
    biz_date: date
    type: FlowType
    account_id: UUID
    amount_cents: int
    voucher_no: str | None
    method: str | None
    counterparty: str | None
    memo: str | None
    source: FlowSource
    created_by: UUID | None
    created_at: datetime | None
    balance_before_cents: int | None = None
    balance_after_cents: int | None = None
