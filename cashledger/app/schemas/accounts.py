from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from cashledger.app.models.cash_flow import FlowType


class AccountCreate(BaseModel):
    name: str
    currency: str
    account_number: str | None = None
    opening_balance: Decimal = Decimal("0")

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be empty")
        return v.strip()

    @field_validator("currency")
    @classmethod
    def currency_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not re.match(r"^[A-Z]{3}$", v):
            raise ValueError("Currency must be a 3-letter ISO code")
        return v

    @field_validator("opening_balance")
    @classmethod
    def opening_finite(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("Opening balance must be a finite number")
        return v


class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    currency: str
    account_number: str | None
    opening_cents: int
    active: bool
    created_at: datetime | None


class AccountBalanceOut(BaseModel):
    account_id: UUID
    currency: str
    balance_cents: int
    balance: str
    as_of: date | None


class AccountTransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    flow_id: UUID
    transaction_date: date
    transaction_type: FlowType
    amount_cents: int
    balance_before_cents: int
    balance_after_cents: int
    sequence: int
