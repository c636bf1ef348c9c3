from __future__ import annotations

from datetime import date
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from cashledger.app.models.cash_flow import FlowType


# ─── Row variants (one per import kind) ──────────────────────────────────────


class FlowsImportRow(BaseModel):
    """A validated ``kind=flows`` data row, ready for the ledger."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["flows"] = "flows"
    row: int
    biz_date: date
    type: FlowType
    account_id: UUID
    amount_cents: int = Field(gt=0)
    voucher_no: str | None = None
    method: str | None = None
    memo: str | None = None
    counterparty: str | None = None


# ─── Summary ─────────────────────────────────────────────────────────────────


class RowFailureOut(BaseModel):
    row: int
    field: str | None
    reason: str


class ImportSummaryOut(BaseModel):
    kind: str
    inserted: int
    failed: int
    errors: list[RowFailureOut]
