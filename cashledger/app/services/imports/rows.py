"""Header indexing and field mapping for import rows."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from uuid import UUID

from cashledger.app.core.errors import (
    AccountNotFoundError,
    ImportValidationError,
    RowValidationError,
)
from cashledger.app.core.money import MAX_CENTS, to_cents
from cashledger.app.models.account import Account
from cashledger.app.models.cash_flow import CashFlow, FlowType
from cashledger.app.schemas.imports import FlowsImportRow

FLOW_REQUIRED_COLUMNS = ("biz_date", "type", "account_id", "amount")
FLOW_OPTIONAL_COLUMNS = ("voucher_no", "method", "memo", "counterparty")

# Column widths of the cash_flows table
FLOW_TEXT_LIMITS: dict[str, int] = {
    name: CashFlow.__table__.c[name].type.length for name in FLOW_OPTIONAL_COLUMNS
}

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def index_header(header: Sequence[str], required: Sequence[str]) -> dict[str, int]:
    """Map lower-cased column names to their position.

    The first occurrence of a duplicated name wins.  Raises
    :class:`ImportValidationError` listing every missing required column.
    """
    columns: dict[str, int] = {}
    for position, name in enumerate(header):
        columns.setdefault(name.strip().lower(), position)
    missing = [c for c in required if c not in columns]
    if missing:
        raise ImportValidationError("import.missing_columns", columns=", ".join(missing))
    return columns


def _cell(fields: Sequence[str], columns: Mapping[str, int], name: str) -> str:
    position = columns.get(name)
    if position is None or position >= len(fields):
        return ""
    return fields[position]


def _optional(row: int, fields: Sequence[str], columns: Mapping[str, int], name: str) -> str | None:
    value = _cell(fields, columns, name)
    limit = FLOW_TEXT_LIMITS[name]
    if len(value) > limit:
        raise RowValidationError(row, name, "row.too_long", field=name, limit=limit)
    return value or None


def _required(row: int, fields: Sequence[str], columns: Mapping[str, int], name: str) -> str:
    value = _cell(fields, columns, name)
    if not value:
        raise RowValidationError(row, name, "row.required", field=name)
    return value


def parse_account_id(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None


def parse_biz_date(value: str) -> date | None:
    """Strict ``YYYY-MM-DD``; anything else (compact or week dates) is ``None``."""
    if not _ISO_DATE.match(value):
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


def map_flow_row(
    row: int,
    columns: Mapping[str, int],
    fields: Sequence[str],
    accounts: Mapping[UUID, Account],
) -> FlowsImportRow:
    """Validate one ``kind=flows`` data row and build its typed record.

    *row* is the 1-based line number used in error reports; *accounts*
    holds the active accounts the import may post to.  Checks run in
    column order and stop at the first problem.
    """
    raw_date = _required(row, fields, columns, "biz_date")
    biz_date = parse_biz_date(raw_date)
    if biz_date is None:
        raise RowValidationError(row, "biz_date", "row.invalid_date", field="biz_date", value=raw_date)

    raw_type = _required(row, fields, columns, "type")
    try:
        flow_type = FlowType(raw_type.lower())
    except ValueError:
        raise RowValidationError(row, "type", "row.invalid_type", field="type", value=raw_type)

    raw_account = _required(row, fields, columns, "account_id")
    account_id = parse_account_id(raw_account)
    if account_id is None:
        raise RowValidationError(
            row, "account_id", "row.invalid_account_id", field="account_id", value=raw_account
        )

    raw_amount = _required(row, fields, columns, "amount")
    try:
        amount_cents = to_cents(Decimal(raw_amount))
    except (InvalidOperation, ValueError, OverflowError):
        # NaN, Infinity and non-numeric text
        amount_cents = 0
    if amount_cents <= 0 or amount_cents > MAX_CENTS:
        raise RowValidationError(row, "amount", "row.invalid_amount", field="amount", value=raw_amount)

    optional = {name: _optional(row, fields, columns, name) for name in FLOW_OPTIONAL_COLUMNS}

    if account_id not in accounts:
        raise AccountNotFoundError(row, "account_id", account_id=account_id)

    return FlowsImportRow(
        row=row,
        biz_date=biz_date,
        type=flow_type,
        account_id=account_id,
        amount_cents=amount_cents,
        **optional,
    )
