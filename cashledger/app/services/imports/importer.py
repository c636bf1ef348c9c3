"""CSV import orchestration.

``import_csv`` runs Parsing -> Validating -> Writing -> Summarizing:

* the text is parsed and the header checked; failures here raise and
  nothing is written;
* every data row is validated; rejected rows are recorded, not raised;
* valid rows are ordered by business date (stable, so file order breaks
  ties) and posted inside one unit of work, one SAVEPOINT per row;
* a storage fault rolls the whole unit back and raises ``PersistenceError``.

The summary is built only after the commit, so every row it counts as
inserted is durable.  Importing the same file twice creates duplicates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.orm import Session

from cashledger.app.core.database import unit_of_work
from cashledger.app.core.errors import (
    EmptyInputError,
    LedgerPostingError,
    RowValidationError,
    UnsupportedImportKindError,
)
from cashledger.app.models.cash_flow import FlowSource
from cashledger.app.schemas.imports import FlowsImportRow, ImportSummaryOut, RowFailureOut
from cashledger.app.services.accounts import load_active_accounts
from cashledger.app.services.imports.parser import parse_csv
from cashledger.app.services.imports.rows import (
    FLOW_REQUIRED_COLUMNS,
    index_header,
    map_flow_row,
    parse_account_id,
)
from cashledger.app.services.ledger import FlowPosting, LedgerPosition, post_flow

logger = logging.getLogger(__name__)


@dataclass
class RowFailure:
    row: int
    field: str | None
    error: RowValidationError | LedgerPostingError


@dataclass
class ImportSummary:
    kind: str
    inserted: int = 0
    failures: list[RowFailure] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_out(self, lang: str = "en") -> ImportSummaryOut:
        return ImportSummaryOut(
            kind=self.kind,
            inserted=self.inserted,
            failed=self.failed,
            errors=[
                RowFailureOut(row=f.row, field=f.field, reason=f.error.render(lang))
                for f in self.failures
            ],
        )


def _split_header(text: str) -> tuple[list[str], list[tuple[int, list[str]]]]:
    rows = parse_csv(text)
    if len(rows) < 2:
        raise EmptyInputError()
    # Line numbers as a spreadsheet shows them: header is line 1
    return rows[0], [(number, fields) for number, fields in enumerate(rows[1:], start=2)]


def import_flows(db: Session, text: str, user_id: UUID | None) -> ImportSummary:
    header, data = _split_header(text)
    columns = index_header(header, FLOW_REQUIRED_COLUMNS)
    summary = ImportSummary(kind="flows")

    account_position = columns["account_id"]
    candidate_ids = {
        parse_account_id(fields[account_position])
        for _, fields in data
        if account_position < len(fields)
    }
    accounts = load_active_accounts(db, {i for i in candidate_ids if i is not None})

    valid: list[FlowsImportRow] = []
    for number, fields in data:
        try:
            valid.append(map_flow_row(number, columns, fields, accounts))
        except RowValidationError as exc:
            logger.debug("Import row %s rejected: %s", number, exc)
            summary.failures.append(RowFailure(row=number, field=exc.field, error=exc))

    valid.sort(key=lambda r: r.biz_date)
    positions: dict[UUID, LedgerPosition] = {}
    with unit_of_work(db):
        for record in valid:
            posting = FlowPosting(
                biz_date=record.biz_date,
                type=record.type,
                amount_cents=record.amount_cents,
                voucher_no=record.voucher_no,
                method=record.method,
                memo=record.memo,
                counterparty=record.counterparty,
            )
            try:
                post_flow(
                    db, posting, accounts[record.account_id], positions,
                    created_by=user_id, source=FlowSource.IMPORT,
                )
            except LedgerPostingError as exc:
                logger.debug("Import row %s not posted: %s", record.row, exc)
                summary.failures.append(RowFailure(row=record.row, field=exc.field, error=exc))
                continue
            summary.inserted += 1

    summary.failures.sort(key=lambda f: f.row)
    return summary


IMPORTERS: dict[str, Callable[[Session, str, UUID | None], ImportSummary]] = {
    "flows": import_flows,
}


def import_csv(db: Session, kind: str, text: str, user_id: UUID | None) -> ImportSummary:
    """Import *text* as *kind*; see the module docstring for the semantics."""
    importer = IMPORTERS.get(kind)
    if importer is None:
        raise UnsupportedImportKindError(kind=kind)

    logger.info("Import of kind %s started by %s (%d bytes)", kind, user_id, len(text))
    summary = importer(db, text, user_id)
    logger.info(
        "Import of kind %s finished: %d inserted, %d failed",
        kind, summary.inserted, summary.failed,
    )
    return summary
