"""Application error hierarchy.

Every error carries a message *key* and interpolation params instead of a
finished sentence, so endpoints can render it in the caller's language via
:func:`cashledger.app.core.i18n.translate`.  ``str(error)`` renders English.
"""

from __future__ import annotations

from typing import Any

from fastapi import status

from cashledger.app.core.i18n import translate


class AppError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    message_key: str = "error.generic"

    def __init__(self, message_key: str | None = None, **params: Any) -> None:
        if message_key is not None:
            self.message_key = message_key
        self.params = params
        super().__init__(self.render("en"))

    def render(self, lang: str) -> str:
        return translate(lang, self.message_key, **{k: str(v) for k, v in self.params.items()})


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message_key = "error.not_found"


class PersistenceError(AppError):
    """Storage-layer fault. Always fatal for the current unit of work."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message_key = "error.persistence"


class InsufficientBalanceError(AppError):
    message_key = "flow.insufficient_balance"


# ─── Import errors ───────────────────────────────────────────────────────────


class ImportValidationError(AppError):
    """The import as a whole is unacceptable; nothing was written."""

    message_key = "import.invalid"


class EmptyInputError(ImportValidationError):
    message_key = "import.no_data_rows"


class UnsupportedImportKindError(ImportValidationError):
    message_key = "import.unsupported_kind"


class RowValidationError(AppError):
    """A single data row was rejected. Recorded in the summary, not raised."""

    message_key = "row.invalid"

    def __init__(self, row: int, field: str | None, message_key: str | None = None, /, **params: Any) -> None:
        self.row = row
        self.field = field
        super().__init__(message_key, **params)


class AccountNotFoundError(RowValidationError):
    message_key = "row.account_not_found"


# ─── Ledger errors ───────────────────────────────────────────────────────────


class LedgerPostingError(AppError):
    """A posting the ledger cannot append; ``field`` names the input at fault."""

    field: str | None = None


class BackdatedEntryError(LedgerPostingError):
    """Posting would land before the latest transaction of the account."""

    message_key = "ledger.backdated"
    field = "biz_date"


class BalanceOverflowError(LedgerPostingError):
    message_key = "ledger.balance_overflow"
    field = "amount"
