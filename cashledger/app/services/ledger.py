"""Running-balance ledger.

Every cash flow is paired with one ``AccountTransaction`` whose
``balance_before_cents`` continues the chain of the account.  Callers keep a
``positions`` dict for the duration of one operation (one import, one
manual posting); nothing here is process-wide.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from cashledger.app.core.errors import BackdatedEntryError, BalanceOverflowError
from cashledger.app.core.money import MAX_CENTS
from cashledger.app.models.account import Account
from cashledger.app.models.cash_flow import CashFlow, FlowSource, FlowType
from cashledger.app.models.ledger import AccountTransaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerPosition:
    balance_cents: int
    sequence: int
    last_date: date | None


@dataclass(frozen=True)
class FlowPosting:
    biz_date: date
    type: FlowType
    amount_cents: int
    voucher_no: str | None = None
    method: str | None = None
    memo: str | None = None
    counterparty: str | None = None

    @property
    def signed_cents(self) -> int:
        return self.amount_cents if self.type == FlowType.INCOME else -self.amount_cents


def latest_position(db: Session, account: Account) -> LedgerPosition:
    """Seed a position from the newest persisted transaction of *account*.

    Falls back to the account's opening balance when it has no ledger yet.
    """
    last = (
        db.query(AccountTransaction)
        .filter(AccountTransaction.account_id == account.id)
        .order_by(
            AccountTransaction.transaction_date.desc(),
            AccountTransaction.sequence.desc(),
        )
        .first()
    )
    if last is None:
        return LedgerPosition(balance_cents=account.opening_cents or 0, sequence=0, last_date=None)
    return LedgerPosition(
        balance_cents=last.balance_after_cents,
        sequence=last.sequence,
        last_date=last.transaction_date,
    )


def position_for(
    db: Session, account: Account, positions: dict[UUID, LedgerPosition]
) -> LedgerPosition:
    if account.id not in positions:
        positions[account.id] = latest_position(db, account)
    return positions[account.id]


def post_flow(
    db: Session,
    posting: FlowPosting,
    account: Account,
    positions: dict[UUID, LedgerPosition],
    *,
    created_by: UUID | None,
    source: FlowSource,
) -> tuple[CashFlow, AccountTransaction]:
    """Append one cash flow and its ledger transaction.

    Both rows are written inside a SAVEPOINT; *positions* is only advanced
    once the savepoint has been released.  Raises
    :class:`BackdatedEntryError` before touching the database when
    *posting* is older than the account's newest transaction, and
    :class:`BalanceOverflowError` when the new balance would not fit a
    BIGINT column.
    """
    position = position_for(db, account, positions)
    if position.last_date is not None and posting.biz_date < position.last_date:
        raise BackdatedEntryError(
            biz_date=posting.biz_date.isoformat(),
            last_date=position.last_date.isoformat(),
            account_id=account.id,
        )

    balance_after = position.balance_cents + posting.signed_cents
    if abs(balance_after) > MAX_CENTS:
        raise BalanceOverflowError(account_id=account.id)
    with db.begin_nested():
        flow = CashFlow(
            voucher_no=posting.voucher_no,
            biz_date=posting.biz_date,
            type=posting.type,
            account_id=account.id,
            method=posting.method,
            amount_cents=posting.amount_cents,
            counterparty=posting.counterparty,
            memo=posting.memo,
            source=source,
            created_by=created_by,
        )
        db.add(flow)
        db.flush()

        txn = AccountTransaction(
            account_id=account.id,
            flow_id=flow.id,
            transaction_date=posting.biz_date,
            transaction_type=posting.type,
            amount_cents=posting.signed_cents,
            balance_before_cents=position.balance_cents,
            balance_after_cents=balance_after,
            sequence=position.sequence + 1,
        )
        db.add(txn)
        db.flush()

    positions[account.id] = LedgerPosition(
        balance_cents=balance_after,
        sequence=position.sequence + 1,
        last_date=posting.biz_date,
    )
    logger.debug(
        "Posted %s %s on account %s: %s -> %s",
        posting.type.value, posting.amount_cents, account.id,
        position.balance_cents, balance_after,
    )
    return flow, txn
