from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from cashledger.app.core.database import unit_of_work
from cashledger.app.core.errors import NotFoundError
from cashledger.app.core.money import format_cents, to_cents
from cashledger.app.models.account import Account
from cashledger.app.models.ledger import AccountTransaction
from cashledger.app.schemas.accounts import AccountBalanceOut, AccountCreate
from cashledger.app.services.ledger import latest_position


def get_account(db: Session, account_id: UUID) -> Account:
    account = db.get(Account, account_id)
    if account is None:
        raise NotFoundError(resource=f"Account {account_id}")
    return account


def load_active_accounts(db: Session, account_ids: Iterable[UUID]) -> dict[UUID, Account]:
    """Return the active accounts among *account_ids*, keyed by id.

    Missing and inactive ids are simply absent from the result.
    """
    ids = set(account_ids)
    if not ids:
        return {}
    rows = (
        db.query(Account)
        .filter(Account.id.in_(ids), Account.active.is_(True))
        .all()
    )
    return {a.id: a for a in rows}


def list_accounts(db: Session, include_inactive: bool = False) -> list[Account]:
    query = db.query(Account).order_by(Account.name)
    if not include_inactive:
        query = query.filter(Account.active.is_(True))
    return query.all()


def create_account(db: Session, payload: AccountCreate) -> Account:
    account = Account(
        name=payload.name,
        currency=payload.currency,
        account_number=payload.account_number,
        opening_cents=to_cents(payload.opening_balance),
    )
    with unit_of_work(db):
        db.add(account)
    db.refresh(account)
    return account


def get_balance(db: Session, account_id: UUID) -> AccountBalanceOut:
    account = get_account(db, account_id)
    position = latest_position(db, account)
    return AccountBalanceOut(
        account_id=account.id,
        currency=account.currency,
        balance_cents=position.balance_cents,
        balance=format_cents(position.balance_cents),
        as_of=position.last_date,
    )


def list_transactions(
    db: Session,
    account_id: UUID,
    limit: int = 100,
    offset: int = 0,
) -> list[AccountTransaction]:
    """Ledger of *account_id* in chain order (oldest first)."""
    get_account(db, account_id)
    return (
        db.query(AccountTransaction)
        .filter(AccountTransaction.account_id == account_id)
        .order_by(
            AccountTransaction.transaction_date,
            AccountTransaction.sequence,
        )
        .offset(offset)
        .limit(limit)
        .all()
    )
