from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from cashledger.app.api.deps import raise_http
from cashledger.app.api.permission_deps import require_permission
from cashledger.app.core.database import get_db
from cashledger.app.core.errors import AppError
from cashledger.app.models.account import Account
from cashledger.app.models.ledger import AccountTransaction
from cashledger.app.models.user import User
from cashledger.app.schemas.accounts import (
    AccountBalanceOut,
    AccountCreate,
    AccountOut,
    AccountTransactionOut,
)
from cashledger.app.services.accounts import (
    create_account,
    get_balance,
    list_accounts,
    list_transactions,
)

router = APIRouter()


@router.get("", response_model=list[AccountOut])
def get_accounts(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("finance", "account", "view")),
) -> list[Account]:
    return list_accounts(db, include_inactive=include_inactive)


@router.post("", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
def post_account(
    payload: AccountCreate,
    request: Request,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("finance", "account", "create")),
) -> Account:
    try:
        return create_account(db, payload=payload)
    except AppError as e:
        raise_http(request, e)


@router.get("/{account_id}/balance", response_model=AccountBalanceOut)
def account_balance(
    account_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("finance", "account", "view")),
) -> AccountBalanceOut:
    try:
        return get_balance(db, account_id)
    except AppError as e:
        raise_http(request, e)


@router.get("/{account_id}/transactions", response_model=list[AccountTransactionOut])
def account_transactions(
    account_id: UUID,
    request: Request,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("finance", "account", "view")),
) -> list[AccountTransaction]:
    try:
        return list_transactions(db, account_id, limit=limit, offset=offset)
    except AppError as e:
        raise_http(request, e)
