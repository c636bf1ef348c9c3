from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from cashledger.app.core.database import unit_of_work
from cashledger.app.core.errors import InsufficientBalanceError, NotFoundError
from cashledger.app.core.money import format_cents, to_cents
from cashledger.app.models.cash_flow import CashFlow, FlowSource, FlowType
from cashledger.app.schemas.flows import CashFlowCreate, CashFlowOut
from cashledger.app.services.accounts import load_active_accounts
from cashledger.app.services.ledger import FlowPosting, LedgerPosition, position_for, post_flow

logger = logging.getLogger(__name__)


def _to_out(flow: CashFlow) -> CashFlowOut:
    txn = flow.transaction
    return CashFlowOut(
        id=flow.id,
        biz_date=flow.biz_date,
        type=flow.type,
        account_id=flow.account_id,
        amount_cents=flow.amount_cents,
        voucher_no=flow.voucher_no,
        method=flow.method,
        counterparty=flow.counterparty,
        memo=flow.memo,
        source=flow.source,
        created_by=flow.created_by,
        created_at=flow.created_at,
        balance_before_cents=txn.balance_before_cents if txn else None,
        balance_after_cents=txn.balance_after_cents if txn else None,
    )


def next_voucher_no(db: Session, biz_date: date) -> str:
    """Voucher number for the next flow of *biz_date*: ``JZ20240501-003``.

    Numbered by the count of flows already on that date, so it is only
    unique while the caller holds the transaction it inserts in.
    """
    count = db.query(func.count(CashFlow.id)).filter(CashFlow.biz_date == biz_date).scalar()
    return f"JZ{biz_date:%Y%m%d}-{(count or 0) + 1:03d}"


def create_cash_flow(db: Session, payload: CashFlowCreate, user_id: UUID) -> CashFlowOut:
    """Record a single flow entered by hand.

    Unlike the CSV import, an expense may not take the account below zero.
    """
    account = load_active_accounts(db, [payload.account_id]).get(payload.account_id)
    if account is None:
        raise NotFoundError(resource=f"Account {payload.account_id}")

    posting = FlowPosting(
        biz_date=payload.biz_date,
        type=payload.type,
        amount_cents=to_cents(payload.amount),
        voucher_no=payload.voucher_no,
        method=payload.method,
        memo=payload.memo,
        counterparty=payload.counterparty,
    )
    positions: dict[UUID, LedgerPosition] = {}
    with unit_of_work(db):
        if not posting.voucher_no:
            posting = replace(posting, voucher_no=next_voucher_no(db, posting.biz_date))
        position = position_for(db, account, positions)
        if posting.type == FlowType.EXPENSE and position.balance_cents < posting.amount_cents:
            raise InsufficientBalanceError(
                balance=format_cents(position.balance_cents),
                required=format_cents(posting.amount_cents),
            )
        flow, _ = post_flow(
            db, posting, account, positions,
            created_by=user_id, source=FlowSource.MANUAL,
        )
    db.refresh(flow)
    logger.info("Cash flow %s recorded on account %s", flow.id, account.id)
    return _to_out(flow)


def list_cash_flows(
    db: Session,
    account_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[CashFlowOut]:
    query = db.query(CashFlow)
    if account_id is not None:
        query = query.filter(CashFlow.account_id == account_id)
    if date_from is not None:
        query = query.filter(CashFlow.biz_date >= date_from)
    if date_to is not None:
        query = query.filter(CashFlow.biz_date <= date_to)
    flows = (
        query.order_by(CashFlow.biz_date.desc(), CashFlow.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return [_to_out(f) for f in flows]
