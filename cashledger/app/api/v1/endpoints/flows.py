from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from cashledger.app.api.deps import raise_http
from cashledger.app.api.permission_deps import require_permission
from cashledger.app.core.database import get_db
from cashledger.app.core.errors import AppError
from cashledger.app.models.user import User
from cashledger.app.schemas.flows import CashFlowCreate, CashFlowOut
from cashledger.app.services.flows import create_cash_flow, list_cash_flows

router = APIRouter()


@router.get("", response_model=list[CashFlowOut])
def get_flows(
    account_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("finance", "flow", "view")),
) -> list[CashFlowOut]:
    return list_cash_flows(
        db,
        account_id=account_id,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=CashFlowOut, status_code=status.HTTP_201_CREATED)
def post_flow(
    payload: CashFlowCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("finance", "flow", "create")),
) -> CashFlowOut:
    try:
        return create_cash_flow(db, payload=payload, user_id=current_user.id)
    except AppError as e:
        raise_http(request, e)
