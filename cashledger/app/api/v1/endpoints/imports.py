from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from cashledger.app.api.deps import raise_http
from cashledger.app.api.permission_deps import require_permission
from cashledger.app.core.config import settings
from cashledger.app.core.database import get_db
from cashledger.app.core.errors import AppError
from cashledger.app.core.i18n import translate
from cashledger.app.middleware.rate_limit import IMPORT_BY_USER, rate_limit_per_user
from cashledger.app.models.user import User
from cashledger.app.schemas.imports import ImportSummaryOut
from cashledger.app.services.imports.importer import import_csv

logger = logging.getLogger(__name__)

router = APIRouter()


def _payload_too_large(language: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=translate(language, "error.payload_too_large", limit=str(settings.IMPORT_MAX_BYTES)),
    )


async def _read_capped(request: Request, language: str) -> bytes:
    """Read the body, giving up as soon as it passes ``IMPORT_MAX_BYTES``."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > settings.IMPORT_MAX_BYTES:
        raise _payload_too_large(language)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > settings.IMPORT_MAX_BYTES:
            raise _payload_too_large(language)
    return bytes(body)


@router.post("", response_model=ImportSummaryOut)
async def run_import(
    request: Request,
    kind: str = Query(..., description="Import target; only 'flows' is supported"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("finance", "flow", "import")),
    _throttled: User = Depends(rate_limit_per_user(IMPORT_BY_USER)),
) -> ImportSummaryOut:
    """Import a ``text/plain`` CSV body; returns the inserted/failed summary."""
    language = getattr(request.state, "language", "en")
    raw = await _read_capped(request, language)
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=translate(language, "import.not_utf8"),
        )

    try:
        summary = await run_in_threadpool(import_csv, db, kind, text, current_user.id)
    except AppError as e:
        raise_http(request, e)
    return summary.to_out(language)
