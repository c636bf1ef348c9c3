from __future__ import annotations

from typing import NoReturn
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from cashledger.app.core.database import get_db
from cashledger.app.core.errors import AppError
from cashledger.app.core.security import decode_access_token
from cashledger.app.models.user import User

# Tokens are issued by the identity service; this API only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


def get_current_user(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        user_id = decode_access_token(token)
        if user_id is None:
            raise credentials_exception
        subject = UUID(user_id)
    except (JWTError, ValueError):
        raise credentials_exception

    user = db.get(User, subject)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user"
        )
    return user


def raise_http(request: Request, exc: AppError) -> NoReturn:
    """Re-raise a service error as ``HTTPException`` in the caller's language."""
    language = getattr(request.state, "language", "en")
    raise HTTPException(status_code=exc.status_code, detail=exc.render(language)) from exc
