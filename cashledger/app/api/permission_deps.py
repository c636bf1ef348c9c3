"""Permission checks.

A permission code reads ``module.resource:action`` (``finance.flow:import``);
``module.*:action`` grants the action on every resource of the module.

Usage in endpoints::

    @router.post("")
    def create_flow(
        body: CashFlowCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission("finance", "flow", "create")),
    ):
        ...
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from cashledger.app.api.deps import get_current_user
from cashledger.app.core.database import get_db
from cashledger.app.models.permission import Permission, RolePermission
from cashledger.app.models.user import User


def permission_code(module: str, resource: str, action: str) -> str:
    return f"{module}.{resource}:{action}"


def _load_user_permissions(db: Session, user: User) -> set[str]:
    """Return the set of permission codes assigned to *user* via their role."""
    if user.role_id is None:
        return set()
    rows = (
        db.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .filter(RolePermission.role_id == user.role_id)
        .all()
    )
    return {r[0] for r in rows}


def has_permission(db: Session, user: User, module: str, resource: str, action: str) -> bool:
    if not user.is_active:
        return False
    granted = _load_user_permissions(db, user)
    return (
        permission_code(module, resource, action) in granted
        or permission_code(module, "*", action) in granted
    )


def require_permission(module: str, resource: str, action: str):
    """FastAPI dependency factory; returns the authenticated ``User``."""

    def _checker(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> User:
        if not has_permission(db, current_user, module, resource, action):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {permission_code(module, resource, action)}",
            )
        return current_user

    return _checker
