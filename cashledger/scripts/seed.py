"""Seed roles, permissions, an admin user and a demo account.

Usage:
    python -m cashledger.scripts.seed
"""

from __future__ import annotations

from cashledger.app.core.database import SessionLocal
from cashledger.app.core.permissions import ALL_PERMISSION_CODES, ROLE_PERMISSIONS
from cashledger.app.core.security import create_access_token, get_password_hash
from cashledger.app.models.registry import Account, Permission, Role, RolePermission, User

ADMIN_EMAIL = "admin@example.com"


def seed() -> None:
    db = SessionLocal()
    try:
        # ── Permissions ────────────────────────────────────────────────
        perm_map: dict[str, Permission] = {}
        for code, desc, module in ALL_PERMISSION_CODES:
            existing = db.query(Permission).filter_by(code=code).first()
            if existing:
                perm_map[code] = existing
            else:
                p = Permission(code=code, description=desc, module=module)
                db.add(p)
                perm_map[code] = p
                print(f"Created permission: {code}")
        db.flush()

        # ── Roles ──────────────────────────────────────────────────────
        roles: dict[str, Role] = {}
        for role_name, perm_codes in ROLE_PERMISSIONS.items():
            role = db.query(Role).filter_by(name=role_name).first()
            if role is None:
                role = Role(name=role_name, description=f"{role_name} role", is_system=True)
                db.add(role)
                db.flush()
                print(f"Created role: {role_name}")
            for code in perm_codes:
                exists = (
                    db.query(RolePermission)
                    .filter(
                        RolePermission.role_id == role.id,
                        RolePermission.permission_id == perm_map[code].id,
                    )
                    .first()
                )
                if not exists:
                    db.add(RolePermission(role_id=role.id, permission_id=perm_map[code].id))
            roles[role_name] = role
        db.flush()

        # ── Admin user ─────────────────────────────────────────────────
        admin = db.query(User).filter_by(email=ADMIN_EMAIL).first()
        if admin is None:
            admin = User(
                email=ADMIN_EMAIL,
                name="Administrator",
                hashed_password=get_password_hash("change-me-now"),
                role_id=roles["ADMIN"].id,
            )
            db.add(admin)
            db.flush()
            print("Created admin user.")

        # ── Demo account ───────────────────────────────────────────────
        if not db.query(Account).filter_by(name="Main Cash").first():
            db.add(Account(name="Main Cash", currency="CNY", opening_cents=0))
            print("Created account: Main Cash")

        db.commit()
        print("Seed complete.")
        print(f"Admin token: {create_access_token(subject=str(admin.id))}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
