"""Shared test fixtures.

Tests run against an in-memory SQLite database.  Each test runs inside an
outer transaction that is rolled back afterwards; service-level commits
only release a SAVEPOINT, so tests never pollute each other.
"""

from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite://"

from typing import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from cashledger.app.core.database import Base, engine, get_db  # noqa: E402
from cashledger.app.core.permissions import ALL_PERMISSION_CODES, ROLE_PERMISSIONS  # noqa: E402
from cashledger.app.core.security import create_access_token, get_password_hash  # noqa: E402
from cashledger.app.main import app  # noqa: E402
from cashledger.app.middleware.rate_limit import limiter  # noqa: E402
from cashledger.app.models.registry import (  # noqa: E402
    Account,
    Permission,
    Role,
    RolePermission,
    User,
)

FLOWS_HEADER = "biz_date,type,account_id,amount,voucher_no,method,memo"


# ─── Schema & DB session that rolls back after every test ────────────────────


@pytest.fixture(scope="session", autouse=True)
def _schema() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> Generator[None, None, None]:
    limiter.clear()
    yield
    limiter.clear()


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Yield a session bound to an outer transaction; rolled back after the test."""
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture()
def client(db: Session) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the transactional test session."""

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ─── Roles & permissions ─────────────────────────────────────────────────────


@pytest.fixture()
def seed_roles(db: Session) -> dict[str, Role]:
    """Create Permission, Role, and RolePermission records.

    Returns a dict mapping role name to Role instance.
    """
    perm_map: dict[str, Permission] = {}
    for code, desc, module in ALL_PERMISSION_CODES:
        p = Permission(code=code, description=desc, module=module)
        db.add(p)
        perm_map[code] = p
    db.flush()

    roles: dict[str, Role] = {}
    for role_name, perm_codes in ROLE_PERMISSIONS.items():
        role = Role(name=role_name, description=f"{role_name} role", is_system=True)
        db.add(role)
        db.flush()
        for code in perm_codes:
            db.add(RolePermission(role_id=role.id, permission_id=perm_map[code].id))
        roles[role_name] = role
    db.commit()
    return roles


def _make_user(db: Session, email: str, role: Role | None) -> User:
    user = User(
        email=email,
        name=email.split("@")[0],
        hashed_password=get_password_hash("pass"),
        role_id=role.id if role else None,
    )
    db.add(user)
    db.commit()
    return user


# ─── Auth helpers ─────────────────────────────────────────────────────────────


@pytest.fixture()
def admin_user(db: Session, seed_roles: dict[str, Role]) -> User:
    return _make_user(db, "admin@test.local", seed_roles["ADMIN"])


@pytest.fixture()
def auditor_user(db: Session, seed_roles: dict[str, Role]) -> User:
    return _make_user(db, "auditor@test.local", seed_roles["AUDITOR"])


@pytest.fixture()
def plain_user(db: Session, seed_roles: dict[str, Role]) -> User:
    return _make_user(db, "nobody@test.local", None)


@pytest.fixture()
def admin_token(admin_user: User) -> str:
    return create_access_token(subject=str(admin_user.id))


@pytest.fixture()
def auditor_token(auditor_user: User) -> str:
    return create_access_token(subject=str(auditor_user.id))


@pytest.fixture()
def plain_token(plain_user: User) -> str:
    return create_access_token(subject=str(plain_user.id))


def auth(token: str) -> dict[str, str]:
    """Return Authorization header dict."""
    return {"Authorization": f"Bearer {token}"}


# ─── Accounts ────────────────────────────────────────────────────────────────


def make_account(
    db: Session, name: str, opening_cents: int = 0, active: bool = True, currency: str = "CNY"
) -> Account:
    account = Account(name=name, currency=currency, opening_cents=opening_cents, active=active)
    db.add(account)
    db.commit()
    return account


@pytest.fixture()
def cash_account(db: Session) -> Account:
    return make_account(db, "Cash")


@pytest.fixture()
def bank_account(db: Session) -> Account:
    return make_account(db, "Bank", opening_cents=50_000)


@pytest.fixture()
def closed_account(db: Session) -> Account:
    return make_account(db, "Closed", active=False)


def flows_csv(*lines: str, header: str = FLOWS_HEADER) -> str:
    """Build a flows CSV body from data lines."""
    return "\n".join([header, *lines]) + "\n"
