"""create_ledger_tables

Revision ID: a1c4e7f0b2d5
Revises:
Create Date: 2026-10-12 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1c4e7f0b2d5"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

flowtype_enum = sa.Enum("income", "expense", name="flowtype")
flowsource_enum = sa.Enum("manual", "import", name="flowsource")


def upgrade() -> None:
    # ── Permissions / roles / users ──────────────────────────────────
    op.create_table(
        "permissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("code", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("module", sa.String(50), nullable=False),
    )
    op.create_table(
        "roles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.String(255), nullable=False, server_default=""),
        sa.Column("is_system", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "role_permissions",
        sa.Column("role_id", sa.Uuid(), sa.ForeignKey("roles.id"), primary_key=True),
        sa.Column("permission_id", sa.Uuid(), sa.ForeignKey("permissions.id"), primary_key=True),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("role_id", sa.Uuid(), sa.ForeignKey("roles.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── Accounts ─────────────────────────────────────────────────────
    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("account_number", sa.String(64), nullable=True),
        sa.Column("opening_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_accounts_active", "accounts", ["active"])

    # ── Cash flows ───────────────────────────────────────────────────
    op.create_table(
        "cash_flows",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("voucher_no", sa.String(64), nullable=True),
        sa.Column("biz_date", sa.Date(), nullable=False),
        sa.Column("type", flowtype_enum, nullable=False),
        sa.Column("account_id", sa.Uuid(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("method", sa.String(50), nullable=True),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("counterparty", sa.String(255), nullable=True),
        sa.Column("memo", sa.String(1000), nullable=True),
        sa.Column("source", flowsource_enum, nullable=False, server_default="manual"),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("amount_cents > 0", name="ck_cash_flow_amount_positive"),
    )
    op.create_index("ix_cash_flows_account_biz", "cash_flows", ["account_id", "biz_date"])
    op.create_index("ix_cash_flows_type", "cash_flows", ["type"])

    # ── Account transactions (ledger) ────────────────────────────────
    op.create_table(
        "account_transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("account_id", sa.Uuid(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("flow_id", sa.Uuid(), sa.ForeignKey("cash_flows.id"), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("transaction_type", flowtype_enum, nullable=False),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("balance_before_cents", sa.BigInteger(), nullable=False),
        sa.Column("balance_after_cents", sa.BigInteger(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("account_id", "sequence", name="uq_acc_tx_account_sequence"),
        sa.CheckConstraint(
            "balance_after_cents = balance_before_cents + amount_cents",
            name="ck_acc_tx_balance_chain",
        ),
    )
    op.create_index(
        "ix_acc_tx_account_date",
        "account_transactions",
        ["account_id", "transaction_date", "sequence"],
    )


def downgrade() -> None:
    op.drop_index("ix_acc_tx_account_date", table_name="account_transactions")
    op.drop_table("account_transactions")
    op.drop_index("ix_cash_flows_type", table_name="cash_flows")
    op.drop_index("ix_cash_flows_account_biz", table_name="cash_flows")
    op.drop_table("cash_flows")
    op.drop_index("ix_accounts_active", table_name="accounts")
    op.drop_table("accounts")
    op.drop_table("users")
    op.drop_table("role_permissions")
    op.drop_table("roles")
    op.drop_table("permissions")

    flowsource_enum.drop(op.get_bind(), checkfirst=True)
    flowtype_enum.drop(op.get_bind(), checkfirst=True)
