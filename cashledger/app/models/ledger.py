from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cashledger.app.core.database import Base
from cashledger.app.models.cash_flow import FlowType


class AccountTransaction(Base):
    """One link of an account's balance chain.

    Ordered by ``(transaction_date, sequence)``, each row's
    ``balance_before_cents`` equals the previous row's ``balance_after_cents``.
    """

    __tablename__ = "account_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    flow_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("cash_flows.id"), nullable=False)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    transaction_type: Mapped[FlowType] = mapped_column(
        Enum(FlowType, values_callable=lambda e: [m.value for m in e]), nullable=False
    )
    # Signed: positive for income, negative for expense
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_before_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_after_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    account = relationship("Account", back_populates="transactions")
    flow = relationship("CashFlow", back_populates="transaction")

    __table_args__ = (
        UniqueConstraint("account_id", "sequence", name="uq_acc_tx_account_sequence"),
        CheckConstraint(
            "balance_after_cents = balance_before_cents + amount_cents",
            name="ck_acc_tx_balance_chain",
        ),
        Index("ix_acc_tx_account_date", "account_id", "transaction_date", "sequence"),
    )
