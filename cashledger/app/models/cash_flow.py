from __future__ import annotations

import enum
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
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cashledger.app.core.database import Base


class FlowType(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


class FlowSource(str, enum.Enum):
    MANUAL = "manual"
    IMPORT = "import"


class CashFlow(Base):
    __tablename__ = "cash_flows"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    voucher_no: Mapped[str | None] = mapped_column(String(64), nullable=True)
    biz_date: Mapped[date] = mapped_column(Date, nullable=False)
    type: Mapped[FlowType] = mapped_column(
        Enum(FlowType, values_callable=lambda e: [m.value for m in e]), nullable=False
    )
    account_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    counterparty: Mapped[str | None] = mapped_column(String(255), nullable=True)
    memo: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    source: Mapped[FlowSource] = mapped_column(
        Enum(FlowSource, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=FlowSource.MANUAL,
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    account = relationship("Account")
    transaction: Mapped["AccountTransaction | None"] = relationship(back_populates="flow")  # noqa: F821

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_cash_flow_amount_positive"),
        Index("ix_cash_flows_account_biz", "account_id", "biz_date"),
        Index("ix_cash_flows_type", "type"),
    )
