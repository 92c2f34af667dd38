from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class CashbackTransaction(Base):
    __tablename__ = "cashback_transactions"
    __table_args__ = (
        CheckConstraint(
            "type IN ('earned','withdrawal','clawback','adjustment')",
            name="ck_cashback_transactions_type",
        ),
        CheckConstraint(
            "(type = 'earned' AND amount > 0) OR (type IN ('withdrawal','clawback') AND amount < 0)"
            " OR type = 'adjustment'",
            name="ck_cashback_transactions_amount_sign",
        ),
        Index("idx_cashback_transactions_user_created", "user_id", "created_at"),
        Index("idx_cashback_transactions_conversion", "conversion_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    conversion_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("conversions.id"), nullable=True
    )
    payout_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("payouts.id"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
