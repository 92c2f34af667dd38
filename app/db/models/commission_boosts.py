from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class CommissionBoost(Base):
    __tablename__ = "commission_boosts"
    __table_args__ = (
        CheckConstraint(
            "type IN ('ambassador_rate','buyer_cashback','sponsor_rate')",
            name="ck_commission_boosts_type",
        ),
        CheckConstraint("current_uses >= 0", name="ck_commission_boosts_current_uses_non_negative"),
        CheckConstraint(
            "boost_value >= 0 AND boost_value <= 100",
            name="ck_commission_boosts_boost_value_range",
        ),
        Index("idx_commission_boosts_active_window", "is_active", "start_date", "end_date"),
        Index("idx_commission_boosts_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=True)
    type: Mapped[str] = mapped_column(String(24), nullable=False)
    boost_value: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_uses: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"))
    created_by: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
