from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class Conversion(Base):
    __tablename__ = "conversions"
    __table_args__ = (
        CheckConstraint("type IN ('affiliate','dropship')", name="ck_conversions_type"),
        CheckConstraint(
            "status IN ('pending','confirmed','paid','cancelled')",
            name="ck_conversions_status",
        ),
        CheckConstraint(
            "attribution_confidence IS NULL OR attribution_confidence IN ('high','medium','low')",
            name="ck_conversions_attribution_confidence",
        ),
        CheckConstraint("platform_share >= 0", name="ck_conversions_platform_share_non_negative"),
        CheckConstraint(
            "ambassador_share + sponsor_share + buyer_share + platform_share = commission_total",
            name="ck_conversions_shares_balance",
        ),
        UniqueConstraint(
            "order_ref",
            "affiliate_program_id",
            name="uq_conversions_order_ref_program",
        ),
        Index("idx_conversions_ambassador_created", "ambassador_id", "created_at"),
        Index("idx_conversions_ambassador_status", "ambassador_id", "status"),
        Index("idx_conversions_buyer", "buyer_user_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    ambassador_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    sponsor_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=True)
    buyer_user_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )
    product_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    outbound_click_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("outbound_clicks.id"), nullable=True
    )
    affiliate_program_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("affiliate_programs.id"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    order_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    commission_total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    ambassador_share: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    sponsor_share: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, server_default=text("0")
    )
    buyer_share: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, server_default=text("0")
    )
    platform_share: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    applied_ambassador_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    applied_sponsor_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    applied_buyer_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, server_default=text("'pending'")
    )
    attribution_method: Mapped[str | None] = mapped_column(String(100), nullable=True)
    attribution_confidence: Mapped[str | None] = mapped_column(String(8), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
