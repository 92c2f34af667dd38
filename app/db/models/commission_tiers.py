from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class CommissionTier(Base):
    __tablename__ = "commission_tiers"
    __table_args__ = (
        CheckConstraint("min_sales >= 0", name="ck_commission_tiers_min_sales_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    min_sales: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    ambassador_rate_affiliate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    ambassador_rate_dropship: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    sponsor_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
