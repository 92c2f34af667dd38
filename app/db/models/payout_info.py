from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class PayoutInfo(Base):
    __tablename__ = "payout_info"
    __table_args__ = (
        CheckConstraint("method IN ('stripe','paypal','bank')", name="ck_payout_info_method"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), unique=True, nullable=False
    )
    method: Mapped[str] = mapped_column(String(16), nullable=False)
    paypal_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    iban_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)
    bic: Mapped[str | None] = mapped_column(String(11), nullable=True)
