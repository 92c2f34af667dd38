from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class FraudFlag(Base):
    __tablename__ = "fraud_flags"
    __table_args__ = (
        CheckConstraint(
            "type IN ('self_buy','click_spam','self_referral','rapid_conversion',"
            "'fake_account','cashback_abuse')",
            name="ck_fraud_flags_type",
        ),
        CheckConstraint(
            "severity IN ('low','medium','high','critical')",
            name="ck_fraud_flags_severity",
        ),
        CheckConstraint(
            "status IN ('pending','reviewed','confirmed','dismissed')",
            name="ck_fraud_flags_status",
        ),
        Index(
            "uq_fraud_flags_user_type_pending",
            "user_id",
            "type",
            unique=True,
            postgresql_where=text("status = 'pending'"),
        ),
        Index("idx_fraud_flags_status_created", "status", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(24), nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, server_default=text("'pending'")
    )
    details: Mapped[dict[str, object]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
