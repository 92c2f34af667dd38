from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class OutboundClick(Base):
    __tablename__ = "outbound_clicks"
    __table_args__ = (Index("idx_outbound_clicks_ambassador_clicked", "ambassador_id", "clicked_at"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    visitor_id: Mapped[str] = mapped_column(String(36), nullable=False)
    ambassador_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    buyer_user_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )
    affiliate_program_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("affiliate_programs.id"), nullable=False
    )
    destination_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    clicked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
