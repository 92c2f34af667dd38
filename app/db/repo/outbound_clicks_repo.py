from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.outbound_clicks import OutboundClick


class OutboundClicksRepo:
    @staticmethod
    async def count_for_ambassador_since(
        session: AsyncSession,
        *,
        ambassador_id: int,
        since_utc: datetime,
    ) -> int:
        stmt = select(func.count(OutboundClick.id)).where(
            OutboundClick.ambassador_id == ambassador_id,
            OutboundClick.clicked_at >= since_utc,
        )
        return int(await session.scalar(stmt) or 0)
