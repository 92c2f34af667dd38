from __future__ import annotations

from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.commission_boosts import CommissionBoost


class CommissionBoostsRepo:
    @staticmethod
    async def list_in_window_for_user(
        session: AsyncSession,
        *,
        user_id: int,
        now_utc: datetime,
    ) -> list[CommissionBoost]:
        """Active boosts in their date window, scoped to the user or global.

        User-scoped rows come first; usage caps are left to the caller.
        """
        stmt = (
            select(CommissionBoost)
            .where(
                CommissionBoost.is_active.is_(True),
                CommissionBoost.start_date <= now_utc,
                or_(CommissionBoost.end_date.is_(None), CommissionBoost.end_date >= now_utc),
                or_(CommissionBoost.user_id.is_(None), CommissionBoost.user_id == user_id),
            )
            .order_by(
                CommissionBoost.user_id.is_(None).asc(),
                CommissionBoost.id.asc(),
            )
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, boost: CommissionBoost) -> CommissionBoost:
        session.add(boost)
        await session.flush()
        return boost

    @staticmethod
    async def increment_uses(session: AsyncSession, boost_ids: tuple[int, ...]) -> int:
        if not boost_ids:
            return 0
        stmt = (
            update(CommissionBoost)
            .where(CommissionBoost.id.in_(boost_ids))
            .values(current_uses=CommissionBoost.current_uses + 1)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0
