from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.payout_info import PayoutInfo
from app.db.models.payouts import Payout


class PayoutsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, payout_id: int) -> Payout | None:
        return await session.get(Payout, payout_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, payout_id: int) -> Payout | None:
        stmt = (
            select(Payout)
            .where(Payout.id == payout_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, payout: Payout) -> Payout:
        session.add(payout)
        await session.flush()
        return payout

    @staticmethod
    async def sum_open_ambassador_payouts(session: AsyncSession, *, user_id: int) -> Decimal:
        stmt = select(func.coalesce(func.sum(Payout.amount), 0)).where(
            Payout.user_id == user_id,
            Payout.type == "ambassador",
            Payout.status.in_(("pending", "processing")),
        )
        return Decimal(await session.scalar(stmt) or 0)

    @staticmethod
    async def get_payout_info(session: AsyncSession, user_id: int) -> PayoutInfo | None:
        stmt = select(PayoutInfo).where(PayoutInfo.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
