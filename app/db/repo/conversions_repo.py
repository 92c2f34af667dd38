from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.conversions import Conversion


class ConversionsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, conversion_id: int) -> Conversion | None:
        return await session.get(Conversion, conversion_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, conversion_id: int) -> Conversion | None:
        stmt = (
            select(Conversion)
            .where(Conversion.id == conversion_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_order_ref(
        session: AsyncSession,
        *,
        order_ref: str,
        affiliate_program_id: int,
    ) -> Conversion | None:
        stmt = select(Conversion).where(
            Conversion.order_ref == order_ref,
            Conversion.affiliate_program_id == affiliate_program_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, conversion: Conversion) -> Conversion:
        session.add(conversion)
        await session.flush()
        return conversion

    @staticmethod
    async def count_for_ambassador_since(
        session: AsyncSession,
        *,
        ambassador_id: int,
        since_utc: datetime,
    ) -> int:
        stmt = select(func.count(Conversion.id)).where(
            Conversion.ambassador_id == ambassador_id,
            Conversion.created_at >= since_utc,
        )
        return int(await session.scalar(stmt) or 0)

    @staticmethod
    async def list_confirmed_for_ambassador_for_update(
        session: AsyncSession,
        *,
        ambassador_id: int,
    ) -> list[Conversion]:
        stmt = (
            select(Conversion)
            .where(Conversion.ambassador_id == ambassador_id, Conversion.status == "confirmed")
            .order_by(Conversion.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def sum_confirmed_ambassador_share(session: AsyncSession, *, ambassador_id: int) -> Decimal:
        stmt = select(func.coalesce(func.sum(Conversion.ambassador_share), 0)).where(
            Conversion.ambassador_id == ambassador_id,
            Conversion.status == "confirmed",
        )
        return Decimal(await session.scalar(stmt) or 0)
