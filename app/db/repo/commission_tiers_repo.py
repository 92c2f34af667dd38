from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.commission_tiers import CommissionTier


class CommissionTiersRepo:
    @staticmethod
    async def get_for_total_sales(session: AsyncSession, total_sales: int) -> CommissionTier | None:
        stmt = (
            select(CommissionTier)
            .where(CommissionTier.min_sales <= total_sales)
            .order_by(CommissionTier.min_sales.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def upsert(
        session: AsyncSession,
        *,
        name: str,
        min_sales: int,
        ambassador_rate_affiliate: Decimal,
        ambassador_rate_dropship: Decimal,
        sponsor_rate: Decimal,
    ) -> None:
        rates = {
            "min_sales": min_sales,
            "ambassador_rate_affiliate": ambassador_rate_affiliate,
            "ambassador_rate_dropship": ambassador_rate_dropship,
            "sponsor_rate": sponsor_rate,
        }
        stmt = (
            pg_insert(CommissionTier)
            .values(name=name, **rates)
            .on_conflict_do_update(index_elements=[CommissionTier.name], set_=rates)
        )
        await session.execute(stmt)
