from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.cashback_transactions import CashbackTransaction


class CashbackRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        transaction: CashbackTransaction,
    ) -> CashbackTransaction:
        session.add(transaction)
        await session.flush()
        return transaction

    @staticmethod
    async def list_for_user(session: AsyncSession, user_id: int) -> list[CashbackTransaction]:
        stmt = (
            select(CashbackTransaction)
            .where(CashbackTransaction.user_id == user_id)
            .order_by(CashbackTransaction.id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def sum_for_user(session: AsyncSession, user_id: int) -> Decimal:
        stmt = select(func.coalesce(func.sum(CashbackTransaction.amount), 0)).where(
            CashbackTransaction.user_id == user_id
        )
        return Decimal(await session.scalar(stmt) or 0)
