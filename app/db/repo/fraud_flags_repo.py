from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.fraud_flags import FraudFlag


class FraudFlagsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, flag_id: int) -> FraudFlag | None:
        return await session.get(FraudFlag, flag_id)

    @staticmethod
    async def insert_pending_if_absent(
        session: AsyncSession,
        *,
        user_id: int,
        flag_type: str,
        severity: str,
        details: dict[str, object],
    ) -> int | None:
        stmt = (
            pg_insert(FraudFlag)
            .values(
                user_id=user_id,
                type=flag_type,
                severity=severity,
                status="pending",
                details=details,
            )
            .on_conflict_do_nothing(
                index_elements=[FraudFlag.user_id, FraudFlag.type],
                index_where=FraudFlag.status == "pending",
            )
            .returning(FraudFlag.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_user(session: AsyncSession, user_id: int) -> list[FraudFlag]:
        stmt = select(FraudFlag).where(FraudFlag.user_id == user_id).order_by(FraudFlag.id.asc())
        result = await session.execute(stmt)
        return list(result.scalars().all())
