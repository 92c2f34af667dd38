from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.settings import Setting


class SettingsRepo:
    @staticmethod
    async def get_value(session: AsyncSession, key: str) -> str | None:
        stmt = select(Setting.value).where(Setting.key == key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def set_value(
        session: AsyncSession,
        *,
        key: str,
        value: str,
        updated_by: int | None,
        now_utc: datetime,
    ) -> int:
        stmt = (
            update(Setting)
            .where(Setting.key == key)
            .values(value=value, updated_by=updated_by, updated_at=now_utc)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def insert_if_absent(
        session: AsyncSession,
        *,
        key: str,
        value: str,
        value_type: str,
        label: str,
        category: str,
    ) -> bool:
        stmt = (
            pg_insert(Setting)
            .values(key=key, value=value, type=value_type, label=label, category=category)
            .on_conflict_do_nothing(index_elements=[Setting.key])
            .returning(Setting.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
