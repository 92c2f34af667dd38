from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.audit_logs import AuditLog


class AuditLogsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        admin_id: int | None,
        action: str,
        entity_type: str,
        entity_id: str | None,
        old_values: dict[str, object] | None,
        new_values: dict[str, object] | None,
    ) -> AuditLog:
        entry = AuditLog(
            admin_id=admin_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
        )
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def list_for_entity(
        session: AsyncSession,
        *,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditLog]:
        stmt = (
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
