from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.notifications import Notification


class NotificationsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        user_id: int,
        notification_type: str,
        title: str,
        message: str,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            is_read=False,
        )
        session.add(notification)
        await session.flush()
        return notification

    @staticmethod
    async def list_for_user(session: AsyncSession, user_id: int) -> list[Notification]:
        stmt = select(Notification).where(Notification.user_id == user_id).order_by(Notification.id.asc())
        result = await session.execute(stmt)
        return list(result.scalars().all())
