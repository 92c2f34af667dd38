from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.users import User


class UsersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: int) -> User | None:
        return await session.get(User, user_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, user_id: int) -> User | None:
        # populate_existing: a row already in the identity map must be refreshed
        # with the value read under the lock, not served from the session cache.
        stmt = (
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        email: str,
        name: str,
        referral_code: str,
        role: str = "ambassador",
        referred_by: int | None = None,
        tier: str = "beginner",
        total_sales: int = 0,
    ) -> User:
        user = User(
            email=email,
            name=name,
            role=role,
            referral_code=referral_code,
            referred_by=referred_by,
            tier=tier,
            total_sales=total_sales,
        )
        session.add(user)
        await session.flush()
        return user
