from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.affiliate_programs import AffiliateProgram


class AffiliateProgramsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, program_id: int) -> AffiliateProgram | None:
        return await session.get(AffiliateProgram, program_id)
