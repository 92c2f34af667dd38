from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models.conversions import Conversion
from app.db.repo.conversions_repo import ConversionsRepo
from app.db.session import SessionLocal
from app.economy.conversions import lifecycle
from app.economy.conversions.create import create_conversion
from app.economy.conversions.errors import DuplicateConversionError
from app.economy.conversions.events import EventPublisher
from app.economy.conversions.types import (
    ConversionCreateResult,
    CreateConversionParams,
    RecordSaleResult,
)

logger = structlog.get_logger(__name__)


class ConversionService:
    @staticmethod
    async def create(
        params: CreateConversionParams,
        *,
        publisher: EventPublisher,
        session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
        now_utc: datetime | None = None,
    ) -> ConversionCreateResult:
        return await create_conversion(
            params,
            publisher=publisher,
            session_factory=session_factory,
            now_utc=now_utc,
        )

    @staticmethod
    async def record_sale(
        params: CreateConversionParams,
        *,
        publisher: EventPublisher,
        session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
        now_utc: datetime | None = None,
    ) -> RecordSaleResult:
        """Creates the conversion unless this ``order_ref`` was already recorded.

        Safe to call again for a replayed postback or import row.
        """
        if params.order_ref:
            existing = await ConversionService._find_existing(session_factory, params)
            if existing is not None:
                logger.info(
                    "conversion_replay_skipped",
                    conversion_id=existing.id,
                    order_ref=params.order_ref,
                    affiliate_program_id=params.affiliate_program_id,
                )
                return RecordSaleResult(conversion=existing, created=False)

        try:
            result = await create_conversion(
                params,
                publisher=publisher,
                session_factory=session_factory,
                now_utc=now_utc,
            )
        except DuplicateConversionError:
            existing = await ConversionService._find_existing(session_factory, params)
            if existing is None:
                raise
            return RecordSaleResult(conversion=existing, created=False)
        return RecordSaleResult(conversion=result.conversion, created=True)

    @staticmethod
    async def _find_existing(
        session_factory: async_sessionmaker[AsyncSession],
        params: CreateConversionParams,
    ) -> Conversion | None:
        if not params.order_ref:
            return None
        async with session_factory() as session:
            return await ConversionsRepo.get_by_order_ref(
                session,
                order_ref=params.order_ref,
                affiliate_program_id=params.affiliate_program_id,
            )

    @staticmethod
    async def confirm(
        session: AsyncSession,
        conversion_id: int,
        *,
        admin_id: int | None,
        now_utc: datetime | None = None,
    ) -> Conversion:
        return await lifecycle.confirm_conversion(
            session,
            conversion_id,
            admin_id=admin_id,
            now_utc=now_utc or datetime.now(timezone.utc),
        )

    @staticmethod
    async def pay(
        session: AsyncSession,
        conversion_id: int,
        *,
        admin_id: int | None,
        now_utc: datetime | None = None,
    ) -> Conversion:
        return await lifecycle.pay_conversion(
            session,
            conversion_id,
            admin_id=admin_id,
            now_utc=now_utc or datetime.now(timezone.utc),
        )

    @staticmethod
    async def cancel(
        session: AsyncSession,
        conversion_id: int,
        *,
        admin_id: int | None,
        reason: str,
    ) -> Conversion:
        return await lifecycle.cancel_conversion(
            session,
            conversion_id,
            admin_id=admin_id,
            reason=reason,
        )
