from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models.conversions import Conversion
from app.db.models.users import User
from app.db.repo.affiliate_programs_repo import AffiliateProgramsRepo
from app.db.repo.conversions_repo import ConversionsRepo
from app.db.repo.users_repo import UsersRepo
from app.db.session import SessionLocal
from app.economy.cashback.service import CashbackService
from app.economy.commissions.constants import SALE_TYPES
from app.economy.commissions.errors import NotFoundError
from app.economy.commissions.rules import round_money
from app.economy.commissions.service import CommissionService
from app.economy.conversions.errors import DuplicateConversionError
from app.economy.conversions.events import EventPublisher, build_conversion_events, publish_post_commit
from app.economy.conversions.types import (
    STATUS_PENDING,
    ConversionCreateResult,
    CreateConversionParams,
    TierChange,
)

logger = structlog.get_logger(__name__)

ORDER_REF_CONSTRAINT = "uq_conversions_order_ref_program"


def _validate_params(params: CreateConversionParams) -> None:
    if params.sale_type not in SALE_TYPES:
        raise ValueError(f"unknown sale type: {params.sale_type}")
    if params.amount < 0:
        raise ValueError("amount must not be negative")
    if params.commission_total < 0:
        raise ValueError("commission_total must not be negative")


async def _lock_participants(
    session: AsyncSession,
    *,
    ambassador_id: int,
    buyer_user_id: int | None,
) -> tuple[User, User | None]:
    # Locks are always taken in ascending user id order.
    user_ids = sorted({ambassador_id} | ({buyer_user_id} if buyer_user_id is not None else set()))
    locked: dict[int, User] = {}
    for user_id in user_ids:
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is not None:
            locked[user_id] = user

    ambassador = locked.get(ambassador_id)
    if ambassador is None:
        raise NotFoundError("ambassador", ambassador_id)
    buyer: User | None = None
    if buyer_user_id is not None:
        buyer = locked.get(buyer_user_id)
        if buyer is None:
            raise NotFoundError("buyer", buyer_user_id)
    return ambassador, buyer


async def create_conversion_in_session(
    session: AsyncSession,
    params: CreateConversionParams,
    *,
    now_utc: datetime,
) -> ConversionCreateResult:
    """Records one sale inside the caller's transaction.

    Performs no ``order_ref`` lookup; a replayed event is rejected only by the
    unique index when the transaction flushes.
    """
    _validate_params(params)
    ambassador, _ = await _lock_participants(
        session,
        ambassador_id=params.ambassador_id,
        buyer_user_id=params.buyer_user_id,
    )

    rates = await CommissionService.resolve_rates(
        session,
        ambassador_id=params.ambassador_id,
        affiliate_program_id=params.affiliate_program_id,
        sale_type=params.sale_type,
        now_utc=now_utc,
        product_buyer_override=params.product_buyer_override,
        category_buyer_rate=params.category_buyer_rate,
    )
    shares = CommissionService.calculate_shares(rates, params.commission_total)

    conversion = await ConversionsRepo.create(
        session,
        conversion=Conversion(
            ambassador_id=ambassador.id,
            sponsor_id=ambassador.referred_by,
            buyer_user_id=params.buyer_user_id,
            product_id=params.product_id,
            outbound_click_id=params.outbound_click_id,
            affiliate_program_id=params.affiliate_program_id,
            type=params.sale_type,
            order_ref=params.order_ref,
            amount=round_money(params.amount),
            commission_total=shares.total,
            ambassador_share=shares.ambassador_share,
            sponsor_share=shares.sponsor_share,
            buyer_share=shares.buyer_share,
            platform_share=shares.platform_share,
            applied_ambassador_rate=rates.ambassador_rate,
            applied_sponsor_rate=rates.sponsor_rate,
            applied_buyer_rate=rates.buyer_rate,
            status=STATUS_PENDING,
            attribution_method=params.attribution_method,
            attribution_confidence=params.attribution_confidence,
            created_at=now_utc,
        ),
    )

    buyer_credit: Decimal | None = None
    program_name: str | None = None
    if params.buyer_user_id is not None and shares.buyer_share > 0:
        change = await CashbackService.credit(
            session,
            user_id=params.buyer_user_id,
            amount=shares.buyer_share,
            conversion_id=conversion.id,
        )
        buyer_credit = change.amount
        program = await AffiliateProgramsRepo.get_by_id(session, params.affiliate_program_id)
        program_name = program.display_name if program is not None else None

    if rates.applied_boost_ids:
        await CommissionService.record_boost_usage(session, rates.applied_boost_ids)

    ambassador.total_sales += 1
    ambassador.updated_at = now_utc
    new_tier = await CommissionService.get_tier_for_total_sales(session, ambassador.total_sales)
    tier_change: TierChange | None = None
    if new_tier.name != ambassador.tier:
        ambassador.tier = new_tier.name
        tier_change = TierChange(
            name=new_tier.name,
            ambassador_rate=new_tier.ambassador_rate_affiliate,
        )
    await session.flush()

    logger.info(
        "conversion_created",
        conversion_id=conversion.id,
        ambassador_id=ambassador.id,
        commission_total=str(conversion.commission_total),
        platform_share=str(conversion.platform_share),
        tier=ambassador.tier,
        tier_changed=tier_change is not None,
    )
    return ConversionCreateResult(
        conversion=conversion,
        is_first_sale=ambassador.total_sales == 1,
        tier_change=tier_change,
        buyer_credit=buyer_credit,
        program_name=program_name,
    )


def _is_order_ref_conflict(exc: IntegrityError) -> bool:
    return ORDER_REF_CONSTRAINT in str(exc.orig)


async def create_conversion(
    params: CreateConversionParams,
    *,
    publisher: EventPublisher,
    session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
    now_utc: datetime | None = None,
) -> ConversionCreateResult:
    now_utc = now_utc or datetime.now(timezone.utc)
    try:
        async with session_factory.begin() as session:
            result = await create_conversion_in_session(session, params, now_utc=now_utc)
    except IntegrityError as exc:
        if _is_order_ref_conflict(exc):
            raise DuplicateConversionError(
                order_ref=params.order_ref,
                affiliate_program_id=params.affiliate_program_id,
            ) from exc
        raise

    await publish_post_commit(publisher, build_conversion_events(result))
    return result
