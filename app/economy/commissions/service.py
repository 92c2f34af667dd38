from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.commission_boosts import CommissionBoost
from app.db.models.commission_tiers import CommissionTier
from app.db.repo.affiliate_programs_repo import AffiliateProgramsRepo
from app.db.repo.commission_boosts_repo import CommissionBoostsRepo
from app.db.repo.commission_tiers_repo import CommissionTiersRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.commissions.constants import DEFAULT_BUYER_CASHBACK_RATE, SALE_TYPES
from app.economy.commissions.errors import NoTierFoundError, NotFoundError
from app.economy.commissions.rules import (
    build_boost_overrides,
    calculate_shares,
    needs_program_buyer_rate,
    resolve_rates,
)
from app.economy.commissions.types import BoostCandidate, CommissionShares, ResolvedRates, TierRates


def tier_rates_from_model(tier: CommissionTier) -> TierRates:
    return TierRates(
        name=tier.name,
        min_sales=tier.min_sales,
        ambassador_rate_affiliate=Decimal(tier.ambassador_rate_affiliate),
        ambassador_rate_dropship=Decimal(tier.ambassador_rate_dropship),
        sponsor_rate=Decimal(tier.sponsor_rate),
    )


def boost_candidate_from_model(boost: CommissionBoost) -> BoostCandidate:
    return BoostCandidate(
        id=boost.id,
        user_id=boost.user_id,
        dimension=boost.type,
        value=Decimal(boost.boost_value),
        start_date=boost.start_date,
        end_date=boost.end_date,
        max_uses=boost.max_uses,
        current_uses=boost.current_uses,
        is_active=boost.is_active,
    )


class CommissionService:
    @staticmethod
    async def get_tier_for_total_sales(session: AsyncSession, total_sales: int) -> TierRates:
        tier = await CommissionTiersRepo.get_for_total_sales(session, total_sales)
        if tier is None:
            raise NoTierFoundError(total_sales)
        return tier_rates_from_model(tier)

    @staticmethod
    async def resolve_rates(
        session: AsyncSession,
        *,
        ambassador_id: int,
        affiliate_program_id: int,
        sale_type: str,
        now_utc: datetime,
        product_buyer_override: Decimal | None = None,
        category_buyer_rate: Decimal | None = None,
    ) -> ResolvedRates:
        if sale_type not in SALE_TYPES:
            raise ValueError(f"unknown sale type: {sale_type}")

        ambassador = await UsersRepo.get_by_id(session, ambassador_id)
        if ambassador is None:
            raise NotFoundError("ambassador", ambassador_id)

        tier = await CommissionService.get_tier_for_total_sales(session, ambassador.total_sales)

        boosts = await CommissionBoostsRepo.list_in_window_for_user(
            session,
            user_id=ambassador_id,
            now_utc=now_utc,
        )
        overrides = build_boost_overrides(
            (boost_candidate_from_model(boost) for boost in boosts),
            ambassador_id=ambassador_id,
            now_utc=now_utc,
        )

        program_buyer_rate: Decimal | None = None
        if needs_program_buyer_rate(
            sale_type=sale_type,
            boost_overrides=overrides,
            product_buyer_override=product_buyer_override,
            category_buyer_rate=category_buyer_rate,
        ):
            program = await AffiliateProgramsRepo.get_by_id(session, affiliate_program_id)
            if program is not None:
                program_buyer_rate = Decimal(program.buyer_cashback_rate)

        return resolve_rates(
            tier=tier,
            sale_type=sale_type,
            has_sponsor=ambassador.referred_by is not None,
            boost_overrides=overrides,
            product_buyer_override=product_buyer_override,
            category_buyer_rate=category_buyer_rate,
            program_buyer_rate=program_buyer_rate,
            default_buyer_rate=DEFAULT_BUYER_CASHBACK_RATE,
        )

    @staticmethod
    def calculate_shares(rates: ResolvedRates, commission_total: Decimal) -> CommissionShares:
        return calculate_shares(rates, commission_total)

    @staticmethod
    async def record_boost_usage(session: AsyncSession, boost_ids: tuple[int, ...]) -> int:
        return await CommissionBoostsRepo.increment_uses(session, boost_ids)
