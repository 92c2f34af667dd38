from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

import structlog

from app.economy.commissions.constants import (
    BOOST_AMBASSADOR_RATE,
    BOOST_BUYER_CASHBACK,
    BOOST_SPONSOR_RATE,
    MONEY_QUANT,
    PERCENT,
    SALE_TYPE_AFFILIATE,
    SALE_TYPE_DROPSHIP,
)
from app.economy.commissions.errors import DistributionExceededError, InvalidRateError
from app.economy.commissions.types import (
    BoostCandidate,
    BoostOverride,
    CommissionShares,
    RateSource,
    ResolvedRates,
    TierRates,
)

logger = structlog.get_logger(__name__)


def round_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def select_tier(tiers: Iterable[TierRates], total_sales: int) -> TierRates | None:
    qualifying = [tier for tier in tiers if tier.min_sales <= total_sales]
    if not qualifying:
        return None
    return max(qualifying, key=lambda tier: tier.min_sales)


def is_boost_eligible(boost: BoostCandidate, *, ambassador_id: int, now_utc: datetime) -> bool:
    if not boost.is_active:
        return False
    if boost.start_date > now_utc:
        return False
    if boost.end_date is not None and boost.end_date < now_utc:
        return False
    if boost.max_uses is not None and boost.current_uses >= boost.max_uses:
        return False
    return boost.user_id is None or boost.user_id == ambassador_id


def build_boost_overrides(
    boosts: Iterable[BoostCandidate],
    *,
    ambassador_id: int,
    now_utc: datetime,
) -> dict[str, BoostOverride]:
    # User-scoped boosts are evaluated before global ones; the first eligible
    # boost per dimension wins, whatever its value.
    ordered = sorted(boosts, key=lambda boost: boost.user_id is None)
    overrides: dict[str, BoostOverride] = {}
    for boost in ordered:
        if boost.dimension in overrides:
            continue
        if not is_boost_eligible(boost, ambassador_id=ambassador_id, now_utc=now_utc):
            continue
        overrides[boost.dimension] = BoostOverride(boost_id=boost.id, value=Decimal(boost.value))
    return overrides


def _tier_ambassador_rate(tier: TierRates, sale_type: str) -> Decimal:
    if sale_type == SALE_TYPE_AFFILIATE:
        return Decimal(tier.ambassador_rate_affiliate)
    if sale_type == SALE_TYPE_DROPSHIP:
        return Decimal(tier.ambassador_rate_dropship)
    raise ValueError(f"unknown sale type: {sale_type}")


def ensure_rates_in_range(rates: ResolvedRates) -> None:
    for rate_name, value, source in (
        ("ambassador_rate", rates.ambassador_rate, rates.ambassador_source),
        ("sponsor_rate", rates.sponsor_rate, rates.sponsor_source),
        ("buyer_rate", rates.buyer_rate, rates.buyer_source),
    ):
        if not Decimal("0") <= value <= PERCENT:
            logger.error(
                "commission_rate_out_of_range",
                rate_name=rate_name,
                value=str(value),
                source=source.value,
                tier_name=rates.tier_name,
            )
            raise InvalidRateError(rate_name=rate_name, value=value, source=source.value)


def resolve_rates(
    *,
    tier: TierRates,
    sale_type: str,
    has_sponsor: bool,
    boost_overrides: Mapping[str, BoostOverride],
    product_buyer_override: Decimal | None = None,
    category_buyer_rate: Decimal | None = None,
    program_buyer_rate: Decimal | None = None,
    default_buyer_rate: Decimal,
) -> ResolvedRates:
    applied_boost_ids: list[int] = []

    ambassador_boost = boost_overrides.get(BOOST_AMBASSADOR_RATE)
    if ambassador_boost is not None:
        ambassador_rate = ambassador_boost.value
        ambassador_source = RateSource.BOOST
        applied_boost_ids.append(ambassador_boost.boost_id)
    else:
        ambassador_rate = _tier_ambassador_rate(tier, sale_type)
        ambassador_source = RateSource.TIER

    sponsor_boost = boost_overrides.get(BOOST_SPONSOR_RATE)
    if not has_sponsor:
        sponsor_rate = Decimal("0")
        sponsor_source = RateSource.NO_SPONSOR
    elif sponsor_boost is not None:
        sponsor_rate = sponsor_boost.value
        sponsor_source = RateSource.BOOST
        applied_boost_ids.append(sponsor_boost.boost_id)
    else:
        sponsor_rate = Decimal(tier.sponsor_rate)
        sponsor_source = RateSource.TIER

    buyer_boost = boost_overrides.get(BOOST_BUYER_CASHBACK)
    if buyer_boost is not None:
        buyer_rate = buyer_boost.value
        buyer_source = RateSource.BOOST
        applied_boost_ids.append(buyer_boost.boost_id)
    elif product_buyer_override is not None:
        buyer_rate = Decimal(product_buyer_override)
        buyer_source = RateSource.PRODUCT
    elif sale_type == SALE_TYPE_DROPSHIP and category_buyer_rate is not None:
        buyer_rate = Decimal(category_buyer_rate)
        buyer_source = RateSource.CATEGORY
    elif program_buyer_rate is not None:
        buyer_rate = Decimal(program_buyer_rate)
        buyer_source = RateSource.PROGRAM
    else:
        buyer_rate = default_buyer_rate
        buyer_source = RateSource.DEFAULT

    resolved = ResolvedRates(
        ambassador_rate=ambassador_rate,
        sponsor_rate=sponsor_rate,
        buyer_rate=buyer_rate,
        ambassador_source=ambassador_source,
        sponsor_source=sponsor_source,
        buyer_source=buyer_source,
        tier_name=tier.name,
        applied_boost_ids=tuple(applied_boost_ids),
    )
    ensure_rates_in_range(resolved)
    return resolved


def needs_program_buyer_rate(
    *,
    sale_type: str,
    boost_overrides: Mapping[str, BoostOverride],
    product_buyer_override: Decimal | None,
    category_buyer_rate: Decimal | None,
) -> bool:
    if BOOST_BUYER_CASHBACK in boost_overrides:
        return False
    if product_buyer_override is not None:
        return False
    return not (sale_type == SALE_TYPE_DROPSHIP and category_buyer_rate is not None)


def share_of(commission_total: Decimal, rate: Decimal) -> Decimal:
    return round_money(Decimal(commission_total) * Decimal(rate) / PERCENT)


def calculate_shares(rates: ResolvedRates, commission_total: Decimal) -> CommissionShares:
    """Split a commission into the four shares.

    Each rated share is rounded half-up to cents; the platform keeps the exact
    remainder, so the four shares always add up to ``commission_total``.
    """
    ensure_rates_in_range(rates)
    total = round_money(commission_total)
    ambassador_share = share_of(total, rates.ambassador_rate)
    sponsor_share = share_of(total, rates.sponsor_rate)
    buyer_share = share_of(total, rates.buyer_rate)
    platform_share = total - ambassador_share - sponsor_share - buyer_share

    if platform_share < 0:
        logger.error(
            "commission_distribution_exceeded",
            commission_total=str(total),
            ambassador_rate=str(rates.ambassador_rate),
            sponsor_rate=str(rates.sponsor_rate),
            buyer_rate=str(rates.buyer_rate),
            tier_name=rates.tier_name,
        )
        raise DistributionExceededError(
            f"commission distribution exceeds total {total}: platform share {platform_share}"
        )

    return CommissionShares(
        ambassador_share=ambassador_share,
        sponsor_share=sponsor_share,
        buyer_share=buyer_share,
        platform_share=platform_share,
    )


def derive_commission_total(amount: Decimal, avg_commission_rate: Decimal) -> Decimal:
    return share_of(amount, avg_commission_rate)
