from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class RateSource(str, Enum):
    BOOST = "boost"
    TIER = "tier"
    NO_SPONSOR = "no_sponsor"
    PRODUCT = "product"
    CATEGORY = "category"
    PROGRAM = "program"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class TierRates:
    name: str
    min_sales: int
    ambassador_rate_affiliate: Decimal
    ambassador_rate_dropship: Decimal
    sponsor_rate: Decimal


@dataclass(frozen=True, slots=True)
class BoostCandidate:
    id: int
    user_id: int | None
    dimension: str
    value: Decimal
    start_date: datetime
    end_date: datetime | None
    max_uses: int | None
    current_uses: int
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class BoostOverride:
    boost_id: int
    value: Decimal


@dataclass(frozen=True, slots=True)
class ResolvedRates:
    ambassador_rate: Decimal
    sponsor_rate: Decimal
    buyer_rate: Decimal
    ambassador_source: RateSource
    sponsor_source: RateSource
    buyer_source: RateSource
    tier_name: str
    applied_boost_ids: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class CommissionShares:
    ambassador_share: Decimal
    sponsor_share: Decimal
    buyer_share: Decimal
    platform_share: Decimal

    @property
    def total(self) -> Decimal:
        return self.ambassador_share + self.sponsor_share + self.buyer_share + self.platform_share
