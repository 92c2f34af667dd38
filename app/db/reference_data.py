from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.commission_tiers_repo import CommissionTiersRepo
from app.db.repo.settings_repo import SettingsRepo
from app.services.settings_store import (
    SETTING_CASHBACK_EARNED_EMAIL,
    SETTING_FIRST_SALE_EMAIL,
    SETTING_FRAUD_ALERT_EMAIL,
    SETTING_MIN_PAYOUT_AMBASSADOR,
    SETTING_MIN_PAYOUT_CASHBACK,
    SETTING_PAYOUT_APPROVED_EMAIL,
    SETTING_PAYOUT_REQUEST_EMAIL,
    SETTING_TIER_UP_EMAIL,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TierSeed:
    name: str
    min_sales: int
    ambassador_rate_affiliate: Decimal
    ambassador_rate_dropship: Decimal
    sponsor_rate: Decimal


@dataclass(frozen=True, slots=True)
class SettingSeed:
    key: str
    value: str
    value_type: str
    label: str
    category: str


DEFAULT_TIERS: tuple[TierSeed, ...] = (
    TierSeed("beginner", 0, Decimal("25.00"), Decimal("15.00"), Decimal("10.00")),
    TierSeed("active", 10, Decimal("26.00"), Decimal("17.00"), Decimal("10.00")),
    TierSeed("performer", 30, Decimal("27.00"), Decimal("19.00"), Decimal("10.00")),
    TierSeed("expert", 75, Decimal("28.50"), Decimal("21.00"), Decimal("10.00")),
    TierSeed("elite", 150, Decimal("30.00"), Decimal("23.00"), Decimal("10.00")),
)

DEFAULT_SETTINGS: tuple[SettingSeed, ...] = (
    SettingSeed(SETTING_MIN_PAYOUT_CASHBACK, "10", "number", "Minimum cashback withdrawal (EUR)", "payouts"),
    SettingSeed(SETTING_MIN_PAYOUT_AMBASSADOR, "50", "number", "Minimum ambassador payout (EUR)", "payouts"),
    SettingSeed(SETTING_FIRST_SALE_EMAIL, "true", "boolean", "Notify on first sale", "notifications"),
    SettingSeed(SETTING_TIER_UP_EMAIL, "true", "boolean", "Notify on tier up", "notifications"),
    SettingSeed(SETTING_CASHBACK_EARNED_EMAIL, "true", "boolean", "Notify on cashback credit", "notifications"),
    SettingSeed(SETTING_PAYOUT_APPROVED_EMAIL, "true", "boolean", "Notify on approved payout", "notifications"),
    SettingSeed(SETTING_PAYOUT_REQUEST_EMAIL, "true", "boolean", "Alert admins on payout request", "notifications"),
    SettingSeed(SETTING_FRAUD_ALERT_EMAIL, "true", "boolean", "Alert admins on high severity fraud", "notifications"),
)


async def seed_reference_data(session: AsyncSession) -> dict[str, int]:
    """Upserts tier rates; inserts settings only where the key is missing."""
    for tier in DEFAULT_TIERS:
        await CommissionTiersRepo.upsert(
            session,
            name=tier.name,
            min_sales=tier.min_sales,
            ambassador_rate_affiliate=tier.ambassador_rate_affiliate,
            ambassador_rate_dropship=tier.ambassador_rate_dropship,
            sponsor_rate=tier.sponsor_rate,
        )
    settings_created = 0
    for setting in DEFAULT_SETTINGS:
        created = await SettingsRepo.insert_if_absent(
            session,
            key=setting.key,
            value=setting.value,
            value_type=setting.value_type,
            label=setting.label,
            category=setting.category,
        )
        settings_created += int(created)

    result = {"tiers_upserted": len(DEFAULT_TIERS), "settings_created": settings_created}
    logger.info("reference_data_seeded", **result)
    return result
