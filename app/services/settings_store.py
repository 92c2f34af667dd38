from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.audit_logs_repo import AuditLogsRepo
from app.db.repo.settings_repo import SettingsRepo

logger = structlog.get_logger(__name__)

SETTING_MIN_PAYOUT_CASHBACK = "min_payout_cashback"
SETTING_MIN_PAYOUT_AMBASSADOR = "min_payout_ambassador"
SETTING_FIRST_SALE_EMAIL = "first_sale_email"
SETTING_TIER_UP_EMAIL = "tier_up_email"
SETTING_CASHBACK_EARNED_EMAIL = "cashback_earned_email"
SETTING_PAYOUT_APPROVED_EMAIL = "payout_approved_email"
SETTING_PAYOUT_REQUEST_EMAIL = "payout_request_email"
SETTING_FRAUD_ALERT_EMAIL = "fraud_alert_email"

DEFAULT_MIN_PAYOUT_CASHBACK = Decimal("10")
DEFAULT_MIN_PAYOUT_AMBASSADOR = Decimal("50")

TRUE_VALUES = frozenset({"true", "1"})


class UnknownSettingError(KeyError):
    pass


class SettingsStore:
    """Key/value business switches backed by the ``settings`` table.

    The cache lives on the instance, so whoever builds the store owns its
    lifetime. Writes through :meth:`update` drop the cached key; writes made
    elsewhere are only seen after :meth:`invalidate`.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory
        self._cache: dict[str, str] = {}

    async def get(self, key: str) -> str:
        if key in self._cache:
            return self._cache[key]
        async with self._session_factory() as session:
            value = await SettingsRepo.get_value(session, key)
        resolved = value if value is not None else ""
        self._cache[key] = resolved
        return resolved

    async def get_number(self, key: str) -> Decimal | None:
        raw = (await self.get(key)).strip()
        if not raw:
            return None
        try:
            return Decimal(raw)
        except InvalidOperation:
            logger.warning("setting_not_numeric", key=key, value=raw)
            return None

    async def get_bool(self, key: str) -> bool:
        return (await self.get(key)).strip().lower() in TRUE_VALUES

    async def min_payout_cashback(self) -> Decimal:
        value = await self.get_number(SETTING_MIN_PAYOUT_CASHBACK)
        return value if value else DEFAULT_MIN_PAYOUT_CASHBACK

    async def min_payout_ambassador(self) -> Decimal:
        value = await self.get_number(SETTING_MIN_PAYOUT_AMBASSADOR)
        return value if value else DEFAULT_MIN_PAYOUT_AMBASSADOR

    async def update(self, key: str, value: str, *, admin_id: int) -> None:
        old_value = await self.get(key)
        async with self._session_factory() as session, session.begin():
            updated = await SettingsRepo.set_value(
                session,
                key=key,
                value=value,
                updated_by=admin_id,
                now_utc=datetime.now(timezone.utc),
            )
            if not updated:
                raise UnknownSettingError(key)
            await AuditLogsRepo.create(
                session,
                admin_id=admin_id,
                action="setting.updated",
                entity_type="setting",
                entity_id=key,
                old_values={key: old_value},
                new_values={key: value},
            )
        self._cache.pop(key, None)
        logger.info("setting_updated", key=key, admin_id=admin_id)

    def invalidate(self) -> None:
        self._cache.clear()
