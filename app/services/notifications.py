from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.fraud_flags import FraudFlag
from app.db.repo.conversions_repo import ConversionsRepo
from app.db.repo.fraud_flags_repo import FraudFlagsRepo
from app.db.repo.notifications_repo import NotificationsRepo
from app.db.repo.payouts_repo import PayoutsRepo
from app.db.repo.users_repo import UsersRepo
from app.services.alerts import send_ops_alert
from app.services.settings_store import (
    SETTING_CASHBACK_EARNED_EMAIL,
    SETTING_FIRST_SALE_EMAIL,
    SETTING_FRAUD_ALERT_EMAIL,
    SETTING_PAYOUT_APPROVED_EMAIL,
    SETTING_PAYOUT_REQUEST_EMAIL,
    SETTING_TIER_UP_EMAIL,
    SettingsStore,
)

logger = structlog.get_logger(__name__)

NOTIFICATION_SALE = "sale"
NOTIFICATION_TIER_UP = "tier_up"
NOTIFICATION_CASHBACK_EARNED = "cashback_earned"
NOTIFICATION_PAYOUT = "payout"


class NotificationSink(Protocol):
    async def on_first_sale(self, conversion_id: int) -> None: ...

    async def on_tier_up(self, user_id: int, tier_name: str, new_rate: Decimal) -> None: ...

    async def on_cashback_earned(self, user_id: int, amount: Decimal, program_name: str) -> None: ...

    async def on_fraud_flag_created(self, flag_id: int) -> None: ...

    async def on_payout_approved(self, payout_id: int) -> None: ...

    async def on_payout_requested(self, payout_id: int) -> None: ...


def _format_amount(amount: Decimal) -> str:
    return f"{Decimal(amount):.2f} EUR"


def fraud_alert_payload(flag: FraudFlag) -> dict[str, object]:
    return {
        "flag_id": flag.id,
        "user_id": flag.user_id,
        "type": flag.type,
        "severity": flag.severity,
        "details": flag.details,
    }


class InAppNotificationSink:
    """Writes in-app notification rows, each gated by its settings switch."""

    def __init__(
        self,
        *,
        settings_store: SettingsStore,
        session_factory: Callable[[], AsyncSession],
    ) -> None:
        self._settings = settings_store
        self._session_factory = session_factory

    async def _is_enabled(self, setting_key: str, *, trigger: str) -> bool:
        if await self._settings.get_bool(setting_key):
            return True
        logger.info("notification_disabled", trigger=trigger, setting=setting_key)
        return False

    async def _write(self, *, user_id: int, notification_type: str, title: str, message: str) -> None:
        async with self._session_factory() as session, session.begin():
            await NotificationsRepo.create(
                session,
                user_id=user_id,
                notification_type=notification_type,
                title=title,
                message=message,
            )
        logger.info("notification_created", user_id=user_id, notification_type=notification_type)

    async def on_first_sale(self, conversion_id: int) -> None:
        if not await self._is_enabled(SETTING_FIRST_SALE_EMAIL, trigger="first_sale"):
            return
        async with self._session_factory() as session:
            conversion = await ConversionsRepo.get_by_id(session, conversion_id)
        if conversion is None:
            logger.warning("notification_conversion_missing", conversion_id=conversion_id)
            return
        await self._write(
            user_id=conversion.ambassador_id,
            notification_type=NOTIFICATION_SALE,
            title="First sale!",
            message=f"Congratulations! You made your first sale of {_format_amount(conversion.amount)}.",
        )

    async def on_tier_up(self, user_id: int, tier_name: str, new_rate: Decimal) -> None:
        if not await self._is_enabled(SETTING_TIER_UP_EMAIL, trigger="tier_up"):
            return
        await self._write(
            user_id=user_id,
            notification_type=NOTIFICATION_TIER_UP,
            title="Tier up!",
            message=f"You reached the {tier_name} tier. New rate: {new_rate}%.",
        )

    async def on_cashback_earned(self, user_id: int, amount: Decimal, program_name: str) -> None:
        if not await self._is_enabled(SETTING_CASHBACK_EARNED_EMAIL, trigger="cashback_earned"):
            return
        await self._write(
            user_id=user_id,
            notification_type=NOTIFICATION_CASHBACK_EARNED,
            title="Cashback credited!",
            message=f"+{_format_amount(amount)} cashback at {program_name}.",
        )

    async def on_fraud_flag_created(self, flag_id: int) -> None:
        if not await self._is_enabled(SETTING_FRAUD_ALERT_EMAIL, trigger="fraud_flag_created"):
            return
        async with self._session_factory() as session:
            flag = await FraudFlagsRepo.get_by_id(session, flag_id)
        if flag is None:
            logger.warning("notification_fraud_flag_missing", flag_id=flag_id)
            return
        await send_ops_alert(
            event="fraud_flag_created",
            payload=fraud_alert_payload(flag),
            severity=flag.severity,
        )

    async def on_payout_approved(self, payout_id: int) -> None:
        if not await self._is_enabled(SETTING_PAYOUT_APPROVED_EMAIL, trigger="payout_approved"):
            return
        async with self._session_factory() as session:
            payout = await PayoutsRepo.get_by_id(session, payout_id)
        if payout is None:
            logger.warning("notification_payout_missing", payout_id=payout_id)
            return
        await self._write(
            user_id=payout.user_id,
            notification_type=NOTIFICATION_PAYOUT,
            title="Payout approved!",
            message=f"Your payout of {_format_amount(payout.amount)} has been approved.",
        )

    async def on_payout_requested(self, payout_id: int) -> None:
        if not await self._is_enabled(SETTING_PAYOUT_REQUEST_EMAIL, trigger="payout_requested"):
            return
        async with self._session_factory() as session:
            payout = await PayoutsRepo.get_by_id(session, payout_id)
            user = await UsersRepo.get_by_id(session, payout.user_id) if payout is not None else None
        if payout is None:
            logger.warning("notification_payout_missing", payout_id=payout_id)
            return
        await send_ops_alert(
            event="payout_requested",
            payload={
                "payout_id": payout.id,
                "user_id": payout.user_id,
                "user_name": user.name if user is not None else None,
                "type": payout.type,
                "method": payout.method,
                "amount": str(payout.amount),
            },
            severity="low",
        )
