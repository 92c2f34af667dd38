from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.repo.conversions_repo import ConversionsRepo
from app.db.repo.fraud_flags_repo import FraudFlagsRepo
from app.db.repo.outbound_clicks_repo import OutboundClicksRepo
from app.db.repo.users_repo import UsersRepo
from app.db.session import SessionLocal
from app.economy.conversions.events import (
    EVENT_FRAUD_FLAG_CREATED,
    EventPublisher,
    PostCommitEvent,
    publish_post_commit,
)
from app.economy.fraud.constants import (
    ALERT_SEVERITIES,
    CLICK_SPAM_WINDOW,
    FLAG_CLICK_SPAM,
    FLAG_RAPID_CONVERSION,
    FLAG_SELF_BUY,
    FLAG_SELF_REFERRAL,
    RAPID_CONVERSION_WINDOW,
)
from app.economy.fraud.rules import (
    FraudSignal,
    detect_click_spam,
    detect_rapid_conversions,
    detect_self_buy,
    detect_self_referral,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ScanSubject:
    conversion_id: int
    ambassador_id: int
    buyer_user_id: int | None
    referred_by: int | None


@dataclass(frozen=True, slots=True)
class CreatedFlag:
    flag_id: int
    user_id: int
    flag_type: str
    severity: str


async def flag_if_new(
    session: AsyncSession,
    *,
    user_id: int,
    signal: FraudSignal,
) -> CreatedFlag | None:
    flag_id = await FraudFlagsRepo.insert_pending_if_absent(
        session,
        user_id=user_id,
        flag_type=signal.flag_type,
        severity=signal.severity,
        details=signal.details,
    )
    if flag_id is None:
        logger.info("fraud_flag_already_pending", user_id=user_id, flag_type=signal.flag_type)
        return None
    logger.warning(
        "fraud_flag_created",
        flag_id=flag_id,
        user_id=user_id,
        flag_type=signal.flag_type,
        severity=signal.severity,
    )
    return CreatedFlag(flag_id=flag_id, user_id=user_id, flag_type=signal.flag_type, severity=signal.severity)


class FraudScanner:
    def __init__(
        self,
        *,
        publisher: EventPublisher,
        session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
    ) -> None:
        self._publisher = publisher
        self._session_factory = session_factory

    async def _load_subject(self, conversion_id: int) -> ScanSubject | None:
        async with self._session_factory() as session:
            conversion = await ConversionsRepo.get_by_id(session, conversion_id)
            if conversion is None:
                return None
            ambassador = await UsersRepo.get_by_id(session, conversion.ambassador_id)
            return ScanSubject(
                conversion_id=conversion.id,
                ambassador_id=conversion.ambassador_id,
                buyer_user_id=conversion.buyer_user_id,
                referred_by=ambassador.referred_by if ambassador is not None else None,
            )

    async def _run_check(
        self,
        check_name: str,
        subject: ScanSubject,
        now_utc: datetime,
    ) -> CreatedFlag | None:
        try:
            async with self._session_factory.begin() as session:
                signal = await self._detect(check_name, session, subject, now_utc)
                if signal is None:
                    return None
                return await flag_if_new(session, user_id=subject.ambassador_id, signal=signal)
        except Exception:
            logger.exception(
                "fraud_check_failed",
                check=check_name,
                conversion_id=subject.conversion_id,
            )
            return None

    async def _detect(
        self,
        check_name: str,
        session: AsyncSession,
        subject: ScanSubject,
        now_utc: datetime,
    ) -> FraudSignal | None:
        if check_name == FLAG_SELF_BUY:
            return detect_self_buy(
                conversion_id=subject.conversion_id,
                ambassador_id=subject.ambassador_id,
                buyer_user_id=subject.buyer_user_id,
                now_utc=now_utc,
            )
        if check_name == FLAG_SELF_REFERRAL:
            return detect_self_referral(
                ambassador_id=subject.ambassador_id,
                referred_by=subject.referred_by,
                now_utc=now_utc,
            )
        if check_name == FLAG_CLICK_SPAM:
            clicks = await OutboundClicksRepo.count_for_ambassador_since(
                session,
                ambassador_id=subject.ambassador_id,
                since_utc=now_utc - CLICK_SPAM_WINDOW,
            )
            return detect_click_spam(clicks_last_hour=clicks, now_utc=now_utc)
        if check_name == FLAG_RAPID_CONVERSION:
            conversions = await ConversionsRepo.count_for_ambassador_since(
                session,
                ambassador_id=subject.ambassador_id,
                since_utc=now_utc - RAPID_CONVERSION_WINDOW,
            )
            return detect_rapid_conversions(
                conversion_id=subject.conversion_id,
                conversions_last_day=conversions,
                now_utc=now_utc,
            )
        raise ValueError(f"unknown fraud check: {check_name}")

    async def scan_conversion(self, conversion_id: int, *, now_utc: datetime | None = None) -> list[CreatedFlag]:
        """Runs every fraud check for one conversion. Never raises."""
        now_utc = now_utc or datetime.now(timezone.utc)
        try:
            subject = await self._load_subject(conversion_id)
        except Exception:
            logger.exception("fraud_scan_load_failed", conversion_id=conversion_id)
            return []
        if subject is None:
            logger.warning("fraud_scan_conversion_missing", conversion_id=conversion_id)
            return []

        results = await asyncio.gather(
            *(
                self._run_check(check_name, subject, now_utc)
                for check_name in (FLAG_SELF_BUY, FLAG_CLICK_SPAM, FLAG_SELF_REFERRAL, FLAG_RAPID_CONVERSION)
            )
        )
        created = [flag for flag in results if flag is not None]

        await publish_post_commit(
            self._publisher,
            (
                PostCommitEvent(EVENT_FRAUD_FLAG_CREATED, {"flag_id": flag.flag_id})
                for flag in created
                if flag.severity in ALERT_SEVERITIES
            ),
        )
        logger.info("fraud_scan_finished", conversion_id=conversion_id, flags_created=len(created))
        return created
