from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models.payout_info import PayoutInfo
from app.db.models.payouts import Payout
from app.db.repo.audit_logs_repo import AuditLogsRepo
from app.db.repo.conversions_repo import ConversionsRepo
from app.db.repo.payouts_repo import PayoutsRepo
from app.db.repo.users_repo import UsersRepo
from app.db.session import SessionLocal
from app.economy.cashback.service import CashbackService
from app.economy.cashback.types import WithdrawalResult
from app.economy.commissions.errors import NotFoundError
from app.economy.commissions.rules import round_money
from app.economy.conversions.events import (
    EVENT_PAYOUT_APPROVED,
    EVENT_PAYOUT_REQUESTED,
    EventPublisher,
    PostCommitEvent,
    publish_post_commit,
)
from app.economy.conversions.lifecycle import pay_locked
from app.economy.payouts.errors import PayoutAmountError, PayoutInfoMissingError, PayoutStatusError
from app.services.settings_store import SettingsStore

logger = structlog.get_logger(__name__)

PAYOUT_TYPE_AMBASSADOR = "ambassador"
PAYOUT_TYPE_CASHBACK = "cashback"

PAYOUT_PENDING = "pending"
PAYOUT_PROCESSING = "processing"
PAYOUT_PAID = "paid"
PAYOUT_FAILED = "failed"

PAYOUT_TRANSITIONS: dict[str, frozenset[str]] = {
    PAYOUT_PENDING: frozenset({PAYOUT_PROCESSING, PAYOUT_FAILED}),
    PAYOUT_PROCESSING: frozenset({PAYOUT_PAID, PAYOUT_FAILED}),
    PAYOUT_PAID: frozenset(),
    PAYOUT_FAILED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class PayoutCompletion:
    payout_id: int
    paid_conversion_ids: tuple[int, ...]


def is_payout_info_complete(info: PayoutInfo | None) -> bool:
    if info is None:
        return False
    if info.method == "paypal":
        return bool(info.paypal_email)
    if info.method == "bank":
        return bool(info.iban_encrypted)
    return True


async def _audit(
    session: AsyncSession,
    *,
    payout: Payout,
    admin_id: int | None,
    action: str,
    old_status: str,
    extra: dict[str, object] | None = None,
) -> None:
    new_values: dict[str, object] = {"status": payout.status}
    if extra:
        new_values.update(extra)
    await AuditLogsRepo.create(
        session,
        admin_id=admin_id,
        action=action,
        entity_type="payout",
        entity_id=str(payout.id),
        old_values={"status": old_status},
        new_values=new_values,
    )


async def _transition_locked(
    session: AsyncSession,
    payout_id: int,
    *,
    target_status: str,
) -> tuple[Payout, str]:
    payout = await PayoutsRepo.get_by_id_for_update(session, payout_id)
    if payout is None:
        raise NotFoundError("payout", payout_id)
    old_status = payout.status
    if target_status not in PAYOUT_TRANSITIONS.get(old_status, frozenset()):
        raise PayoutStatusError(payout_id=payout_id, current_status=old_status, target_status=target_status)
    payout.status = target_status
    return payout, old_status


class PayoutService:
    @staticmethod
    async def request_cashback_withdrawal_in_session(
        session: AsyncSession,
        *,
        user_id: int,
        amount: Decimal,
        settings_store: SettingsStore,
    ) -> WithdrawalResult:
        return await CashbackService.request_withdrawal(
            session,
            user_id=user_id,
            amount=amount,
            min_payout=await settings_store.min_payout_cashback(),
        )

    @staticmethod
    async def request_ambassador_payout_in_session(
        session: AsyncSession,
        *,
        user_id: int,
        amount: Decimal,
        settings_store: SettingsStore,
    ) -> Payout:
        requested = round_money(amount)
        # The user lock serializes concurrent requests from one ambassador.
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise NotFoundError("user", user_id)

        info = await PayoutsRepo.get_payout_info(session, user_id)
        if not is_payout_info_complete(info):
            raise PayoutInfoMissingError(user_id)

        confirmed_total = await ConversionsRepo.sum_confirmed_ambassador_share(session, ambassador_id=user_id)
        reserved = await PayoutsRepo.sum_open_ambassador_payouts(session, user_id=user_id)
        available = round_money(confirmed_total - reserved)
        minimum = await settings_store.min_payout_ambassador()
        if requested <= 0 or requested < minimum or requested > available:
            raise PayoutAmountError(requested=requested, available=available, minimum=minimum)

        payout = await PayoutsRepo.create(
            session,
            payout=Payout(
                user_id=user_id,
                amount=requested,
                type=PAYOUT_TYPE_AMBASSADOR,
                method=info.method,
                status=PAYOUT_PENDING,
            ),
        )
        logger.info(
            "ambassador_payout_requested",
            user_id=user_id,
            payout_id=payout.id,
            amount=str(requested),
            available=str(available),
        )
        return payout

    @staticmethod
    async def request_cashback_withdrawal(
        *,
        user_id: int,
        amount: Decimal,
        settings_store: SettingsStore,
        publisher: EventPublisher,
        session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
    ) -> WithdrawalResult:
        async with session_factory.begin() as session:
            result = await PayoutService.request_cashback_withdrawal_in_session(
                session,
                user_id=user_id,
                amount=amount,
                settings_store=settings_store,
            )
        await publish_post_commit(
            publisher,
            [PostCommitEvent(EVENT_PAYOUT_REQUESTED, {"payout_id": result.payout_id})],
        )
        return result

    @staticmethod
    async def request_ambassador_payout(
        *,
        user_id: int,
        amount: Decimal,
        settings_store: SettingsStore,
        publisher: EventPublisher,
        session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
    ) -> Payout:
        async with session_factory.begin() as session:
            payout = await PayoutService.request_ambassador_payout_in_session(
                session,
                user_id=user_id,
                amount=amount,
                settings_store=settings_store,
            )
        await publish_post_commit(
            publisher,
            [PostCommitEvent(EVENT_PAYOUT_REQUESTED, {"payout_id": payout.id})],
        )
        return payout

    @staticmethod
    async def process_payout(session: AsyncSession, payout_id: int, *, admin_id: int) -> Payout:
        payout, old_status = await _transition_locked(session, payout_id, target_status=PAYOUT_PROCESSING)
        await _audit(session, payout=payout, admin_id=admin_id, action="payout.processing", old_status=old_status)
        await session.flush()
        return payout

    @staticmethod
    async def complete_payout_in_session(
        session: AsyncSession,
        payout_id: int,
        *,
        admin_id: int,
        reference: str | None,
        now_utc: datetime,
    ) -> PayoutCompletion:
        payout, old_status = await _transition_locked(session, payout_id, target_status=PAYOUT_PAID)
        payout.paid_at = now_utc
        payout.reference = reference

        paid_ids: list[int] = []
        if payout.type == PAYOUT_TYPE_AMBASSADOR:
            conversions = await ConversionsRepo.list_confirmed_for_ambassador_for_update(
                session,
                ambassador_id=payout.user_id,
            )
            for conversion in conversions:
                await pay_locked(session, conversion, admin_id=admin_id, now_utc=now_utc)
                paid_ids.append(conversion.id)

        await _audit(
            session,
            payout=payout,
            admin_id=admin_id,
            action="payout.paid",
            old_status=old_status,
            extra={"reference": reference, "conversions_paid": len(paid_ids)},
        )
        await session.flush()
        logger.info(
            "payout_completed",
            payout_id=payout.id,
            payout_type=payout.type,
            conversions_paid=len(paid_ids),
        )
        return PayoutCompletion(payout_id=payout.id, paid_conversion_ids=tuple(paid_ids))

    @staticmethod
    async def complete_payout(
        payout_id: int,
        *,
        admin_id: int,
        reference: str | None,
        publisher: EventPublisher,
        session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
        now_utc: datetime | None = None,
    ) -> PayoutCompletion:
        async with session_factory.begin() as session:
            completion = await PayoutService.complete_payout_in_session(
                session,
                payout_id,
                admin_id=admin_id,
                reference=reference,
                now_utc=now_utc or datetime.now(timezone.utc),
            )
        await publish_post_commit(
            publisher,
            [PostCommitEvent(EVENT_PAYOUT_APPROVED, {"payout_id": completion.payout_id})],
        )
        return completion

    @staticmethod
    async def reject_payout(
        session: AsyncSession,
        payout_id: int,
        *,
        admin_id: int,
        reason: str,
    ) -> Payout:
        payout, old_status = await _transition_locked(session, payout_id, target_status=PAYOUT_FAILED)
        if payout.type == PAYOUT_TYPE_CASHBACK:
            await CashbackService.adjust(
                session,
                user_id=payout.user_id,
                amount=Decimal(payout.amount),
                description=f"Refund of rejected withdrawal #{payout.id}: {reason}",
                payout_id=payout.id,
            )
        await _audit(
            session,
            payout=payout,
            admin_id=admin_id,
            action="payout.failed",
            old_status=old_status,
            extra={"reason": reason},
        )
        await session.flush()
        logger.warning("payout_rejected", payout_id=payout.id, payout_type=payout.type, reason=reason)
        return payout
