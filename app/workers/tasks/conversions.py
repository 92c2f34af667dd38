from __future__ import annotations

from decimal import Decimal

from app.db.session import SessionLocal
from app.economy.conversions.events import (
    EVENT_CASHBACK_EARNED,
    EVENT_FIRST_SALE,
    EVENT_FRAUD_FLAG_CREATED,
    EVENT_FRAUD_SCAN,
    EVENT_PAYOUT_APPROVED,
    EVENT_PAYOUT_REQUESTED,
    EVENT_TIER_UP,
    CeleryEventPublisher,
    EventPublisher,
)
from app.economy.fraud.service import FraudScanner
from app.services.notifications import InAppNotificationSink
from app.services.settings_store import SettingsStore
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app

CONVERSION_EVENT_TASKS: dict[str, str] = {
    EVENT_FRAUD_SCAN: "app.workers.tasks.conversions.run_fraud_scan",
    EVENT_FIRST_SALE: "app.workers.tasks.conversions.notify_first_sale",
    EVENT_TIER_UP: "app.workers.tasks.conversions.notify_tier_up",
    EVENT_CASHBACK_EARNED: "app.workers.tasks.conversions.notify_cashback_earned",
    EVENT_FRAUD_FLAG_CREATED: "app.workers.tasks.conversions.notify_fraud_flag_created",
    EVENT_PAYOUT_APPROVED: "app.workers.tasks.conversions.notify_payout_approved",
    EVENT_PAYOUT_REQUESTED: "app.workers.tasks.conversions.notify_payout_requested",
}


def build_event_publisher() -> EventPublisher:
    return CeleryEventPublisher(celery_app=celery_app, task_names=CONVERSION_EVENT_TASKS)


def _build_sink() -> InAppNotificationSink:
    return InAppNotificationSink(
        settings_store=SettingsStore(SessionLocal),
        session_factory=SessionLocal,
    )


async def run_fraud_scan_async(*, conversion_id: int) -> dict[str, int]:
    scanner = FraudScanner(publisher=build_event_publisher())
    created = await scanner.scan_conversion(conversion_id)
    return {"conversion_id": conversion_id, "flags_created": len(created)}


async def notify_first_sale_async(*, conversion_id: int) -> None:
    await _build_sink().on_first_sale(conversion_id)


async def notify_tier_up_async(*, user_id: int, tier_name: str, new_rate: str) -> None:
    await _build_sink().on_tier_up(user_id, tier_name, Decimal(new_rate))


async def notify_cashback_earned_async(*, user_id: int, amount: str, program_name: str) -> None:
    await _build_sink().on_cashback_earned(user_id, Decimal(amount), program_name)


async def notify_fraud_flag_created_async(*, flag_id: int) -> None:
    await _build_sink().on_fraud_flag_created(flag_id)


async def notify_payout_approved_async(*, payout_id: int) -> None:
    await _build_sink().on_payout_approved(payout_id)


async def notify_payout_requested_async(*, payout_id: int) -> None:
    await _build_sink().on_payout_requested(payout_id)


@celery_app.task(name="app.workers.tasks.conversions.run_fraud_scan")
def run_fraud_scan(conversion_id: int) -> dict[str, int]:
    return run_async_job(run_fraud_scan_async(conversion_id=conversion_id), job_name="run_fraud_scan")


@celery_app.task(name="app.workers.tasks.conversions.notify_first_sale")
def notify_first_sale(conversion_id: int) -> None:
    run_async_job(notify_first_sale_async(conversion_id=conversion_id), job_name="notify_first_sale")


@celery_app.task(name="app.workers.tasks.conversions.notify_tier_up")
def notify_tier_up(user_id: int, tier_name: str, new_rate: str) -> None:
    run_async_job(
        notify_tier_up_async(user_id=user_id, tier_name=tier_name, new_rate=new_rate),
        job_name="notify_tier_up",
    )


@celery_app.task(name="app.workers.tasks.conversions.notify_cashback_earned")
def notify_cashback_earned(user_id: int, amount: str, program_name: str) -> None:
    run_async_job(
        notify_cashback_earned_async(user_id=user_id, amount=amount, program_name=program_name),
        job_name="notify_cashback_earned",
    )


@celery_app.task(name="app.workers.tasks.conversions.notify_fraud_flag_created")
def notify_fraud_flag_created(flag_id: int) -> None:
    run_async_job(notify_fraud_flag_created_async(flag_id=flag_id), job_name="notify_fraud_flag_created")


@celery_app.task(name="app.workers.tasks.conversions.notify_payout_approved")
def notify_payout_approved(payout_id: int) -> None:
    run_async_job(notify_payout_approved_async(payout_id=payout_id), job_name="notify_payout_approved")


@celery_app.task(name="app.workers.tasks.conversions.notify_payout_requested")
def notify_payout_requested(payout_id: int) -> None:
    run_async_job(notify_payout_requested_async(payout_id=payout_id), job_name="notify_payout_requested")
