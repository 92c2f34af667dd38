from __future__ import annotations

from decimal import Decimal
from typing import Any

from app.economy.conversions.events import (
    EVENT_FRAUD_SCAN,
    EVENT_PAYOUT_REQUESTED,
    EVENT_TIER_UP,
    CeleryEventPublisher,
)
from app.workers.tasks import conversions


def test_every_post_commit_event_has_a_registered_task() -> None:
    registered = set(conversions.celery_app.tasks)
    for task_name in conversions.CONVERSION_EVENT_TASKS.values():
        assert task_name in registered


def test_build_event_publisher_targets_conversion_tasks() -> None:
    publisher = conversions.build_event_publisher()
    assert isinstance(publisher, CeleryEventPublisher)
    assert conversions.CONVERSION_EVENT_TASKS[EVENT_FRAUD_SCAN].endswith("run_fraud_scan")


def test_run_fraud_scan_task_wrapper(monkeypatch) -> None:
    async def fake_async(*, conversion_id: int) -> dict[str, int]:
        return {"conversion_id": conversion_id, "flags_created": 2}

    monkeypatch.setattr(conversions, "run_fraud_scan_async", fake_async)

    assert conversions.run_fraud_scan(41) == {"conversion_id": 41, "flags_created": 2}


def test_notify_tier_up_parses_rate(monkeypatch) -> None:
    calls: list[tuple[Any, ...]] = []

    class _Sink:
        async def on_tier_up(self, user_id: int, tier_name: str, new_rate: Decimal) -> None:
            calls.append((user_id, tier_name, new_rate))

    monkeypatch.setattr(conversions, "_build_sink", lambda: _Sink())

    conversions.notify_tier_up(3, "active", "26.00")

    assert calls == [(3, "active", Decimal("26.00"))]
    assert EVENT_TIER_UP in conversions.CONVERSION_EVENT_TASKS


def test_notify_payout_requested_calls_sink(monkeypatch) -> None:
    calls: list[int] = []

    class _Sink:
        async def on_payout_requested(self, payout_id: int) -> None:
            calls.append(payout_id)

    monkeypatch.setattr(conversions, "_build_sink", lambda: _Sink())

    conversions.notify_payout_requested(17)

    assert calls == [17]
    assert conversions.CONVERSION_EVENT_TASKS[EVENT_PAYOUT_REQUESTED].endswith("notify_payout_requested")
