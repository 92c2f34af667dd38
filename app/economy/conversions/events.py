from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import structlog

from app.economy.conversions.types import ConversionCreateResult

logger = structlog.get_logger(__name__)

EVENT_FRAUD_SCAN = "fraud_scan"
EVENT_FIRST_SALE = "first_sale"
EVENT_TIER_UP = "tier_up"
EVENT_CASHBACK_EARNED = "cashback_earned"
EVENT_FRAUD_FLAG_CREATED = "fraud_flag_created"
EVENT_PAYOUT_APPROVED = "payout_approved"
EVENT_PAYOUT_REQUESTED = "payout_requested"

EventHandler = Callable[..., Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class PostCommitEvent:
    name: str
    payload: dict[str, Any] = field(default_factory=dict)


class EventPublisher(Protocol):
    async def publish(self, event: PostCommitEvent) -> None: ...


class CeleryEventPublisher:
    """Enqueues one Celery task per event.

    ``task_names`` maps an event name to a registered task name; payload keys
    become task kwargs, so payload values must be JSON serializable.
    """

    def __init__(self, *, celery_app: Any, task_names: Mapping[str, str]) -> None:
        self._celery_app = celery_app
        self._task_names = dict(task_names)

    async def publish(self, event: PostCommitEvent) -> None:
        task_name = self._task_names.get(event.name)
        if task_name is None:
            raise KeyError(f"no task registered for event {event.name}")
        self._celery_app.send_task(task_name, kwargs=event.payload)


class InlineEventPublisher:
    """Runs handlers in the current event loop. Used by scripts and tests."""

    def __init__(self, handlers: Mapping[str, EventHandler]) -> None:
        self._handlers = dict(handlers)

    async def publish(self, event: PostCommitEvent) -> None:
        handler = self._handlers.get(event.name)
        if handler is None:
            logger.info("post_commit_event_unhandled", event_name=event.name)
            return
        await handler(**event.payload)


class RecordingEventPublisher:
    def __init__(self) -> None:
        self.events: list[PostCommitEvent] = []

    async def publish(self, event: PostCommitEvent) -> None:
        self.events.append(event)


def build_conversion_events(result: ConversionCreateResult) -> list[PostCommitEvent]:
    conversion = result.conversion
    events = [PostCommitEvent(EVENT_FRAUD_SCAN, {"conversion_id": conversion.id})]
    if result.is_first_sale:
        events.append(PostCommitEvent(EVENT_FIRST_SALE, {"conversion_id": conversion.id}))
    if result.tier_change is not None:
        events.append(
            PostCommitEvent(
                EVENT_TIER_UP,
                {
                    "user_id": conversion.ambassador_id,
                    "tier_name": result.tier_change.name,
                    "new_rate": str(result.tier_change.ambassador_rate),
                },
            )
        )
    if result.buyer_credit is not None and conversion.buyer_user_id is not None:
        events.append(
            PostCommitEvent(
                EVENT_CASHBACK_EARNED,
                {
                    "user_id": conversion.buyer_user_id,
                    "amount": str(result.buyer_credit),
                    "program_name": result.program_name or "",
                },
            )
        )
    return events


async def publish_post_commit(publisher: EventPublisher, events: Iterable[PostCommitEvent]) -> int:
    """Publishes each event independently. Returns how many were published.

    Failures are logged and swallowed: the ledger write they follow has
    already committed.
    """
    published = 0
    for event in events:
        try:
            await publisher.publish(event)
        except Exception:
            logger.exception("post_commit_event_failed", event_name=event.name, payload=event.payload)
            continue
        published += 1
    return published
