from __future__ import annotations

from app.economy.conversions.errors import InvalidStatusError
from app.economy.conversions.types import (
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_PAID,
    STATUS_PENDING,
)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    STATUS_PENDING: frozenset({STATUS_CONFIRMED, STATUS_CANCELLED}),
    STATUS_CONFIRMED: frozenset({STATUS_PAID, STATUS_CANCELLED}),
    STATUS_PAID: frozenset(),
    STATUS_CANCELLED: frozenset(),
}


def can_transition(current_status: str, target_status: str) -> bool:
    return target_status in ALLOWED_TRANSITIONS.get(current_status, frozenset())


def ensure_transition(*, conversion_id: int, current_status: str, target_status: str) -> None:
    if not can_transition(current_status, target_status):
        raise InvalidStatusError(
            conversion_id=conversion_id,
            current_status=current_status,
            target_status=target_status,
        )
