from __future__ import annotations

import pytest

from app.economy.conversions.errors import InvalidStatusError
from app.economy.conversions.rules import ALLOWED_TRANSITIONS, can_transition, ensure_transition


@pytest.mark.parametrize(
    ("current", "target"),
    [
        ("pending", "confirmed"),
        ("pending", "cancelled"),
        ("confirmed", "paid"),
        ("confirmed", "cancelled"),
    ],
)
def test_allowed_transitions(current: str, target: str) -> None:
    assert can_transition(current, target)
    ensure_transition(conversion_id=1, current_status=current, target_status=target)


@pytest.mark.parametrize(
    ("current", "target"),
    [
        ("pending", "paid"),
        ("paid", "cancelled"),
        ("paid", "confirmed"),
        ("cancelled", "confirmed"),
        ("cancelled", "pending"),
        ("confirmed", "pending"),
    ],
)
def test_rejected_transitions(current: str, target: str) -> None:
    assert not can_transition(current, target)
    with pytest.raises(InvalidStatusError) as exc_info:
        ensure_transition(conversion_id=7, current_status=current, target_status=target)
    assert exc_info.value.current_status == current
    assert exc_info.value.target_status == target


def test_terminal_statuses_have_no_exits() -> None:
    assert ALLOWED_TRANSITIONS["paid"] == frozenset()
    assert ALLOWED_TRANSITIONS["cancelled"] == frozenset()


def test_unknown_status_cannot_transition() -> None:
    assert not can_transition("refunded", "paid")
