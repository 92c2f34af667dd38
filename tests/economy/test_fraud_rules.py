from __future__ import annotations

from datetime import datetime, timezone

from app.economy.fraud.rules import (
    detect_click_spam,
    detect_rapid_conversions,
    detect_self_buy,
    detect_self_referral,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_self_buy_requires_matching_buyer() -> None:
    signal = detect_self_buy(conversion_id=4, ambassador_id=1, buyer_user_id=1, now_utc=NOW)
    assert signal is not None
    assert (signal.flag_type, signal.severity) == ("self_buy", "high")
    assert signal.details["conversion_id"] == 4

    assert detect_self_buy(conversion_id=4, ambassador_id=1, buyer_user_id=2, now_utc=NOW) is None
    assert detect_self_buy(conversion_id=4, ambassador_id=1, buyer_user_id=None, now_utc=NOW) is None


def test_self_referral() -> None:
    assert detect_self_referral(ambassador_id=3, referred_by=3, now_utc=NOW).severity == "high"
    assert detect_self_referral(ambassador_id=3, referred_by=2, now_utc=NOW) is None
    assert detect_self_referral(ambassador_id=3, referred_by=None, now_utc=NOW) is None


def test_click_spam_threshold_is_exclusive() -> None:
    assert detect_click_spam(clicks_last_hour=50, now_utc=NOW) is None
    signal = detect_click_spam(clicks_last_hour=51, now_utc=NOW)
    assert signal is not None
    assert (signal.flag_type, signal.severity) == ("click_spam", "medium")


def test_rapid_conversion_threshold_is_exclusive() -> None:
    assert detect_rapid_conversions(conversion_id=1, conversions_last_day=20, now_utc=NOW) is None
    signal = detect_rapid_conversions(conversion_id=1, conversions_last_day=21, now_utc=NOW)
    assert signal is not None
    assert signal.flag_type == "rapid_conversion"
    assert signal.details["conversions_last_24h"] == 21
