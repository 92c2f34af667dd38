from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from app.economy.fraud.constants import (
    CLICK_SPAM_MAX_CLICKS,
    FLAG_CLICK_SPAM,
    FLAG_RAPID_CONVERSION,
    FLAG_SELF_BUY,
    FLAG_SELF_REFERRAL,
    RAPID_CONVERSION_MAX_CONVERSIONS,
    SEVERITY_HIGH,
    SEVERITY_MEDIUM,
)


@dataclass(frozen=True, slots=True)
class FraudSignal:
    flag_type: str
    severity: str
    details: dict[str, object] = field(default_factory=dict)


def detect_self_buy(
    *,
    conversion_id: int,
    ambassador_id: int,
    buyer_user_id: int | None,
    now_utc: datetime,
) -> FraudSignal | None:
    if buyer_user_id is None or buyer_user_id != ambassador_id:
        return None
    return FraudSignal(
        flag_type=FLAG_SELF_BUY,
        severity=SEVERITY_HIGH,
        details={"conversion_id": conversion_id, "detected_at": now_utc.isoformat()},
    )


def detect_self_referral(*, ambassador_id: int, referred_by: int | None, now_utc: datetime) -> FraudSignal | None:
    if referred_by is None or referred_by != ambassador_id:
        return None
    return FraudSignal(
        flag_type=FLAG_SELF_REFERRAL,
        severity=SEVERITY_HIGH,
        details={"referred_by": referred_by, "detected_at": now_utc.isoformat()},
    )


def detect_click_spam(*, clicks_last_hour: int, now_utc: datetime) -> FraudSignal | None:
    if clicks_last_hour <= CLICK_SPAM_MAX_CLICKS:
        return None
    return FraudSignal(
        flag_type=FLAG_CLICK_SPAM,
        severity=SEVERITY_MEDIUM,
        details={
            "clicks_last_hour": clicks_last_hour,
            "threshold": CLICK_SPAM_MAX_CLICKS,
            "detected_at": now_utc.isoformat(),
        },
    )


def detect_rapid_conversions(
    *,
    conversion_id: int,
    conversions_last_day: int,
    now_utc: datetime,
) -> FraudSignal | None:
    if conversions_last_day <= RAPID_CONVERSION_MAX_CONVERSIONS:
        return None
    return FraudSignal(
        flag_type=FLAG_RAPID_CONVERSION,
        severity=SEVERITY_MEDIUM,
        details={
            "conversion_id": conversion_id,
            "conversions_last_24h": conversions_last_day,
            "threshold": RAPID_CONVERSION_MAX_CONVERSIONS,
            "detected_at": now_utc.isoformat(),
        },
    )
