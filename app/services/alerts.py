from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from app.core.config import get_settings

logger = structlog.get_logger(__name__)
VALID_SEVERITIES = ("critical", "high", "medium", "low")
SEVERITY_COLOR = {
    "critical": "#B42318",
    "high": "#F04438",
    "medium": "#F79009",
    "low": "#1570EF",
}


@dataclass(frozen=True)
class AlertTarget:
    channel: str
    url: str


def _setting_str(settings: object, attr: str) -> str:
    value = getattr(settings, attr, "")
    return value.strip() if isinstance(value, str) else ""


def _resolve_targets(settings: object) -> list[AlertTarget]:
    targets: list[AlertTarget] = []
    slack_url = _setting_str(settings, "ops_alert_slack_webhook_url")
    generic_url = _setting_str(settings, "ops_alert_webhook_url")
    if slack_url:
        targets.append(AlertTarget(channel="slack", url=slack_url))
    if generic_url:
        targets.append(AlertTarget(channel="generic", url=generic_url))
    return targets


def _normalize_severity(severity: str) -> str:
    normalized = severity.strip().lower()
    return normalized if normalized in VALID_SEVERITIES else "medium"


def _build_body(
    *,
    channel: str,
    event: str,
    severity: str,
    payload: dict[str, object],
    sent_at: datetime,
    app_env: str,
) -> dict[str, Any]:
    if channel == "slack":
        return {
            "text": f"[{severity.upper()}] {event}",
            "attachments": [
                {
                    "color": SEVERITY_COLOR[severity],
                    "fields": [
                        {"title": "Environment", "value": app_env, "short": True},
                        {"title": "Sent At", "value": sent_at.isoformat(), "short": True},
                        {
                            "title": "Payload",
                            "value": json.dumps(payload, sort_keys=True, default=str),
                            "short": False,
                        },
                    ],
                }
            ],
        }
    return {
        "event": event,
        "severity": severity,
        "payload": payload,
        "sent_at": sent_at.isoformat(),
        "app_env": app_env,
    }


async def send_ops_alert(*, event: str, payload: dict[str, object], severity: str = "medium") -> bool:
    """Best-effort delivery to every configured ops webhook.

    Returns True if at least one target accepted the alert. Never raises for
    delivery problems.
    """
    settings = get_settings()
    targets = _resolve_targets(settings)
    if not targets:
        return False

    resolved_severity = _normalize_severity(severity)
    app_env = _setting_str(settings, "app_env") or "dev"
    sent_at = datetime.now(timezone.utc)
    delivered_to: list[str] = []
    async with httpx.AsyncClient(timeout=5.0) as client:
        for target in targets:
            body = _build_body(
                channel=target.channel,
                event=event,
                severity=resolved_severity,
                payload=payload,
                sent_at=sent_at,
                app_env=app_env,
            )
            try:
                response = await client.post(target.url, json=body)
                response.raise_for_status()
            except Exception:
                logger.exception("ops_alert_delivery_failed", alert_event=event, provider=target.channel)
                continue
            delivered_to.append(target.channel)

    if not delivered_to:
        logger.error("ops_alert_delivery_exhausted", alert_event=event, severity=resolved_severity)
        return False

    logger.info(
        "ops_alert_delivered",
        alert_event=event,
        severity=resolved_severity,
        delivered_to=delivered_to,
    )
    return True
