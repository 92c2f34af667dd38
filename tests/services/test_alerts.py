from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from app.services import alerts


class _Response:
    def raise_for_status(self) -> None:
        return None


class _Client:
    def __init__(self, calls: list[dict[str, Any]], *, fail_urls: set[str] | None = None) -> None:
        self._calls = calls
        self._fail_urls = fail_urls or set()

    async def __aenter__(self) -> "_Client":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        return None

    async def post(self, url: str, json: dict[str, object]) -> _Response:
        self._calls.append({"url": url, "json": json})
        if url in self._fail_urls:
            raise RuntimeError("delivery failed")
        return _Response()


def _settings(**overrides: object) -> SimpleNamespace:
    base = {"app_env": "test", "ops_alert_webhook_url": "", "ops_alert_slack_webhook_url": ""}
    base.update(overrides)
    return SimpleNamespace(**base)


def _patch_http_client(
    monkeypatch: pytest.MonkeyPatch,
    calls: list[dict[str, Any]],
    *,
    fail_urls: set[str] | None = None,
) -> None:
    def factory(timeout: float) -> _Client:  # noqa: ARG001
        return _Client(calls, fail_urls=fail_urls)

    monkeypatch.setattr(alerts.httpx, "AsyncClient", factory)


@pytest.mark.asyncio
async def test_send_ops_alert_returns_false_when_no_targets_configured(monkeypatch) -> None:
    monkeypatch.setattr(alerts, "get_settings", lambda: _settings())
    assert await alerts.send_ops_alert(event="fraud_flag_created", payload={"flag_id": 1}) is False


@pytest.mark.asyncio
async def test_generic_webhook_receives_event_and_severity(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(alerts, "get_settings", lambda: _settings(ops_alert_webhook_url="https://ops.local/hook"))
    _patch_http_client(monkeypatch, calls)

    sent = await alerts.send_ops_alert(event="fraud_flag_created", payload={"flag_id": 3}, severity="HIGH")

    assert sent is True
    body = calls[0]["json"]
    assert body["event"] == "fraud_flag_created"
    assert body["severity"] == "high"
    assert body["payload"] == {"flag_id": 3}
    assert body["app_env"] == "test"


@pytest.mark.asyncio
async def test_unknown_severity_falls_back_to_medium_for_slack(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(
        alerts,
        "get_settings",
        lambda: _settings(ops_alert_slack_webhook_url="https://hooks.slack.local/x"),
    )
    _patch_http_client(monkeypatch, calls)

    await alerts.send_ops_alert(event="fraud_flag_created", payload={}, severity="loud")

    body = calls[0]["json"]
    assert body["text"] == "[MEDIUM] fraud_flag_created"
    assert body["attachments"][0]["color"] == alerts.SEVERITY_COLOR["medium"]


@pytest.mark.asyncio
async def test_one_failing_target_does_not_block_the_other(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(
        alerts,
        "get_settings",
        lambda: _settings(
            ops_alert_webhook_url="https://ops.local/hook",
            ops_alert_slack_webhook_url="https://hooks.slack.local/x",
        ),
    )
    _patch_http_client(monkeypatch, calls, fail_urls={"https://hooks.slack.local/x"})

    assert await alerts.send_ops_alert(event="fraud_flag_created", payload={}) is True
    assert [call["url"] for call in calls] == ["https://hooks.slack.local/x", "https://ops.local/hook"]


@pytest.mark.asyncio
async def test_all_targets_failing_returns_false(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(alerts, "get_settings", lambda: _settings(ops_alert_webhook_url="https://ops.local/hook"))
    _patch_http_client(monkeypatch, calls, fail_urls={"https://ops.local/hook"})

    assert await alerts.send_ops_alert(event="fraud_flag_created", payload={}) is False
