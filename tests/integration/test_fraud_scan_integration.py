from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.db.models.fraud_flags import FraudFlag
from app.db.models.users import User
from app.db.repo.fraud_flags_repo import FraudFlagsRepo
from app.db.session import SessionLocal
from app.economy.conversions.create import create_conversion
from app.economy.conversions.events import EVENT_FRAUD_FLAG_CREATED
from app.economy.fraud.service import FraudScanner
from tests.integration.ledger_fixtures import (
    UTC,
    _create_clicks,
    _create_program,
    _create_user,
    _params,
    _publisher,
    _seed_reference_data,
)


async def _flags(user_id: int) -> list[FraudFlag]:
    async with SessionLocal() as session:
        return await FraudFlagsRepo.list_for_user(session, user_id)


@pytest.mark.asyncio
async def test_self_buy_flags_once_across_parallel_scans() -> None:
    await _seed_reference_data()
    ambassador_id = await _create_user("self-buyer")
    program_id = await _create_program()
    conversion_ids = []
    for _ in range(2):
        result = await create_conversion(
            _params(ambassador_id=ambassador_id, program_id=program_id, buyer_user_id=ambassador_id),
            publisher=_publisher(),
        )
        conversion_ids.append(result.conversion.id)

    publisher = _publisher()
    scanner = FraudScanner(publisher=publisher)
    results = await asyncio.gather(*(scanner.scan_conversion(conversion_id) for conversion_id in conversion_ids))

    flags = await _flags(ambassador_id)
    assert [(flag.type, flag.severity, flag.status) for flag in flags] == [("self_buy", "high", "pending")]
    assert sum(len(created) for created in results) == 1
    assert [event.name for event in publisher.events] == [EVENT_FRAUD_FLAG_CREATED]
    assert publisher.events[0].payload == {"flag_id": flags[0].id}


@pytest.mark.asyncio
async def test_new_flag_allowed_after_previous_one_reviewed() -> None:
    await _seed_reference_data()
    ambassador_id = await _create_user("repeat")
    program_id = await _create_program()
    result = await create_conversion(
        _params(ambassador_id=ambassador_id, program_id=program_id, buyer_user_id=ambassador_id),
        publisher=_publisher(),
    )
    scanner = FraudScanner(publisher=_publisher())
    await scanner.scan_conversion(result.conversion.id)

    async with SessionLocal.begin() as session:
        flag = (await session.execute(select(FraudFlag).where(FraudFlag.user_id == ambassador_id))).scalar_one()
        flag.status = "dismissed"

    await scanner.scan_conversion(result.conversion.id)

    assert [flag.status for flag in await _flags(ambassador_id)] == ["dismissed", "pending"]


@pytest.mark.asyncio
async def test_click_spam_and_rapid_conversions_are_medium_and_not_alerted() -> None:
    await _seed_reference_data()
    now_utc = datetime.now(UTC)
    ambassador_id = await _create_user("busy")
    program_id = await _create_program()
    await _create_clicks(ambassador_id=ambassador_id, program_id=program_id, count=51, clicked_at=now_utc)
    await _create_clicks(
        ambassador_id=ambassador_id,
        program_id=program_id,
        count=5,
        clicked_at=now_utc - timedelta(hours=2),
    )
    last_id = 0
    for _ in range(21):
        result = await create_conversion(
            _params(ambassador_id=ambassador_id, program_id=program_id, commission_total="1"),
            publisher=_publisher(),
        )
        last_id = result.conversion.id

    publisher = _publisher()
    created = await FraudScanner(publisher=publisher).scan_conversion(last_id)

    assert sorted(flag.flag_type for flag in created) == ["click_spam", "rapid_conversion"]
    assert {flag.severity for flag in created} == {"medium"}
    assert publisher.events == []


@pytest.mark.asyncio
async def test_self_referral_flag() -> None:
    await _seed_reference_data()
    ambassador_id = await _create_user("loop")
    async with SessionLocal.begin() as session:
        ambassador = await session.get(User, ambassador_id)
        assert ambassador is not None
        ambassador.referred_by = ambassador_id
    program_id = await _create_program()
    result = await create_conversion(
        _params(ambassador_id=ambassador_id, program_id=program_id, commission_total="10"),
        publisher=_publisher(),
    )
    assert result.conversion.sponsor_id == ambassador_id
    assert result.conversion.sponsor_share == Decimal("1.00")

    created = await FraudScanner(publisher=_publisher()).scan_conversion(result.conversion.id)

    assert [flag.flag_type for flag in created] == ["self_referral"]


@pytest.mark.asyncio
async def test_scan_of_missing_conversion_returns_empty() -> None:
    await _seed_reference_data()
    assert await FraudScanner(publisher=_publisher()).scan_conversion(31337) == []


@pytest.mark.asyncio
async def test_one_failing_check_does_not_stop_the_others(monkeypatch) -> None:
    await _seed_reference_data()
    ambassador_id = await _create_user("partial")
    program_id = await _create_program()
    result = await create_conversion(
        _params(ambassador_id=ambassador_id, program_id=program_id, buyer_user_id=ambassador_id),
        publisher=_publisher(),
    )

    async def _broken(*args, **kwargs) -> int:  # noqa: ARG001
        raise RuntimeError("clicks table unavailable")

    from app.economy.fraud import service as fraud_service

    monkeypatch.setattr(fraud_service.OutboundClicksRepo, "count_for_ambassador_since", staticmethod(_broken))

    created = await FraudScanner(publisher=_publisher()).scan_conversion(result.conversion.id)

    assert [flag.flag_type for flag in created] == ["self_buy"]
