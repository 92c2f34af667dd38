from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.db.models.cashback_transactions import CashbackTransaction
from app.db.models.commission_boosts import CommissionBoost
from app.db.models.conversions import Conversion
from app.db.models.users import User
from app.db.repo.cashback_repo import CashbackRepo
from app.db.session import SessionLocal
from app.economy.commissions.constants import BOOST_AMBASSADOR_RATE, BOOST_BUYER_CASHBACK
from app.economy.commissions.errors import DistributionExceededError, NotFoundError
from app.economy.conversions.create import create_conversion
from app.economy.conversions.errors import DuplicateConversionError
from app.economy.conversions.events import EVENT_CASHBACK_EARNED, EVENT_FIRST_SALE, EVENT_FRAUD_SCAN, EVENT_TIER_UP
from app.economy.conversions.service import ConversionService
from tests.integration.ledger_fixtures import (
    UTC,
    _create_boost,
    _create_program,
    _create_user,
    _params,
    _publisher,
    _seed_reference_data,
)


async def _count_conversions() -> int:
    async with SessionLocal() as session:
        return int(await session.scalar(select(func.count(Conversion.id))) or 0)


@pytest.mark.asyncio
async def test_create_conversion_splits_commission_and_credits_buyer() -> None:
    await _seed_reference_data()
    sponsor_id = await _create_user("sponsor")
    ambassador_id = await _create_user("ambassador", referred_by=sponsor_id)
    buyer_id = await _create_user("buyer", role="buyer")
    program_id = await _create_program(buyer_cashback_rate=Decimal("10"))
    publisher = _publisher()

    result = await create_conversion(
        _params(ambassador_id=ambassador_id, program_id=program_id, buyer_user_id=buyer_id),
        publisher=publisher,
    )

    conversion = result.conversion
    assert conversion.status == "pending"
    assert conversion.sponsor_id == sponsor_id
    assert (conversion.ambassador_share, conversion.sponsor_share, conversion.buyer_share) == (
        Decimal("5.00"),
        Decimal("2.00"),
        Decimal("2.00"),
    )
    assert conversion.platform_share == Decimal("11.00")
    assert result.is_first_sale is True
    assert result.buyer_credit == Decimal("2.00")
    assert [event.name for event in publisher.events] == [EVENT_FRAUD_SCAN, EVENT_FIRST_SALE, EVENT_CASHBACK_EARNED]

    async with SessionLocal() as session:
        buyer = await session.get(User, buyer_id)
        ambassador = await session.get(User, ambassador_id)
        transactions = (
            await session.execute(select(CashbackTransaction).where(CashbackTransaction.user_id == buyer_id))
        ).scalars().all()

    assert buyer is not None and buyer.cashback_balance == Decimal("2.00")
    assert ambassador is not None and ambassador.total_sales == 1
    assert [(tx.type, tx.amount, tx.balance_after) for tx in transactions] == [
        ("earned", Decimal("2.00"), Decimal("2.00"))
    ]


@pytest.mark.asyncio
async def test_stored_commission_total_equals_sum_of_shares() -> None:
    await _seed_reference_data()
    sponsor_id = await _create_user("sponsor")
    ambassador_id = await _create_user("ambassador", referred_by=sponsor_id)
    buyer_id = await _create_user("buyer", role="buyer")
    program_id = await _create_program(buyer_cashback_rate=Decimal("10"))

    result = await create_conversion(
        _params(
            ambassador_id=ambassador_id,
            program_id=program_id,
            buyer_user_id=buyer_id,
            commission_total="33.335",
        ),
        publisher=_publisher(),
    )

    async with SessionLocal() as session:
        stored = await session.get(Conversion, result.conversion.id)
    assert stored is not None
    assert stored.commission_total == Decimal("33.34")
    assert stored.commission_total == (
        stored.ambassador_share + stored.sponsor_share + stored.buyer_share + stored.platform_share
    )


@pytest.mark.asyncio
async def test_sponsor_snapshot_survives_later_sponsor_change() -> None:
    await _seed_reference_data()
    sponsor_id = await _create_user("sponsor")
    other_sponsor_id = await _create_user("other-sponsor")
    ambassador_id = await _create_user("ambassador", referred_by=sponsor_id)
    program_id = await _create_program()

    result = await create_conversion(
        _params(ambassador_id=ambassador_id, program_id=program_id),
        publisher=_publisher(),
    )
    async with SessionLocal.begin() as session:
        ambassador = await session.get(User, ambassador_id)
        assert ambassador is not None
        ambassador.referred_by = other_sponsor_id

    async with SessionLocal() as session:
        stored = await session.get(Conversion, result.conversion.id)
    assert stored is not None and stored.sponsor_id == sponsor_id


@pytest.mark.asyncio
async def test_tier_up_reported_once_at_threshold() -> None:
    await _seed_reference_data()
    ambassador_id = await _create_user("climber", total_sales=9)
    program_id = await _create_program()

    publisher = _publisher()
    first = await create_conversion(_params(ambassador_id=ambassador_id, program_id=program_id), publisher=publisher)
    second = await create_conversion(_params(ambassador_id=ambassador_id, program_id=program_id), publisher=publisher)

    assert first.tier_change is not None
    assert first.tier_change.name == "active"
    assert first.tier_change.ambassador_rate == Decimal("26.00")
    assert second.tier_change is None
    assert [event.name for event in publisher.events].count(EVENT_TIER_UP) == 1

    async with SessionLocal() as session:
        ambassador = await session.get(User, ambassador_id)
    assert ambassador is not None
    assert (ambassador.total_sales, ambassador.tier) == (11, "active")


@pytest.mark.asyncio
async def test_missing_ambassador_raises_not_found() -> None:
    await _seed_reference_data()
    program_id = await _create_program()

    with pytest.raises(NotFoundError):
        await create_conversion(_params(ambassador_id=999_999, program_id=program_id), publisher=_publisher())
    assert await _count_conversions() == 0


@pytest.mark.asyncio
async def test_missing_buyer_raises_not_found_without_side_effects() -> None:
    await _seed_reference_data()
    ambassador_id = await _create_user("orphan-sale")
    program_id = await _create_program()
    publisher = _publisher()

    with pytest.raises(NotFoundError) as exc_info:
        await create_conversion(
            _params(ambassador_id=ambassador_id, program_id=program_id, buyer_user_id=888_888),
            publisher=publisher,
        )

    assert exc_info.value.entity == "buyer"
    assert await _count_conversions() == 0
    assert publisher.events == []
    async with SessionLocal() as session:
        ambassador = await session.get(User, ambassador_id)
        tx_count = await session.scalar(select(func.count(CashbackTransaction.id)))
    assert ambassador is not None and ambassador.total_sales == 0
    assert tx_count == 0


@pytest.mark.asyncio
async def test_buyer_balance_matches_ledger_after_credit() -> None:
    await _seed_reference_data()
    ambassador_id = await _create_user("seller")
    buyer_id = await _create_user("returning-buyer", role="buyer", cashback_balance=Decimal("7.25"))
    program_id = await _create_program(buyer_cashback_rate=Decimal("10"))

    await create_conversion(
        _params(ambassador_id=ambassador_id, program_id=program_id, buyer_user_id=buyer_id, commission_total="30"),
        publisher=_publisher(),
    )

    async with SessionLocal() as session:
        buyer = await session.get(User, buyer_id)
        ledger_total = await CashbackRepo.sum_for_user(session, buyer_id)
    assert buyer is not None and buyer.cashback_balance == Decimal("10.25")
    assert ledger_total == buyer.cashback_balance


@pytest.mark.asyncio
async def test_distribution_exceeded_leaves_no_partial_state() -> None:
    await _seed_reference_data()
    now_utc = datetime.now(UTC)
    ambassador_id = await _create_user("greedy")
    buyer_id = await _create_user("buyer", role="buyer")
    program_id = await _create_program()
    await _create_boost(dimension=BOOST_AMBASSADOR_RATE, value=Decimal("80"), user_id=ambassador_id, now_utc=now_utc)
    await _create_boost(dimension=BOOST_BUYER_CASHBACK, value=Decimal("30"), now_utc=now_utc)
    publisher = _publisher()

    with pytest.raises(DistributionExceededError):
        await create_conversion(
            _params(ambassador_id=ambassador_id, program_id=program_id, buyer_user_id=buyer_id),
            publisher=publisher,
        )

    assert await _count_conversions() == 0
    assert publisher.events == []
    async with SessionLocal() as session:
        ambassador = await session.get(User, ambassador_id)
        buyer = await session.get(User, buyer_id)
        tx_count = await session.scalar(select(func.count(CashbackTransaction.id)))
    assert ambassador is not None and ambassador.total_sales == 0
    assert buyer is not None and buyer.cashback_balance == Decimal("0.00")
    assert tx_count == 0


@pytest.mark.asyncio
async def test_user_boost_wins_and_usage_is_counted() -> None:
    await _seed_reference_data()
    now_utc = datetime.now(UTC)
    ambassador_id = await _create_user("boosted")
    program_id = await _create_program()
    global_boost_id = await _create_boost(dimension=BOOST_AMBASSADOR_RATE, value=Decimal("40"), now_utc=now_utc)
    user_boost_id = await _create_boost(
        dimension=BOOST_AMBASSADOR_RATE,
        value=Decimal("30"),
        user_id=ambassador_id,
        now_utc=now_utc,
        max_uses=1,
    )

    first = await create_conversion(_params(ambassador_id=ambassador_id, program_id=program_id), publisher=_publisher())
    second = await create_conversion(_params(ambassador_id=ambassador_id, program_id=program_id), publisher=_publisher())

    assert first.conversion.applied_ambassador_rate == Decimal("30")
    assert second.conversion.applied_ambassador_rate == Decimal("40")
    async with SessionLocal() as session:
        user_boost = await session.get(CommissionBoost, user_boost_id)
        global_boost = await session.get(CommissionBoost, global_boost_id)
    assert user_boost is not None and user_boost.current_uses == 1
    assert global_boost is not None and global_boost.current_uses == 1


@pytest.mark.asyncio
async def test_duplicate_order_ref_is_rejected_by_unique_index() -> None:
    await _seed_reference_data()
    ambassador_id = await _create_user("dup")
    program_id = await _create_program()
    params = _params(ambassador_id=ambassador_id, program_id=program_id, order_ref="ORDER-1")

    await create_conversion(params, publisher=_publisher())
    with pytest.raises(DuplicateConversionError):
        await create_conversion(params, publisher=_publisher())

    assert await _count_conversions() == 1
    async with SessionLocal() as session:
        ambassador = await session.get(User, ambassador_id)
    assert ambassador is not None and ambassador.total_sales == 1


@pytest.mark.asyncio
async def test_record_sale_skips_replayed_order_ref() -> None:
    await _seed_reference_data()
    ambassador_id = await _create_user("replay")
    program_id = await _create_program()
    params = _params(ambassador_id=ambassador_id, program_id=program_id, order_ref="ORDER-42")
    publisher = _publisher()

    first = await ConversionService.record_sale(params, publisher=publisher)
    replay = await ConversionService.record_sale(params, publisher=publisher)

    assert first.created is True
    assert replay.created is False
    assert replay.conversion.id == first.conversion.id
    assert await _count_conversions() == 1
    assert [event.name for event in publisher.events].count(EVENT_FRAUD_SCAN) == 1
