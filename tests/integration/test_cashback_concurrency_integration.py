from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.db.models.cashback_transactions import CashbackTransaction
from app.db.models.payouts import Payout
from app.db.models.users import User
from app.db.repo.cashback_repo import CashbackRepo
from app.db.session import SessionLocal
from app.economy.cashback.errors import InsufficientBalanceError, MinPayoutError
from app.economy.cashback.service import CashbackService
from app.economy.conversions.create import create_conversion
from app.economy.conversions.events import EVENT_PAYOUT_REQUESTED
from app.economy.payouts.service import PayoutService
from app.services.settings_store import SettingsStore
from tests.integration.ledger_fixtures import (
    _create_payout_info,
    _create_program,
    _create_user,
    _params,
    _publisher,
    _seed_reference_data,
)


@pytest.mark.asyncio
async def test_parallel_credits_to_one_buyer_never_lose_an_update() -> None:
    await _seed_reference_data()
    buyer_id = await _create_user("buyer", role="buyer", cashback_balance=Decimal("3.00"))
    program_id = await _create_program(buyer_cashback_rate=Decimal("10"))
    ambassador_ids = [await _create_user(f"ambassador-{index}") for index in range(6)]
    totals = ["10", "20", "30", "40", "50", "60"]
    barrier = asyncio.Event()

    async def _sell(ambassador_id: int, commission_total: str) -> None:
        await barrier.wait()
        await create_conversion(
            _params(
                ambassador_id=ambassador_id,
                program_id=program_id,
                buyer_user_id=buyer_id,
                commission_total=commission_total,
            ),
            publisher=_publisher(),
        )

    tasks = [asyncio.create_task(_sell(ambassador_id, total)) for ambassador_id, total in zip(ambassador_ids, totals)]
    barrier.set()
    await asyncio.gather(*tasks)

    async with SessionLocal() as session:
        buyer = await session.get(User, buyer_id)
        transactions = (
            await session.execute(
                select(CashbackTransaction)
                .where(CashbackTransaction.user_id == buyer_id, CashbackTransaction.type == "earned")
                .order_by(CashbackTransaction.id.asc())
            )
        ).scalars().all()
        ledger_total = await CashbackRepo.sum_for_user(session, buyer_id)

    expected = Decimal("3.00") + sum((Decimal(total) / 10 for total in totals), Decimal("0"))
    assert buyer is not None and buyer.cashback_balance == expected
    assert ledger_total == expected
    assert len(transactions) == 6
    running = Decimal("3.00")
    for tx in sorted(transactions, key=lambda item: item.balance_after):
        running += tx.amount
        assert tx.balance_after == running
    assert max(tx.balance_after for tx in transactions) == expected


@pytest.mark.asyncio
async def test_withdrawal_checks_balance_then_minimum() -> None:
    await _seed_reference_data()
    user_id = await _create_user("saver", role="buyer", cashback_balance=Decimal("8.00"))

    with pytest.raises(InsufficientBalanceError):
        async with SessionLocal.begin() as session:
            await CashbackService.request_withdrawal(
                session, user_id=user_id, amount=Decimal("9"), min_payout=Decimal("10")
            )
    with pytest.raises(MinPayoutError):
        async with SessionLocal.begin() as session:
            await CashbackService.request_withdrawal(
                session, user_id=user_id, amount=Decimal("5"), min_payout=Decimal("10")
            )
    with pytest.raises(ValueError):
        async with SessionLocal.begin() as session:
            await CashbackService.request_withdrawal(
                session, user_id=user_id, amount=Decimal("0"), min_payout=Decimal("10")
            )


@pytest.mark.asyncio
async def test_withdrawal_creates_pending_payout_and_debits_balance() -> None:
    await _seed_reference_data()
    user_id = await _create_user("saver", role="buyer", cashback_balance=Decimal("30.00"))
    await _create_payout_info(user_id, method="paypal")

    publisher = _publisher()
    result = await PayoutService.request_cashback_withdrawal(
        user_id=user_id,
        amount=Decimal("12.50"),
        settings_store=SettingsStore(SessionLocal),
        publisher=publisher,
    )

    assert [(event.name, event.payload) for event in publisher.events] == [
        (EVENT_PAYOUT_REQUESTED, {"payout_id": result.payout_id})
    ]
    assert result.method == "paypal"
    assert result.balance_after == Decimal("17.50")
    async with SessionLocal() as session:
        payout = await session.get(Payout, result.payout_id)
        withdrawal = (
            await session.execute(
                select(CashbackTransaction).where(CashbackTransaction.payout_id == result.payout_id)
            )
        ).scalar_one()
    assert payout is not None
    assert (payout.type, payout.status, payout.amount) == ("cashback", "pending", Decimal("12.50"))
    assert (withdrawal.type, withdrawal.amount) == ("withdrawal", Decimal("-12.50"))


@pytest.mark.asyncio
async def test_concurrent_withdrawals_cannot_overdraw() -> None:
    await _seed_reference_data()
    user_id = await _create_user("racer", role="buyer", cashback_balance=Decimal("25.00"))
    barrier = asyncio.Event()

    async def _withdraw() -> str:
        await barrier.wait()
        try:
            async with SessionLocal.begin() as session:
                await CashbackService.request_withdrawal(
                    session, user_id=user_id, amount=Decimal("20"), min_payout=Decimal("10")
                )
        except InsufficientBalanceError:
            return "rejected"
        return "ok"

    tasks = [asyncio.create_task(_withdraw()) for _ in range(3)]
    barrier.set()
    outcomes = await asyncio.gather(*tasks)

    assert sorted(outcomes) == ["ok", "rejected", "rejected"]
    async with SessionLocal() as session:
        user = await session.get(User, user_id)
        ledger_total = await CashbackRepo.sum_for_user(session, user_id)
    assert user is not None and user.cashback_balance == Decimal("5.00")
    assert ledger_total == user.cashback_balance
