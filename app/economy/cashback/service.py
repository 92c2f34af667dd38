from __future__ import annotations

from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.cashback_transactions import CashbackTransaction
from app.db.models.payouts import Payout
from app.db.models.users import User
from app.db.repo.cashback_repo import CashbackRepo
from app.db.repo.payouts_repo import PayoutsRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.cashback.errors import InsufficientBalanceError, MinPayoutError
from app.economy.cashback.types import (
    TX_ADJUSTMENT,
    TX_CLAWBACK,
    TX_EARNED,
    TX_WITHDRAWAL,
    BalanceChange,
    WithdrawalResult,
)
from app.economy.commissions.errors import NotFoundError
from app.economy.commissions.rules import round_money

logger = structlog.get_logger(__name__)

DEFAULT_PAYOUT_METHOD = "bank"


async def _append_locked(
    session: AsyncSession,
    *,
    user: User,
    transaction_type: str,
    amount: Decimal,
    conversion_id: int | None = None,
    payout_id: int | None = None,
    description: str | None = None,
) -> BalanceChange:
    # Caller must hold the row lock on ``user`` for the whole read-modify-write.
    balance_after = round_money(Decimal(user.cashback_balance) + amount)
    entry = await CashbackRepo.create(
        session,
        transaction=CashbackTransaction(
            user_id=user.id,
            conversion_id=conversion_id,
            payout_id=payout_id,
            type=transaction_type,
            amount=amount,
            balance_after=balance_after,
            description=description,
        ),
    )
    user.cashback_balance = balance_after
    await session.flush()
    return BalanceChange(
        transaction_id=entry.id,
        user_id=user.id,
        transaction_type=transaction_type,
        amount=amount,
        balance_after=balance_after,
    )


class CashbackService:
    @staticmethod
    async def credit(
        session: AsyncSession,
        *,
        user_id: int,
        amount: Decimal,
        conversion_id: int,
    ) -> BalanceChange:
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise NotFoundError("buyer", user_id)
        return await _append_locked(
            session,
            user=user,
            transaction_type=TX_EARNED,
            amount=round_money(amount),
            conversion_id=conversion_id,
        )

    @staticmethod
    async def clawback(
        session: AsyncSession,
        *,
        user_id: int,
        amount: Decimal,
        conversion_id: int,
        reason: str,
    ) -> BalanceChange | None:
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            logger.warning("cashback_clawback_user_missing", user_id=user_id, conversion_id=conversion_id)
            return None
        return await _append_locked(
            session,
            user=user,
            transaction_type=TX_CLAWBACK,
            amount=-round_money(amount),
            conversion_id=conversion_id,
            description=f"Conversion #{conversion_id} cancelled: {reason}",
        )

    @staticmethod
    async def adjust(
        session: AsyncSession,
        *,
        user_id: int,
        amount: Decimal,
        description: str,
        payout_id: int | None = None,
    ) -> BalanceChange:
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return await _append_locked(
            session,
            user=user,
            transaction_type=TX_ADJUSTMENT,
            amount=round_money(amount),
            payout_id=payout_id,
            description=description,
        )

    @staticmethod
    async def request_withdrawal(
        session: AsyncSession,
        *,
        user_id: int,
        amount: Decimal,
        min_payout: Decimal,
    ) -> WithdrawalResult:
        requested = round_money(amount)
        if requested <= 0:
            raise ValueError("withdrawal amount must be positive")

        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise NotFoundError("user", user_id)

        available = Decimal(user.cashback_balance)
        if requested > available:
            raise InsufficientBalanceError(requested=requested, available=available)
        if requested < min_payout:
            raise MinPayoutError(requested=requested, minimum=min_payout)

        payout_info = await PayoutsRepo.get_payout_info(session, user_id)
        method = payout_info.method if payout_info is not None else DEFAULT_PAYOUT_METHOD
        payout = await PayoutsRepo.create(
            session,
            payout=Payout(
                user_id=user_id,
                amount=requested,
                type="cashback",
                method=method,
                status="pending",
            ),
        )
        change = await _append_locked(
            session,
            user=user,
            transaction_type=TX_WITHDRAWAL,
            amount=-requested,
            payout_id=payout.id,
            description=f"Cashback withdrawal #{payout.id}",
        )
        logger.info(
            "cashback_withdrawal_requested",
            user_id=user_id,
            payout_id=payout.id,
            amount=str(requested),
            balance_after=str(change.balance_after),
        )
        return WithdrawalResult(
            payout_id=payout.id,
            amount=requested,
            method=method,
            balance_after=change.balance_after,
        )
