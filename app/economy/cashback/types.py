from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

TX_EARNED = "earned"
TX_WITHDRAWAL = "withdrawal"
TX_CLAWBACK = "clawback"
TX_ADJUSTMENT = "adjustment"


@dataclass(frozen=True, slots=True)
class BalanceChange:
    transaction_id: int
    user_id: int
    transaction_type: str
    amount: Decimal
    balance_after: Decimal


@dataclass(frozen=True, slots=True)
class WithdrawalResult:
    payout_id: int
    amount: Decimal
    method: str
    balance_after: Decimal
