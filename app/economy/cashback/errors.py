from decimal import Decimal

from app.economy.commissions.errors import CommissionError


class CashbackError(CommissionError):
    pass


class InsufficientBalanceError(CashbackError):
    def __init__(self, *, requested: Decimal, available: Decimal) -> None:
        super().__init__(f"requested {requested} exceeds available balance {available}")
        self.requested = requested
        self.available = available


class MinPayoutError(CashbackError):
    def __init__(self, *, requested: Decimal, minimum: Decimal) -> None:
        super().__init__(f"requested {requested} is below minimum payout {minimum}")
        self.requested = requested
        self.minimum = minimum
