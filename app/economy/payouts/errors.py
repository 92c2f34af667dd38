from decimal import Decimal

from app.economy.commissions.errors import CommissionError


class PayoutError(CommissionError):
    pass


class PayoutInfoMissingError(PayoutError):
    def __init__(self, user_id: int) -> None:
        super().__init__(f"payout details missing or incomplete for user {user_id}")
        self.user_id = user_id


class PayoutStatusError(PayoutError):
    def __init__(self, *, payout_id: int, current_status: str, target_status: str) -> None:
        super().__init__(f"payout {payout_id} cannot move from {current_status} to {target_status}")
        self.payout_id = payout_id
        self.current_status = current_status
        self.target_status = target_status


class PayoutAmountError(PayoutError):
    def __init__(self, *, requested: Decimal, available: Decimal, minimum: Decimal) -> None:
        super().__init__(
            f"requested {requested} not payable (available {available}, minimum {minimum})"
        )
        self.requested = requested
        self.available = available
        self.minimum = minimum
