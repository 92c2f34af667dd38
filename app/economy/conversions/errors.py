from app.economy.commissions.errors import CommissionError


class ConversionError(CommissionError):
    pass


class InvalidStatusError(ConversionError):
    def __init__(self, *, conversion_id: int, current_status: str, target_status: str) -> None:
        super().__init__(
            f"conversion {conversion_id} cannot move from {current_status} to {target_status}"
        )
        self.conversion_id = conversion_id
        self.current_status = current_status
        self.target_status = target_status


class DuplicateConversionError(ConversionError):
    def __init__(self, *, order_ref: str | None, affiliate_program_id: int) -> None:
        super().__init__(f"conversion already recorded: order_ref={order_ref} program={affiliate_program_id}")
        self.order_ref = order_ref
        self.affiliate_program_id = affiliate_program_id
