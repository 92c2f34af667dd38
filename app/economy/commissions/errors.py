from decimal import Decimal


class CommissionError(Exception):
    pass


class NotFoundError(CommissionError):
    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class NoTierFoundError(CommissionError):
    def __init__(self, total_sales: int) -> None:
        super().__init__(f"no commission tier for total_sales={total_sales}")
        self.total_sales = total_sales


class DistributionExceededError(CommissionError):
    pass


class InvalidRateError(CommissionError):
    def __init__(self, *, rate_name: str, value: Decimal, source: str) -> None:
        super().__init__(f"{rate_name} {value} from {source} is outside 0..100")
        self.rate_name = rate_name
        self.value = value
        self.source = source
