from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from app.db.models.conversions import Conversion

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_PAID = "paid"
STATUS_CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class CreateConversionParams:
    ambassador_id: int
    affiliate_program_id: int
    sale_type: str
    amount: Decimal
    commission_total: Decimal
    buyer_user_id: int | None = None
    order_ref: str | None = None
    product_id: int | None = None
    outbound_click_id: int | None = None
    product_buyer_override: Decimal | None = None
    category_buyer_rate: Decimal | None = None
    attribution_method: str | None = None
    attribution_confidence: str | None = None


@dataclass(frozen=True, slots=True)
class TierChange:
    name: str
    ambassador_rate: Decimal


@dataclass(frozen=True, slots=True)
class ConversionCreateResult:
    conversion: Conversion
    is_first_sale: bool
    tier_change: TierChange | None
    buyer_credit: Decimal | None
    program_name: str | None = None


@dataclass(frozen=True, slots=True)
class RecordSaleResult:
    conversion: Conversion
    created: bool
