from __future__ import annotations

from decimal import Decimal

DEFAULT_BUYER_CASHBACK_RATE = Decimal("10")
MONEY_QUANT = Decimal("0.01")
PERCENT = Decimal("100")

SALE_TYPE_AFFILIATE = "affiliate"
SALE_TYPE_DROPSHIP = "dropship"
SALE_TYPES = frozenset({SALE_TYPE_AFFILIATE, SALE_TYPE_DROPSHIP})

BOOST_AMBASSADOR_RATE = "ambassador_rate"
BOOST_BUYER_CASHBACK = "buyer_cashback"
BOOST_SPONSOR_RATE = "sponsor_rate"

TIER_NAMES = ("beginner", "active", "performer", "expert", "elite")
