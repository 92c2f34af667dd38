from app.workers.tasks.conversions import (
    notify_cashback_earned,
    notify_first_sale,
    notify_fraud_flag_created,
    notify_payout_approved,
    notify_payout_requested,
    notify_tier_up,
    run_fraud_scan,
)

__all__ = [
    "notify_cashback_earned",
    "notify_first_sale",
    "notify_fraud_flag_created",
    "notify_payout_approved",
    "notify_payout_requested",
    "notify_tier_up",
    "run_fraud_scan",
]
