from app.db.models.affiliate_programs import AffiliateProgram
from app.db.models.audit_logs import AuditLog
from app.db.models.cashback_transactions import CashbackTransaction
from app.db.models.commission_boosts import CommissionBoost
from app.db.models.commission_tiers import CommissionTier
from app.db.models.conversions import Conversion
from app.db.models.fraud_flags import FraudFlag
from app.db.models.notifications import Notification
from app.db.models.outbound_clicks import OutboundClick
from app.db.models.payout_info import PayoutInfo
from app.db.models.payouts import Payout
from app.db.models.settings import Setting
from app.db.models.users import User

__all__ = [
    "AffiliateProgram",
    "AuditLog",
    "CashbackTransaction",
    "CommissionBoost",
    "CommissionTier",
    "Conversion",
    "FraudFlag",
    "Notification",
    "OutboundClick",
    "Payout",
    "PayoutInfo",
    "Setting",
    "User",
]
