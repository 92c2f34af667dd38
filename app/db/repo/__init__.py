from app.db.repo.affiliate_programs_repo import AffiliateProgramsRepo
from app.db.repo.audit_logs_repo import AuditLogsRepo
from app.db.repo.cashback_repo import CashbackRepo
from app.db.repo.commission_boosts_repo import CommissionBoostsRepo
from app.db.repo.commission_tiers_repo import CommissionTiersRepo
from app.db.repo.conversions_repo import ConversionsRepo
from app.db.repo.fraud_flags_repo import FraudFlagsRepo
from app.db.repo.notifications_repo import NotificationsRepo
from app.db.repo.outbound_clicks_repo import OutboundClicksRepo
from app.db.repo.payouts_repo import PayoutsRepo
from app.db.repo.settings_repo import SettingsRepo
from app.db.repo.users_repo import UsersRepo

__all__ = [
    "AffiliateProgramsRepo",
    "AuditLogsRepo",
    "CashbackRepo",
    "CommissionBoostsRepo",
    "CommissionTiersRepo",
    "ConversionsRepo",
    "FraudFlagsRepo",
    "NotificationsRepo",
    "OutboundClicksRepo",
    "PayoutsRepo",
    "SettingsRepo",
    "UsersRepo",
]
