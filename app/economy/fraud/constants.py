from datetime import timedelta

FLAG_SELF_BUY = "self_buy"
FLAG_CLICK_SPAM = "click_spam"
FLAG_SELF_REFERRAL = "self_referral"
FLAG_RAPID_CONVERSION = "rapid_conversion"

SEVERITY_LOW = "low"
SEVERITY_MEDIUM = "medium"
SEVERITY_HIGH = "high"
SEVERITY_CRITICAL = "critical"
ALERT_SEVERITIES = frozenset({SEVERITY_HIGH, SEVERITY_CRITICAL})

CLICK_SPAM_WINDOW = timedelta(hours=1)
CLICK_SPAM_MAX_CLICKS = 50
RAPID_CONVERSION_WINDOW = timedelta(hours=24)
RAPID_CONVERSION_MAX_CONVERSIONS = 20
