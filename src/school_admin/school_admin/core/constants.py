"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_PUBLIC_LINK_DAYS = 7
DEFAULT_BANNER_SECONDS = 4
DEFAULT_NOTIFICATION_LIMIT = 200
DEFAULT_LIST_LIMIT = 500

# Links are expired "in place" by moving expires_at slightly into the past.
LINK_EXPIRE_SKEW_SECONDS = 60

ADMISSIONS_LINK_TYPE = "admissions"

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

ALLOWED_RECEIPT_MIME_PREFIXES = ("image/",)
ALLOWED_RECEIPT_MIME_TYPES = ("application/pdf",)
