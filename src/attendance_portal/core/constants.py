"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
RECENT_HISTORY_LIMIT = 10
ATTENDANCE_WARNING_THRESHOLD = 75.0
DEFAULT_REST_TIMEOUT = 10.0
