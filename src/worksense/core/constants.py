"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_PRESENCE_TOPIC = "esp32c3/events"

DEFAULT_WORKDAY_START = "09:00"
DEFAULT_WORKDAY_END = "17:00"
DEFAULT_LATE_GRACE_MINUTES = 15

DEFAULT_WORKDAYS_PER_MONTH = 22
DEFAULT_HOURS_PER_DAY = 8
DEFAULT_OVERTIME_MULTIPLIER = "1.5"

DEFAULT_MAX_QUEUE_SIZE = 100
DEFAULT_RECONNECT_PERIOD_SECONDS = 30
DEFAULT_KEEPALIVE_SECONDS = 60
DEFAULT_CONNECT_TIMEOUT_SECONDS = 30

DEFAULT_RECENT_EVENTS_LIMIT = 50
DEFAULT_ROLLING_WEEKS = 12
DEFAULT_ANOMALY_OVERTIME_HOURS = 8
