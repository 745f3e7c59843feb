SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": "localhost",
    "port": 3306,
    "user": "root",
    "password": "",
    "database": "worksense_test",
}
USE_REMOTE_STATUS_STORE = False
EMPLOYEE_DIRECTORY = "memory"

BROKER = {
    "host": "localhost",
    "port": 1883,
    "transport": "tcp",
    "use_tls": False,
    "reconnect_period": 1,
    "connect_timeout": 2,
    "max_queue_size": 10,
}
PRESENCE_TOPIC = "esp32c3/events"
PRESENCE_ACK_TOPIC = None
CONNECT_ON_STARTUP = False

WORKDAY_START = "09:00"
WORKDAY_END = "17:00"
GRACE_MINUTES = 15

WORKDAYS_PER_MONTH = 22
HOURS_PER_DAY = 8
OVERTIME_MULTIPLIER = "1.5"

LOCAL_CACHE_PATH = None
PAYSLIP_HISTORY_PATH = None

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"
LOG_JSON = False
