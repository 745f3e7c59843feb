import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "worksense"),
}
# Remote payroll status store; disabled falls back to the local cache only
USE_REMOTE_STATUS_STORE = bool(int(os.getenv("USE_REMOTE_STATUS_STORE", "0")))
# "mysql" reads the employees table, "memory" starts with an empty directory
EMPLOYEE_DIRECTORY = os.getenv("EMPLOYEE_DIRECTORY", "memory")

BROKER = {
    "host": os.getenv("MQTT_HOST", "mqtt-dashboard.com"),
    "port": int(os.getenv("MQTT_PORT", "8884")),
    "transport": os.getenv("MQTT_TRANSPORT", "websockets"),
    "ws_path": os.getenv("MQTT_WS_PATH", "/mqtt"),
    "use_tls": bool(int(os.getenv("MQTT_TLS", "1"))),
    "verify_tls": bool(int(os.getenv("MQTT_VERIFY_TLS", "0"))),
    "username": os.getenv("MQTT_USERNAME", ""),
    "password": os.getenv("MQTT_PASSWORD", ""),
    "keepalive": int(os.getenv("MQTT_KEEPALIVE", "60")),
    "reconnect_period": int(os.getenv("MQTT_RECONNECT_PERIOD", "30")),
    "connect_timeout": int(os.getenv("MQTT_CONNECT_TIMEOUT", "30")),
    "max_queue_size": int(os.getenv("MQTT_MAX_QUEUE_SIZE", "100")),
}
PRESENCE_TOPIC = os.getenv("PRESENCE_TOPIC", "esp32c3/events")
# Optional topic the per-event acknowledgement is published to
PRESENCE_ACK_TOPIC = os.getenv("PRESENCE_ACK_TOPIC") or None
CONNECT_ON_STARTUP = bool(int(os.getenv("CONNECT_ON_STARTUP", "1")))

WORKDAY_START = os.getenv("WORKDAY_START", "09:00")
WORKDAY_END = os.getenv("WORKDAY_END", "17:00")
GRACE_MINUTES = int(os.getenv("GRACE_MINUTES", "15"))

WORKDAYS_PER_MONTH = int(os.getenv("WORKDAYS_PER_MONTH", "22"))
HOURS_PER_DAY = int(os.getenv("HOURS_PER_DAY", "8"))
OVERTIME_MULTIPLIER = os.getenv("OVERTIME_MULTIPLIER", "1.5")

LOCAL_CACHE_PATH = os.getenv("LOCAL_CACHE_PATH", "instance/payroll_cache.json")
PAYSLIP_HISTORY_PATH = os.getenv("PAYSLIP_HISTORY_PATH", "instance/payslip_history.json")

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_JSON = bool(int(os.getenv("LOG_JSON", "0")))
