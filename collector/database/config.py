import os

def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')

def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default

def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": _env_int("DB_PORT", 5432),
    "user": os.getenv("DB_USER", "iot_user"),
    "password": os.getenv("DB_PASSWORD", "iot_password"),
    "database": os.getenv("DB_NAME", "iot_data"),
}

POOL_MIN_SIZE = _env_int("DB_POOL_MIN_SIZE", 1)
POOL_MAX_SIZE = _env_int("DB_POOL_MAX_SIZE", 10)
POOL_MAX_INACTIVE_TIME = _env_float("DB_POOL_MAX_INACTIVE_TIME", 300.0)
CONNECTION_TIMEOUT = _env_float("DB_CONNECT_TIMEOUT", 10.0)
ACQUIRE_TIMEOUT = _env_float("DB_ACQUIRE_TIMEOUT", 10.0)
QUERY_TIMEOUT = _env_float("DB_COMMAND_TIMEOUT", 60.0)
SHUTDOWN_TIMEOUT = _env_float("DB_SHUTDOWN_TIMEOUT", 10.0)

READINGS_TABLE = "readings"
MAX_VALUE_LENGTH = _env_int("MAX_VALUE_LENGTH", 65535)
MAX_IDENTIFIER_LENGTH = 255

RETENTION_ENABLED = _env_bool("DATA_RETENTION_ENABLED", False)
RETENTION_DAYS = _env_int("DATA_RETENTION_DAYS", 180)
CLEANUP_TIME = os.getenv("DATA_CLEANUP_TIME", "02:00")
CLEANUP_BATCH_SIZE = _env_int("DATA_CLEANUP_BATCH_SIZE", 1000)
CLEANUP_PAUSE = _env_float("DATA_CLEANUP_PAUSE", 0.1)
