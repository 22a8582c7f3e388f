import os
from collector.database.config import (
    _env_bool, _env_int, POOL_MIN_SIZE, POOL_MAX_SIZE, RETENTION_DAYS,
    CLEANUP_BATCH_SIZE, CLEANUP_TIME, MAX_VALUE_LENGTH, RETENTION_ENABLED
)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
SHOW_ERROR_DETAILS = _env_bool("SHOW_ERROR_DETAILS", ENVIRONMENT == "development")
ENABLE_SQL_LOGGING = _env_bool("ENABLE_SQL_LOGGING", False)
VALIDATE_CONFIG = _env_bool("VALIDATE_CONFIG", ENVIRONMENT == "production")

API_DEFAULT_LIMIT = _env_int("API_DEFAULT_LIMIT", 100)
API_MAX_LIMIT = _env_int("API_MAX_LIMIT", 1000)

ACTIVE_DEVICE_WINDOW_HOURS = 24

def validate_config():
    errors = []

    if RETENTION_DAYS < 1:
        errors.append("DATA_RETENTION_DAYS must be at least 1")
    if CLEANUP_BATCH_SIZE < 1:
        errors.append("DATA_CLEANUP_BATCH_SIZE must be at least 1")
    if POOL_MIN_SIZE < 0:
        errors.append("DB_POOL_MIN_SIZE must not be negative")
    if POOL_MAX_SIZE < 1:
        errors.append("DB_POOL_MAX_SIZE must be at least 1")
    if POOL_MIN_SIZE > POOL_MAX_SIZE:
        errors.append("DB_POOL_MIN_SIZE must not exceed DB_POOL_MAX_SIZE")
    if API_DEFAULT_LIMIT < 1:
        errors.append("API_DEFAULT_LIMIT must be at least 1")
    if API_MAX_LIMIT < API_DEFAULT_LIMIT:
        errors.append("API_MAX_LIMIT must be greater than or equal to API_DEFAULT_LIMIT")
    if MAX_VALUE_LENGTH < 1:
        errors.append("MAX_VALUE_LENGTH must be at least 1")

    try:
        hours, minutes = (int(part) for part in CLEANUP_TIME.split(":"))
        if not (0 <= hours < 24 and 0 <= minutes < 60):
            raise ValueError(CLEANUP_TIME)
    except ValueError:
        errors.append(f"DATA_CLEANUP_TIME must be HH:MM, got {CLEANUP_TIME!r}")

    if errors:
        raise ValueError("Invalid configuration: " + "; ".join(errors))

def get_public_config():
    return {
        "api": {
            "defaultLimit": API_DEFAULT_LIMIT,
            "maxLimit": API_MAX_LIMIT
        },
        "dataRetention": {
            "enabled": RETENTION_ENABLED,
            "retentionDays": RETENTION_DAYS
        },
        "server": {
            "environment": ENVIRONMENT
        }
    }
