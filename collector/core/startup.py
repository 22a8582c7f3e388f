import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI

from collector import __version__
from collector.core.config import ENABLE_SQL_LOGGING, ENVIRONMENT, VALIDATE_CONFIG, validate_config
from collector.database import ConnectionPool, ReadingStore, initialize_schema
from collector.database.config import SHUTDOWN_TIMEOUT
from collector.tasks.retention import RetentionScheduler

async def startup_handler(app: FastAPI):
    print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Starting IoT data collector v{__version__} ({ENVIRONMENT})...")

    if VALIDATE_CONFIG:
        validate_config()

    pool = ConnectionPool()
    store = ReadingStore(pool, sql_logging=ENABLE_SQL_LOGGING)
    retention = RetentionScheduler(store)

    await pool.open()
    await initialize_schema(pool)
    retention.start()

    app.state.pool = pool
    app.state.store = store
    app.state.retention = retention

    print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Server ready")

async def shutdown_handler(app: FastAPI, timeout: float = SHUTDOWN_TIMEOUT):
    print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Shutting down gracefully...")

    retention = getattr(app.state, "retention", None)
    if retention is not None:
        await retention.stop(timeout)

    pool = getattr(app.state, "pool", None)
    if pool is not None:
        await pool.close(timeout)

    print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Shutdown complete")

@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup_handler(app)
    try:
        yield
    finally:
        await shutdown_handler(app)
