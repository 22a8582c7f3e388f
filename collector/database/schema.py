import datetime

import asyncpg

from .config import READINGS_TABLE

CREATE_READINGS_TABLE = f"""
    CREATE TABLE IF NOT EXISTS {READINGS_TABLE} (
        id BIGSERIAL PRIMARY KEY,
        device_id VARCHAR(255) NOT NULL,
        device_name VARCHAR(255) NOT NULL,
        value TEXT NOT NULL,
        observed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""

READINGS_INDEXES = [
    f"CREATE INDEX IF NOT EXISTS idx_readings_device_id ON {READINGS_TABLE} (device_id)",
    f"CREATE INDEX IF NOT EXISTS idx_readings_observed_at ON {READINGS_TABLE} (observed_at)",
    f"CREATE INDEX IF NOT EXISTS idx_readings_device_observed ON {READINGS_TABLE} (device_id, observed_at DESC)",
    f"CREATE INDEX IF NOT EXISTS idx_readings_created_at ON {READINGS_TABLE} (created_at)",
]

async def create_tables(conn):
    await conn.execute(CREATE_READINGS_TABLE)

async def create_indexes(conn) -> int:
    created = 0
    for index_query in READINGS_INDEXES:
        try:
            await conn.execute(index_query)
            created += 1
        except (asyncpg.exceptions.DuplicateTableError, asyncpg.exceptions.DuplicateObjectError):
            created += 1
        except Exception as e:
            # a missing index costs query speed, not correctness
            print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Index creation warning: {e}")
    return created

async def setup_schema(conn) -> int:
    await create_tables(conn)
    return await create_indexes(conn)

async def initialize_schema(pool) -> int:
    """Create the readings table and its indexes if they are missing.

    Safe to run on every startup. Returns how many of the indexes are in
    place afterwards; table creation failures propagate.
    """
    indexes_ready = await pool.execute(setup_schema)
    print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Schema ready: {READINGS_TABLE} with {indexes_ready}/{len(READINGS_INDEXES)} indexes")
    return indexes_ready
