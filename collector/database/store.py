import asyncio
import datetime
from typing import List, Optional

from .config import READINGS_TABLE, MAX_VALUE_LENGTH, MAX_IDENTIFIER_LENGTH, RETENTION_ENABLED, CLEANUP_PAUSE
from .errors import ValidationError
from .models import Reading
from .payload import ReadingValue, encode_checked

READING_COLUMNS = "id, device_id, device_name, value, observed_at, created_at, updated_at"

INSERT_READING = f"""
    INSERT INTO {READINGS_TABLE} (device_id, device_name, value)
    VALUES ($1, $2, $3)
    RETURNING id
"""

LATEST_PER_DEVICE = f"""
    SELECT {READING_COLUMNS}
    FROM (
        SELECT {READING_COLUMNS},
               ROW_NUMBER() OVER (
                   PARTITION BY device_id
                   ORDER BY observed_at DESC, id DESC
               ) AS rn
        FROM {READINGS_TABLE}
    ) ranked
    WHERE rn = 1
    ORDER BY observed_at DESC, id DESC
"""

DELETE_BATCH = f"""
    DELETE FROM {READINGS_TABLE}
    WHERE id IN (
        SELECT id FROM {READINGS_TABLE}
        WHERE created_at < $1
        ORDER BY id
        LIMIT $2
    )
"""

STATS_QUERY = f"""
    SELECT COUNT(*) AS total_records,
           COUNT(DISTINCT device_id) AS total_devices,
           COUNT(DISTINCT device_id) FILTER (WHERE observed_at >= $1) AS active_devices
    FROM {READINGS_TABLE}
"""

def _check_identifier(value: str, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string", field=field)
    if len(value) > MAX_IDENTIFIER_LENGTH:
        raise ValidationError(f"{field} must be at most {MAX_IDENTIFIER_LENGTH} characters", field=field)
    return value

def build_filter_clause(device_id: Optional[str] = None,
                        from_time: Optional[datetime.datetime] = None,
                        to_time: Optional[datetime.datetime] = None):
    conditions = []
    params = []

    if device_id:
        params.append(device_id)
        conditions.append(f"device_id = ${len(params)}")
    if from_time is not None:
        params.append(from_time)
        conditions.append(f"observed_at >= ${len(params)}")
    if to_time is not None:
        params.append(to_time)
        conditions.append(f"observed_at <= ${len(params)}")

    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    return where, params

def _deleted_count(status: str) -> int:
    # asyncpg returns the command tag, e.g. "DELETE 42"
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class ReadingStore:
    """Insert and query readings, and prune them by age.

    Inputs to the read operations are expected to be normalized already
    (see ``collector.api.shared.pagination``); the store does not clamp
    limits or parse timestamps itself.
    """

    def __init__(self, pool, retention_enabled: bool = RETENTION_ENABLED,
                 max_value_length: int = MAX_VALUE_LENGTH, cleanup_pause: float = CLEANUP_PAUSE,
                 sql_logging: bool = False):
        self.pool = pool
        self.retention_enabled = retention_enabled
        self.max_value_length = max_value_length
        self.cleanup_pause = cleanup_pause
        self.sql_logging = sql_logging

    async def insert(self, device_id: str, device_name: str, value: ReadingValue) -> int:
        _check_identifier(device_id, "device_id")
        _check_identifier(device_name, "device_name")
        encoded = encode_checked(value, self.max_value_length)

        async def _insert(conn):
            return await conn.fetchval(INSERT_READING, device_id, device_name, encoded)

        return await self.pool.execute(_insert)

    async def latest_per_device(self) -> List[Reading]:
        async def _latest(conn):
            return await conn.fetch(LATEST_PER_DEVICE)

        rows = await self.pool.execute(_latest)
        return [Reading.from_record(row) for row in rows]

    async def history(self, device_id: str, limit: int, offset: int) -> List[Reading]:
        return await self.filtered(device_id=device_id, limit=limit, offset=offset)

    async def filtered(self, device_id: Optional[str] = None,
                       from_time: Optional[datetime.datetime] = None,
                       to_time: Optional[datetime.datetime] = None,
                       limit: int = 100, offset: int = 0) -> List[Reading]:
        where, params = build_filter_clause(device_id, from_time, to_time)
        query = f"SELECT {READING_COLUMNS} FROM {READINGS_TABLE}{where} ORDER BY observed_at DESC, id DESC"
        query += f" LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}"
        params.extend([limit, offset])

        if self.sql_logging:
            print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Executing query: {query} params={params}")

        async def _filtered(conn):
            return await conn.fetch(query, *params)

        rows = await self.pool.execute(_filtered)
        return [Reading.from_record(row) for row in rows]

    async def count(self, device_id: Optional[str] = None,
                    from_time: Optional[datetime.datetime] = None,
                    to_time: Optional[datetime.datetime] = None) -> int:
        where, params = build_filter_clause(device_id, from_time, to_time)
        query = f"SELECT COUNT(*) FROM {READINGS_TABLE}{where}"

        async def _count(conn):
            return await conn.fetchval(query, *params)

        return int(await self.pool.execute(_count) or 0)

    async def cleanup_older_than(self, cutoff: datetime.datetime, batch_size: int) -> int:
        if not self.retention_enabled:
            return 0
        if batch_size < 1:
            raise ValidationError("batch_size must be at least 1", field="batch_size")

        async def _delete_batch(conn):
            return _deleted_count(await conn.execute(DELETE_BATCH, cutoff, batch_size))

        total_deleted = 0
        rounds = 0
        while True:
            deleted = await self.pool.execute(_delete_batch)
            total_deleted += deleted
            rounds += 1

            # exactly batch_size rows left costs one extra empty round
            if deleted < batch_size:
                break
            if self.cleanup_pause > 0:
                await asyncio.sleep(self.cleanup_pause)

        if total_deleted:
            print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Retention deleted {total_deleted} readings older than {cutoff.isoformat()} in {rounds} rounds")
        return total_deleted

    async def health_probe(self) -> dict:
        async def _probe(conn):
            await conn.fetchval("SELECT 1")
            return await conn.fetchval(f"SELECT COUNT(*) FROM {READINGS_TABLE}")

        try:
            total_records = await self.pool.execute(_probe)
            return {
                "status": "healthy",
                "total_records": int(total_records or 0),
                "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat()
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat()
            }

    async def stats(self, active_within: datetime.timedelta = datetime.timedelta(hours=24)) -> dict:
        since = datetime.datetime.now(datetime.timezone.utc) - active_within

        async def _stats(conn):
            return await conn.fetchrow(STATS_QUERY, since)

        row = await self.pool.execute(_stats)
        return {
            "total_records": int(row["total_records"] or 0),
            "total_devices": int(row["total_devices"] or 0),
            "active_devices": int(row["active_devices"] or 0)
        }
