"""Shared fixtures: an in-memory stand-in for the readings table and a fake pool."""

import datetime
import re

import pytest

from collector.database.store import (
    INSERT_READING, LATEST_PER_DEVICE, DELETE_BATCH, STATS_QUERY, ReadingStore
)

T0 = datetime.datetime(2026, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)

_CONDITION = re.compile(r"(device_id|observed_at) (=|>=|<=) \$(\d+)")


class InMemoryReadingsConnection:
    """Answers the store's queries against a list of row dicts."""

    def __init__(self, now=T0):
        self.rows = []
        self.now = now
        self.next_id = 1
        self.queries = []

    def add(self, device_id, device_name, value, observed_at=None, created_at=None):
        ts = observed_at or self.now
        row = {
            "id": self.next_id,
            "device_id": device_id,
            "device_name": device_name,
            "value": value,
            "observed_at": ts,
            "created_at": created_at or ts,
            "updated_at": created_at or ts,
        }
        self.next_id += 1
        self.rows.append(row)
        return row

    def _matching(self, query, args):
        where = query.split("ORDER BY")[0]
        rows = list(self.rows)
        for column, op, position in _CONDITION.findall(where):
            arg = args[int(position) - 1]
            if op == "=":
                rows = [r for r in rows if r[column] == arg]
            elif op == ">=":
                rows = [r for r in rows if r[column] >= arg]
            else:
                rows = [r for r in rows if r[column] <= arg]
        return rows

    @staticmethod
    def _recent_first(rows):
        return sorted(rows, key=lambda r: (r["observed_at"], r["id"]), reverse=True)

    async def fetchval(self, query, *args):
        self.queries.append(query)
        if query == INSERT_READING:
            return self.add(*args)["id"]
        if query.strip() == "SELECT 1":
            return 1
        if query.startswith("SELECT COUNT(*)"):
            return len(self._matching(query, args))
        raise AssertionError(f"unexpected fetchval: {query}")

    async def fetch(self, query, *args):
        self.queries.append(query)
        if query == LATEST_PER_DEVICE:
            latest = {}
            for row in self._recent_first(self.rows):
                latest.setdefault(row["device_id"], row)
            return self._recent_first(latest.values())
        limit, offset = args[-2], args[-1]
        return self._recent_first(self._matching(query, args[:-2]))[offset:offset + limit]

    async def fetchrow(self, query, *args):
        self.queries.append(query)
        assert query == STATS_QUERY
        since = args[0]
        return {
            "total_records": len(self.rows),
            "total_devices": len({r["device_id"] for r in self.rows}),
            "active_devices": len({r["device_id"] for r in self.rows if r["observed_at"] >= since}),
        }

    async def execute(self, query, *args):
        self.queries.append(query)
        assert query == DELETE_BATCH
        cutoff, limit = args
        victims = sorted((r for r in self.rows if r["created_at"] < cutoff), key=lambda r: r["id"])[:limit]
        victim_ids = {r["id"] for r in victims}
        self.rows = [r for r in self.rows if r["id"] not in victim_ids]
        return f"DELETE {len(victims)}"


class FakePool:
    def __init__(self, conn):
        self.conn = conn
        self.operations = 0

    async def execute(self, operation_func, *args, **kwargs):
        self.operations += 1
        return await operation_func(self.conn, *args, **kwargs)

    def get_stats(self):
        return {"status": "open", "in_flight": 0}


@pytest.fixture
def table():
    return InMemoryReadingsConnection()


@pytest.fixture
def pool(table):
    return FakePool(table)


@pytest.fixture
def store(pool):
    return ReadingStore(pool, retention_enabled=True, cleanup_pause=0)
