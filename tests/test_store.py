import datetime
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from collector.database.errors import StorageError, ValidationError
from collector.database.payload import StructuredValue, TextValue
from collector.database.store import ReadingStore, build_filter_clause, _deleted_count
from tests.conftest import T0, FakePool


def minutes(n):
    return T0 + datetime.timedelta(minutes=n)


async def insert_at(store, table, when, device_id, value="1", device_name=None):
    table.now = when
    return await store.insert(device_id, device_name or f"Sensor {device_id}", TextValue(value))


class TestInsert:
    @pytest.mark.asyncio
    async def test_insert_returns_generated_ids_in_order(self, store, table):
        first = await store.insert("A", "Kitchen", TextValue("21.5"))
        second = await store.insert("A", "Kitchen", TextValue("21.7"))

        assert (first, second) == (1, 2)
        assert [r["value"] for r in table.rows] == ["21.5", "21.7"]

    @pytest.mark.asyncio
    async def test_structured_value_is_stored_as_compact_json(self, store, table):
        await store.insert("A", "Kitchen", StructuredValue({"temp": 21.5, "label": "küche"}))

        assert table.rows[0]["value"] == '{"temp":21.5,"label":"küche"}'

    @pytest.mark.asyncio
    async def test_oversized_value_is_rejected_before_any_row_is_written(self, store, table, pool):
        with pytest.raises(ValidationError):
            await store.insert("A", "Kitchen", TextValue("x" * 65536))

        assert table.rows == []
        assert pool.operations == 0

    @pytest.mark.asyncio
    async def test_value_at_the_cap_is_accepted(self, store, table):
        await store.insert("A", "Kitchen", TextValue("x" * 65535))
        assert len(table.rows) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("device_id,device_name", [("", "Kitchen"), ("   ", "Kitchen"), ("A", "")])
    async def test_blank_identifiers_are_rejected(self, store, table, device_id, device_name):
        with pytest.raises(ValidationError):
            await store.insert(device_id, device_name, TextValue("1"))
        assert table.rows == []

    @pytest.mark.asyncio
    async def test_storage_failures_propagate(self):
        failing_pool = AsyncMock()
        failing_pool.execute.side_effect = StorageError("Database connection timeout")
        store = ReadingStore(failing_pool)

        with pytest.raises(StorageError):
            await store.insert("A", "Kitchen", TextValue("1"))


class TestLatestPerDevice:
    @pytest.mark.asyncio
    async def test_one_entry_per_device_with_latest_timestamp(self, store, table):
        await insert_at(store, table, minutes(1), "A", "a1")
        await insert_at(store, table, minutes(2), "A", "a2")
        await insert_at(store, table, minutes(3), "A", "a3")
        await insert_at(store, table, minutes(2), "B", "b2")

        latest = {r.device_id: r for r in await store.latest_per_device()}

        assert set(latest) == {"A", "B"}
        assert latest["A"].value == "a3"
        assert latest["A"].observed_at == minutes(3)
        assert latest["B"].value == "b2"
        assert latest["B"].observed_at == minutes(2)

    @pytest.mark.asyncio
    async def test_ties_on_timestamp_go_to_the_highest_id(self, store, table):
        await insert_at(store, table, minutes(5), "A", "first")
        await insert_at(store, table, minutes(5), "A", "second")

        (reading,) = await store.latest_per_device()
        assert reading.value == "second"
        assert reading.id == 2

    @pytest.mark.asyncio
    async def test_empty_table(self, store):
        assert await store.latest_per_device() == []

    @pytest.mark.asyncio
    async def test_ranking_happens_in_a_single_query(self, store, table):
        await insert_at(store, table, minutes(1), "A")
        await store.latest_per_device()

        assert "ROW_NUMBER() OVER" in table.queries[-1]
        assert "WHERE rn = 1" in table.queries[-1]


class TestHistoryAndFiltered:
    @pytest_asyncio.fixture
    async def seeded(self, store, table):
        for n in range(1, 4):
            await insert_at(store, table, minutes(n), "A", f"a{n}")
        await insert_at(store, table, minutes(2), "B", "b2")
        return store

    @pytest.mark.asyncio
    async def test_history_is_most_recent_first_and_paginated(self, seeded):
        page = await seeded.history("A", limit=2, offset=0)
        assert [r.value for r in page] == ["a3", "a2"]

        page = await seeded.history("A", limit=2, offset=2)
        assert [r.value for r in page] == ["a1"]

    @pytest.mark.asyncio
    async def test_history_is_stable_without_writes(self, seeded):
        first = await seeded.history("A", limit=10, offset=0)
        second = await seeded.history("A", limit=10, offset=0)
        assert first == second

    @pytest.mark.asyncio
    async def test_unknown_device_yields_empty_history(self, seeded):
        assert await seeded.history("nope", limit=10, offset=0) == []

    @pytest.mark.asyncio
    async def test_filtered_with_lower_bound(self, seeded):
        page = await seeded.filtered(device_id="A", from_time=minutes(2), to_time=None, limit=10, offset=0)
        assert [r.value for r in page] == ["a3", "a2"]

    @pytest.mark.asyncio
    async def test_filtered_lower_bound_after_t2_excludes_t1(self, seeded):
        page = await seeded.filtered(device_id="A", from_time=minutes(3), limit=10, offset=0)
        assert [r.observed_at for r in page] == [minutes(3)]

    @pytest.mark.asyncio
    async def test_filtered_bounds_are_inclusive(self, seeded):
        page = await seeded.filtered(from_time=minutes(2), to_time=minutes(2), limit=10, offset=0)
        assert sorted(r.value for r in page) == ["a2", "b2"]

    @pytest.mark.asyncio
    async def test_filtered_without_filters_returns_everything(self, seeded):
        page = await seeded.filtered(limit=10, offset=0)
        assert len(page) == 4
        assert page[0].observed_at == minutes(3)

    @pytest.mark.asyncio
    async def test_filtered_by_device_matches_history(self, seeded):
        assert await seeded.filtered(device_id="A", limit=2, offset=1) == await seeded.history("A", 2, 1)

    @pytest.mark.asyncio
    async def test_count_ignores_pagination_and_honours_filters(self, seeded):
        assert await seeded.count() == 4
        assert await seeded.count("A") == 3
        assert await seeded.count("A", from_time=minutes(2)) == 2
        assert await seeded.count(to_time=minutes(1)) == 1
        assert await seeded.count("nope") == 0


class TestCleanup:
    def seed_old(self, table, count, device_id="A"):
        for n in range(count):
            table.add(device_id, "Old", str(n), observed_at=minutes(-1000 - n))

    @pytest.mark.asyncio
    async def test_batches_of_two_delete_five_rows_in_three_rounds(self, store, table, pool):
        self.seed_old(table, 5)
        table.add("A", "Fresh", "new", observed_at=minutes(10))

        deleted = await store.cleanup_older_than(minutes(0), batch_size=2)

        assert deleted == 5
        assert pool.operations == 3
        assert [r["value"] for r in table.rows] == ["new"]

    @pytest.mark.asyncio
    async def test_second_run_deletes_nothing(self, store, table):
        self.seed_old(table, 5)

        assert await store.cleanup_older_than(minutes(0), batch_size=2) > 0
        assert await store.cleanup_older_than(minutes(0), batch_size=2) == 0

    @pytest.mark.asyncio
    async def test_exact_multiple_of_batch_size_takes_one_empty_round(self, store, table, pool):
        self.seed_old(table, 4)

        assert await store.cleanup_older_than(minutes(0), batch_size=2) == 4
        assert pool.operations == 3

    @pytest.mark.asyncio
    async def test_disabled_retention_never_touches_the_pool(self, table, pool):
        self.seed_old(table, 3)
        store = ReadingStore(pool, retention_enabled=False)

        assert await store.cleanup_older_than(minutes(0), batch_size=2) == 0
        assert pool.operations == 0
        assert len(table.rows) == 3

    @pytest.mark.asyncio
    async def test_invalid_batch_size(self, store):
        with pytest.raises(ValidationError):
            await store.cleanup_older_than(minutes(0), batch_size=0)

    @pytest.mark.asyncio
    async def test_failure_mid_run_keeps_earlier_batches(self, table):
        self.seed_old(table, 5)
        pool = FakePool(table)
        real_execute = pool.execute
        calls = {"n": 0}

        async def flaky_execute(operation_func, *args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise StorageError("Database operation timeout")
            return await real_execute(operation_func, *args, **kwargs)

        pool.execute = flaky_execute
        store = ReadingStore(pool, retention_enabled=True, cleanup_pause=0)

        with pytest.raises(StorageError):
            await store.cleanup_older_than(minutes(0), batch_size=2)
        assert len(table.rows) == 3

    def test_deleted_count_parses_command_tag(self):
        assert _deleted_count("DELETE 42") == 42
        assert _deleted_count("DELETE 0") == 0
        assert _deleted_count(None) == 0


class TestHealthAndStats:
    @pytest.mark.asyncio
    async def test_healthy_probe_reports_total(self, store, table):
        table.add("A", "Kitchen", "1")
        health = await store.health_probe()

        assert health["status"] == "healthy"
        assert health["total_records"] == 1

    @pytest.mark.asyncio
    async def test_probe_never_raises(self):
        failing_pool = AsyncMock()
        failing_pool.execute.side_effect = StorageError("Database connection failed: refused")
        health = await ReadingStore(failing_pool).health_probe()

        assert health["status"] == "unhealthy"
        assert "refused" in health["error"]
        assert "total_records" not in health

    @pytest.mark.asyncio
    async def test_stats_counts_active_devices(self, store, table):
        now = datetime.datetime.now(datetime.timezone.utc)
        table.add("A", "Kitchen", "1", observed_at=now)
        table.add("B", "Garage", "1", observed_at=now - datetime.timedelta(days=3))
        table.add("B", "Garage", "2", observed_at=now - datetime.timedelta(days=2))

        stats = await store.stats(datetime.timedelta(hours=24))
        assert stats == {"total_records": 3, "total_devices": 2, "active_devices": 1}


def test_filter_clause_numbers_placeholders_in_order():
    where, params = build_filter_clause("A", minutes(1), minutes(2))
    assert where == " WHERE device_id = $1 AND observed_at >= $2 AND observed_at <= $3"
    assert params == ["A", minutes(1), minutes(2)]

    assert build_filter_clause() == ("", [])
    assert build_filter_clause(to_time=minutes(2)) == (" WHERE observed_at <= $1", [minutes(2)])
