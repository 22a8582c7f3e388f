import asyncio
import datetime
from contextlib import asynccontextmanager
from typing import Optional

import asyncpg

from .config import (
    DB_CONFIG, POOL_MIN_SIZE, POOL_MAX_SIZE, POOL_MAX_INACTIVE_TIME,
    CONNECTION_TIMEOUT, ACQUIRE_TIMEOUT, QUERY_TIMEOUT, SHUTDOWN_TIMEOUT
)
from .errors import StorageError, ValidationError
from .queue.monitor import ConnectionQueueMonitor

class ConnectionPool:
    """Bounded set of database connections shared by every store operation.

    Owns no business logic: callers hand it an ``operation_func(conn, ...)``
    coroutine and get back its result, with the connection released on every
    exit path and driver errors translated into ``StorageError``.
    """

    def __init__(self, db_config: Optional[dict] = None, min_size: int = POOL_MIN_SIZE,
                 max_size: int = POOL_MAX_SIZE, acquire_timeout: float = ACQUIRE_TIMEOUT,
                 command_timeout: float = QUERY_TIMEOUT):
        self.db_config = dict(db_config if db_config is not None else DB_CONFIG)
        self.min_size = min_size
        self.max_size = max_size
        self.acquire_timeout = acquire_timeout
        self.command_timeout = command_timeout
        self.monitor = ConnectionQueueMonitor()
        self._pool = None
        self._init_lock = asyncio.Lock()
        self._closing = False

    @property
    def is_open(self) -> bool:
        return self._pool is not None and not self._closing

    async def open(self):
        async with self._init_lock:
            if self._pool is not None:
                return
            try:
                self._pool = await asyncpg.create_pool(
                    **self.db_config,
                    min_size=self.min_size,
                    max_size=self.max_size,
                    max_inactive_connection_lifetime=POOL_MAX_INACTIVE_TIME,
                    timeout=CONNECTION_TIMEOUT,
                    command_timeout=self.command_timeout
                )
            except (OSError, asyncio.TimeoutError, asyncpg.PostgresError) as e:
                raise StorageError(f"Database connection failed: {e}") from e
            self._closing = False
            print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Database pool opened ({self.min_size}-{self.max_size} connections)")

    @asynccontextmanager
    async def connection(self):
        if not self.is_open:
            raise StorageError("Database pool is not initialized")

        self.monitor.acquisition_started()
        try:
            conn = await asyncio.wait_for(self._pool.acquire(), timeout=self.acquire_timeout)
        except asyncio.TimeoutError as e:
            self.monitor.acquisition_timeout()
            raise StorageError("Database connection timeout") from e
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise StorageError(f"Database connection failed: {e}") from e
        finally:
            # also runs when the waiting caller is cancelled
            self.monitor.acquisition_finished()

        try:
            yield conn
        finally:
            try:
                await self._pool.release(conn)
            except Exception as e:
                print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Connection release error: {e}")

    async def execute(self, operation_func, *args, **kwargs):
        self.monitor.operation_started()
        failed = False
        try:
            async with self.connection() as conn:
                return await operation_func(conn, *args, **kwargs)
        except (StorageError, ValidationError):
            failed = True
            raise
        except asyncio.TimeoutError as e:
            failed = True
            raise StorageError("Database operation timeout") from e
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            failed = True
            raise StorageError(f"Database operation failed: {e}") from e
        finally:
            self.monitor.operation_completed(failed)

    async def close(self, timeout: float = SHUTDOWN_TIMEOUT):
        if self._pool is None:
            return
        self._closing = True

        drained = await self.monitor.wait_idle(timeout)
        if not drained:
            print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Shutdown deadline reached with {self.monitor.in_flight} operations in flight")

        pool, self._pool = self._pool, None
        try:
            await asyncio.wait_for(pool.close(), timeout=timeout)
        except asyncio.TimeoutError:
            print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Pool close timed out, terminating connections")
            pool.terminate()
        self._closing = False
        print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Database pool closed")

    def get_stats(self):
        if self._pool is None:
            return {"status": "not_initialized", **self.monitor.get_stats()}

        return {
            "status": "closing" if self._closing else "open",
            "size": self._pool.get_size(),
            "idle_connections": self._pool.get_idle_size(),
            "min_size": self.min_size,
            "max_size": self.max_size,
            "acquire_timeout": self.acquire_timeout,
            "command_timeout": self.command_timeout,
            **self.monitor.get_stats()
        }
