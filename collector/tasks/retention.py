import asyncio
import datetime
from typing import Optional

from collector.database.config import (
    RETENTION_ENABLED, RETENTION_DAYS, CLEANUP_BATCH_SIZE, CLEANUP_TIME
)

def parse_run_at(run_at: str) -> datetime.time:
    hours, minutes = (int(part) for part in run_at.strip().split(":"))
    return datetime.time(hour=hours, minute=minutes, tzinfo=datetime.timezone.utc)

def seconds_until_next_run(now: datetime.datetime, run_at) -> float:
    if isinstance(run_at, str):
        run_at = parse_run_at(run_at)
    if now.tzinfo is None:
        now = now.replace(tzinfo=datetime.timezone.utc)
    now = now.astimezone(datetime.timezone.utc)

    next_run = datetime.datetime.combine(now.date(), run_at)
    if next_run <= now:
        next_run += datetime.timedelta(days=1)
    return (next_run - now).total_seconds()


class RetentionScheduler:
    """Daily trigger for the store's batched retention cleanup.

    At most one run is active at a time: a trigger that fires while the
    previous run is still deleting is skipped, not queued.
    """

    def __init__(self, store, retention_days: int = RETENTION_DAYS, batch_size: int = CLEANUP_BATCH_SIZE,
                 run_at: str = CLEANUP_TIME, enabled: bool = RETENTION_ENABLED):
        self.store = store
        self.retention_days = retention_days
        self.batch_size = batch_size
        self.run_at = run_at
        # raises ValueError on a malformed time before any task is scheduled
        self.run_time = parse_run_at(run_at)
        self.enabled = enabled
        self.last_run_at: Optional[datetime.datetime] = None
        self.last_deleted: Optional[int] = None
        self.last_error: Optional[str] = None
        self._run_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._run_lock.locked()

    def cutoff_for(self, now: datetime.datetime) -> datetime.datetime:
        return now - datetime.timedelta(days=self.retention_days)

    async def run_once(self, now: Optional[datetime.datetime] = None) -> Optional[int]:
        if self._run_lock.locked():
            print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Retention run already in progress, skipping trigger")
            return None

        async with self._run_lock:
            now = now or datetime.datetime.now(datetime.timezone.utc)
            cutoff = self.cutoff_for(now)
            print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Running scheduled data cleanup (cutoff {cutoff.isoformat()})...")
            self.last_run_at = now
            try:
                deleted = await self.store.cleanup_older_than(cutoff, self.batch_size)
            except Exception as e:
                self.last_error = str(e)
                print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Data cleanup failed: {e}")
                raise
            self.last_deleted = deleted
            self.last_error = None
            print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Data cleanup completed. Deleted {deleted} old records.")
            return deleted

    async def _run_forever(self):
        while True:
            delay = seconds_until_next_run(datetime.datetime.now(datetime.timezone.utc), self.run_time)
            await asyncio.sleep(delay)
            try:
                await self.run_once()
            except Exception:
                # already logged by run_once; the next trigger retries
                continue

    def start(self):
        if not self.enabled:
            return
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run_forever())
        print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Data retention enabled: {self.retention_days} days, cleanup daily at {self.run_at} UTC")

    async def stop(self, timeout: Optional[float] = None):
        if self._task is None:
            return
        if self.running and timeout:
            # let an in-flight run finish its current batches before cancelling
            try:
                await asyncio.wait_for(self._run_lock.acquire(), timeout=timeout)
                self._run_lock.release()
            except asyncio.TimeoutError:
                print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Retention run still active at shutdown deadline, cancelling")
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Retention task had stopped with an error: {e}")
        self._task = None

    def get_status(self):
        return {
            "enabled": self.enabled,
            "retention_days": self.retention_days,
            "batch_size": self.batch_size,
            "run_at": self.run_at,
            "running": self.running,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_deleted": self.last_deleted,
            "last_error": self.last_error
        }
