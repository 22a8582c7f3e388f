import asyncio

class ConnectionQueueMonitor:
    def __init__(self):
        self.pending_acquisitions = 0
        self.in_flight = 0
        self.total_operations = 0
        self.timeouts = 0
        self.failures = 0
        self.max_in_flight_seen = 0
        self._idle = asyncio.Event()
        self._idle.set()

    def acquisition_started(self):
        self.pending_acquisitions += 1

    def acquisition_finished(self):
        self.pending_acquisitions = max(0, self.pending_acquisitions - 1)

    def acquisition_timeout(self):
        self.timeouts += 1

    def operation_started(self):
        self.in_flight += 1
        self.total_operations += 1
        self.max_in_flight_seen = max(self.max_in_flight_seen, self.in_flight)
        self._idle.clear()

    def operation_completed(self, failed: bool = False):
        if failed:
            self.failures += 1
        self.in_flight = max(0, self.in_flight - 1)
        if self.in_flight == 0:
            self._idle.set()

    async def wait_idle(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    def get_stats(self):
        return {
            'pending_acquisitions': self.pending_acquisitions,
            'in_flight': self.in_flight,
            'total_operations': self.total_operations,
            'timeouts': self.timeouts,
            'failures': self.failures,
            'max_in_flight_seen': self.max_in_flight_seen
        }
