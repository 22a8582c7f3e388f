class ValidationError(ValueError):
    """Caller supplied a value of the wrong shape: empty id, oversized payload, bad timestamp."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.message = message
        self.field = field


class StorageError(Exception):
    """Connection failure, pool timeout or query failure below the store."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
