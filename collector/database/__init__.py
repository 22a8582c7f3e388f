from .connection import ConnectionPool
from .errors import ValidationError, StorageError
from .models import Reading
from .payload import TextValue, StructuredValue, reading_value_from_json, encode_value
from .schema import initialize_schema
from .store import ReadingStore

__all__ = [
    'ConnectionPool', 'ValidationError', 'StorageError', 'Reading',
    'TextValue', 'StructuredValue', 'reading_value_from_json', 'encode_value',
    'initialize_schema', 'ReadingStore'
]
