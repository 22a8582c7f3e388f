import datetime
from typing import NamedTuple, Optional

from collector.core.config import API_DEFAULT_LIMIT, API_MAX_LIMIT
from collector.database.errors import ValidationError

class Pagination(NamedTuple):
    limit: int
    offset: int

def _parse_int(raw) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except (ValueError, TypeError):
        return None

def normalize_limit(raw, default_limit: int = API_DEFAULT_LIMIT, max_limit: int = API_MAX_LIMIT) -> int:
    limit = _parse_int(raw)
    if limit is None or limit <= 0:
        limit = default_limit
    return max(1, min(limit, max_limit))

def normalize_offset(raw) -> int:
    offset = _parse_int(raw)
    if offset is None:
        return 0
    return max(0, offset)

def parse_pagination(limit=None, offset=None, default_limit: int = API_DEFAULT_LIMIT,
                     max_limit: int = API_MAX_LIMIT) -> Pagination:
    return Pagination(normalize_limit(limit, default_limit, max_limit), normalize_offset(offset))

def validate_time_bound(raw, field_name: str) -> Optional[datetime.datetime]:
    if raw is None:
        return None
    if isinstance(raw, datetime.datetime):
        parsed = raw
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            parsed = datetime.datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError as e:
            raise ValidationError(
                f"Invalid {field_name} format. Use ISO 8601 format (YYYY-MM-DDTHH:mm:ss.sssZ)",
                field=field_name
            ) from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed
