from typing import Any, Tuple

from collector.database.config import MAX_VALUE_LENGTH
from collector.database.errors import ValidationError
from collector.database.payload import ReadingValue, reading_value_from_json, encode_checked

REQUIRED_FIELDS = ('device_id', 'device_name', 'data')

def _clean_identifier(body: dict, field: str) -> str:
    value = body.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string", field=field)
    return value.strip()

def validate_reading_upload(body: Any, max_value_length: int = MAX_VALUE_LENGTH) -> Tuple[str, str, ReadingValue]:
    if not isinstance(body, dict):
        raise ValidationError("Expected a JSON object with device_id, device_name and data")

    missing = [f for f in REQUIRED_FIELDS if body.get(f) is None or (f != "data" and body.get(f) == "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", field=missing[0])

    device_id = _clean_identifier(body, 'device_id')
    device_name = _clean_identifier(body, 'device_name')
    value = reading_value_from_json(body['data'])
    encode_checked(value, max_value_length)

    return device_id, device_name, value

def clean_device_id(raw) -> str:
    if raw is None or not str(raw).strip():
        raise ValidationError("Invalid device ID", field="device_id")
    return str(raw).strip()
