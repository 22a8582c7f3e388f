import json
from typing import Any, Union

from .config import MAX_VALUE_LENGTH
from .errors import ValidationError

class TextValue:
    __slots__ = ('text',)
    kind = 'text'

    def __init__(self, text: str):
        self.text = text

    def __eq__(self, other):
        return isinstance(other, TextValue) and other.text == self.text

    def __repr__(self):
        return f"TextValue({self.text!r})"


class StructuredValue:
    __slots__ = ('data',)
    kind = 'structured'

    def __init__(self, data: Union[dict, list]):
        self.data = data

    def __eq__(self, other):
        return isinstance(other, StructuredValue) and other.data == self.data

    def __repr__(self):
        return f"StructuredValue({self.data!r})"


ReadingValue = Union[TextValue, StructuredValue]

def reading_value_from_json(data: Any) -> ReadingValue:
    if data is None:
        raise ValidationError("data is required", field="data")
    if isinstance(data, str):
        return TextValue(data)
    if isinstance(data, (dict, list)):
        return StructuredValue(data)
    if isinstance(data, (bool, int, float)):
        if isinstance(data, float) and data.is_integer() and abs(data) < 1e21:
            # whole-valued floats read back the same way the device sent them: 1.0 -> "1"
            data = int(data)
        try:
            return TextValue(json.dumps(data, allow_nan=False))
        except ValueError as e:
            raise ValidationError(f"data is not a valid JSON number: {data!r}", field="data") from e
    raise ValidationError(f"Unsupported data type: {type(data).__name__}", field="data")

def encode_value(value: ReadingValue) -> str:
    if isinstance(value, TextValue):
        return value.text
    if isinstance(value, StructuredValue):
        try:
            return json.dumps(value.data, ensure_ascii=False, separators=(',', ':'), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"data is not JSON serializable: {e}", field="data") from e
    raise ValidationError(f"Unsupported reading value: {type(value).__name__}", field="data")

def encode_checked(value: ReadingValue, max_length: int = MAX_VALUE_LENGTH) -> str:
    encoded = encode_value(value)
    if len(encoded) > max_length:
        raise ValidationError(
            f"Data value too large. Maximum size is {max_length} characters.",
            field="data"
        )
    return encoded
