"""JSON serialization of rows and envelopes using orjson.

orjson handles the column types of the catalog schema natively:
- timestamptz → ISO 8601 string
- UUID → string
- text[] → list

Aggregates need a little help: AVG() and SUM() come back as Decimal.
"""

import datetime
import decimal
from typing import Any

import orjson
from pydantic import BaseModel


def _default_handler(obj: Any) -> Any:
    """
    Default handler for types orjson doesn't handle natively.

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation

    Raises:
        TypeError: If object cannot be serialized
    """
    if isinstance(obj, decimal.Decimal):
        # Integral aggregates (COUNT over NUMERIC, SUM of ints) stay integers
        if obj == obj.to_integral_value():
            return int(obj)
        return float(obj)

    if isinstance(obj, datetime.timedelta):
        return obj.total_seconds()

    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)

    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")

    if isinstance(obj, (bytes, bytearray, memoryview)):
        return bytes(obj).decode("utf-8", errors="replace")

    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def convert_value_to_json_safe(value: Any) -> Any:
    """
    Convert a value to JSON-serializable format.

    Serializes with orjson and decodes back, so the value matches what an
    envelope will look like on the wire.

    Args:
        value: Value to convert

    Returns:
        JSON-serializable value
    """
    try:
        return orjson.loads(orjson.dumps(value, default=_default_handler))
    except TypeError:
        return str(value)


def convert_row_to_json_safe(row: dict[str, Any]) -> dict[str, Any]:
    """Convert all values in a row dict to JSON-serializable formats."""
    return {key: convert_value_to_json_safe(value) for key, value in row.items()}


def convert_rows_to_json_safe(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Convert all rows to JSON-serializable format."""
    return [convert_row_to_json_safe(row) for row in rows]


def dumps(obj: Any, indent: bool = False) -> str:
    """
    Serialize object (rows, envelopes, models) to a JSON string.

    Args:
        obj: Object to serialize
        indent: Pretty-print with two-space indentation

    Returns:
        JSON string
    """
    option = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(obj, default=_default_handler, option=option).decode("utf-8")
