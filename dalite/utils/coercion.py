"""Value coercion for materialized cells.

Converts raw driver values to the declared type of a target slot. ``None``
always passes through untouched so nulls propagate instead of failing.
"""

import datetime
import enum
import types
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path, PurePath
from typing import Any, Final, Union, get_args, get_origin
from uuid import UUID

import msgspec

from dalite._serialization import decode_json

__all__ = ("coerce_value", "unwrap_optional", "zero_value")

_BOOL_TRUE_VALUES: Final[frozenset[str]] = frozenset({"true", "1", "yes", "y", "t", "on"})
_BOOL_FALSE_VALUES: Final[frozenset[str]] = frozenset({"false", "0", "no", "n", "f", "off", ""})

_ZERO_VALUES: Final[dict[type, Any]] = {
    int: 0,
    float: 0.0,
    str: "",
    bool: False,
    Decimal: Decimal(0),
    bytes: b"",
}


def _convert_to_int(value: Any) -> int:
    if isinstance(value, (bool, int, float, Decimal)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            # values like "42.0"
            try:
                return int(float(value))
            except ValueError:
                pass
    msg = f"Cannot convert {type(value).__name__} to int"
    raise TypeError(msg)


def _convert_to_float(value: Any) -> float:
    if isinstance(value, (bool, int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
    msg = f"Cannot convert {type(value).__name__} to float"
    raise TypeError(msg)


def _convert_to_bool(value: Any) -> bool:
    """Convert a value to bool.

    Strings must be one of the recognised true or false spellings, anything
    else is rejected rather than silently read as ``False``.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return bool(value)
    if isinstance(value, bytes) and len(value) == 1:
        return value != b"\x00"
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _BOOL_TRUE_VALUES:
            return True
        if lowered in _BOOL_FALSE_VALUES:
            return False
    msg = f"Cannot convert {type(value).__name__} to bool"
    raise TypeError(msg)


def _convert_to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    return str(value)


def _convert_to_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time.min)
    if isinstance(value, str):
        try:
            return datetime.datetime.fromisoformat(value)
        except ValueError:
            pass
    msg = f"Cannot convert {type(value).__name__} to datetime"
    raise TypeError(msg)


def _convert_to_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        try:
            return datetime.date.fromisoformat(value)
        except ValueError:
            try:
                return datetime.datetime.fromisoformat(value).date()
            except ValueError:
                pass
    msg = f"Cannot convert {type(value).__name__} to date"
    raise TypeError(msg)


def _convert_to_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.datetime):
        return value.time()
    if isinstance(value, datetime.time):
        return value
    if isinstance(value, datetime.timedelta):
        # MySQL drivers return TIME columns as timedelta
        return (datetime.datetime.min + value).time()
    if isinstance(value, str):
        try:
            return datetime.time.fromisoformat(value)
        except ValueError:
            pass
    msg = f"Cannot convert {type(value).__name__} to time"
    raise TypeError(msg)


def _convert_to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float, str)) and not isinstance(value, bool):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            pass
    msg = f"Cannot convert {type(value).__name__} to Decimal"
    raise TypeError(msg)


def _convert_to_uuid(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            pass
    if isinstance(value, bytes):
        try:
            return UUID(bytes=value)
        except ValueError:
            pass
    msg = f"Cannot convert {type(value).__name__} to UUID"
    raise TypeError(msg)


def _convert_to_path(value: Any) -> Path:
    if isinstance(value, Path):
        return value
    if isinstance(value, (str, PurePath)):
        return Path(value)
    msg = f"Cannot convert {type(value).__name__} to Path"
    raise TypeError(msg)


def _convert_to_bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    msg = f"Cannot convert {type(value).__name__} to bytes"
    raise TypeError(msg)


def _parse_json(value: "str | bytes") -> Any:
    try:
        return decode_json(value)
    except msgspec.DecodeError as exc:
        msg = f"Invalid JSON value: {exc}"
        raise TypeError(msg) from exc


def _convert_to_dict(value: Any) -> "dict[str, Any]":
    """Convert JSON column values, which drivers return parsed or as text."""
    if isinstance(value, dict):
        return value
    if isinstance(value, (str, bytes)):
        parsed = _parse_json(value)
        if isinstance(parsed, dict):
            return parsed
        msg = f"JSON value did not parse to dict, got {type(parsed).__name__}"
        raise TypeError(msg)
    msg = f"Cannot convert {type(value).__name__} to dict"
    raise TypeError(msg)


def _convert_to_list(value: Any) -> "list[Any]":
    if isinstance(value, list):
        return value
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    if isinstance(value, (str, bytes)):
        parsed = _parse_json(value)
        if isinstance(parsed, list):
            return parsed
        msg = f"JSON value did not parse to list, got {type(parsed).__name__}"
        raise TypeError(msg)
    msg = f"Cannot convert {type(value).__name__} to list"
    raise TypeError(msg)


_CONVERTERS: Final["dict[type, Callable[[Any], Any]]"] = {
    bool: _convert_to_bool,
    int: _convert_to_int,
    float: _convert_to_float,
    str: _convert_to_str,
    Decimal: _convert_to_decimal,
    datetime.datetime: _convert_to_datetime,
    datetime.date: _convert_to_date,
    datetime.time: _convert_to_time,
    UUID: _convert_to_uuid,
    Path: _convert_to_path,
    bytes: _convert_to_bytes,
    dict: _convert_to_dict,
    list: _convert_to_list,
}


@lru_cache(maxsize=512)
def unwrap_optional(target_type: Any) -> Any:
    """Strip ``None`` from ``Optional[X]`` and ``X | None`` annotations.

    Unions with more than one non-null member are returned unchanged.
    """
    origin = get_origin(target_type)
    if origin is Union or origin is getattr(types, "UnionType", None):
        members = [arg for arg in get_args(target_type) if arg is not type(None)]
        if len(members) == 1:
            return members[0]
    return target_type


def coerce_value(value: Any, target_type: Any) -> Any:
    """Convert ``value`` to ``target_type``.

    Args:
        value: Raw cell value returned by the driver.
        target_type: The declared type of the receiving slot. ``None`` or
            ``typing.Any`` disables coercion.

    Raises:
        TypeError: If the value cannot be represented as the target type.
        ValueError: If direct construction of the target type rejects the value.

    Returns:
        The coerced value, or ``None`` for a null cell.
    """
    if value is None or target_type is None or target_type is Any:
        return value

    target = unwrap_optional(target_type)
    origin = get_origin(target)
    if origin is Union or origin is getattr(types, "UnionType", None):
        # ambiguous unions are left to the caller
        return value
    if origin is not None:
        target = origin

    if not isinstance(target, type):
        return value

    if type(value) is target:
        return value

    converter = _CONVERTERS.get(target)
    if converter is not None:
        return converter(value)

    if issubclass(target, enum.Enum):
        try:
            return target(value)
        except ValueError:
            if isinstance(value, str) and value in target.__members__:
                return target[value]
            raise

    if isinstance(value, target):
        return value
    return target(value)


def zero_value(target_type: Any) -> Any:
    """Return the default value used when a scalar read produces no value.

    Args:
        target_type: Requested scalar type.

    Returns:
        ``0``, ``0.0``, ``""``, ``False``, ``Decimal(0)`` or ``b""`` for the
        matching builtin types, otherwise ``None``.
    """
    if target_type is None:
        return None
    target = unwrap_optional(target_type)
    if target is not target_type:
        return None
    return _ZERO_VALUES.get(target)
