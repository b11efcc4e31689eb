"""JSON encoding primitives shared by logging, configuration and the JSON services."""

import datetime
import enum
from decimal import Decimal
from pathlib import PurePath
from typing import Any, Literal, overload
from uuid import UUID

import msgspec

__all__ = ("decode_json", "encode_json")


def _default_enc_hook(value: Any) -> Any:
    """Encode values msgspec does not handle natively."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (UUID, PurePath)):
        return str(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        return model_dump(mode="json")
    if hasattr(value, "__dict__"):
        return {key: item for key, item in vars(value).items() if not key.startswith("_")}
    msg = f"Encoding objects of type {type(value).__name__} is unsupported"
    raise TypeError(msg)


_encoder = msgspec.json.Encoder(enc_hook=_default_enc_hook)
_decoder = msgspec.json.Decoder()


@overload
def encode_json(data: Any, *, as_bytes: Literal[False] = ...) -> str: ...


@overload
def encode_json(data: Any, *, as_bytes: Literal[True]) -> bytes: ...


def encode_json(data: Any, *, as_bytes: bool = False) -> "str | bytes":
    """Encode data to a JSON string or bytes.

    Args:
        data: Data to encode.
        as_bytes: Return bytes instead of a string.

    Returns:
        JSON representation of ``data``.
    """
    encoded = _encoder.encode(data)
    if as_bytes:
        return encoded
    return encoded.decode("utf-8")


def decode_json(data: "str | bytes") -> Any:
    """Decode a JSON document into builtin Python objects."""
    return _decoder.decode(data)
