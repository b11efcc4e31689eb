"""Core parameter types used throughout dalite."""

from enum import Enum
from typing import Any, Optional

from dalite.exceptions import InvalidArgumentError

__all__ = ("ParameterDirection", "ParameterStyle", "TypedParameter")


class ParameterStyle(str, Enum):
    """Placeholder syntax understood by a DB-API driver."""

    NAMED_AT = "named_at"
    NAMED_COLON = "named_colon"
    NAMED_PYFORMAT = "pyformat_named"
    QMARK = "qmark"

    def __str__(self) -> str:
        """String representation for better error messages.

        Returns:
            The enum value as a string.
        """
        return self.value


class ParameterDirection(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    INPUT_OUTPUT = "input_output"
    RETURN_VALUE = "return_value"


class TypedParameter:
    """A parameter value carrying explicit database type metadata.

    The value is never re-coerced by the dialect's plain-value coercion map;
    the dialect renders it according to ``db_type`` instead (for example a
    PostgreSQL ``jsonb`` parameter is wrapped for the driver's JSON adapter).

    Args:
        value: The bound value. ``None`` binds SQL ``NULL``.
        db_type: Backend type name, e.g. ``"jsonb"``, ``"nvarchar"``.
        direction: Only :attr:`ParameterDirection.INPUT` is executable.
        size: Maximum length for string and binary values.
    """

    __slots__ = ("db_type", "direction", "size", "value")

    def __init__(
        self,
        value: Any,
        db_type: Optional[str] = None,
        direction: ParameterDirection = ParameterDirection.INPUT,
        size: Optional[int] = None,
    ) -> None:
        self.value = value
        self.db_type = db_type
        self.direction = ParameterDirection(direction)
        self.size = size

    def validate(self, name: str) -> None:
        """Check the parameter can be bound as an input value.

        Raises:
            InvalidArgumentError: For non-input directions or a value longer than ``size``.
        """
        if self.direction is not ParameterDirection.INPUT:
            msg = f"Parameter {name!r} has direction {self.direction.value!r}; only input parameters can be bound"
            raise InvalidArgumentError(msg)
        if self.size is not None and isinstance(self.value, (str, bytes, bytearray)) and len(self.value) > self.size:
            msg = f"Parameter {name!r} value length {len(self.value)} exceeds declared size {self.size}"
            raise InvalidArgumentError(msg)

    def __eq__(self, other: object) -> bool:
        """Equality comparison compatible with dataclass.__eq__."""
        if not isinstance(other, type(self)):
            return False
        return (
            self.value == other.value
            and self.db_type == other.db_type
            and self.direction == other.direction
            and self.size == other.size
        )

    def __hash__(self) -> int:
        try:
            value_hash = hash(self.value)
        except TypeError:
            value_hash = hash(repr(self.value))
        return hash((value_hash, self.db_type, self.direction, self.size))

    def __repr__(self) -> str:
        """String representation compatible with dataclass.__repr__."""
        return (
            f"{type(self).__name__}(value={self.value!r}, db_type={self.db_type!r}, "
            f"direction={self.direction.value!r}, size={self.size!r})"
        )
