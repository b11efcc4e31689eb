"""Optional library detection and shared type aliases."""

from collections.abc import Mapping, Sequence
from importlib.util import find_spec
from typing import Any, Final, TypeVar, Union

__all__ = (
    "ATTRS_INSTALLED",
    "PYDANTIC_INSTALLED",
    "ModelT",
    "ParameterMapping",
    "StatementParameters",
)

PYDANTIC_INSTALLED: Final[bool] = find_spec("pydantic") is not None
ATTRS_INSTALLED: Final[bool] = find_spec("attrs") is not None

ModelT = TypeVar("ModelT")
"""Type variable for materialization targets."""

ParameterMapping = Mapping[str, Any]
"""Name to value mapping bound onto one command."""

StatementParameters = Union[ParameterMapping, Sequence[Any], None]
"""Anything the executors accept as the parameters of a single statement."""
