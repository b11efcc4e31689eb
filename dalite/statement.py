"""Statement patterns: a query plus the parameter sets bound onto it."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Optional, Union

from dalite.exceptions import InvalidArgumentError
from dalite.parameters import merge_parameter_sets

__all__ = ("StatementPattern", "add_query")


@dataclass(frozen=True, slots=True)
class StatementPattern:
    """One statement of a transactional batch.

    Attributes:
        query: Statement text using ``@name`` placeholders.
        parameters: Parameter sets applied to the command in order. With no
            sets the statement runs without bound parameters.
    """

    query: str
    parameters: "tuple[Mapping[str, Any], ...]" = field(default=())

    def __post_init__(self) -> None:
        if not isinstance(self.query, str) or not self.query.strip():
            msg = "A statement pattern requires non-empty query text"
            raise InvalidArgumentError(msg)
        frozen = tuple(MappingProxyType(dict(parameter_set)) for parameter_set in self.parameters)
        object.__setattr__(self, "parameters", frozen)

    @classmethod
    def of(
        cls,
        query: str,
        params: "Optional[Union[Mapping[str, Any], Iterable[Mapping[str, Any]]]]" = None,
    ) -> "StatementPattern":
        """Build a pattern from a single mapping, a list of mappings, or nothing."""
        if params is None:
            return cls(query)
        if isinstance(params, Mapping):
            return cls(query, (params,))
        return cls(query, tuple(params))

    def merged_parameters(self) -> "dict[str, Any]":
        """All parameter sets flattened into one mapping; later sets win."""
        return merge_parameter_sets(self.parameters)


def add_query(
    query: str, parameters: "Optional[Union[Mapping[str, Any], Iterable[Mapping[str, Any]]]]" = None
) -> StatementPattern:
    """Build a :class:`StatementPattern` for :meth:`DataContext.save_changes`."""
    return StatementPattern.of(query, parameters)
