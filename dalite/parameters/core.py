"""Parameter binding: normalization, positional naming and statement preparation."""

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Optional

from dalite.exceptions import InvalidArgumentError
from dalite.parameters.converter import convert_placeholders
from dalite.parameters.types import ParameterStyle, TypedParameter

__all__ = (
    "POSITIONAL_PREFIX",
    "bind_parameters",
    "merge_parameter_sets",
    "normalize_parameters",
    "prepare_parameter_batch",
    "prepare_parameters",
)

POSITIONAL_PREFIX = "param"
_NAME_PREFIXES = ("@", ":", "$")


def bind_parameters(values: "Optional[Iterable[Any]]" = None) -> "dict[str, Any]":
    """Name positional values ``param1``, ``param2``, ... in input order.

    Args:
        values: Positional values. ``None`` or an empty sequence binds nothing.

    Returns:
        A new name to value mapping.
    """
    if values is None:
        return {}
    return {f"{POSITIONAL_PREFIX}{index}": value for index, value in enumerate(values, start=1)}


def normalize_parameters(parameters: "Optional[Mapping[Any, Any]]") -> "dict[str, Any]":
    """Copy a parameter mapping, stripping a leading ``@``, ``:`` or ``$`` from each name.

    Raises:
        InvalidArgumentError: If a name is not a non-empty string.
    """
    if not parameters:
        return {}
    normalized: dict[str, Any] = {}
    for key, value in parameters.items():
        if not isinstance(key, str):
            msg = f"Parameter names must be strings, got {type(key).__name__}"
            raise InvalidArgumentError(msg)
        name = key[1:] if key.startswith(_NAME_PREFIXES) else key
        if not name:
            msg = f"Invalid parameter name {key!r}"
            raise InvalidArgumentError(msg)
        normalized[name] = value
    return normalized


def merge_parameter_sets(parameter_sets: "Iterable[Optional[Mapping[str, Any]]]") -> "dict[str, Any]":
    """Merge parameter sets in order; a later set overwrites an earlier value of the same name."""
    merged: dict[str, Any] = {}
    for parameter_set in parameter_sets:
        merged.update(normalize_parameters(parameter_set))
    return merged


def _as_mapping(parameters: Any) -> "dict[str, Any]":
    if parameters is None:
        return {}
    if isinstance(parameters, Mapping):
        return normalize_parameters(parameters)
    if isinstance(parameters, Sequence) and not isinstance(parameters, (str, bytes, bytearray)):
        return bind_parameters(parameters)
    msg = f"Unsupported parameter container {type(parameters).__name__}; use a mapping or a sequence"
    raise InvalidArgumentError(msg)


def prepare_parameters(
    sql: str,
    parameters: Any,
    style: ParameterStyle,
    render: "Callable[[str, Any], Any]",
    *,
    bracket_identifiers: bool = False,
) -> "tuple[str, Any]":
    """Turn caller SQL and parameters into what a driver's ``execute`` expects.

    Args:
        sql: Statement text using ``@name`` placeholders.
        parameters: A mapping, a positional sequence or ``None``.
        style: The driver paramstyle.
        render: Dialect hook converting one bound value into its driver value.
        bracket_identifiers: Copy ``[...]`` verbatim as a quoted identifier.

    Returns:
        ``(sql, driver_parameters)``. ``driver_parameters`` is ``None`` when the
        statement references no bound name, so the statement text reaches the
        driver unchanged.
    """
    bound = _as_mapping(parameters)
    if not bound:
        return sql, None
    converted_sql, used = convert_placeholders(sql, bound.keys(), style, bracket_identifiers=bracket_identifiers)
    if not used:
        return sql, None
    rendered: dict[str, Any] = {}
    for name in used:
        if name not in rendered:
            value = bound[name]
            if isinstance(value, TypedParameter):
                value.validate(name)
            rendered[name] = render(name, value)
    if style is ParameterStyle.QMARK:
        return converted_sql, tuple(rendered[name] for name in used)
    return converted_sql, rendered


def prepare_parameter_batch(
    sql: str,
    parameter_sets: "Sequence[Mapping[str, Any]]",
    style: ParameterStyle,
    render: "Callable[[str, Any], Any]",
    *,
    bracket_identifiers: bool = False,
) -> "tuple[str, list[Any]]":
    """Prepare one statement for ``executemany``.

    Placeholders are rewritten once from the names of the first set; every set
    must bind the same names.

    Returns:
        ``(sql, driver_parameter_sets)``.
    """
    if not parameter_sets:
        return sql, []
    first = normalize_parameters(parameter_sets[0])
    converted_sql, used = convert_placeholders(sql, first.keys(), style, bracket_identifiers=bracket_identifiers)
    unique = list(dict.fromkeys(used))
    prepared: list[Any] = []
    for parameter_set in parameter_sets:
        bound = normalize_parameters(parameter_set)
        missing = [name for name in unique if name not in bound]
        if missing:
            msg = f"Parameter set is missing values for {', '.join(missing)}"
            raise InvalidArgumentError(msg)
        rendered = {}
        for name in unique:
            value = bound[name]
            if isinstance(value, TypedParameter):
                value.validate(name)
            rendered[name] = render(name, value)
        prepared.append(tuple(rendered[name] for name in used) if style is ParameterStyle.QMARK else rendered)
    return converted_sql, prepared
