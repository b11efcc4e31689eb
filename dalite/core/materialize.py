"""Result materialization: tabular rows to typed objects, scalars and mappings.

Every target type is inspected once. Its slot table maps lower-cased column
names to the attribute receiving the value, plus the declared type used for
coercion. Two construction strategies exist:

* keyword models (dataclasses, attrs classes, ``msgspec.Struct`` and pydantic
  models) are constructed from the collected values; a required field that
  received no value gets the zero value of its type.
* plain classes are instantiated without arguments and then assigned to,
  through annotated attributes or settable properties.

Extra columns are ignored, missing columns leave the slot untouched and a null
cell is never assigned.
"""

import dataclasses
import typing
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, ClassVar, Optional, TypeVar, get_origin

import msgspec

from dalite.core.result import Row, TabularResult
from dalite.exceptions import InvalidArgumentError, TypeCoercionError
from dalite.typing import ModelT
from dalite.utils.coercion import coerce_value, zero_value
from dalite.utils.logging import get_logger
from dalite.utils.type_guards import is_attrs_schema, is_dataclass, is_msgspec_struct, is_pydantic_model

__all__ = (
    "Slot",
    "SlotTable",
    "coerce_cell",
    "map_rows",
    "slot_table",
    "to_dictionary",
    "to_list",
    "to_object",
    "to_scalar",
    "to_scalar_list",
)

logger = get_logger("core.materialize")

T = TypeVar("T")
KeyT = TypeVar("KeyT")
ValueT = TypeVar("ValueT")

_COERCION_ERRORS = (TypeError, ValueError, ArithmeticError, OverflowError)


@dataclass(frozen=True, slots=True)
class Slot:
    """A receiving attribute of a materialization target."""

    attribute: str
    annotation: Any
    required: bool = False


@dataclass(frozen=True, slots=True)
class SlotTable:
    """Cached description of how to build one target type."""

    target: type
    slots: "Mapping[str, Slot]"
    from_kwargs: bool

    def build(self, row: Row) -> Any:
        values: dict[str, Any] = {}
        for column, value in zip(row.keys(), row.values()):
            if value is None:
                continue
            slot = self.slots.get(column.lower())
            if slot is None or slot.attribute in values:
                continue
            values[slot.attribute] = coerce_cell(value, slot.annotation, column)

        if self.from_kwargs:
            for slot in self.slots.values():
                if slot.required and slot.attribute not in values:
                    values[slot.attribute] = zero_value(slot.annotation)
            try:
                return self.target(**values)
            except _COERCION_ERRORS as exc:
                raise TypeCoercionError(",".join(values), self.target, values) from exc

        try:
            instance = self.target()
        except TypeError as exc:
            msg = f"{self.target.__qualname__} must be constructible without arguments to be materialized"
            raise InvalidArgumentError(msg) from exc
        for attribute, value in values.items():
            setattr(instance, attribute, value)
        return instance


def _type_hints(target: type) -> "dict[str, Any]":
    try:
        return typing.get_type_hints(target)
    except (NameError, TypeError):
        # unresolved forward references leave the raw annotations in place
        hints: dict[str, Any] = {}
        for klass in reversed(target.__mro__):
            hints.update(getattr(klass, "__annotations__", {}))
        return hints


def _type_hints_of_callable(func: Any) -> "dict[str, Any]":
    try:
        return typing.get_type_hints(func)
    except (NameError, TypeError):
        return {}


def _dataclass_slots(target: type) -> "dict[str, Slot]":
    hints = _type_hints(target)
    return {
        field.name.lower(): Slot(
            field.name,
            hints.get(field.name, field.type),
            required=field.default is dataclasses.MISSING and field.default_factory is dataclasses.MISSING,
        )
        for field in dataclasses.fields(target)
        if field.init
    }


def _msgspec_slots(target: type) -> "dict[str, Slot]":
    return {
        field.name.lower(): Slot(field.name, field.type, required=field.required)
        for field in msgspec.structs.fields(target)
    }


def _pydantic_slots(target: Any) -> "dict[str, Slot]":
    slots: dict[str, Slot] = {}
    for name, field in target.model_fields.items():
        slot = Slot(field.alias or name, field.annotation, required=field.is_required())
        slots.setdefault(name.lower(), slot)
        if field.alias:
            slots.setdefault(field.alias.lower(), slot)
    return slots


def _attrs_slots(target: type) -> "dict[str, Slot]":
    import attrs

    hints = _type_hints(target)
    slots: dict[str, Slot] = {}
    for field in attrs.fields(target):
        if not field.init:
            continue
        init_name = getattr(field, "alias", None) or field.name.lstrip("_")
        slots[field.name.lstrip("_").lower()] = Slot(
            init_name, hints.get(field.name, field.type), required=field.default is attrs.NOTHING
        )
    return slots


def _plain_slots(target: type) -> "dict[str, Slot]":
    slots: dict[str, Slot] = {}
    for name, annotation in _type_hints(target).items():
        if name.startswith("_") or get_origin(annotation) is ClassVar or annotation is ClassVar:
            continue
        slots[name.lower()] = Slot(name, annotation)
    for klass in reversed(target.__mro__):
        for name, attribute in vars(klass).items():
            if name.startswith("_") or not isinstance(attribute, property) or attribute.fset is None:
                continue
            annotation = getattr(attribute.fget, "__annotations__", {}).get("return")
            if isinstance(annotation, str):
                annotation = _type_hints_of_callable(attribute.fget).get("return", annotation)
            slots[name.lower()] = Slot(name, annotation)
    return slots


@lru_cache(maxsize=256)
def slot_table(target: type) -> SlotTable:
    """Inspect ``target`` once and describe how rows are turned into instances of it.

    Raises:
        InvalidArgumentError: If ``target`` is not a class.
    """
    if not isinstance(target, type):
        msg = f"Materialization target must be a class, got {target!r}"
        raise InvalidArgumentError(msg)
    if is_dataclass(target):
        return SlotTable(target, _dataclass_slots(target), from_kwargs=True)
    if is_msgspec_struct(target):
        return SlotTable(target, _msgspec_slots(target), from_kwargs=True)
    if is_pydantic_model(target):
        return SlotTable(target, _pydantic_slots(target), from_kwargs=True)
    if is_attrs_schema(target):
        return SlotTable(target, _attrs_slots(target), from_kwargs=True)
    logger.debug("Building assignment slot table for %s", target.__qualname__)
    return SlotTable(target, _plain_slots(target), from_kwargs=False)


def coerce_cell(value: Any, target_type: Any, column: str) -> Any:
    """Coerce one cell, reporting failures as :class:`TypeCoercionError` for ``column``."""
    try:
        return coerce_value(value, target_type)
    except _COERCION_ERRORS as exc:
        raise TypeCoercionError(column, target_type, value) from exc


def to_object(row: "Optional[Row]", target: "type[ModelT]") -> "Optional[ModelT]":
    """Materialize one row into ``target``.

    Args:
        row: The row, or ``None`` when the query produced no rows.
        target: Class receiving the values. ``dict`` returns the row as a dictionary.

    Returns:
        A new instance, or ``None`` for a missing row.
    """
    if row is None:
        return None
    if target is dict:
        return row.as_dict()  # type: ignore[return-value]
    return slot_table(target).build(row)  # type: ignore[no-any-return]


def to_list(table: TabularResult, target: "type[ModelT]") -> "list[ModelT]":
    """Materialize every row of ``table`` into ``target``, preserving order."""
    if target is dict:
        return table.to_dicts()  # type: ignore[return-value]
    table_for_target = slot_table(target)
    return [table_for_target.build(row) for row in table]


def to_scalar(table: TabularResult, target: Any = None) -> Any:
    """First column of the first row, coerced to ``target``.

    Zero rows or a null cell produce the zero value of ``target``.
    """
    if not table.rows or not table.columns:
        return zero_value(target)
    value = table.rows[0][0]
    if value is None:
        return zero_value(target)
    return coerce_cell(value, target, table.columns[0].name)


def to_scalar_list(table: TabularResult, target: Any = None) -> "list[Any]":
    """First column of every row, coerced to ``target``; nulls become the zero value."""
    if not table.columns:
        return []
    column = table.columns[0].name
    default = zero_value(target)
    return [default if values[0] is None else coerce_cell(values[0], target, column) for values in table.rows]


def to_dictionary(
    table: TabularResult,
    key_type: "Optional[type[KeyT]]" = None,
    value_type: "Optional[type[ValueT]]" = None,
) -> "dict[Any, Any]":
    """Build a mapping from the first two columns of ``table``.

    Rows with a null key or a null value are skipped; for duplicate keys the
    last row wins.

    Raises:
        InvalidArgumentError: If the result has fewer than two columns.
    """
    if len(table.columns) < 2:  # noqa: PLR2004
        msg = f"A dictionary needs at least two result columns, got {len(table.columns)}"
        raise InvalidArgumentError(msg)
    key_column, value_column = table.columns[0].name, table.columns[1].name
    result: dict[Any, Any] = {}
    for values in table.rows:
        key, value = values[0], values[1]
        if key is None or value is None:
            continue
        result[coerce_cell(key, key_type, key_column)] = coerce_cell(value, value_type, value_column)
    return result


def map_rows(table: TabularResult, func: "Optional[Callable[[Row], T]]") -> "list[T]":
    """Apply ``func`` to every row, in order.

    Raises:
        InvalidArgumentError: If ``func`` is ``None``.
    """
    if func is None:
        msg = "A row mapping function is required"
        raise InvalidArgumentError(msg)
    return [func(row) for row in table]

