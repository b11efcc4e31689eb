"""JSON conversion services for results, models and lists."""

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar, Union

import msgspec

from dalite._serialization import decode_json, encode_json
from dalite.core.materialize import to_object
from dalite.core.result import DataSet, TabularResult
from dalite.exceptions import SerializationError
from dalite.utils.logging import get_logger
from dalite.utils.type_guards import is_pydantic_model, is_schema

__all__ = ("JsonServices",)

logger = get_logger("serialization")

T = TypeVar("T")

_FAILURES = (msgspec.MsgspecError, ValueError, TypeError)


def _table_name(position: int) -> str:
    return "Table" if position == 0 else f"Table{position}"


class JsonServices:
    """Converts tabular results, data sets and objects to and from JSON.

    Every failure is raised as :class:`SerializationError` chained to its cause.
    Methods can be overridden to customise the representation.
    """

    __slots__ = ()

    @staticmethod
    def _encode(data: Any, *, indent: bool) -> str:
        encoded = encode_json(data, as_bytes=True)
        if indent:
            encoded = msgspec.json.format(encoded, indent=2)
        return encoded.decode("utf-8")

    def data_table_to_json(self, table: TabularResult) -> str:
        """Serialize a result as a JSON array of row objects."""
        try:
            return self._encode(table.to_dicts(), indent=False)
        except _FAILURES as exc:
            msg = f"Error converting tabular result to JSON: {exc}"
            raise SerializationError(msg) from exc

    def data_set_to_json(self, data_set: "Iterable[TabularResult]") -> str:
        """Serialize a data set as ``{"Table": [...], "Table1": [...], ...}``."""
        try:
            payload = {_table_name(position): table.to_dicts() for position, table in enumerate(data_set)}
            return self._encode(payload, indent=True)
        except _FAILURES as exc:
            msg = f"Error converting data set to JSON: {exc}"
            raise SerializationError(msg) from exc

    def json_to_data_table(self, json: "Union[str, bytes]") -> TabularResult:
        """Parse a JSON array of objects into a result; columns are the union of keys."""
        try:
            records = decode_json(json)
        except _FAILURES as exc:
            msg = f"Error converting JSON to tabular result: {exc}"
            raise SerializationError(msg) from exc
        if records is None:
            return TabularResult()
        if not isinstance(records, list) or not all(isinstance(record, Mapping) for record in records):
            msg = "Error converting JSON to tabular result: expected an array of objects"
            raise SerializationError(msg)
        return TabularResult.from_dicts(records)

    def json_to_data_set(self, json: "Union[str, bytes]") -> DataSet:
        """Parse ``{"name": [...], ...}`` into a data set, keeping document order."""
        try:
            document = decode_json(json)
        except _FAILURES as exc:
            msg = f"Error converting JSON to data set: {exc}"
            raise SerializationError(msg) from exc
        if not isinstance(document, Mapping):
            msg = "Error converting JSON to data set: expected an object of named tables"
            raise SerializationError(msg)
        data_set = DataSet()
        for name, records in document.items():
            if not isinstance(records, list):
                msg = f"Error converting JSON to data set: table {name!r} is not an array"
                raise SerializationError(msg)
            data_set.append(TabularResult.from_dicts(records))
        return data_set

    def object_to_json(self, obj: Any) -> str:
        """Serialize any supported object as indented JSON."""
        try:
            return self._encode(obj, indent=True)
        except _FAILURES as exc:
            msg = f"Error converting object of type {type(obj).__name__} to JSON: {exc}"
            raise SerializationError(msg) from exc

    def json_to_object(self, json: "Union[str, bytes]", target: "type[T]") -> T:
        """Parse JSON into an instance of ``target``."""
        try:
            return self._convert(decode_json(json), target)
        except _FAILURES as exc:
            msg = f"Error converting JSON to object of type {getattr(target, '__name__', target)}: {exc}"
            raise SerializationError(msg) from exc

    def list_to_json(self, items: "Iterable[Any]") -> str:
        """Serialize a list of objects as an indented JSON array."""
        try:
            return self._encode(list(items), indent=True)
        except _FAILURES as exc:
            msg = f"Error converting list to JSON: {exc}"
            raise SerializationError(msg) from exc

    def json_to_list(self, json: "Union[str, bytes]", target: "type[T]") -> "list[T]":
        """Parse a JSON array into a list of ``target`` instances."""
        try:
            document = decode_json(json)
            if document is None:
                return []
            if not isinstance(document, list):
                msg = "expected a JSON array"
                raise TypeError(msg)
            return [self._convert(item, target) for item in document]
        except _FAILURES as exc:
            msg = f"Error converting JSON to list of type {getattr(target, '__name__', target)}: {exc}"
            raise SerializationError(msg) from exc

    @staticmethod
    def _convert(data: Any, target: "type[T]") -> T:
        if data is None:
            return None  # type: ignore[return-value]
        if is_pydantic_model(target):
            return target.model_validate(data)  # type: ignore[attr-defined,no-any-return]
        if is_schema(target) or not isinstance(data, Mapping) or target in {dict, list, Any}:
            return msgspec.convert(data, target, strict=False)
        # plain classes go through the row materializer
        return to_object(TabularResult.from_dicts([data]).first(), target)  # type: ignore[return-value]
