"""Bulk load sources: tabular results, typed objects, JSON files and CSV files.

The helpers here turn a source into column names plus row mappings and build
the single ``INSERT`` statement the executors run with ``executemany``.
"""

import csv
import io
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

import msgspec

from dalite._serialization import decode_json
from dalite.core.result import TabularResult
from dalite.exceptions import BulkLoadError, InvalidArgumentError, SerializationError
from dalite.utils.type_guards import schema_dump

if TYPE_CHECKING:
    from dalite.dialects.base import Dialect

__all__ = (
    "BulkPayload",
    "BulkSource",
    "build_insert_sql",
    "csv_payload",
    "json_payload",
    "prepare_bulk_payload",
    "read_text",
)

BulkSource = Union[TabularResult, Iterable[Any]]


@dataclass(frozen=True, slots=True)
class BulkPayload:
    """Column names plus one mapping per row, keyed ``c1``, ``c2``, ... by column position."""

    columns: "tuple[str, ...]"
    rows: "list[dict[str, Any]]"

    def __len__(self) -> int:
        return len(self.rows)


def _placeholder_name(position: int) -> str:
    return f"c{position}"


def _payload(columns: "Sequence[str]", records: "Iterable[Mapping[str, Any]]") -> BulkPayload:
    names = [_placeholder_name(position) for position in range(1, len(columns) + 1)]
    rows = [{name: record.get(column) for name, column in zip(names, columns)} for record in records]
    return BulkPayload(tuple(columns), rows)


def prepare_bulk_payload(table_name: str, source: "Optional[BulkSource]") -> BulkPayload:
    """Turn a tabular result or a list of objects into a :class:`BulkPayload`.

    Objects may be mappings, dataclasses, attrs classes, msgspec structs,
    pydantic models or plain objects; the columns are the keys of the first
    object, in order.

    Raises:
        InvalidArgumentError: For a blank table name or a ``None`` source.
        BulkLoadError: If a record cannot be read as a set of columns.
    """
    if not table_name or not table_name.strip():
        msg = "A destination table name is required"
        raise InvalidArgumentError(msg)
    if source is None:
        msg = "A bulk insert source is required"
        raise InvalidArgumentError(msg)
    if isinstance(source, TabularResult):
        return _payload(source.column_names, source.to_dicts())

    try:
        records = [schema_dump(item) for item in source]
    except TypeError as exc:
        msg = f"Unable to read bulk insert records: {exc}"
        raise BulkLoadError(msg, table_name) from exc
    if not records:
        return BulkPayload((), [])
    return _payload(list(records[0]), records)


def build_insert_sql(dialect: "Dialect", table_name: str, columns: "Sequence[str]") -> str:
    """Build ``INSERT INTO table (columns) VALUES (@c1, ...)`` with dialect quoting."""
    column_list = ", ".join(dialect.quote_identifier(column) for column in columns)
    values = ", ".join(f"@{_placeholder_name(position)}" for position in range(1, len(columns) + 1))
    return f"INSERT INTO {dialect.quote_identifier(table_name)} ({column_list}) VALUES ({values})"


def json_payload(table_name: str, content: "Union[str, bytes]", target: Any = None) -> BulkPayload:
    """Parse a JSON array of objects into a payload.

    With ``target`` each element is first converted into that type, so only the
    target's fields become columns.

    Raises:
        BulkLoadError: If the document is not a JSON array of objects.
    """
    from dalite.serialization import JsonServices

    try:
        records = JsonServices().json_to_list(content, target) if target is not None else decode_json(content)
    except (SerializationError, msgspec.DecodeError) as exc:
        msg = f"Unable to read JSON bulk insert source: {exc}"
        raise BulkLoadError(msg, table_name) from exc
    if not isinstance(records, list):
        msg = "A JSON bulk insert source must be an array of objects"
        raise BulkLoadError(msg, table_name)
    return prepare_bulk_payload(table_name, records)


def csv_payload(table_name: str, content: str) -> BulkPayload:
    """Parse CSV text with a header row into a payload; every value stays a string.

    Raises:
        BulkLoadError: If the CSV has no header row or a row has more cells than the header.
    """
    reader = csv.DictReader(io.StringIO(content))
    if not reader.fieldnames:
        msg = "A CSV bulk insert source needs a header row"
        raise BulkLoadError(msg, table_name)
    columns = [name.strip() for name in reader.fieldnames]
    records = []
    for line_number, record in enumerate(reader, start=2):
        if None in record:
            msg = f"CSV line {line_number} has more values than the header"
            raise BulkLoadError(msg, table_name)
        records.append(dict(zip(columns, record.values())))
    return _payload(columns, records)


def read_text(path: "Union[str, Path]") -> str:
    return Path(path).read_text(encoding="utf-8-sig")
