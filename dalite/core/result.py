"""Tabular results returned by the query executors.

A :class:`TabularResult` is the fully materialized output of one statement:
ordered column metadata plus a list of rows, where every row holds exactly one
cell per column and ``None`` marks a null cell. :class:`DataSet` groups the
results of a multi-statement script.
"""

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any, NamedTuple, Optional, Union, overload

from mypy_extensions import mypyc_attr

from dalite.exceptions import InvalidArgumentError

__all__ = ("Column", "DataSet", "Row", "TabularResult")


class Column(NamedTuple):
    """Name and driver type code of one result column."""

    name: str
    type_code: Any = None


class Row:
    """One result row, addressable by position or case-insensitive column name."""

    __slots__ = ("_columns", "_index", "_values")

    def __init__(self, columns: "tuple[Column, ...]", index: "Mapping[str, int]", values: "tuple[Any, ...]") -> None:
        self._columns = columns
        self._index = index
        self._values = values

    def __getitem__(self, key: "Union[int, str]") -> Any:
        if isinstance(key, str):
            try:
                return self._values[self._index[key.lower()]]
            except KeyError:
                msg = f"Column {key!r} does not exist in the row"
                raise KeyError(msg) from None
        return self._values[key]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._index

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> "Iterator[Any]":
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Row):
            return self.keys() == other.keys() and self._values == other._values
        if isinstance(other, tuple):
            return self._values == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._values)

    def __repr__(self) -> str:
        return f"Row({self.as_dict()!r})"

    def get(self, key: str, default: Any = None) -> Any:
        position = self._index.get(key.lower())
        if position is None:
            return default
        return self._values[position]

    def keys(self) -> "list[str]":
        return [column.name for column in self._columns]

    def values(self) -> "tuple[Any, ...]":
        return self._values

    def items(self) -> "list[tuple[str, Any]]":
        return list(zip(self.keys(), self._values))

    def as_dict(self) -> "dict[str, Any]":
        """Return the row as a column name to value dictionary."""
        return dict(self.items())


def _build_index(columns: "Sequence[Column]") -> "dict[str, int]":
    index: dict[str, int] = {}
    for position, column in enumerate(columns):
        # first column wins when names collide
        index.setdefault(column.name.lower(), position)
    return index


@mypyc_attr(allow_interpreted_subclasses=True)
class TabularResult:
    """Column metadata plus fully fetched rows of one statement.

    Args:
        columns: Column metadata, in result order.
        rows: Row tuples; each must hold one cell per column.
        rows_affected: Driver row count for non-query statements.
    """

    __slots__ = ("_index", "columns", "rows", "rows_affected")

    def __init__(
        self,
        columns: "Iterable[Union[Column, str]]" = (),
        rows: "Optional[Iterable[Sequence[Any]]]" = None,
        rows_affected: int = -1,
    ) -> None:
        self.columns: tuple[Column, ...] = tuple(
            column if isinstance(column, Column) else Column(str(column)) for column in columns
        )
        width = len(self.columns)
        materialized: list[tuple[Any, ...]] = []
        for row in rows or ():
            values = tuple(row)
            if len(values) != width:
                msg = f"Row has {len(values)} cells but the result has {width} columns"
                raise InvalidArgumentError(msg)
            materialized.append(values)
        self.rows = materialized
        self.rows_affected = rows_affected
        self._index = _build_index(self.columns)

    @classmethod
    def from_cursor(
        cls, description: "Optional[Sequence[Sequence[Any]]]", rows: "Iterable[Sequence[Any]]"
    ) -> "TabularResult":
        """Build a result from a DB-API ``cursor.description`` and fetched rows."""
        if description is None:
            return cls()
        columns = [Column(str(entry[0]), entry[1] if len(entry) > 1 else None) for entry in description]
        return cls(columns, rows)

    @classmethod
    def from_dicts(cls, records: "Iterable[Mapping[str, Any]]") -> "TabularResult":
        """Build a result from mappings; columns are the union of keys in first-seen order."""
        records = list(records)
        names: dict[str, None] = {}
        for record in records:
            for key in record:
                names.setdefault(str(key), None)
        return cls(names, ([record.get(name) for name in names] for record in records))

    @property
    def column_names(self) -> "list[str]":
        return [column.name for column in self.columns]

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def column_index(self, name: str) -> "Optional[int]":
        """Position of a column by case-insensitive name, or ``None``."""
        return self._index.get(name.lower())

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> "Iterator[Row]":
        for values in self.rows:
            yield Row(self.columns, self._index, values)

    @overload
    def __getitem__(self, index: int) -> Row: ...

    @overload
    def __getitem__(self, index: slice) -> "list[Row]": ...

    def __getitem__(self, index: "Union[int, slice]") -> "Union[Row, list[Row]]":
        if isinstance(index, slice):
            return [Row(self.columns, self._index, values) for values in self.rows[index]]
        return Row(self.columns, self._index, self.rows[index])

    def row(self, index: int) -> Row:
        return self[index]

    def first(self) -> "Optional[Row]":
        """Return the first row, or ``None`` for an empty result."""
        if not self.rows:
            return None
        return self[0]

    def to_dicts(self) -> "list[dict[str, Any]]":
        """Return every row as a column name to value dictionary."""
        names = self.column_names
        return [dict(zip(names, values)) for values in self.rows]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TabularResult):
            return NotImplemented
        return self.column_names == other.column_names and self.rows == other.rows

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"TabularResult(columns={self.column_names!r}, rows={len(self.rows)})"


class DataSet(list[TabularResult]):
    """Ordered results of a multi-statement query, one :class:`TabularResult` per result-producing statement."""
