"""Result containers, materialization and script splitting."""

from dalite.core.materialize import (
    map_rows,
    slot_table,
    to_dictionary,
    to_list,
    to_object,
    to_scalar,
    to_scalar_list,
)
from dalite.core.result import Column, DataSet, Row, TabularResult
from dalite.core.splitter import split_sql_script

__all__ = (
    "Column",
    "DataSet",
    "Row",
    "TabularResult",
    "map_rows",
    "slot_table",
    "split_sql_script",
    "to_dictionary",
    "to_list",
    "to_object",
    "to_scalar",
    "to_scalar_list",
)
