"""Materialization of tabular rows into typed objects, scalars and mappings."""

import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

import attrs
import msgspec
import pydantic
import pytest

from dalite.core.materialize import (
    map_rows,
    slot_table,
    to_dictionary,
    to_list,
    to_object,
    to_scalar,
    to_scalar_list,
)
from dalite.core.result import TabularResult
from dalite.exceptions import InvalidArgumentError, TypeCoercionError


class Status(Enum):
    ACTIVE = "active"
    DISABLED = "disabled"


class PlainUser:
    id: int
    name: str
    created: Optional[datetime.date]

    def __init__(self) -> None:
        self.id = 0
        self.name = "unset"
        self.created = None
        self._score = 0.0

    @property
    def score(self) -> float:
        return self._score

    @score.setter
    def score(self, value: float) -> None:
        self._score = value


class NeedsArguments:
    id: int

    def __init__(self, id: int) -> None:
        self.id = id


@dataclass
class DataclassUser:
    id: int
    name: str
    email: Optional[str] = None
    tags: list = field(default_factory=list)


class StructUser(msgspec.Struct):
    id: int
    name: str
    status: Status = Status.ACTIVE


class PydanticUser(pydantic.BaseModel):
    id: int
    name: str
    balance: Decimal = Decimal(0)


@attrs.define
class AttrsUser:
    id: int
    name: str
    active: bool = True


@pytest.fixture
def users() -> TabularResult:
    return TabularResult(
        ["ID", "Name", "Email", "Created", "Score", "Extra"],
        [
            (1, "Alice", "alice@example.com", "2024-01-02", 9.5, "ignored"),
            (2, "Bob", None, None, None, "ignored"),
        ],
    )


def test_plain_class_assignment(users: TabularResult) -> None:
    first, second = to_list(users, PlainUser)
    assert first.id == 1
    assert first.name == "Alice"
    assert first.created == datetime.date(2024, 1, 2)
    assert first.score == 9.5
    assert second.created is None
    assert second.score == 0.0


def test_plain_class_nulls_never_assigned() -> None:
    result = TabularResult(["name"], [(None,)])
    user = to_object(result.first(), PlainUser)
    assert user is not None
    assert user.name == "unset"


def test_plain_class_without_default_constructor() -> None:
    result = TabularResult(["id"], [(1,)])
    with pytest.raises(InvalidArgumentError):
        to_object(result.first(), NeedsArguments)


def test_dataclass_target(users: TabularResult) -> None:
    first, second = to_list(users, DataclassUser)
    assert first == DataclassUser(1, "Alice", "alice@example.com")
    assert second.email is None


def test_dataclass_missing_required_field_gets_zero_value() -> None:
    result = TabularResult(["id"], [("5",)])
    assert to_object(result.first(), DataclassUser) == DataclassUser(5, "")


def test_msgspec_struct_target() -> None:
    result = TabularResult(["id", "name", "status"], [(1, "Alice", "disabled")])
    assert to_object(result.first(), StructUser) == StructUser(1, "Alice", Status.DISABLED)


def test_pydantic_target() -> None:
    result = TabularResult(["Id", "NAME", "balance"], [(3, "Carol", "12.50")])
    user = to_object(result.first(), PydanticUser)
    assert user == PydanticUser(id=3, name="Carol", balance=Decimal("12.50"))


def test_attrs_target() -> None:
    result = TabularResult(["id", "name", "active"], [(4, "Dave", 0)])
    assert to_object(result.first(), AttrsUser) == AttrsUser(4, "Dave", False)


def test_dict_target(users: TabularResult) -> None:
    assert to_object(users.first(), dict)["Name"] == "Alice"  # type: ignore[index]
    assert to_list(users, dict)[1]["ID"] == 2


def test_missing_row_gives_none() -> None:
    assert to_object(None, DataclassUser) is None


def test_coercion_failure_names_column() -> None:
    result = TabularResult(["id", "name"], [("not a number", "x")])
    with pytest.raises(TypeCoercionError) as exc_info:
        to_object(result.first(), DataclassUser)
    assert exc_info.value.column == "id"
    assert exc_info.value.__cause__ is not None


def test_slot_table_is_cached() -> None:
    assert slot_table(DataclassUser) is slot_table(DataclassUser)
    assert set(slot_table(PlainUser).slots) == {"id", "name", "created", "score"}


def test_slot_table_rejects_non_class() -> None:
    with pytest.raises(InvalidArgumentError):
        slot_table("users")  # type: ignore[arg-type]


def test_to_scalar() -> None:
    assert to_scalar(TabularResult(["n"], [("42",)]), int) == 42
    assert to_scalar(TabularResult(["n"], [(None,)]), int) == 0
    assert to_scalar(TabularResult(["n"], []), str) == ""
    assert to_scalar(TabularResult(["n"], []), Decimal) == Decimal(0)
    assert to_scalar(TabularResult(["n"], []), bool) is False
    assert to_scalar(TabularResult(["n"], []), Optional[int]) is None
    assert to_scalar(TabularResult(["n"], [(7,)])) == 7


def test_to_scalar_list() -> None:
    result = TabularResult(["n", "other"], [(1, "a"), (None, "b"), ("3", "c")])
    assert to_scalar_list(result, int) == [1, 0, 3]
    assert to_scalar_list(TabularResult(), int) == []


def test_to_dictionary_skips_nulls_and_last_wins() -> None:
    result = TabularResult(
        ["key", "value"],
        [("a", 1), ("b", None), (None, 3), ("a", 4), ("c", "5")],
    )
    assert to_dictionary(result, str, int) == {"a": 4, "c": 5}


def test_to_dictionary_needs_two_columns() -> None:
    with pytest.raises(InvalidArgumentError):
        to_dictionary(TabularResult(["only"], [(1,)]))


def test_map_rows() -> None:
    result = TabularResult(["id", "name"], [(1, "a"), (2, "b")])
    assert map_rows(result, lambda row: f"{row['id']}:{row['NAME']}") == ["1:a", "2:b"]


def test_map_rows_requires_function() -> None:
    with pytest.raises(InvalidArgumentError):
        map_rows(TabularResult(), None)
