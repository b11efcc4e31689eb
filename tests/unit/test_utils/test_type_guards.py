from dataclasses import dataclass

import attrs
import msgspec
import pydantic
import pytest

from dalite.utils.type_guards import (
    is_attrs_schema,
    is_dataclass,
    is_dataclass_instance,
    is_dict,
    is_msgspec_struct,
    is_pydantic_model,
    is_schema,
    schema_dump,
)


@dataclass
class Point:
    x: int
    y: int


class PointStruct(msgspec.Struct):
    x: int
    y: int


class PointModel(pydantic.BaseModel):
    x: int
    y: int


@attrs.define
class PointAttrs:
    x: int
    y: int


class PlainPoint:
    def __init__(self, x: int, y: int) -> None:
        self.x = x
        self.y = y
        self._hidden = True

    @property
    def total(self) -> int:
        return self.x + self.y


def test_guards_accept_classes_and_instances() -> None:
    assert is_dataclass(Point) and is_dataclass(Point(1, 2))
    assert is_dataclass_instance(Point(1, 2)) and not is_dataclass_instance(Point)
    assert is_msgspec_struct(PointStruct) and is_msgspec_struct(PointStruct(1, 2))
    assert is_pydantic_model(PointModel) and is_pydantic_model(PointModel(x=1, y=2))
    assert is_attrs_schema(PointAttrs) and is_attrs_schema(PointAttrs(1, 2))
    assert is_dict({"x": 1})
    assert not is_schema(PlainPoint)
    assert all(is_schema(kind) for kind in (Point, PointStruct, PointModel, PointAttrs))


@pytest.mark.parametrize(
    "value",
    [{"x": 1, "y": 2}, Point(1, 2), PointStruct(1, 2), PointModel(x=1, y=2), PointAttrs(1, 2)],
)
def test_schema_dump(value: object) -> None:
    assert schema_dump(value) == {"x": 1, "y": 2}


def test_schema_dump_plain_object_includes_properties() -> None:
    assert schema_dump(PlainPoint(1, 2)) == {"x": 1, "y": 2, "total": 3}


def test_schema_dump_rejects_scalars() -> None:
    with pytest.raises(TypeError):
        schema_dump(42)
