"""Type guard functions for runtime type checking in dalite.

These checks work on classes and on instances so the materializer, the bulk
loader and the JSON services can share them.
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import msgspec

from dalite.typing import ATTRS_INSTALLED, PYDANTIC_INSTALLED

if TYPE_CHECKING:
    from typing_extensions import TypeGuard

__all__ = (
    "is_attrs_schema",
    "is_dataclass",
    "is_dataclass_instance",
    "is_dict",
    "is_msgspec_struct",
    "is_pydantic_model",
    "is_schema",
    "schema_dump",
)


def _as_type(obj: Any) -> type:
    return obj if isinstance(obj, type) else type(obj)


def is_dataclass_instance(obj: Any) -> bool:
    """Check if an object is a dataclass instance.

    Args:
        obj: An object to check.

    Returns:
        True if the object is a dataclass instance.
    """
    return not isinstance(obj, type) and hasattr(type(obj), "__dataclass_fields__")


def is_dataclass(obj: Any) -> bool:
    """Check if an object is a dataclass class or instance.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    if isinstance(obj, type) and hasattr(obj, "__dataclass_fields__"):
        return True
    return is_dataclass_instance(obj)


def is_pydantic_model(obj: Any) -> bool:
    """Check if a value is a pydantic model class or instance.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    if not PYDANTIC_INSTALLED:
        return False
    from pydantic import BaseModel

    return issubclass(_as_type(obj), BaseModel)


def is_msgspec_struct(obj: Any) -> bool:
    """Check if a value is a msgspec struct class or instance.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    return issubclass(_as_type(obj), msgspec.Struct)


def is_attrs_schema(obj: Any) -> bool:
    """Check if a value is an attrs class or instance.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    if not ATTRS_INSTALLED:
        return False
    import attrs

    return attrs.has(_as_type(obj))


def is_dict(obj: Any) -> "TypeGuard[Mapping[str, Any]]":
    """Check if a value is a mapping.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    return isinstance(obj, Mapping)


def is_schema(obj: Any) -> bool:
    """Check if a value is a keyword-constructed model (dataclass, attrs, msgspec or pydantic).

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    return is_dataclass(obj) or is_msgspec_struct(obj) or is_pydantic_model(obj) or is_attrs_schema(obj)


def schema_dump(data: Any) -> "dict[str, Any]":
    """Dump a model instance or plain object to a dictionary.

    Args:
        data: A mapping, a schema model instance or a plain object with attributes.

    Returns:
        A shallow dictionary of field name to value.
    """
    if is_dict(data):
        return dict(data)
    if is_dataclass_instance(data):
        return {name: getattr(data, name) for name in type(data).__dataclass_fields__}
    if is_msgspec_struct(data):
        return {name: getattr(data, name) for name in data.__struct_fields__}
    if is_pydantic_model(data):
        return dict(data.model_dump())
    if is_attrs_schema(data):
        import attrs

        return attrs.asdict(data, recurse=False)
    if hasattr(data, "__dict__"):
        result = {key: value for key, value in vars(data).items() if not key.startswith("_")}
        for klass in reversed(type(data).__mro__):
            for name, attribute in vars(klass).items():
                if isinstance(attribute, property) and not name.startswith("_"):
                    result[name] = getattr(data, name)
        return result
    msg = f"Cannot dump value of type {type(data).__name__} to a dictionary"
    raise TypeError(msg)
