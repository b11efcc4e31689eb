"""Parameter binding and placeholder conversion."""

from dalite.parameters.converter import convert_placeholders, extract_placeholder_names
from dalite.parameters.core import (
    POSITIONAL_PREFIX,
    bind_parameters,
    merge_parameter_sets,
    normalize_parameters,
    prepare_parameter_batch,
    prepare_parameters,
)
from dalite.parameters.types import ParameterDirection, ParameterStyle, TypedParameter

__all__ = (
    "POSITIONAL_PREFIX",
    "ParameterDirection",
    "ParameterStyle",
    "TypedParameter",
    "bind_parameters",
    "convert_placeholders",
    "extract_placeholder_names",
    "merge_parameter_sets",
    "normalize_parameters",
    "prepare_parameter_batch",
    "prepare_parameters",
)
