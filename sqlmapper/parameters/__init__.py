from .binding import ParameterizedQuery, bind_named_parameters, coerce_parameter_value
from .extractor import (
    ParameterPosition,
    detect_parameters,
    extract_parameters,
    extract_parameters_with_positions,
    mask_literals_and_comments,
)

__all__ = [
    "ParameterPosition",
    "ParameterizedQuery",
    "bind_named_parameters",
    "coerce_parameter_value",
    "detect_parameters",
    "extract_parameters",
    "extract_parameters_with_positions",
    "mask_literals_and_comments",
]
