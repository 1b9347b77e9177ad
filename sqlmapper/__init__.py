import logging as _stdlib_logging

from .errors import (
    PagingError,
    ParameterBindingError,
    QueryStructureError,
    SqlMapperError,
    SqlParseError,
    UnsupportedStatementError,
)
from .parameters import bind_named_parameters, detect_parameters, extract_parameters
from .query import (
    ParseResult,
    QueryBuilderEngine,
    QueryStructure,
    SqlGenerator,
    SqlReverseEngineer,
)

__all__ = [
    "PagingError",
    "ParameterBindingError",
    "ParseResult",
    "QueryBuilderEngine",
    "QueryStructure",
    "QueryStructureError",
    "SqlGenerator",
    "SqlMapperError",
    "SqlParseError",
    "SqlReverseEngineer",
    "UnsupportedStatementError",
    "bind_named_parameters",
    "detect_parameters",
    "extract_parameters",
]

_stdlib_logging.getLogger(__name__).addHandler(_stdlib_logging.NullHandler())
