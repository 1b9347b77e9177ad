"""Exception hierarchy for the SQL structure mapper."""

from typing import Optional


class SqlMapperError(Exception):
    """Base exception for sqlmapper errors."""


class QueryStructureError(SqlMapperError, ValueError):
    """Raised when a saved query structure document cannot be loaded."""


class SqlParseError(SqlMapperError, ValueError):
    """Raised internally when SQL text cannot be mapped to a query structure."""


class UnsupportedStatementError(SqlParseError):
    """Raised when the statement is not a single SELECT."""


class ParameterBindingError(SqlMapperError, ValueError):
    def __init__(self, message: str, parameter_name: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.parameter_name = parameter_name


class PagingError(SqlMapperError, ValueError):
    """Raised when a pagination request cannot be applied to a query."""


__all__ = [
    "PagingError",
    "ParameterBindingError",
    "QueryStructureError",
    "SqlMapperError",
    "SqlParseError",
    "UnsupportedStatementError",
]
