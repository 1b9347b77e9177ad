"""
LIMIT/OFFSET pagination support for ad-hoc SELECT statements.

Clause detection runs on text with literals and comments blanked out, so
``WHERE note = 'limit 10'`` does not count as a LIMIT clause.
"""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sqlmapper.errors import PagingError
from sqlmapper.parameters import mask_literals_and_comments

_LIMIT_RE = re.compile(r"\blimit\s+\d+", re.IGNORECASE)
_OFFSET_RE = re.compile(r"\boffset\s+\d+", re.IGNORECASE)
_ORDER_BY_RE = re.compile(r"\border\s+by\s+", re.IGNORECASE)

_SELECT_PREFIXES = ("select", "with", "show", "describe", "desc", "explain")


class PagingCompatibility(Enum):
    COMPATIBLE = "Compatible with pagination"
    NOT_SELECT = "Not a SELECT query"
    HAS_LIMIT_OFFSET = "Already contains LIMIT/OFFSET clause"
    NO_ORDER_BY = "No ORDER BY clause (results may be inconsistent)"

    @property
    def description(self) -> str:
        return self.value

    @property
    def is_compatible(self) -> bool:
        return self is PagingCompatibility.COMPATIBLE

    @property
    def allows_warning(self) -> bool:
        return self is PagingCompatibility.NO_ORDER_BY


class PagingRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: int = 0
    page_size: int = Field(default=100)
    ignore_order_by_warning: bool = False

    @property
    def offset(self) -> int:
        return self.page * self.page_size


def _code_text(sql: str | None) -> str:
    if sql is None or not sql.strip():
        return ""
    return mask_literals_and_comments(sql)


def is_select_query(sql: str | None) -> bool:
    text = _code_text(sql).strip().lower()
    return bool(text) and text.startswith(_SELECT_PREFIXES)


def has_limit_clause(sql: str | None) -> bool:
    return _LIMIT_RE.search(_code_text(sql)) is not None


def has_offset_clause(sql: str | None) -> bool:
    return _OFFSET_RE.search(_code_text(sql)) is not None


def has_paging_conflict(sql: str | None) -> bool:
    return has_limit_clause(sql) or has_offset_clause(sql)


def has_order_by_clause(sql: str | None) -> bool:
    return _ORDER_BY_RE.search(_code_text(sql)) is not None


def get_paging_compatibility(sql: str | None) -> PagingCompatibility:
    if not is_select_query(sql):
        return PagingCompatibility.NOT_SELECT
    if has_paging_conflict(sql):
        return PagingCompatibility.HAS_LIMIT_OFFSET
    if not has_order_by_clause(sql):
        return PagingCompatibility.NO_ORDER_BY
    return PagingCompatibility.COMPATIBLE


def validate_paging_request(sql: str, request: PagingRequest, max_page_size: int) -> PagingCompatibility:
    if request.page < 0:
        raise PagingError("Page number must be non-negative")
    if request.page_size <= 0 or request.page_size > max_page_size:
        raise PagingError(f"Page size must be between 1 and {max_page_size}")

    compatibility = get_paging_compatibility(sql)
    if compatibility is PagingCompatibility.NOT_SELECT:
        raise PagingError("Pagination is only supported for SELECT queries")
    if compatibility is PagingCompatibility.HAS_LIMIT_OFFSET:
        raise PagingError("Cannot apply pagination: SQL already contains LIMIT/OFFSET clause")
    if compatibility is PagingCompatibility.NO_ORDER_BY and not request.ignore_order_by_warning:
        raise PagingError(
            "Pagination without ORDER BY may produce inconsistent results. "
            "Add ORDER BY clause or set ignoreOrderByWarning=true"
        )
    return compatibility


def strip_trailing_semicolons(sql: str) -> str:
    """
    Drop statement terminators at the end of ``sql``, including ones followed
    only by a comment. Semicolons inside literals are kept.
    """
    text = sql.rstrip()
    while True:
        code = mask_literals_and_comments(text).rstrip()
        if not code.endswith(";"):
            return text
        end = len(code) - 1
        text = (text[:end] + text[end + 1:]).rstrip()


# Fragments start on a new line so a trailing -- comment cannot swallow them.
def build_paginated_sql(sql: str, request: PagingRequest) -> str:
    return f"{strip_trailing_semicolons(sql)}\nLIMIT {request.page_size} OFFSET {request.offset}"


def build_count_sql(sql: str) -> str:
    return f"SELECT COUNT(*) FROM (\n{strip_trailing_semicolons(sql)}\n) AS count_query"


__all__ = [
    "PagingCompatibility",
    "PagingRequest",
    "build_count_sql",
    "build_paginated_sql",
    "get_paging_compatibility",
    "has_limit_clause",
    "has_offset_clause",
    "has_order_by_clause",
    "has_paging_conflict",
    "is_select_query",
    "strip_trailing_semicolons",
    "validate_paging_request",
]
