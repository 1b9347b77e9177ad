from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sqlmapper.config import Settings, get_settings
from sqlmapper.logging import setup_logging
from sqlmapper.paging import (
    PagingRequest,
    build_count_sql,
    build_paginated_sql,
    validate_paging_request,
)
from sqlmapper.parameters import ParameterizedQuery, bind_named_parameters
from .generator import PARAMETER_PREFIX, SqlGenerator
from .query_model import QueryStructure, WhereCondition
from .reverse import ParseResult, SqlReverseEngineer


class QueryBuilderResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    generated_sql: Optional[str] = None
    valid: bool = False
    validation_errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    detected_parameters: Dict[str, str] = Field(default_factory=dict)
    build_time_ms: Optional[float] = None


@dataclass(frozen=True)
class ExecutionPlan:
    query: ParameterizedQuery
    count_query: Optional[ParameterizedQuery] = None

    @property
    def paginated(self) -> bool:
        return self.count_query is not None


def _quoted_literals(condition: WhereCondition) -> List[str]:
    candidates = [condition.value, condition.min_value, condition.max_value, *(condition.values or [])]
    return [
        value
        for value in candidates
        if value is not None and not value.startswith(PARAMETER_PREFIX) and "'" in value
    ]


class QueryBuilderEngine:
    """
    Entry point tying the generator, the reverse engineer and parameter
    binding together. Nothing here touches a database.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        generator: Optional[SqlGenerator] = None,
        reverse_engineer: Optional[SqlReverseEngineer] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._generator = generator or SqlGenerator(
            default_parameter_type=self._settings.DEFAULT_PARAMETER_TYPE,
        )
        self._reverse_engineer = reverse_engineer or SqlReverseEngineer(
            dialect=self._settings.DIALECT,
            condition_strategy=self._settings.CONDITION_STRATEGY,
        )
        self._logger = logger or logging.getLogger(__name__)
        setup_logging(self._settings)

    def build(
        self,
        structure: QueryStructure | Mapping[str, Any],
        *,
        format_sql: Optional[bool] = None,
    ) -> QueryBuilderResponse:
        started = time.perf_counter()
        pretty = self._settings.PRETTY_FORMAT if format_sql is None else format_sql

        try:
            parsed = structure if isinstance(structure, QueryStructure) else QueryStructure.model_validate(structure)
            result = self._generator.generate(parsed, pretty=pretty)
        except Exception as exc:
            self._logger.warning("Failed to build query: %s", exc)
            return QueryBuilderResponse(validation_errors=[f"Failed to build query: {exc}"])

        if not result.is_valid:
            return QueryBuilderResponse(validation_errors=result.validation_errors)

        return QueryBuilderResponse(
            generated_sql=result.sql,
            valid=True,
            warnings=self.collect_warnings(parsed),
            detected_parameters=result.detected_parameters,
            build_time_ms=(time.perf_counter() - started) * 1000,
        )

    @staticmethod
    def collect_warnings(structure: QueryStructure) -> List[str]:
        warnings: List[str] = []
        for condition in [*structure.where_conditions, *structure.having_conditions]:
            for literal in _quoted_literals(condition):
                warnings.append(
                    f"Value {literal!r} for column '{condition.column_name}' contains a single quote "
                    "and is embedded without escaping; use a :parameter instead"
                )
        if structure.offset and structure.offset > 0 and not (structure.limit and structure.limit > 0):
            warnings.append("OFFSET is ignored without a positive LIMIT")
        return warnings

    def parse(self, sql: Optional[str]) -> ParseResult:
        return self._reverse_engineer.parse(sql)

    def prepare_execution(
        self,
        sql: str,
        values: Optional[Mapping[str, Any]] = None,
        types: Optional[Mapping[str, str]] = None,
        paging: PagingRequest | Mapping[str, Any] | None = None,
    ) -> ExecutionPlan:
        """
        Turn named-parameter SQL into positional queries ready for a driver.
        With a paging request the main query gets LIMIT/OFFSET appended and a
        COUNT(*) wrapper over the original statement is bound as well.
        """
        if paging is None:
            return ExecutionPlan(query=bind_named_parameters(sql, values, types))

        request = paging if isinstance(paging, PagingRequest) else PagingRequest.model_validate(paging)
        validate_paging_request(sql, request, self._settings.MAX_PAGE_SIZE)
        self._logger.debug("Preparing page %d (size %d).", request.page, request.page_size)
        return ExecutionPlan(
            query=bind_named_parameters(build_paginated_sql(sql, request), values, types),
            count_query=bind_named_parameters(build_count_sql(sql), values, types),
        )
