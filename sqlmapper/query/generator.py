from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlmapper.config import get_settings
from sqlmapper.parameters import detect_parameters
from .query_model import (
    FromTable,
    GroupByColumn,
    JoinClause,
    JoinCondition,
    OrderByColumn,
    QueryStructure,
    SelectColumn,
    WhereCondition,
)

PARAMETER_PREFIX = ":"
NULL_OPERATORS = {"IS NULL", "IS NOT NULL"}


@dataclass(frozen=True)
class GenerationResult:
    sql: Optional[str] = None
    detected_parameters: Dict[str, str] = field(default_factory=dict)
    validation_errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.sql is not None and not self.validation_errors


def _has_text(value: Optional[str]) -> bool:
    return value is not None and bool(value.strip())


def _qualified(table_name: Optional[str], column_name: Optional[str]) -> str:
    if _has_text(table_name):
        return f"{table_name}.{column_name}"
    return f"{column_name}"


def _literal(value: str) -> str:
    if value.startswith(PARAMETER_PREFIX):
        return value
    return f"'{value}'"


class SqlGenerator:
    """
    Renders a QueryStructure into SQL text. Clause order is fixed:
    SELECT, FROM, JOIN, WHERE, GROUP BY, HAVING, ORDER BY, LIMIT/OFFSET.
    """

    def __init__(self, default_parameter_type: Optional[str] = None, logger: Optional[logging.Logger] = None):
        self._default_parameter_type = default_parameter_type or get_settings().DEFAULT_PARAMETER_TYPE
        self._logger = logger or logging.getLogger(__name__)

    def generate(
        self,
        structure: QueryStructure | Mapping[str, Any],
        pretty: bool = False,
    ) -> GenerationResult:
        if isinstance(structure, QueryStructure):
            parsed = structure
        else:
            parsed = QueryStructure.model_validate(structure)

        errors = self.validate(parsed)
        if errors:
            return GenerationResult(validation_errors=errors)

        clauses: List[str] = [self._render_select(parsed), self._render_from(parsed.from_tables)]
        clauses.extend(self._render_join(join) for join in parsed.joins)

        if parsed.where_conditions:
            clauses.append(f"WHERE {self.render_conditions(parsed.where_conditions)}")
        if parsed.group_by_columns:
            clauses.append(f"GROUP BY {self._render_group_by(parsed.group_by_columns)}")
        if parsed.having_conditions:
            clauses.append(f"HAVING {self.render_conditions(parsed.having_conditions)}")
        if parsed.order_by_columns:
            clauses.append(f"ORDER BY {self._render_order_by(parsed.order_by_columns)}")

        limit_clause = self._render_limit(parsed.limit, parsed.offset)
        if limit_clause:
            clauses.append(limit_clause)

        sql = ("\n" if pretty else " ").join(clauses)
        detected = detect_parameters(sql, self._default_parameter_type)
        self._logger.debug("Generated SQL of %d characters with %d parameter(s).", len(sql), len(detected))
        return GenerationResult(sql=sql, detected_parameters=detected)

    @staticmethod
    def validate(structure: QueryStructure) -> List[str]:
        errors: List[str] = []

        if not structure.select_columns:
            errors.append("At least one SELECT column is required")
        if not structure.from_tables:
            errors.append("At least one FROM table is required")

        for column in structure.select_columns:
            if not _has_text(column.column_name):
                errors.append("SELECT column name cannot be empty")
        for table in structure.from_tables:
            if not _has_text(table.table_name):
                errors.append("FROM table name cannot be empty")

        return errors

    def _render_select(self, structure: QueryStructure) -> str:
        distinct = structure.distinct or any(column.distinct for column in structure.select_columns)
        columns = ", ".join(self._render_select_column(column) for column in structure.select_columns)
        return f"SELECT DISTINCT {columns}" if distinct else f"SELECT {columns}"

    @staticmethod
    def _render_select_column(column: SelectColumn) -> str:
        rendered = _qualified(column.table_name, column.column_name)
        if _has_text(column.aggregate_function):
            rendered = f"{column.aggregate_function.strip().upper()}({rendered})"
        if _has_text(column.alias):
            rendered = f"{rendered} AS {column.alias}"
        return rendered

    @staticmethod
    def _render_table(table_name: Optional[str], alias: Optional[str]) -> str:
        if _has_text(alias):
            return f"{table_name} AS {alias}"
        return f"{table_name}"

    def _render_from(self, tables: Sequence[FromTable]) -> str:
        return "FROM " + ", ".join(self._render_table(table.table_name, table.alias) for table in tables)

    def _render_join(self, join: JoinClause) -> str:
        join_type = (join.join_type or "INNER").strip().upper()
        rendered = f"{join_type} JOIN {self._render_table(join.table_name, join.alias)}"
        if join.conditions:
            rendered += " ON " + " AND ".join(self._render_join_condition(condition) for condition in join.conditions)
        return rendered

    @staticmethod
    def _render_join_condition(condition: JoinCondition) -> str:
        left = _qualified(condition.left_table, condition.left_column)
        right = _qualified(condition.right_table, condition.right_column)
        return f"{left} {condition.operator} {right}"

    def render_conditions(self, conditions: Sequence[WhereCondition]) -> str:
        parts: List[str] = []
        for index, condition in enumerate(conditions):
            if index > 0:
                parts.append(condition.logical_operator.upper() if _has_text(condition.logical_operator) else "AND")
            parts.append(self.render_condition(condition))
        return " ".join(parts)

    @staticmethod
    def render_condition(condition: WhereCondition) -> str:
        operator = condition.operator.strip().upper()
        rendered = f"{_qualified(condition.table_name, condition.column_name)} {operator}"
        if condition.negated:
            rendered = f"NOT {rendered}"

        if operator == "IN":
            values = condition.values or ([condition.value] if condition.value is not None else [])
            return f"{rendered} ({', '.join(_literal(value) for value in values)})"
        if operator == "BETWEEN":
            if condition.min_value is not None and condition.max_value is not None:
                return f"{rendered} {_literal(condition.min_value)} AND {_literal(condition.max_value)}"
            if condition.values and len(condition.values) >= 2:
                return f"{rendered} '{condition.values[0]}' AND '{condition.values[1]}'"
            return rendered
        if operator in NULL_OPERATORS:
            return rendered
        if condition.value is not None:
            return f"{rendered} {_literal(condition.value)}"
        return rendered

    @staticmethod
    def _render_group_by(columns: Sequence[GroupByColumn]) -> str:
        return ", ".join(_qualified(column.table_name, column.column_name) for column in columns)

    @staticmethod
    def _render_order_by(columns: Sequence[OrderByColumn]) -> str:
        rendered: List[str] = []
        for column in columns:
            item = _qualified(column.table_name, column.column_name)
            if _has_text(column.direction):
                item = f"{item} {column.direction.strip().upper()}"
            rendered.append(item)
        return ", ".join(rendered)

    @staticmethod
    def _render_limit(limit: Optional[int], offset: Optional[int]) -> Optional[str]:
        if limit is None or limit <= 0:
            return None
        if offset is not None and offset > 0:
            return f"LIMIT {limit} OFFSET {offset}"
        return f"LIMIT {limit}"
