from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from sqlmapper.errors import QueryStructureError


def _scalar_to_text(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


class _StructureModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SelectColumn(_StructureModel):
    table_name: Optional[str] = None
    column_name: Optional[str] = None
    alias: Optional[str] = None
    # COUNT, SUM, AVG, MIN, MAX or any function name
    aggregate_function: Optional[str] = None
    distinct: bool = False


class FromTable(_StructureModel):
    table_name: Optional[str] = None
    alias: Optional[str] = None


class JoinCondition(_StructureModel):
    left_table: Optional[str] = None
    left_column: Optional[str] = None
    operator: str = "="
    right_table: Optional[str] = None
    right_column: Optional[str] = None


class JoinClause(_StructureModel):
    join_type: str = "INNER"
    table_name: Optional[str] = None
    alias: Optional[str] = None
    conditions: List[JoinCondition] = Field(default_factory=list)


class WhereCondition(_StructureModel):
    table_name: Optional[str] = None
    column_name: Optional[str] = None
    operator: str = "="
    value: Optional[str] = None
    values: Optional[List[str]] = None
    min_value: Optional[str] = None
    max_value: Optional[str] = None
    logical_operator: Optional[str] = None
    negated: bool = False

    @field_validator("value", "min_value", "max_value", mode="before")
    @classmethod
    def _normalize_scalar(cls, value: Any) -> Any:
        return _scalar_to_text(value)

    @field_validator("values", mode="before")
    @classmethod
    def _normalize_values(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [_scalar_to_text(item) for item in value]
        return value

    @field_validator("logical_operator")
    @classmethod
    def _normalize_logical_operator(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        normalized = value.strip().upper()
        return normalized or None


class GroupByColumn(_StructureModel):
    table_name: Optional[str] = None
    column_name: Optional[str] = None


class OrderByColumn(_StructureModel):
    table_name: Optional[str] = None
    column_name: Optional[str] = None
    direction: str = "ASC"


class QueryStructure(_StructureModel):
    select_columns: List[SelectColumn] = Field(default_factory=list)
    distinct: bool = False
    from_tables: List[FromTable] = Field(default_factory=list)
    joins: List[JoinClause] = Field(default_factory=list)
    where_conditions: List[WhereCondition] = Field(default_factory=list)
    group_by_columns: List[GroupByColumn] = Field(default_factory=list)
    having_conditions: List[WhereCondition] = Field(default_factory=list)
    order_by_columns: List[OrderByColumn] = Field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None


def load_query_structure(text: str) -> QueryStructure:
    """Load a saved query-builder definition written as YAML or JSON."""
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise QueryStructureError(f"Query structure document is not valid YAML/JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise QueryStructureError("Query structure document must be a mapping.")
    return QueryStructure.model_validate(payload)
