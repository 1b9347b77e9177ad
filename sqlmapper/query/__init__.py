from .engine import ExecutionPlan, QueryBuilderEngine, QueryBuilderResponse
from .generator import GenerationResult, SqlGenerator
from .query_model import (
    FromTable,
    GroupByColumn,
    JoinClause,
    JoinCondition,
    OrderByColumn,
    QueryStructure,
    SelectColumn,
    WhereCondition,
    load_query_structure,
)
from .reverse import ParseResult, SqlReverseEngineer, fallback_structure

__all__ = [
    "ExecutionPlan",
    "FromTable",
    "GenerationResult",
    "GroupByColumn",
    "JoinClause",
    "JoinCondition",
    "OrderByColumn",
    "ParseResult",
    "QueryBuilderEngine",
    "QueryBuilderResponse",
    "QueryStructure",
    "SelectColumn",
    "SqlGenerator",
    "SqlReverseEngineer",
    "WhereCondition",
    "fallback_structure",
    "load_query_structure",
]
