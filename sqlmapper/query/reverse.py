from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError

from sqlmapper.config import get_settings
from sqlmapper.errors import UnsupportedStatementError
from .conditions import (
    decompose_conditions,
    parse_join_condition_text,
    parse_simple_condition,
    split_join_conditions,
    split_qualified,
)
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

EMPTY_SQL_MESSAGE = "SQL query is empty"
UNSUPPORTED_STATEMENT_MESSAGE = "Only SELECT statements are supported for reverse engineering"

CONDITION_STRATEGIES = ("tree", "text")

_AGGREGATES = {
    exp.Count: "COUNT",
    exp.Sum: "SUM",
    exp.Avg: "AVG",
    exp.Min: "MIN",
    exp.Max: "MAX",
}

_COMPARISONS = {
    exp.EQ: "=",
    exp.NEQ: "<>",
    exp.LT: "<",
    exp.LTE: "<=",
    exp.GT: ">",
    exp.GTE: ">=",
}


@dataclass(frozen=True)
class ParseResult:
    structure: Optional[QueryStructure] = None
    error_message: Optional[str] = None
    # predicates that had no flat representation and were left out
    warnings: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error_message is None

    @classmethod
    def parsed(cls, structure: QueryStructure, warnings: Sequence[str] = ()) -> "ParseResult":
        return cls(structure=structure, warnings=tuple(warnings))

    @classmethod
    def error(cls, message: str) -> "ParseResult":
        return cls(error_message=message)


def fallback_structure() -> QueryStructure:
    """SELECT * from a single blank table for the user to fill in."""
    return QueryStructure(
        select_columns=[SelectColumn(column_name="*")],
        from_tables=[FromTable(table_name="")],
    )


def _unwrap(node: exp.Expression) -> exp.Expression:
    while isinstance(node, exp.Paren):
        node = node.this
    return node


def _is_null_check(node: exp.Expression) -> bool:
    return isinstance(node, exp.Is) and isinstance(node.expression, exp.Null)


def _extract_int(limit_or_offset: exp.Expression | None) -> int | None:
    if limit_or_offset is None:
        return None

    node = limit_or_offset
    if isinstance(node, (exp.Limit, exp.Offset)):
        node = node.expression

    if isinstance(node, exp.Literal) and node.is_int:
        return int(node.this)

    try:
        return int(node.sql())
    except (AttributeError, ValueError):
        return None


class SqlReverseEngineer:
    """
    Maps an existing SELECT statement back onto a QueryStructure so it can be
    edited in the query builder.

    sqlglot finds the clause boundaries. WHERE/HAVING/ON predicates are then
    flattened either by walking the expression tree ("tree") or by splitting
    the rendered predicate text ("text").
    """

    def __init__(
        self,
        *,
        dialect: Optional[str] = None,
        condition_strategy: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        settings = get_settings()
        self._dialect = dialect if dialect is not None else settings.DIALECT
        self._strategy = (condition_strategy or settings.CONDITION_STRATEGY).lower()
        if self._strategy not in CONDITION_STRATEGIES:
            raise ValueError(f"Unsupported condition strategy '{condition_strategy}'.")
        self._logger = logger or logging.getLogger(__name__)

    @property
    def condition_strategy(self) -> str:
        return self._strategy

    def parse(self, sql: Optional[str]) -> ParseResult:
        if sql is None or not sql.strip():
            return ParseResult.error(EMPTY_SQL_MESSAGE)

        try:
            select = self._parse_select(sql.strip())
            if not select.expressions:
                self._logger.warning("SELECT without a column list, using the fallback structure")
                return ParseResult.parsed(fallback_structure())
            skipped: List[str] = []
            structure = self._map_select(select, skipped)
            return ParseResult.parsed(
                structure,
                warnings=[f"Unsupported condition was skipped: {text}" for text in skipped],
            )
        except UnsupportedStatementError as exc:
            return ParseResult.error(str(exc))
        except (ParseError, TokenError) as exc:
            self._logger.warning("Failed to parse SQL: %s", exc)
            return ParseResult.parsed(fallback_structure())
        except Exception as exc:
            self._logger.exception("Unexpected error parsing SQL")
            return ParseResult.error(f"Failed to parse SQL: {exc}")

    def _parse_select(self, sql: str) -> exp.Select:
        statements = [statement for statement in sqlglot.parse(sql, read=self._dialect) if statement is not None]
        if len(statements) != 1 or not isinstance(statements[0], exp.Select):
            raise UnsupportedStatementError(UNSUPPORTED_STATEMENT_MESSAGE)
        return statements[0]

    def _map_select(self, select: exp.Select, skipped: List[str]) -> QueryStructure:
        structure = QueryStructure(distinct=select.args.get("distinct") is not None)
        structure.select_columns = [self._map_select_item(item) for item in select.expressions]

        from_node = select.args.get("from") or select.args.get("from_")
        if from_node is not None:
            sources = [from_node.this, *from_node.expressions]
            for source in sources:
                table = self._table(source)
                if table is not None:
                    structure.from_tables.append(FromTable(table_name=table[0], alias=table[1]))

        self._map_joins(select.args.get("joins") or [], structure)

        where = select.args.get("where")
        if isinstance(where, exp.Where):
            structure.where_conditions = self._conditions(where.this, skipped)
        having = select.args.get("having")
        if isinstance(having, exp.Having):
            structure.having_conditions = self._conditions(having.this, skipped)

        group = select.args.get("group")
        if isinstance(group, exp.Group):
            for expression in group.expressions:
                table_name, column_name = self._column_ref(expression)
                structure.group_by_columns.append(GroupByColumn(table_name=table_name, column_name=column_name))

        order = select.args.get("order")
        if isinstance(order, exp.Order):
            for ordered in order.expressions:
                target = ordered.this if isinstance(ordered, exp.Ordered) else ordered
                table_name, column_name = self._column_ref(target)
                structure.order_by_columns.append(
                    OrderByColumn(
                        table_name=table_name,
                        column_name=column_name,
                        direction="DESC" if ordered.args.get("desc") else "ASC",
                    )
                )

        limit_node = select.args.get("limit")
        structure.limit = _extract_int(limit_node)
        # MySQL style LIMIT offset, count keeps the offset on the LIMIT node
        offset = _extract_int(limit_node.args.get("offset")) if isinstance(limit_node, exp.Limit) else None
        if offset is None:
            offset = _extract_int(select.args.get("offset"))
        structure.offset = offset

        return structure

    def _map_select_item(self, item: exp.Expression) -> SelectColumn:
        alias: Optional[str] = None
        node = item
        if isinstance(item, exp.Alias):
            alias = item.alias or None
            node = item.this

        aggregate = _AGGREGATES.get(type(node))
        if aggregate and isinstance(node.this, (exp.Column, exp.Star)):
            node = node.this
        else:
            aggregate = None

        table_name, column_name = self._column_ref(node)
        return SelectColumn(
            table_name=table_name,
            column_name=column_name,
            alias=alias,
            aggregate_function=aggregate,
        )

    def _table(self, node: exp.Expression | None) -> Optional[Tuple[str, Optional[str]]]:
        if node is None:
            return None
        if not isinstance(node, exp.Table):
            self._logger.debug("Skipping unsupported FROM item: %s", node.sql(dialect=self._dialect))
            return None
        name = ".".join(part for part in (node.catalog, node.db, node.name) if part)
        return name, node.alias or None

    def _map_joins(self, joins: List[exp.Expression], structure: QueryStructure) -> None:
        previous = None
        if structure.from_tables:
            previous = structure.from_tables[-1].alias or structure.from_tables[-1].table_name

        for join in joins:
            if not isinstance(join, exp.Join):
                continue
            table = self._table(join.this)
            if table is None:
                continue
            table_name, alias = table
            on_expr = join.args.get("on")
            using = join.args.get("using") or []

            # comma and CROSS joins are plain extra FROM tables
            if on_expr is None and not using and not join.side and join.kind in ("", "CROSS"):
                structure.from_tables.append(FromTable(table_name=table_name, alias=alias))
                previous = alias or table_name
                continue

            clause = JoinClause(join_type=self._join_type(join), table_name=table_name, alias=alias)
            if on_expr is not None:
                clause.conditions = self._join_conditions(on_expr)
            elif using:
                clause.conditions = [
                    JoinCondition(
                        left_table=previous,
                        left_column=column.name,
                        operator="=",
                        right_table=alias or table_name,
                        right_column=column.name,
                    )
                    for column in using
                ]
            structure.joins.append(clause)
            previous = alias or table_name

    @staticmethod
    def _join_type(join: exp.Join) -> str:
        side = (join.side or "").upper()
        if side == "LEFT":
            return "LEFT"
        if side == "RIGHT":
            return "RIGHT"
        if side == "FULL":
            return "FULL OUTER"
        return "INNER"

    def _join_conditions(self, on_expr: exp.Expression) -> List[JoinCondition]:
        if self._strategy == "text":
            return split_join_conditions(on_expr.sql(dialect=self._dialect))

        conditions: List[JoinCondition] = []
        for predicate in self._conjuncts(on_expr):
            operator = _COMPARISONS.get(type(predicate))
            if operator and isinstance(predicate.this, exp.Column) and isinstance(predicate.expression, exp.Column):
                left_table, left_column = self._column_ref(predicate.this)
                right_table, right_column = self._column_ref(predicate.expression)
                conditions.append(
                    JoinCondition(
                        left_table=left_table,
                        left_column=left_column,
                        operator=operator,
                        right_table=right_table,
                        right_column=right_column,
                    )
                )
                continue
            condition = parse_join_condition_text(predicate.sql(dialect=self._dialect))
            if condition is not None:
                conditions.append(condition)
        return conditions

    def _conjuncts(self, node: exp.Expression) -> List[exp.Expression]:
        node = _unwrap(node)
        if isinstance(node, exp.And):
            return self._conjuncts(node.left) + self._conjuncts(node.right)
        return [node]

    def _conditions(self, expression: exp.Expression, skipped: List[str]) -> List[WhereCondition]:
        already_skipped = len(skipped)
        if self._strategy == "text":
            conditions = decompose_conditions(expression.sql(dialect=self._dialect), skipped=skipped)
        else:
            conditions = self._decompose(expression, None, skipped)
        for text in skipped[already_skipped:]:
            self._logger.warning("Skipping unsupported condition: %s", text)
        return conditions

    def _decompose(
        self,
        node: exp.Expression,
        logical_operator: Optional[str],
        skipped: List[str],
    ) -> List[WhereCondition]:
        node = _unwrap(node)
        if isinstance(node, (exp.Or, exp.And)):
            left = self._decompose(node.left, logical_operator, skipped)
            # a dropped left side hands its connective on to the right side
            right_operator = ("OR" if isinstance(node, exp.Or) else "AND") if left else logical_operator
            return left + self._decompose(node.right, right_operator, skipped)

        condition = self._condition(node)
        if condition is None:
            skipped.append(node.sql(dialect=self._dialect))
            return []
        condition.logical_operator = logical_operator
        return [condition]

    def _condition(self, node: exp.Expression) -> Optional[WhereCondition]:
        negated = False
        if isinstance(node, exp.Not):
            inner = _unwrap(node.this)
            if _is_null_check(inner):
                return self._where(inner.this, "IS NOT NULL")
            negated = True
            node = inner

        if _is_null_check(node):
            return self._where(node.this, "IS NOT NULL" if negated else "IS NULL")

        if isinstance(node, exp.Between):
            return self._where(
                node.this,
                "BETWEEN",
                negated=negated,
                min_value=self._value(node.args.get("low")),
                max_value=self._value(node.args.get("high")),
            )

        if isinstance(node, exp.In) and not node.args.get("query"):
            return self._where(
                node.this,
                "IN",
                negated=negated,
                values=[self._value(value) for value in node.expressions],
            )

        if isinstance(node, exp.Like):
            return self._where(node.this, "LIKE", negated=negated, value=self._value(node.expression))

        operator = _COMPARISONS.get(type(node))
        if operator:
            return self._where(node.this, operator, negated=negated, value=self._value(node.expression))

        condition = parse_simple_condition(node.sql(dialect=self._dialect))
        if condition is not None and negated:
            condition.negated = not condition.negated
        return condition

    def _where(self, operand: exp.Expression, operator: str, *, negated: bool = False, **values) -> WhereCondition:
        table_name, column_name = self._column_ref(operand)
        return WhereCondition(
            table_name=table_name,
            column_name=column_name,
            operator=operator,
            negated=negated,
            **values,
        )

    def _value(self, node: exp.Expression | None) -> Optional[str]:
        if node is None:
            return None
        if isinstance(node, exp.Literal):
            return node.this
        return node.sql(dialect=self._dialect)

    def _column_ref(self, node: exp.Expression) -> Tuple[Optional[str], str]:
        if isinstance(node, exp.Star):
            return None, "*"
        if isinstance(node, exp.Column):
            qualifier = ".".join(part for part in (node.catalog, node.db, node.table) if part) or None
            if isinstance(node.this, exp.Star):
                return qualifier, "*"
            return qualifier, node.name
        return split_qualified(node.sql(dialect=self._dialect))
