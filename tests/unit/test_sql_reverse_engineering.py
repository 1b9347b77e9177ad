from __future__ import annotations

import pytest

from sqlmapper.query import (
    FromTable,
    QueryStructure,
    SelectColumn,
    SqlGenerator,
    SqlReverseEngineer,
    WhereCondition,
    fallback_structure,
)
from sqlmapper.query.reverse import EMPTY_SQL_MESSAGE, UNSUPPORTED_STATEMENT_MESSAGE


@pytest.fixture(params=["tree", "text"])
def engineer(request: pytest.FixtureRequest) -> SqlReverseEngineer:
    return SqlReverseEngineer(condition_strategy=request.param)


def _parse(engineer: SqlReverseEngineer, sql: str) -> QueryStructure:
    result = engineer.parse(sql)
    assert result.ok, result.error_message
    assert result.structure is not None
    return result.structure


def _where_summary(conditions: list[WhereCondition]) -> list[tuple]:
    return [
        (
            condition.logical_operator,
            condition.table_name,
            condition.column_name,
            condition.operator,
            condition.negated,
        )
        for condition in conditions
    ]


def test_between_and_is_not_a_logical_split(engineer: SqlReverseEngineer) -> None:
    structure = _parse(engineer, "SELECT * FROM users WHERE age BETWEEN 18 AND 65 AND status = 'active'")

    assert len(structure.where_conditions) == 2
    between, status = structure.where_conditions
    assert between.operator == "BETWEEN"
    assert (between.column_name, between.min_value, between.max_value) == ("age", "18", "65")
    assert between.logical_operator is None
    assert (status.column_name, status.operator, status.value) == ("status", "=", "active")
    assert status.logical_operator == "AND"


def test_and_or_chain_records_logical_operators(engineer: SqlReverseEngineer) -> None:
    structure = _parse(engineer, "SELECT id FROM t WHERE a = 1 AND b <> 2 OR c >= 3")

    assert _where_summary(structure.where_conditions) == [
        (None, None, "a", "=", False),
        ("AND", None, "b", "<>", False),
        ("OR", None, "c", ">=", False),
    ]


def test_null_in_like_and_negation(engineer: SqlReverseEngineer) -> None:
    structure = _parse(
        engineer,
        "SELECT id FROM t WHERE t.deleted_at IS NULL AND t.owner IS NOT NULL "
        "AND t.kind IN ('a', 'b') AND t.name NOT LIKE 'tmp%'",
    )

    deleted, owner, kind, name = structure.where_conditions
    assert (deleted.table_name, deleted.column_name, deleted.operator) == ("t", "deleted_at", "IS NULL")
    assert (owner.column_name, owner.operator, owner.negated) == ("owner", "IS NOT NULL", False)
    assert (kind.operator, kind.values) == ("IN", ["a", "b"])
    assert (name.operator, name.value, name.negated) == ("LIKE", "tmp%", True)


def test_placeholders_are_kept_as_values(engineer: SqlReverseEngineer) -> None:
    structure = _parse(engineer, "SELECT id FROM orders WHERE created_at BETWEEN :from_date AND :to_date AND id = :id")

    between, equality = structure.where_conditions
    assert (between.min_value, between.max_value) == (":from_date", ":to_date")
    assert equality.value == ":id"


def test_parenthesised_groups_are_flattened(engineer: SqlReverseEngineer) -> None:
    structure = _parse(engineer, "SELECT id FROM t WHERE (a = 1 OR b = 2) AND c = 3")

    assert [condition.column_name for condition in structure.where_conditions] == ["a", "b", "c"]
    assert [condition.logical_operator for condition in structure.where_conditions] == [None, "OR", "AND"]


@pytest.mark.parametrize(
    ("sql", "skipped"),
    [
        ("SELECT id FROM t WHERE NOT (a = 1 OR b = 2) OR c = 3", "NOT (a = 1 OR b = 2)"),
        ("SELECT id FROM t WHERE x ILIKE 'a%' AND c = 3", "x ILIKE 'a%'"),
    ],
)
def test_dropped_first_condition_does_not_leave_a_connective(
    engineer: SqlReverseEngineer, sql: str, skipped: str
) -> None:
    result = engineer.parse(sql)

    assert result.ok
    assert _where_summary(result.structure.where_conditions) == [(None, None, "c", "=", False)]
    assert result.warnings == (f"Unsupported condition was skipped: {skipped}",)


def test_dropped_condition_inside_and_group_keeps_or(engineer: SqlReverseEngineer) -> None:
    result = engineer.parse("SELECT id FROM t WHERE a = 1 OR x ILIKE 'q%' AND c = 3")

    assert [(c.column_name, c.logical_operator) for c in result.structure.where_conditions] == [
        ("a", None),
        ("c", "OR"),
    ]
    assert len(result.warnings) == 1


def test_parse_without_skipped_conditions_has_no_warnings(engineer: SqlReverseEngineer) -> None:
    assert engineer.parse("SELECT id FROM t WHERE a = 1").warnings == ()


def test_joins_group_having_order_limit(engineer: SqlReverseEngineer) -> None:
    structure = _parse(
        engineer,
        "SELECT u.country, COUNT(*) AS total "
        "FROM users AS u "
        "INNER JOIN profiles AS p ON u.id = p.user_id "
        "LEFT JOIN orders o ON o.user_id = u.id AND o.status = p.status "
        "WHERE u.active = 1 "
        "GROUP BY u.country "
        "HAVING COUNT(*) > 5 "
        "ORDER BY total DESC, u.country "
        "LIMIT 10 OFFSET 20",
    )

    assert [(column.table_name, column.column_name, column.aggregate_function, column.alias)
            for column in structure.select_columns] == [
        ("u", "country", None, None),
        (None, "*", "COUNT", "total"),
    ]
    assert structure.from_tables == [FromTable(table_name="users", alias="u")]

    inner, left = structure.joins
    assert (inner.join_type, inner.table_name, inner.alias) == ("INNER", "profiles", "p")
    assert [(c.left_table, c.left_column, c.operator, c.right_table, c.right_column) for c in inner.conditions] == [
        ("u", "id", "=", "p", "user_id"),
    ]
    assert (left.join_type, left.table_name, left.alias) == ("LEFT", "orders", "o")
    assert [(c.left_column, c.right_column) for c in left.conditions] == [("user_id", "id"), ("status", "status")]

    assert [(g.table_name, g.column_name) for g in structure.group_by_columns] == [("u", "country")]
    having = structure.having_conditions[0]
    assert (having.column_name, having.operator, having.value) == ("COUNT(*)", ">", "5")
    assert [(o.table_name, o.column_name, o.direction) for o in structure.order_by_columns] == [
        (None, "total", "DESC"),
        ("u", "country", "ASC"),
    ]
    assert (structure.limit, structure.offset) == (10, 20)


def test_distinct_and_comma_separated_tables() -> None:
    structure = _parse(SqlReverseEngineer(), "SELECT DISTINCT a.name, b.* FROM alpha a, beta b")

    assert structure.distinct is True
    assert [(c.table_name, c.column_name) for c in structure.select_columns] == [("a", "name"), ("b", "*")]
    assert [(t.table_name, t.alias) for t in structure.from_tables] == [("alpha", "a"), ("beta", "b")]
    assert structure.joins == []


def test_join_using_becomes_equality_conditions() -> None:
    structure = _parse(SqlReverseEngineer(), "SELECT * FROM users u FULL OUTER JOIN accounts a USING (tenant_id)")

    join = structure.joins[0]
    assert join.join_type == "FULL OUTER"
    assert [(c.left_table, c.left_column, c.right_table, c.right_column) for c in join.conditions] == [
        ("u", "tenant_id", "a", "tenant_id"),
    ]


def test_schema_qualified_table() -> None:
    structure = _parse(SqlReverseEngineer(), "SELECT id FROM sales.orders")

    assert structure.from_tables[0].table_name == "sales.orders"
    assert structure.from_tables[0].alias is None


def test_non_select_is_rejected() -> None:
    result = SqlReverseEngineer().parse("DROP TABLE x")

    assert not result.ok
    assert result.structure is None
    assert result.error_message == UNSUPPORTED_STATEMENT_MESSAGE
    assert result.error_message == "Only SELECT statements are supported for reverse engineering"


def test_multiple_statements_are_rejected() -> None:
    result = SqlReverseEngineer().parse("SELECT 1 FROM a; SELECT 2 FROM b")

    assert result.error_message == UNSUPPORTED_STATEMENT_MESSAGE


@pytest.mark.parametrize("sql", [None, "", "   \n "])
def test_empty_sql_is_an_error(sql: str | None) -> None:
    assert SqlReverseEngineer().parse(sql).error_message == EMPTY_SQL_MESSAGE


def test_syntax_error_falls_back_to_editable_structure() -> None:
    # structural rejections are errors, syntax errors keep the editor usable
    result = SqlReverseEngineer().parse("SELECT id FROM users WHERE (id = 1")

    assert result.ok
    assert result.structure == fallback_structure()
    assert result.structure.select_columns == [SelectColumn(column_name="*")]
    assert result.structure.from_tables == [FromTable(table_name="")]


def test_select_without_columns_falls_back_to_editable_structure() -> None:
    result = SqlReverseEngineer().parse("SELECT FROM users")

    assert result.ok
    assert result.structure == fallback_structure()


def test_trailing_semicolon_is_accepted() -> None:
    structure = _parse(SqlReverseEngineer(), "SELECT id FROM users;")

    assert structure.from_tables == [FromTable(table_name="users")]


def test_unknown_strategy_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unsupported condition strategy"):
        SqlReverseEngineer(condition_strategy="regex")


def test_round_trip_keeps_table_column_and_operator(engineer: SqlReverseEngineer) -> None:
    original = QueryStructure(
        select_columns=[SelectColumn(column_name="name")],
        from_tables=[FromTable(table_name="users")],
        where_conditions=[WhereCondition(column_name="id", operator="=", value="42")],
    )
    sql = SqlGenerator().generate(original).sql

    parsed = _parse(engineer, sql)

    assert parsed.from_tables[0].table_name == "users"
    assert parsed.select_columns[0].column_name == "name"
    condition = parsed.where_conditions[0]
    assert (condition.column_name, condition.operator, condition.value) == ("id", "=", "42")
