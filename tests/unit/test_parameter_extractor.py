from __future__ import annotations

from sqlmapper.parameters import (
    detect_parameters,
    extract_parameters,
    extract_parameters_with_positions,
    mask_literals_and_comments,
)


def test_string_literal_placeholder_is_not_a_parameter() -> None:
    sql = "SELECT ':userId' as literal, name FROM users WHERE id = :userId"

    positions = extract_parameters_with_positions(sql)

    assert [position.name for position in positions] == ["userId"]
    assert positions[0].start == sql.rindex(":userId")
    assert positions[0].end == len(sql)


def test_line_comment_placeholder_is_ignored() -> None:
    sql = "SELECT * FROM t -- :fake\nWHERE id = :real"

    assert extract_parameters(sql) == ["real"]


def test_block_comment_and_quoted_identifier_are_ignored() -> None:
    sql = 'SELECT "col:name" /* :hidden\n :also_hidden */ FROM t WHERE a = :visible'

    assert extract_parameters(sql) == ["visible"]


def test_escaped_quote_does_not_end_literal() -> None:
    sql = "SELECT * FROM t WHERE note = 'it''s :not_a_param' AND id = :id"

    assert extract_parameters(sql) == ["id"]


def test_postgres_cast_is_not_a_parameter() -> None:
    sql = "SELECT created_at::date FROM events WHERE tenant = :tenant"

    assert extract_parameters(sql) == ["tenant"]


def test_colon_must_be_followed_by_name_start() -> None:
    assert extract_parameters("SELECT '12:30' AS t, x FROM y WHERE z = :1 OR w = : v") == []


def test_repeated_names_are_listed_per_occurrence_but_extracted_once() -> None:
    sql = "SELECT * FROM t WHERE a = :id OR b = :identifier OR c = :id"

    positions = extract_parameters_with_positions(sql)

    assert [position.name for position in positions] == ["id", "identifier", "id"]
    assert extract_parameters(sql) == ["id", "identifier"]


def test_detect_parameters_uses_default_type() -> None:
    assert detect_parameters("SELECT * FROM t WHERE a = :a AND b = :b") == {"a": "string", "b": "string"}
    assert detect_parameters("SELECT :x", default_type="int") == {"x": "int"}


def test_empty_input_has_no_parameters() -> None:
    assert extract_parameters(None) == []
    assert extract_parameters("") == []
    assert detect_parameters(None) == {}


def test_mask_keeps_offsets_and_newlines() -> None:
    sql = "SELECT 'limit 5' -- order by\nFROM t"

    masked = mask_literals_and_comments(sql)

    assert len(masked) == len(sql)
    assert "limit" not in masked
    assert "order" not in masked
    assert masked.index("\n") == sql.index("\n")
    assert masked.startswith("SELECT ")
    assert masked.endswith("FROM t")
