"""
Text-level decomposition of boolean predicates into structured conditions.

Splitting works on rendered SQL rather than an expression tree. Quoted
regions and parenthesised groups are never split, and an ``AND`` that closes a
``BETWEEN x AND y`` range is not treated as a logical connective.
"""

import re
from functools import lru_cache
from typing import List, Optional, Pattern, Tuple

from .query_model import JoinCondition, WhereCondition

_QUOTES = ("'", '"', "`")
_IDENTIFIER_CHAIN_RE = re.compile(r'^(?:[\w$]+|"[^"]*"|`[^`]*`|\[[^\]]*\])(?:\.(?:[\w$]+|"[^"]*"|`[^`]*`|\[[^\]]*\]))*$')
_LEADING_NOT_RE = re.compile(r"^NOT\s+(.*)$", re.IGNORECASE | re.DOTALL)
_TRAILING_NOT_RE = re.compile(r"^(.*?)\s+NOT$", re.IGNORECASE | re.DOTALL)
_IS_NULL_RE = re.compile(r"\s+IS\s+(NOT\s+)?NULL\s*$", re.IGNORECASE)
_BETWEEN_RE = re.compile(r"\s+BETWEEN\s+", re.IGNORECASE)
_BETWEEN_AND_RE = re.compile(r"\s+AND\s+", re.IGNORECASE)

# Order matters: multi-character operators before their one-character prefixes.
_VALUE_OPERATORS: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("=", re.compile(r"\s+=\s+")),
    ("<>", re.compile(r"\s+<>\s+")),
    ("!=", re.compile(r"\s+!=\s+")),
    ("<=", re.compile(r"\s+<=\s+")),
    (">=", re.compile(r"\s+>=\s+")),
    ("<", re.compile(r"\s+<\s+")),
    (">", re.compile(r"\s+>\s+")),
    ("LIKE", re.compile(r"\s+LIKE\s+", re.IGNORECASE)),
    ("IN", re.compile(r"\s+IN\s*(?=\()", re.IGNORECASE)),
)

_JOIN_OPERATORS: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("<>", re.compile(r"\s+<>\s+")),
    ("!=", re.compile(r"\s+!=\s+")),
    ("<=", re.compile(r"\s+<=\s+")),
    (">=", re.compile(r"\s+>=\s+")),
    ("=", re.compile(r"\s+=\s+")),
    ("<", re.compile(r"\s+<\s+")),
    (">", re.compile(r"\s+>\s+")),
)


@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> Pattern[str]:
    return re.compile(rf"(?<![\w$.]){re.escape(keyword)}(?![\w$])", re.IGNORECASE)


def top_level_mask(text: str) -> List[bool]:
    """
    Flag each character that sits outside quotes and parentheses.
    """
    mask: List[bool] = []
    depth = 0
    quote: Optional[str] = None
    length = len(text)
    i = 0
    while i < length:
        char = text[i]
        if quote is not None:
            mask.append(False)
            if char == quote:
                if i + 1 < length and text[i + 1] == quote:
                    mask.append(False)
                    i += 2
                    continue
                quote = None
            i += 1
            continue
        if char in _QUOTES:
            quote = char
            mask.append(False)
        elif char == "(":
            depth += 1
            mask.append(False)
        elif char == ")":
            depth = max(depth - 1, 0)
            mask.append(False)
        else:
            mask.append(depth == 0)
        i += 1
    return mask


def _top_level_matches(pattern: Pattern[str], text: str, mask: List[bool]) -> List[re.Match]:
    return [match for match in pattern.finditer(text) if mask[match.start()]]


def _count_keyword(keyword: str, text: str, mask: List[bool]) -> int:
    return len(_top_level_matches(_keyword_pattern(keyword), text, mask))


def split_respecting_between(expression: str, operator: str) -> List[str]:
    """
    Split ``expression`` on top-level ``operator`` (AND / OR).

    A candidate ``AND`` is skipped while the current segment holds more
    ``BETWEEN`` keywords than ``AND`` range delimiters already passed over.
    """
    operator = operator.upper()
    mask = top_level_mask(expression)
    parts: List[str] = []
    start = 0
    for match in _top_level_matches(_keyword_pattern(operator), expression, mask):
        if operator == "AND":
            segment = expression[start:match.start()]
            segment_mask = mask[start:match.start()]
            if _count_keyword("BETWEEN", segment, segment_mask) > _count_keyword("AND", segment, segment_mask):
                continue
        parts.append(expression[start:match.start()].strip())
        start = match.end()
    parts.append(expression[start:].strip())
    return [part for part in parts if part]


def _outer_parens_enclose(text: str) -> bool:
    # True when the opening parenthesis at index 0 closes at the last index
    depth = 0
    quote: Optional[str] = None
    last = len(text) - 1
    i = 0
    while i < last:
        char = text[i]
        if quote is not None:
            if char == quote:
                if text[i + 1] == quote:
                    i += 2
                    continue
                quote = None
        elif char in _QUOTES:
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return False
        i += 1
    return True


def strip_enclosing_parens(text: str) -> str:
    stripped = text.strip()
    while len(stripped) >= 2 and stripped[0] == "(" and stripped[-1] == ")" and _outer_parens_enclose(stripped):
        stripped = stripped[1:-1].strip()
    return stripped


def _is_compound(text: str) -> bool:
    return len(split_respecting_between(text, "OR")) > 1 or len(split_respecting_between(text, "AND")) > 1


def unquote_literal(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    value = text.strip()
    if len(value) >= 2 and value[0] == "'" and value[-1] == "'":
        return value[1:-1].replace("''", "'")
    return value


def split_value_list(text: str) -> List[str]:
    """Split ``(a, 'b', c)`` into unquoted items."""
    inner = text.strip()
    if inner.startswith("(") and inner.endswith(")"):
        inner = inner[1:-1]
    mask = top_level_mask(inner)
    items: List[str] = []
    start = 0
    for index, char in enumerate(inner):
        if char == "," and mask[index]:
            items.append(inner[start:index])
            start = index + 1
    items.append(inner[start:])
    return [unquote_literal(item) for item in items if item.strip()]


def split_qualified(expression: str) -> Tuple[Optional[str], str]:
    """
    Split ``table.column`` on its last dot. Anything that is not a plain
    identifier chain (function calls, arithmetic) is kept whole as the column.
    """
    text = expression.strip()
    if text == "*":
        return None, "*"
    if text.endswith(".*") and _IDENTIFIER_CHAIN_RE.match(text[:-2]):
        return text[:-2], "*"
    if "." in text and _IDENTIFIER_CHAIN_RE.match(text):
        table, _, column = text.rpartition(".")
        return table, column
    return None, text


def _split_trailing_not(left: str, negated: bool) -> Tuple[str, bool]:
    match = _TRAILING_NOT_RE.match(left.strip())
    if match:
        return match.group(1), not negated
    return left, negated


def _first_top_level(pattern: Pattern[str], text: str, mask: List[bool]) -> Optional[re.Match]:
    matches = _top_level_matches(pattern, text, mask)
    return matches[0] if matches else None


def parse_simple_condition(condition: str) -> Optional[WhereCondition]:
    """
    Parse one atomic predicate such as ``m.id = 'job_id'`` or
    ``age BETWEEN 18 AND 65``. Returns None when no known operator is found.
    """
    text = condition.strip()
    if not text:
        return None

    negated = False
    leading_not = _LEADING_NOT_RE.match(text)
    if leading_not:
        negated = True
        text = strip_enclosing_parens(leading_not.group(1))

    # a negated group such as NOT (a OR b) has no flat representation
    if _is_compound(text):
        return None

    mask = top_level_mask(text)

    # NULL checks first, they carry no right-hand value
    null_match = _first_top_level(_IS_NULL_RE, text, mask)
    if null_match:
        is_not_null = bool(null_match.group(1)) != negated
        return _build_condition(
            text[: null_match.start()],
            "IS NOT NULL" if is_not_null else "IS NULL",
            negated=False,
        )

    between = _first_top_level(_BETWEEN_RE, text, mask)
    if between:
        left, between_negated = _split_trailing_not(text[: between.start()], negated)
        right = text[between.end():]
        right_mask = mask[between.end():]
        range_ands = _top_level_matches(_BETWEEN_AND_RE, right, right_mask)
        if range_ands:
            last = range_ands[-1]
            return _build_condition(
                left,
                "BETWEEN",
                negated=between_negated,
                min_value=unquote_literal(right[: last.start()]),
                max_value=unquote_literal(right[last.end():]),
            )

    for operator, pattern in _VALUE_OPERATORS:
        match = _first_top_level(pattern, text, mask)
        if not match:
            continue
        left = text[: match.start()]
        right = text[match.end():].strip()
        if operator in ("LIKE", "IN"):
            left, operator_negated = _split_trailing_not(left, negated)
        else:
            operator_negated = negated
        if operator == "IN":
            return _build_condition(left, "IN", negated=operator_negated, values=split_value_list(right))
        return _build_condition(left, operator, negated=operator_negated, value=unquote_literal(right))

    return None


def _build_condition(left: str, operator: str, *, negated: bool, **values) -> WhereCondition:
    table_name, column_name = split_qualified(left)
    return WhereCondition(
        table_name=table_name,
        column_name=column_name,
        operator=operator,
        negated=negated,
        **values,
    )


def decompose_conditions(
    expression: str,
    logical_operator: Optional[str] = None,
    skipped: Optional[List[str]] = None,
) -> List[WhereCondition]:
    """
    Flatten a WHERE/HAVING predicate into an ordered condition list.

    OR binds looser than AND, so the text is split on OR first and every OR
    segment on AND. Each element records its relation to the previous one;
    the first element emitted only carries ``logical_operator`` when one is
    passed in, even when the parts before it could not be parsed. Those
    parts are appended to ``skipped`` when a list is given.
    """
    conditions: List[WhereCondition] = []
    for or_part in split_respecting_between(expression, "OR"):
        segment_started = False
        for and_part in split_respecting_between(or_part, "AND"):
            if not conditions:
                part_operator = logical_operator
            elif segment_started:
                part_operator = "AND"
            else:
                part_operator = "OR"
            emitted = len(conditions)
            inner = strip_enclosing_parens(and_part)
            if inner != and_part.strip():
                conditions.extend(decompose_conditions(inner, part_operator, skipped))
            else:
                condition = parse_simple_condition(and_part)
                if condition is None:
                    if skipped is not None:
                        skipped.append(and_part.strip())
                else:
                    condition.logical_operator = part_operator
                    conditions.append(condition)
            segment_started = segment_started or len(conditions) > emitted
    return conditions


def parse_join_condition_text(condition: str) -> Optional[JoinCondition]:
    """Parse ``v.field_id = m.id`` into a JoinCondition."""
    text = strip_enclosing_parens(condition)
    if not text:
        return None
    mask = top_level_mask(text)
    for operator, pattern in _JOIN_OPERATORS:
        match = _first_top_level(pattern, text, mask)
        if not match:
            continue
        left_table, left_column = split_qualified(text[: match.start()])
        right_table, right_column = split_qualified(text[match.end():])
        return JoinCondition(
            left_table=left_table,
            left_column=left_column,
            operator=operator,
            right_table=right_table,
            right_column=right_column,
        )
    return None


def split_join_conditions(expression: str) -> List[JoinCondition]:
    conditions: List[JoinCondition] = []
    for part in split_respecting_between(expression, "AND"):
        condition = parse_join_condition_text(part)
        if condition is not None:
            conditions.append(condition)
    return conditions
