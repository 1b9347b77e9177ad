"""
Named parameter (``:name``) extraction that ignores string literals, quoted
identifiers and comments.

A plain ``:(\\w+)`` regex also matches inside ``SELECT ':param'``,
``-- comment with :param`` and ``/* :param */``. The scanner below walks the
text once, tracking which lexical region it is in, and only reports
placeholders found in ordinary SQL code.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class _LexMode(Enum):
    NORMAL = "normal"
    SINGLE_QUOTE = "single_quote"
    DOUBLE_QUOTE = "double_quote"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"


@dataclass(frozen=True)
class ParameterPosition:
    name: str
    start: int
    end: int


def _is_name_start(char: str) -> bool:
    return char.isalpha() or char == "_"


def _is_name_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def _scan(sql: str) -> tuple[List[ParameterPosition], List[bool]]:
    """
    Single pass over ``sql``. Returns the placeholder occurrences and a
    per-character flag telling whether the character is ordinary SQL code.
    """
    positions: List[ParameterPosition] = []
    code_mask = [True] * len(sql)
    mode = _LexMode.NORMAL
    length = len(sql)
    i = 0

    while i < length:
        char = sql[i]
        nxt = sql[i + 1] if i + 1 < length else ""

        if mode is _LexMode.NORMAL:
            if char == "'":
                mode = _LexMode.SINGLE_QUOTE
                code_mask[i] = False
                i += 1
                continue
            if char == '"':
                mode = _LexMode.DOUBLE_QUOTE
                code_mask[i] = False
                i += 1
                continue
            if char == "-" and nxt == "-":
                mode = _LexMode.LINE_COMMENT
                code_mask[i] = code_mask[i + 1] = False
                i += 2
                continue
            if char == "/" and nxt == "*":
                mode = _LexMode.BLOCK_COMMENT
                code_mask[i] = code_mask[i + 1] = False
                i += 2
                continue
            if char == ":" and nxt == ":":
                # PostgreSQL cast, e.g. created_at::date
                i += 2
                while i < length and _is_name_char(sql[i]):
                    i += 1
                continue
            if char == ":" and nxt and _is_name_start(nxt):
                end = i + 1
                while end < length and _is_name_char(sql[end]):
                    end += 1
                positions.append(ParameterPosition(sql[i + 1:end], i, end))
                i = end
                continue
            i += 1
            continue

        code_mask[i] = False

        if mode is _LexMode.SINGLE_QUOTE or mode is _LexMode.DOUBLE_QUOTE:
            quote = "'" if mode is _LexMode.SINGLE_QUOTE else '"'
            if char == quote:
                if nxt == quote:
                    # doubled quote is an escape, the literal continues
                    code_mask[i + 1] = False
                    i += 2
                    continue
                mode = _LexMode.NORMAL
            i += 1
            continue

        if mode is _LexMode.LINE_COMMENT:
            if char == "\n":
                mode = _LexMode.NORMAL
            i += 1
            continue

        # block comment
        if char == "*" and nxt == "/":
            code_mask[i + 1] = False
            mode = _LexMode.NORMAL
            i += 2
            continue
        i += 1

    return positions, code_mask


def extract_parameters_with_positions(sql: str | None) -> List[ParameterPosition]:
    """
    Return every ``:name`` occurrence in source order with its ``[start, end)``
    offsets. Repeated names are reported once per occurrence.
    """
    if not sql:
        return []
    positions, _ = _scan(sql)
    return positions


def extract_parameters(sql: str | None) -> List[str]:
    """Return distinct parameter names in order of first appearance."""
    names: Dict[str, None] = {}
    for position in extract_parameters_with_positions(sql):
        names.setdefault(position.name, None)
    return list(names)


def detect_parameters(sql: str | None, default_type: str = "string") -> Dict[str, str]:
    return {name: default_type for name in extract_parameters(sql)}


def mask_literals_and_comments(sql: str | None) -> str:
    """
    Blank out quoted regions and comments, keeping offsets intact, so clause
    keywords can be searched for without matching inside them.
    """
    if not sql:
        return ""
    _, code_mask = _scan(sql)
    return "".join(
        char if is_code or char == "\n" else " "
        for char, is_code in zip(sql, code_mask)
    )
