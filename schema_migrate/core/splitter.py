"""Lexical helpers shared by the DDL parser.

Everything here works on plain strings and tracks two things only: whether
the scan position is inside a quoted literal (single or double quotes, one
active quote character at a time) and, where it matters, the parenthesis
depth. Doubled or backslash-escaped quotes inside a literal are not
recognized; a literal such as ``'it''s'`` is seen as two adjacent literals,
which is harmless for splitting.
"""

from __future__ import annotations

import re
from typing import Iterator, List, Optional

_LINE_COMMENT = re.compile(r"--[^\n]*")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.S)
_WHITESPACE = re.compile(r"\s+")

QUOTES = ("'", '"')


def normalize_sql(sql: str) -> str:
    """Strip comments and collapse whitespace runs into single spaces."""
    sql = _LINE_COMMENT.sub("", sql)
    sql = _BLOCK_COMMENT.sub("", sql)
    sql = _WHITESPACE.sub(" ", sql)
    return sql.strip()


def split_statements(sql: str) -> Iterator[str]:
    """Yield top-level statements of a normalized DDL document.

    A ``;`` inside a quoted literal does not end a statement. Text after
    the last separator is yielded if it is not blank.
    """
    current: List[str] = []
    quote: Optional[str] = None

    for ch in sql:
        if quote is None and ch in QUOTES:
            quote = ch
        elif quote is not None and ch == quote:
            quote = None

        if ch == ";" and quote is None:
            stmt = "".join(current).strip()
            if stmt:
                yield stmt
            current = []
        else:
            current.append(ch)

    tail = "".join(current).strip()
    if tail:
        yield tail


def split_top_level(body: str, sep: str = ",") -> List[str]:
    """Split on ``sep`` only at paren depth 0 and outside quoted literals."""
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    quote: Optional[str] = None

    for ch in body:
        if quote is not None:
            if ch == quote:
                quote = None
            current.append(ch)
            continue
        if ch in QUOTES:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == sep and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)

    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [p for p in parts if p]


def find_matching_paren(text: str, start: int) -> int:
    """Index of the ``)`` closing the ``(`` at ``start``, or -1."""
    depth = 0
    quote: Optional[str] = None
    for i in range(start, len(text)):
        ch = text[i]
        if quote is not None:
            if ch == quote:
                quote = None
            continue
        if ch in QUOTES:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def top_level_mask(text: str) -> List[bool]:
    """Per character: True where it sits at paren depth 0 outside a literal."""
    mask: List[bool] = []
    depth = 0
    quote: Optional[str] = None
    for ch in text:
        if quote is not None:
            mask.append(False)
            if ch == quote:
                quote = None
            continue
        if ch in QUOTES:
            quote = ch
            mask.append(False)
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        else:
            mask.append(depth == 0)
            continue
        mask.append(False)
    return mask


def find_top_level_keyword(text: str, keyword: str, start: int = 0) -> Optional[re.Match]:
    """First whole-word, case-insensitive ``keyword`` match at depth 0."""
    mask = top_level_mask(text)
    pattern = re.compile(r"\b" + keyword.replace(" ", r"\s+") + r"\b", re.I)
    for m in pattern.finditer(text, start):
        if mask[m.start()]:
            return m
    return None


def strip_literals(text: str) -> str:
    """Blank out quoted literals, keeping the text length unchanged."""
    out: List[str] = []
    quote: Optional[str] = None
    for ch in text:
        if quote is not None:
            if ch == quote:
                quote = None
                out.append(ch)
            else:
                out.append(" ")
            continue
        if ch in QUOTES:
            quote = ch
        out.append(ch)
    return "".join(out)


def unquote_ident(name: str) -> str:
    """Drop identifier quoting: "x", `x`, [x] or 'x'."""
    name = name.strip()
    if len(name) >= 2 and (name[0], name[-1]) in {('"', '"'), ("`", "`"), ("[", "]"), ("'", "'")}:
        return name[1:-1]
    return name.strip("\"'`")
