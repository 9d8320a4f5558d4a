"""DDL text to Schema.

Each statement is classified by its leading keyword and parsed on its own.
Only CREATE TABLE, CREATE [UNIQUE] INDEX and CREATE [OR REPLACE] VIEW
contribute to the model; every other statement, and any recognized statement
that does not have the expected shape, is skipped without failing the parse.
Skips are reported in ``ParseResult.skipped``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from schema_migrate.core import types as T
from schema_migrate.core.ir import (
    Column,
    Constraint,
    ConstraintKind,
    ForeignKey,
    Index,
    PrimaryKey,
    Schema,
    Table,
    View,
)
from schema_migrate.core.splitter import (
    find_matching_paren,
    find_top_level_keyword,
    normalize_sql,
    split_statements,
    split_top_level,
    strip_literals,
    top_level_mask,
    unquote_ident,
)

logger = logging.getLogger(__name__)

_IDENT = r'(?:"[^"]+"|`[^`]+`|\[[^\]]+\]|[\w$]+)'
_QUALIFIED = rf"(?:({_IDENT})\s*\.\s*)?({_IDENT})"

_IS_CREATE_TABLE = re.compile(r"^CREATE\s+TABLE\b", re.I)
_IS_CREATE_INDEX = re.compile(r"^CREATE\s+(?:(?:UNIQUE|FULLTEXT|SPATIAL)\s+)?(?:(?:NON)?CLUSTERED\s+)?INDEX\b", re.I)
_IS_CREATE_VIEW = re.compile(r"^CREATE\s+(?:OR\s+REPLACE\s+)?VIEW\b", re.I)

_CREATE_TABLE = re.compile(rf"^CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?{_QUALIFIED}", re.I)
_CREATE_INDEX = re.compile(
    rf"^CREATE\s+(?:(UNIQUE)\s+|(FULLTEXT|SPATIAL)\s+)?(?:(?:NON)?CLUSTERED\s+)?INDEX\s+(?:CONCURRENTLY\s+)?"
    rf"(?:IF\s+NOT\s+EXISTS\s+)?({_IDENT})\s+ON\s+(?:ONLY\s+)?{_QUALIFIED}",
    re.I,
)
_CREATE_VIEW = re.compile(
    rf"^CREATE\s+(?:OR\s+REPLACE\s+)?VIEW\s+(?:IF\s+NOT\s+EXISTS\s+)?{_QUALIFIED}", re.I
)

# table body members
_PRIMARY_KEY = re.compile(r"^PRIMARY\s+KEY\b", re.I)
_FOREIGN_KEY = re.compile(r"^FOREIGN\s+KEY\b", re.I)
_UNIQUE = re.compile(rf"^UNIQUE(?:\s+(?:KEY|INDEX))?(?:\s+({_IDENT})\s+|\s*)\(", re.I)
_UNIQUE_KW = re.compile(r"^UNIQUE\b", re.I)
_CHECK = re.compile(r"^CHECK\b", re.I)
_CONSTRAINT = re.compile(rf"^CONSTRAINT\s+({_IDENT})\s+", re.I)
_INLINE_INDEX = re.compile(rf"^(?:(FULLTEXT|SPATIAL)\s+)?(?:INDEX|KEY)(?:\s+({_IDENT})\s+|\s*)\(", re.I)
_INDEX_ENTRY = re.compile(r'^(?:"[^"]+"|`[^`]+`|\[[^\]]+\]|[A-Za-z_][\w$]*)(?:\s*\(\s*\d+\s*\))?(?:\s+(?:ASC|DESC))?$', re.I)

_REFERENCES = re.compile(rf"\bREFERENCES\s+{_QUALIFIED}\s*(?:\(([^)]*)\))?", re.I)
_FK_ACTION = re.compile(
    r"\bON\s+(DELETE|UPDATE)\s+(CASCADE|SET\s+NULL|SET\s+DEFAULT|RESTRICT|NO\s+ACTION)\b", re.I
)
_USING = re.compile(r"\bUSING\s+(\w+)", re.I)
_SORT_SUFFIX = re.compile(r"\s+(?:ASC|DESC)$", re.I)

# column definitions
_COLUMN_NAME = re.compile(rf"^({_IDENT})\s+")
_TYPE_WORD = re.compile(r"[A-Za-z_]\w*")
_TYPE_ARRAY = re.compile(r"(?:\s*\[\s*\d*\s*\])+")
_TIME_ZONE = re.compile(r"\s+WITH(?:OUT)?\s+TIME\s+ZONE\b", re.I)
_TYPE_CONTINUATIONS = {
    "DOUBLE": re.compile(r"\s+PRECISION\b", re.I),
    "CHARACTER": re.compile(r"\s+VARYING\b", re.I),
    "CHAR": re.compile(r"\s+VARYING\b", re.I),
    "TIMESTAMP": _TIME_ZONE,
    "TIME": _TIME_ZONE,
}
_WORD = re.compile(r"[A-Za-z_]\w*")
_IDENTITY_WORDS = frozenset({"AUTO_INCREMENT", "AUTOINCREMENT", "IDENTITY"})
_DEFAULT_KW = re.compile(r"\bDEFAULT\b", re.I)
_BY_BEFORE = re.compile(r"\bBY\s*$", re.I)
_DEFAULT_STOP = re.compile(
    r"\s+(?:NOT\s+NULL|NULL|PRIMARY\s+KEY|UNIQUE|CHECK|REFERENCES|CONSTRAINT|COLLATE|COMMENT"
    r"|ON\s+UPDATE|AUTO_INCREMENT|AUTOINCREMENT|IDENTITY|GENERATED)\b|\s*,",
    re.I,
)


@dataclass(frozen=True)
class ParsedStatement:
    statement: str
    entity: Union[Table, Index, View]


@dataclass(frozen=True)
class SkippedStatement:
    statement: str
    reason: str


StatementResult = Union[ParsedStatement, SkippedStatement]


@dataclass(frozen=True)
class ParseResult:
    schema: Schema
    skipped: Tuple[SkippedStatement, ...] = ()


class _Skip(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass
class _TableBuilder:
    name: str
    schema_name: Optional[str]
    columns: List[Dict] = field(default_factory=list)
    inline_pk: List[str] = field(default_factory=list)
    primary_key: Optional[PrimaryKey] = None
    foreign_keys: List[ForeignKey] = field(default_factory=list)
    indexes: List[Index] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)

    def build(self) -> Table:
        pk = self.primary_key
        if pk is None and self.inline_pk:
            pk = PrimaryKey(columns=tuple(self.inline_pk))
        pk_cols = set(pk.columns) if pk else set()

        columns = []
        for fields in self.columns:
            if fields["name"] in pk_cols:
                fields = {**fields, "is_primary_key": True, "nullable": False}
            columns.append(Column(**fields))

        return Table(
            name=self.name,
            schema_name=self.schema_name,
            columns=tuple(columns),
            primary_key=pk,
            foreign_keys=tuple(self.foreign_keys),
            indexes=tuple(self.indexes),
            constraints=tuple(self.constraints),
        )


def parse_sql(sql: str) -> ParseResult:
    tables: List[Table] = []
    indexes: List[Index] = []
    views: List[View] = []
    skipped: List[SkippedStatement] = []

    for stmt in split_statements(normalize_sql(sql)):
        result = parse_statement(stmt)
        if isinstance(result, SkippedStatement):
            logger.debug("skipped statement (%s): %.80s", result.reason, result.statement)
            skipped.append(result)
        elif isinstance(result.entity, Table):
            tables.append(result.entity)
        elif isinstance(result.entity, Index):
            indexes.append(result.entity)
        else:
            views.append(result.entity)

    return ParseResult(
        schema=Schema(tables=tuple(tables), indexes=tuple(indexes), views=tuple(views)),
        skipped=tuple(skipped),
    )


def parse_file(path: "str | Path") -> ParseResult:
    return parse_sql(Path(path).read_text())


def parse_statement(stmt: str) -> StatementResult:
    """Parse one normalized statement; never raises on malformed SQL."""
    stmt = stmt.strip()
    try:
        if _IS_CREATE_TABLE.match(stmt):
            return ParsedStatement(stmt, _parse_create_table(stmt))
        if _IS_CREATE_INDEX.match(stmt):
            return ParsedStatement(stmt, _parse_create_index(stmt))
        if _IS_CREATE_VIEW.match(stmt):
            return ParsedStatement(stmt, _parse_create_view(stmt))
    except _Skip as e:
        return SkippedStatement(stmt, e.reason)
    return SkippedStatement(stmt, "unsupported statement")


def _ident_list(text: str) -> List[str]:
    return [unquote_ident(c) for c in split_top_level(text)]


def _paren_body(text: str, start: int = 0) -> Optional[str]:
    """Contents of the first parenthesis group at or after ``start``."""
    open_ = text.find("(", start)
    if open_ == -1:
        return None
    close = find_matching_paren(text, open_)
    if close == -1:
        return None
    return text[open_ + 1 : close]


def _ns(group: Optional[str]) -> Optional[str]:
    return unquote_ident(group) if group else None


# CREATE TABLE


def _parse_create_table(stmt: str) -> Table:
    m = _CREATE_TABLE.match(stmt)
    if not m:
        raise _Skip("unrecognized CREATE TABLE header")

    open_ = stmt.find("(", m.end())
    if open_ == -1 or stmt[m.end() : open_].strip():
        raise _Skip("missing column list")
    close = find_matching_paren(stmt, open_)
    if close == -1:
        raise _Skip("unbalanced parentheses")

    builder = _TableBuilder(name=unquote_ident(m.group(2)), schema_name=_ns(m.group(1)))
    for member in split_top_level(stmt[open_ + 1 : close]):
        _parse_member(member, builder)
    return builder.build()


def _parse_member(member: str, builder: _TableBuilder, name: Optional[str] = None) -> None:
    if _PRIMARY_KEY.match(member):
        cols = _paren_body(member)
        builder.primary_key = PrimaryKey(name=name, columns=tuple(_ident_list(cols or "")))
    elif _FOREIGN_KEY.match(member):
        builder.foreign_keys.append(_parse_foreign_key(member, name))
    elif _UNIQUE_KW.match(member):
        m = _UNIQUE.match(member)
        cols = _paren_body(member) or ""
        cname = name or (unquote_ident(m.group(1)) if m and m.group(1) else None)
        builder.constraints.append(
            Constraint(name=cname, kind=ConstraintKind.UNIQUE, columns=tuple(_ident_list(cols)))
        )
    elif _CHECK.match(member):
        builder.constraints.append(
            Constraint(name=name, kind=ConstraintKind.CHECK, expression=(_paren_body(member) or "").strip())
        )
    elif name is None and _CONSTRAINT.match(member):
        m = _CONSTRAINT.match(member)
        rest = member[m.end() :]
        if _PRIMARY_KEY.match(rest) or _FOREIGN_KEY.match(rest) or _UNIQUE_KW.match(rest) or _CHECK.match(rest):
            _parse_member(rest, builder, name=unquote_ident(m.group(1)))
    elif name is None and _is_inline_index(member):
        _parse_inline_index(member, builder)
    elif name is None:
        _parse_column(member, builder)


def _parse_foreign_key(member: str, name: Optional[str]) -> ForeignKey:
    local = _paren_body(member) or ""
    ref_table, ref_schema, ref_cols = "", None, ()
    ref = _REFERENCES.search(member)
    if ref:
        ref_schema = _ns(ref.group(1))
        ref_table = unquote_ident(ref.group(2))
        ref_cols = tuple(_ident_list(ref.group(3) or ""))
    on_delete, on_update = _fk_actions(member)
    return ForeignKey(
        name=name,
        columns=tuple(_ident_list(local)),
        referenced_table=ref_table,
        referenced_schema=ref_schema,
        referenced_columns=ref_cols,
        on_delete=on_delete,
        on_update=on_update,
    )


def _fk_actions(text: str) -> Tuple[Optional[str], Optional[str]]:
    actions: Dict[str, str] = {}
    for m in _FK_ACTION.finditer(text):
        actions.setdefault(m.group(1).upper(), " ".join(m.group(2).upper().split()))
    return actions.get("DELETE"), actions.get("UPDATE")


def _is_inline_index(member: str) -> bool:
    """MySQL KEY/INDEX member, as opposed to a column named key or index."""
    m = _INLINE_INDEX.match(member)
    if not m:
        return False
    if m.group(2) and T.is_type_word(unquote_ident(m.group(2))):
        return False
    entries = split_top_level(_paren_body(member) or "")
    return bool(entries) and all(_INDEX_ENTRY.match(e) for e in entries)


def _parse_inline_index(member: str, builder: _TableBuilder) -> None:
    m = _INLINE_INDEX.match(member)
    cols = _index_columns(_paren_body(member) or "")
    if not cols:
        return
    using = _USING.search(member)
    method = m.group(1).upper() if m.group(1) else (using.group(1) if using else None)
    builder.indexes.append(
        Index(
            name=unquote_ident(m.group(2)) if m.group(2) else cols[0],
            table=builder.name,
            schema_name=builder.schema_name,
            columns=tuple(cols),
            method=method,
        )
    )


# column definitions


def _compact(params: str) -> str:
    """Drop whitespace outside quoted literals: ``( 10, 2 )`` -> ``(10,2)``."""
    out = []
    quote = None
    for ch in params:
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch.isspace():
            continue
        out.append(ch)
    return "".join(out)


def _read_params(text: str, pos: int) -> Tuple[int, str]:
    i = pos
    while i < len(text) and text[i].isspace():
        i += 1
    if i < len(text) and text[i] == "(":
        close = find_matching_paren(text, i)
        if close != -1:
            return close + 1, _compact(text[i : close + 1])
    return pos, ""


def split_column_head(defn: str) -> Optional[Tuple[str, str, str]]:
    """Split a column definition into (name, type, remainder).

    The type keeps its parenthesized parameters and the multi-word forms
    ``DOUBLE PRECISION``, ``CHARACTER VARYING`` and ``... WITH[OUT] TIME ZONE``.
    """
    m = _COLUMN_NAME.match(defn)
    if not m:
        return None
    tm = _TYPE_WORD.match(defn, m.end())
    if not tm:
        return None

    base = tm.group(0)
    pos, params = _read_params(defn, tm.end())
    type_ = base + params

    cont = _TYPE_CONTINUATIONS.get(base.upper())
    if cont is not None:
        cm = cont.match(defn, pos)
        if cm:
            type_ += " " + " ".join(cm.group(0).split())
            pos = cm.end()
            if not params:
                pos, params = _read_params(defn, pos)
                type_ += params

    am = _TYPE_ARRAY.match(defn, pos)
    if am:
        type_ += _compact(am.group(0))
        pos = am.end()

    return unquote_ident(m.group(1)), type_, defn[pos:]


def _has_phrase(words: List[str], first: str, second: str) -> bool:
    return any(a == first and b == second for a, b in zip(words, words[1:]))


def _extract_default(rest: str, scan: str) -> Optional[str]:
    mask = top_level_mask(rest)
    kw = None
    for m in _DEFAULT_KW.finditer(scan):
        if mask[m.start()] and not _BY_BEFORE.search(scan, 0, m.start()):
            kw = m
            break
    if kw is None:
        return None

    start = kw.end()
    while start < len(rest) and rest[start].isspace():
        start += 1
    end = len(rest)
    for p in range(start + 1, len(rest)):
        if mask[p] and _DEFAULT_STOP.match(scan, p):
            end = p
            break
    value = rest[start:end].strip()
    return value or None


def _parse_column(defn: str, builder: _TableBuilder) -> None:
    head = split_column_head(defn)
    if head is None:
        return
    name, type_, rest = head

    scan = strip_literals(rest)
    words = [w.upper() for w in _WORD.findall(scan)]

    not_null = _has_phrase(words, "NOT", "NULL")
    primary = _has_phrase(words, "PRIMARY", "KEY")
    identity = T.is_identity_type(type_) or any(w in _IDENTITY_WORDS for w in words)

    builder.columns.append(
        {
            "name": name,
            "type": type_,
            "nullable": not (not_null or primary),
            "default": _extract_default(rest, scan),
            "is_primary_key": primary,
            "is_unique": "UNIQUE" in words,
            "is_identity": identity,
        }
    )
    if primary and builder.primary_key is None:
        builder.inline_pk.append(name)

    if "REFERENCES" in words:
        ref = _REFERENCES.search(rest)
        if ref:
            on_delete, on_update = _fk_actions(rest)
            builder.foreign_keys.append(
                ForeignKey(
                    columns=(name,),
                    referenced_table=unquote_ident(ref.group(2)),
                    referenced_schema=_ns(ref.group(1)),
                    referenced_columns=tuple(_ident_list(ref.group(3) or "")),
                    on_delete=on_delete,
                    on_update=on_update,
                )
            )


# CREATE INDEX / CREATE VIEW


def _index_columns(body: str) -> List[str]:
    return [unquote_ident(_SORT_SUFFIX.sub("", c.strip())) for c in split_top_level(body)]


def _parse_create_index(stmt: str) -> Index:
    m = _CREATE_INDEX.match(stmt)
    if not m:
        raise _Skip("unrecognized CREATE INDEX header")

    tail = stmt[m.end() :]
    body = _paren_body(tail)
    if body is None:
        raise _Skip("missing index column list")
    cols = _index_columns(body)
    if not cols:
        raise _Skip("empty index column list")

    using = _USING.search(tail)
    method = m.group(2).upper() if m.group(2) else (using.group(1) if using else None)
    return Index(
        name=unquote_ident(m.group(3)),
        table=unquote_ident(m.group(5)),
        schema_name=_ns(m.group(4)),
        columns=tuple(cols),
        unique=bool(m.group(1)),
        method=method,
    )


def _parse_create_view(stmt: str) -> View:
    m = _CREATE_VIEW.match(stmt)
    if not m:
        raise _Skip("unrecognized CREATE VIEW header")

    as_kw = find_top_level_keyword(stmt, "AS", m.end())
    if as_kw is None:
        raise _Skip("missing AS clause")
    definition = stmt[as_kw.end() :].strip()
    if not definition:
        raise _Skip("empty view definition")

    return View(name=unquote_ident(m.group(2)), schema_name=_ns(m.group(1)), definition=definition)
