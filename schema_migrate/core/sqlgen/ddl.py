from __future__ import annotations

from types import MappingProxyType
from typing import List, Mapping, Optional

from schema_migrate.core import types as T
from schema_migrate.core.ir import Column, Constraint, ConstraintKind, Dialect, ForeignKey, Index, Schema, Table, View

_IDENTITY_MODIFIER: Mapping[Dialect, str] = MappingProxyType(
    {
        Dialect.POSTGRES: "GENERATED BY DEFAULT AS IDENTITY",
        Dialect.MYSQL: "AUTO_INCREMENT",
        Dialect.SQLSERVER: "IDENTITY(1,1)",
    }
)
_IDENTITY_MARKERS = ("AUTO_INCREMENT", "AUTOINCREMENT", "IDENTITY")
_MYSQL_INLINE_METHODS = frozenset({"FULLTEXT", "SPATIAL"})


def _qualified(schema_name: Optional[str], name: str) -> str:
    return f"{schema_name}.{name}" if schema_name else name


def _constraint_prefix(name: Optional[str]) -> str:
    return f"CONSTRAINT {name} " if name else ""


def _carries_identity(type_: str) -> bool:
    upper = type_.upper()
    return T.is_identity_type(type_) or any(m in upper for m in _IDENTITY_MARKERS)


def _column_sql(col: Column, dialect: Dialect) -> str:
    parts = [col.name, col.type]
    if col.is_identity and not _carries_identity(col.type):
        parts.append(_IDENTITY_MODIFIER[dialect])
    if col.default is not None:
        parts.append(f"DEFAULT {col.default}")
    if not col.nullable:
        parts.append("NOT NULL")
    if col.is_unique:
        parts.append("UNIQUE")
    return " ".join(parts)


def _foreign_key_sql(fk: ForeignKey) -> Optional[str]:
    if not fk.columns or not fk.referenced_table:
        return None
    sql = f"{_constraint_prefix(fk.name)}FOREIGN KEY ({', '.join(fk.columns)}) REFERENCES "
    sql += _qualified(fk.referenced_schema, fk.referenced_table)
    if fk.referenced_columns:
        sql += f"({', '.join(fk.referenced_columns)})"
    if fk.on_delete:
        sql += f" ON DELETE {fk.on_delete}"
    if fk.on_update:
        sql += f" ON UPDATE {fk.on_update}"
    return sql


def _constraint_sql(c: Constraint) -> Optional[str]:
    if c.kind == ConstraintKind.CHECK:
        return f"{_constraint_prefix(c.name)}CHECK ({c.expression or ''})"
    if not c.columns:
        return None
    return f"{_constraint_prefix(c.name)}UNIQUE ({', '.join(c.columns)})"


def _inline_index(idx: Index, dialect: Dialect) -> bool:
    return dialect is Dialect.MYSQL and not idx.unique and not idx.primary


def _inline_index_sql(idx: Index) -> str:
    prefix = ""
    suffix = ""
    if idx.method and idx.method.upper() in _MYSQL_INLINE_METHODS:
        prefix = idx.method.upper() + " "
    elif idx.method:
        suffix = f" USING {idx.method}"
    return f"{prefix}KEY {idx.name} ({', '.join(idx.columns)}){suffix}"


def table_sql(table: Table, dialect: "Dialect | str", if_not_exists: bool = False) -> List[str]:
    """CREATE TABLE for ``table`` plus any index statements it needs."""
    dialect = Dialect.parse(dialect)
    members = [_column_sql(c, dialect) for c in table.columns]
    pk = table.primary_key
    if pk is not None and pk.columns:
        members.append(f"{_constraint_prefix(pk.name)}PRIMARY KEY ({', '.join(pk.columns)})")
    for fk in table.foreign_keys:
        sql = _foreign_key_sql(fk)
        if sql:
            members.append(sql)
    for c in table.constraints:
        sql = _constraint_sql(c)
        if sql:
            members.append(sql)

    trailing: List[str] = []
    for idx in table.indexes:
        if _inline_index(idx, dialect):
            members.append(_inline_index_sql(idx))
        elif not idx.primary:
            trailing.append(index_sql(idx, dialect))

    head = "CREATE TABLE IF NOT EXISTS" if if_not_exists else "CREATE TABLE"
    body = ",\n".join(f"    {m}" for m in members)
    return [f"{head} {_qualified(table.schema_name, table.name)} (\n{body}\n);"] + trailing


def index_sql(idx: Index, dialect: "Dialect | str") -> str:
    dialect = Dialect.parse(dialect)
    target = _qualified(idx.schema_name, idx.table)
    cols = ", ".join(idx.columns)
    method = (idx.method or "").upper()
    kind = "UNIQUE " if idx.unique else ""

    if dialect is Dialect.POSTGRES:
        using = f" USING {idx.method}" if idx.method else ""
        return f"CREATE {kind}INDEX {idx.name} ON {target}{using} ({cols});"
    if dialect is Dialect.MYSQL:
        if method in _MYSQL_INLINE_METHODS:
            return f"CREATE {method} INDEX {idx.name} ON {target} ({cols});"
        using = f" USING {method}" if method else ""
        return f"CREATE {kind}INDEX {idx.name} ON {target} ({cols}){using};"
    return f"CREATE {kind}INDEX {idx.name} ON {target} ({cols});"


def view_sql(view: View, dialect: "Dialect | str") -> str:
    dialect = Dialect.parse(dialect)
    head = "CREATE VIEW" if dialect is Dialect.SQLSERVER else "CREATE OR REPLACE VIEW"
    return f"{head} {_qualified(view.schema_name, view.name)} AS {view.definition};"


def generate_sql(schema: Schema, dialect: "Dialect | str", if_not_exists: bool = False) -> str:
    """Render ``schema`` as DDL for ``dialect``: tables, then indexes, then views."""
    dialect = Dialect.parse(dialect)
    statements: List[str] = []
    for table in schema.tables:
        statements.extend(table_sql(table, dialect, if_not_exists=if_not_exists))
    statements.extend(index_sql(i, dialect) for i in schema.indexes)
    statements.extend(view_sql(v, dialect) for v in schema.views)
    if not statements:
        return "-- empty schema\n"
    return "\n\n".join(statements) + "\n"
