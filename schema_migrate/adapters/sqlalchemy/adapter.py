from __future__ import annotations

import importlib
import logging
import os
import sys
from dataclasses import dataclass
from types import MappingProxyType, ModuleType
from typing import List, Mapping, Optional

from sqlalchemy import Index as SAIndex, MetaData, Table as SATable, create_engine, inspect
from sqlalchemy.engine import Dialect as SADialect, make_url
from sqlalchemy.dialects import mssql, mysql, postgresql
from sqlalchemy.exc import CompileError, UnsupportedCompilationError
from sqlalchemy.schema import CheckConstraint, ForeignKeyConstraint, UniqueConstraint
from sqlalchemy.sql.elements import TextClause

from schema_migrate.adapters.base import SchemaAdapter
from schema_migrate.core.ir import (
    Column,
    Constraint,
    ConstraintKind,
    Dialect,
    ForeignKey,
    Index,
    PrimaryKey,
    Schema,
    Table,
    View,
)
from schema_migrate.core.parser import ParsedStatement, parse_statement
from schema_migrate.core.splitter import normalize_sql

logger = logging.getLogger(__name__)

_SA_DIALECTS: Mapping[Dialect, type] = MappingProxyType(
    {
        Dialect.POSTGRES: postgresql.dialect,
        Dialect.MYSQL: mysql.dialect,
        Dialect.SQLSERVER: mssql.dialect,
    }
)

# SQLAlchemy backend names -> canonical dialects
_URL_DIALECTS: Mapping[str, Dialect] = MappingProxyType(
    {
        "postgresql": Dialect.POSTGRES,
        "postgres": Dialect.POSTGRES,
        "mysql": Dialect.MYSQL,
        "mariadb": Dialect.MYSQL,
        "mssql": Dialect.SQLSERVER,
        "sqlserver": Dialect.SQLSERVER,
    }
)


def resolve_url_dialect(url: str) -> Optional[Dialect]:
    """Canonical dialect of a connection URL (``postgresql+psycopg://`` -> postgres)."""
    return _URL_DIALECTS.get(make_url(url).get_backend_name())


def is_connection_url(source: str) -> bool:
    return "://" in source


def _compile_type(sa_type, dialect: SADialect) -> str:
    try:
        return str(sa_type.compile(dialect=dialect))
    except (CompileError, UnsupportedCompilationError):
        return type(sa_type).__name__.upper()


def _compile_default(default, dialect: SADialect) -> Optional[str]:
    if default is None:
        return None
    # server_default is a DefaultClause whose .arg is a str, a TextClause or
    # a SQL expression
    arg = getattr(default, "arg", default)
    if isinstance(arg, str):
        return "'" + arg.replace("'", "''") + "'"
    if isinstance(arg, TextClause):
        return str(arg.text)
    try:
        return str(arg.compile(dialect=dialect))
    except (CompileError, UnsupportedCompilationError):
        return str(arg)


@dataclass
class LoadedModule:
    module: ModuleType
    sys_path_added: bool


def _purge_package_cache(module_hint: str) -> None:
    root_pkg = module_hint.split(".")[0]
    for key in list(sys.modules.keys()):
        if key == root_pkg or key.startswith(root_pkg + "."):
            sys.modules.pop(key, None)


def _import_models(repo_path: str, module_hint: str) -> LoadedModule:
    abs_repo = os.path.abspath(repo_path) if repo_path else None
    sys_path_added = False
    if abs_repo and abs_repo not in sys.path:
        sys.path.insert(0, abs_repo)
        sys_path_added = True
    # fresh import space so two trees with the same package name don't collide
    _purge_package_cache(module_hint)
    module = importlib.import_module(module_hint)
    return LoadedModule(module=module, sys_path_added=sys_path_added)


def _load_metadata(repo_path: str, module_hint: str) -> MetaData:
    loaded = _import_models(repo_path, module_hint)
    try:
        metadata = getattr(loaded.module, "metadata", None)
        if metadata is None:
            metadata = getattr(loaded.module, "Base").metadata
    finally:
        _purge_package_cache(module_hint)
        if loaded.sys_path_added and sys.path and sys.path[0] == os.path.abspath(repo_path):
            sys.path.pop(0)
    return metadata


def _index_method(idx: SAIndex) -> Optional[str]:
    for backend in ("postgresql", "mysql"):
        using = idx.dialect_options.get(backend, {}).get("using")
        if using:
            return str(using)
    return None


def _index_columns(idx: SAIndex) -> List[str]:
    return [getattr(expr, "name", None) or str(expr) for expr in idx.expressions]


def _name(item) -> Optional[str]:
    # unnamed constraints carry None or a non-str sentinel
    name = getattr(item, "name", None)
    return str(name) if isinstance(name, str) and name else None


def _constraint_sort_key(c) -> tuple:
    cols = ",".join(col.name for col in getattr(c, "columns", ()))
    return (type(c).__name__, _name(c) or "", cols, str(getattr(c, "sqltext", "")))


def table_from_sqlalchemy(satable: SATable, dialect: SADialect) -> Table:
    pk_cols = [col.name for col in satable.primary_key.columns]
    autoinc = getattr(satable, "autoincrement_column", None)

    unique_cols = {col.name for col in satable.columns if col.unique}
    constraints: List[Constraint] = []
    fks: List[ForeignKey] = []

    for c in sorted(satable.constraints, key=_constraint_sort_key):
        cname = _name(c)
        if isinstance(c, UniqueConstraint):
            cols = [col.name for col in c.columns]
            if len(cols) == 1 and (cname is None or cols[0] in unique_cols):
                unique_cols.add(cols[0])
                continue
            constraints.append(Constraint(name=cname, kind=ConstraintKind.UNIQUE, columns=tuple(cols)))
        elif isinstance(c, CheckConstraint):
            try:
                expr = str(c.sqltext.compile(dialect=dialect))
            except (CompileError, UnsupportedCompilationError):
                expr = str(c.sqltext)
            constraints.append(Constraint(name=cname, kind=ConstraintKind.CHECK, expression=expr))
        elif isinstance(c, ForeignKeyConstraint):
            remote = c.elements[0].column.table if c.elements else None
            fks.append(
                ForeignKey(
                    name=cname,
                    columns=tuple(fk.parent.name for fk in c.elements),
                    referenced_table=remote.name if remote is not None else "",
                    referenced_schema=remote.schema if remote is not None else None,
                    referenced_columns=tuple(fk.column.name for fk in c.elements),
                    on_delete=c.ondelete.upper() if c.ondelete else None,
                    on_update=c.onupdate.upper() if c.onupdate else None,
                )
            )

    columns: List[Column] = []
    for col in satable.columns:
        columns.append(
            Column(
                name=col.name,
                type=_compile_type(col.type, dialect),
                nullable=bool(col.nullable) and not col.primary_key,
                default=_compile_default(col.server_default, dialect),
                is_primary_key=bool(col.primary_key),
                is_unique=col.name in unique_cols,
                is_identity=col is autoinc or getattr(col, "identity", None) is not None,
                comment=getattr(col, "comment", None),
            )
        )

    indexes: List[Index] = []
    for idx in sorted(satable.indexes, key=lambda i: str(i.name)):
        indexes.append(
            Index(
                name=_name(idx) or "_".join(_index_columns(idx)) + "_idx",
                table=satable.name,
                schema_name=satable.schema,
                columns=tuple(_index_columns(idx)),
                unique=bool(idx.unique),
                method=_index_method(idx),
            )
        )

    pk_name = _name(satable.primary_key)
    return Table(
        name=satable.name,
        schema_name=satable.schema,
        columns=tuple(columns),
        primary_key=PrimaryKey(name=pk_name, columns=tuple(pk_cols)) if pk_cols else None,
        foreign_keys=tuple(fks),
        indexes=tuple(indexes),
        constraints=tuple(constraints),
    )


def schema_from_metadata(metadata: MetaData, dialect: "Dialect | str | SADialect" = Dialect.POSTGRES) -> Schema:
    """Schema for every table in ``metadata``, types compiled for ``dialect``."""
    if not isinstance(dialect, SADialect):
        dialect = _SA_DIALECTS[Dialect.parse(dialect)]()
    tables = [table_from_sqlalchemy(t, dialect) for t in metadata.sorted_tables]
    return Schema(tables=tuple(tables))


def _view_definition(raw: str) -> str:
    # some backends return the whole CREATE VIEW statement
    text = normalize_sql(raw)
    result = parse_statement(text)
    if isinstance(result, ParsedStatement) and isinstance(result.entity, View):
        return result.entity.definition
    return text


class SQLAlchemyAdapter(SchemaAdapter):
    """Schema from SQLAlchemy metadata.

    With ``module_hint`` the models module is imported from ``source`` (a
    directory) and its ``Base.metadata`` (or module-level ``metadata``) is
    used. Otherwise ``source`` is a SQLAlchemy URL and the live database is
    reflected.
    """

    def emit_schema(self, source: str, module_hint: str | None = None, dialect: Dialect = Dialect.POSTGRES) -> Schema:
        if module_hint:
            metadata = _load_metadata(source, module_hint)
            return schema_from_metadata(metadata, dialect)
        return self.reflect(source)

    def reflect(self, url: str) -> Schema:
        engine = create_engine(url)
        try:
            metadata = MetaData()
            metadata.reflect(bind=engine)
            schema = schema_from_metadata(metadata, engine.dialect)

            insp = inspect(engine)
            views: List[View] = []
            for vname in insp.get_view_names():
                raw = insp.get_view_definition(vname)
                views.append(View(name=vname, definition=_view_definition(raw or "")))
            logger.debug("reflected %d tables and %d views from %s", len(schema.tables), len(views), engine.url)
        finally:
            engine.dispose()

        return schema.model_copy(update={"views": tuple(views)})
