from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Tuple

from schema_migrate.core import types as T
from schema_migrate.core.ir import Column, Dialect, Index, Schema, Table, View

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformResult:
    schema: Schema
    warnings: Tuple[str, ...] = ()


# canonical -> target spelling; types missing from a table pass through
_POSTGRES_TYPES: Mapping[str, str] = MappingProxyType(
    {
        T.BOOLEAN: "BOOLEAN",
        T.TIMESTAMP: "TIMESTAMP",
        T.TIMESTAMP_TZ: "TIMESTAMP WITH TIME ZONE",
        T.BINARY: "BYTEA",
        T.JSON: "JSONB",
        T.UUID: "UUID",
        T.DOUBLE: "DOUBLE PRECISION",
    }
)

_MYSQL_TYPES: Mapping[str, str] = MappingProxyType(
    {
        T.BOOLEAN: "TINYINT(1)",
        T.TIMESTAMP: "DATETIME",
        T.TIMESTAMP_TZ: "TIMESTAMP",
        T.BINARY: "LONGBLOB",
        T.JSON: "JSON",
        T.UUID: "CHAR(36)",
        T.DOUBLE: "DOUBLE",
        T.TEXT: "LONGTEXT",
    }
)

_SQLSERVER_TYPES: Mapping[str, str] = MappingProxyType(
    {
        T.BOOLEAN: "BIT",
        T.TIMESTAMP: "DATETIME2",
        T.TIMESTAMP_TZ: "DATETIMEOFFSET",
        T.BINARY: "VARBINARY(MAX)",
        T.JSON: "NVARCHAR(MAX)",
        T.UUID: "UNIQUEIDENTIFIER",
        T.DOUBLE: "FLOAT",
        T.TEXT: "NVARCHAR(MAX)",
        T.INTEGER: "INT",
    }
)


def _to_postgres(canonical: str) -> str:
    return _POSTGRES_TYPES.get(canonical, canonical)


def _to_mysql(canonical: str) -> str:
    return _MYSQL_TYPES.get(canonical, canonical)


def _to_sqlserver(canonical: str) -> str:
    mapped = _SQLSERVER_TYPES.get(canonical)
    if mapped is not None:
        return mapped
    if canonical.startswith("VARCHAR"):
        return "N" + canonical
    return canonical


PROJECTIONS: Mapping[Dialect, Callable[[str], str]] = MappingProxyType(
    {
        Dialect.POSTGRES: _to_postgres,
        Dialect.MYSQL: _to_mysql,
        Dialect.SQLSERVER: _to_sqlserver,
    }
)

# (regular, big) identity spelling per dialect
IDENTITY_TYPES: Mapping[Dialect, Tuple[str, str]] = MappingProxyType(
    {
        Dialect.POSTGRES: ("SERIAL", "BIGSERIAL"),
        Dialect.MYSQL: ("INT AUTO_INCREMENT", "BIGINT AUTO_INCREMENT"),
        Dialect.SQLSERVER: ("INT IDENTITY(1,1)", "BIGINT IDENTITY(1,1)"),
    }
)

_CURRENT_TIMESTAMP = frozenset({"NOW()", "CURRENT_TIMESTAMP", "GETDATE()", "GETUTCDATE()"})
_RANDOM_UUID = frozenset({"GEN_RANDOM_UUID()", "UUID()", "NEWID()"})

_CURRENT_TIMESTAMP_BY_DIALECT: Mapping[Dialect, str] = MappingProxyType(
    {Dialect.POSTGRES: "NOW()", Dialect.MYSQL: "CURRENT_TIMESTAMP", Dialect.SQLSERVER: "GETDATE()"}
)
_RANDOM_UUID_BY_DIALECT: Mapping[Dialect, str] = MappingProxyType(
    {Dialect.POSTGRES: "gen_random_uuid()", Dialect.MYSQL: "UUID()", Dialect.SQLSERVER: "NEWID()"}
)
_NUMERIC_BOOLEANS = frozenset({Dialect.MYSQL, Dialect.SQLSERVER})

_MYSQL_UNSUPPORTED_METHODS = frozenset({"GIN", "GIST", "BRIN"})


def map_identity_type(raw: str, target: Dialect) -> str:
    regular, big = IDENTITY_TYPES[target]
    return big if T.is_big_integer(raw) else regular


def map_type(raw: str, target: "Dialect | str", identity: bool = False) -> str:
    """Project a source type onto ``target``: normalize, then project."""
    target = Dialect.parse(target)
    if identity:
        return map_identity_type(raw, target)
    return PROJECTIONS[target](T.normalize_type(raw))


def map_default(value: str, target: "Dialect | str") -> str:
    target = Dialect.parse(target)
    upper = value.strip().upper()
    if upper in _CURRENT_TIMESTAMP:
        return _CURRENT_TIMESTAMP_BY_DIALECT[target]
    if upper in ("TRUE", "FALSE"):
        if target in _NUMERIC_BOOLEANS:
            return "1" if upper == "TRUE" else "0"
        return value
    if upper in _RANDOM_UUID:
        return _RANDOM_UUID_BY_DIALECT[target]
    return value


def map_index_method(method: Optional[str], target: "Dialect | str") -> Optional[str]:
    """An empty result means the target picks its default method."""
    target = Dialect.parse(target)
    if not method:
        return method
    upper = method.upper()
    if target is Dialect.MYSQL:
        return "BTREE" if upper in _MYSQL_UNSUPPORTED_METHODS else upper
    if target is Dialect.SQLSERVER:
        return ""
    return method


def data_loss_warning(raw: str, target: Dialect, table: str, column: str) -> Optional[str]:
    canonical = T.normalize_type(raw)
    where = f"{table}.{column}"
    if canonical == T.JSON and target is Dialect.SQLSERVER:
        return f"{where}: JSON stored as NVARCHAR(MAX) - JSON functions available but no native type"
    if canonical == T.UUID and target is Dialect.MYSQL:
        return f"{where}: UUID stored as CHAR(36) - no native UUID type in MySQL"
    if (canonical == T.TIMESTAMP_TZ or T.has_time_zone(raw)) and target is Dialect.MYSQL:
        return f"{where}: Timezone information will be lost - MySQL TIMESTAMP has no timezone offset"
    if canonical == T.DOUBLE and target is Dialect.SQLSERVER:
        return f"{where}: {T.clean_type(raw)} mapped to FLOAT - verify precision requirements"
    return None


def _transform_column(col: Column, table: str, target: Dialect) -> Tuple[Column, Optional[str]]:
    warning = None
    if col.is_identity:
        new_type = map_identity_type(col.type, target)
    else:
        new_type = map_type(col.type, target)
        warning = data_loss_warning(col.type, target, table, col.name)
    default = map_default(col.default, target) if col.default is not None else None
    return col.model_copy(update={"type": new_type, "default": default}), warning


def _transform_index(idx: Index, target: Dialect) -> Index:
    return idx.model_copy(update={"method": map_index_method(idx.method, target)}, deep=True)


def _transform_table(table: Table, target: Dialect, warnings: List[str]) -> Table:
    columns = []
    for col in table.columns:
        new_col, warning = _transform_column(col, table.name, target)
        columns.append(new_col)
        if warning:
            warnings.append(warning)
    return table.model_copy(
        update={
            "columns": tuple(columns),
            "indexes": tuple(_transform_index(i, target) for i in table.indexes),
            "primary_key": table.primary_key.model_copy(deep=True) if table.primary_key else None,
            "foreign_keys": tuple(fk.model_copy(deep=True) for fk in table.foreign_keys),
            "constraints": tuple(c.model_copy(deep=True) for c in table.constraints),
        }
    )


def _transform_view(view: View, source: Dialect, target: Dialect, warnings: List[str]) -> View:
    if source is not target:
        warnings.append(
            f"View '{view.name}' may contain {source.value}-specific SQL that requires manual review"
        )
    return view.model_copy(deep=True)


def transform_schema(schema: Schema, source: "Dialect | str", target: "Dialect | str") -> TransformResult:
    """Convert ``schema`` from one dialect to another.

    Column types and well-known defaults are rewritten for the target,
    identity columns use the target's auto-increment syntax, index methods
    the target lacks fall back to its default, and view bodies are carried
    verbatim. Lossy conversions are reported as warnings, in table and column
    order, followed by view warnings. Transforming to the source dialect
    returns an equal copy with no warnings.
    """
    source = Dialect.parse(source)
    target = Dialect.parse(target)

    if source is target:
        return TransformResult(schema=schema.model_copy(deep=True))

    warnings: List[str] = []
    tables = tuple(_transform_table(t, target, warnings) for t in schema.tables)
    indexes = tuple(_transform_index(i, target) for i in schema.indexes)
    views = tuple(_transform_view(v, source, target, warnings) for v in schema.views)

    for w in warnings:
        logger.debug("transform %s -> %s: %s", source.value, target.value, w)

    return TransformResult(schema=Schema(tables=tables, indexes=indexes, views=views), warnings=tuple(warnings))
