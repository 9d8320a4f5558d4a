__version__ = "0.1.0"

from .core.diff import Changes, diff_schemas
from .core.errors import SchemaMigrateError, UnsupportedDialectError
from .core.ir import Column, Constraint, Dialect, ForeignKey, Index, PrimaryKey, Schema, Table, View
from .core.parser import ParseResult, parse_file, parse_sql
from .core.registry import AdapterRegistry
from .core.sqlgen.ddl import generate_sql
from .core.transform import TransformResult, transform_schema

__all__ = [
    "__version__",
    "AdapterRegistry",
    "Changes",
    "Column",
    "Constraint",
    "Dialect",
    "ForeignKey",
    "Index",
    "ParseResult",
    "PrimaryKey",
    "Schema",
    "SchemaMigrateError",
    "Table",
    "TransformResult",
    "UnsupportedDialectError",
    "View",
    "diff_schemas",
    "generate_sql",
    "parse_file",
    "parse_sql",
    "transform_schema",
]
