from __future__ import annotations

import sys

from schema_migrate.adapters.base import SchemaAdapter
from schema_migrate.core.ir import Dialect, Schema
from schema_migrate.core.parser import ParseResult, parse_file, parse_sql


class DDLAdapter(SchemaAdapter):
    """Schema from a SQL DDL file; ``-`` reads standard input."""

    def parse(self, source: str) -> ParseResult:
        if source == "-":
            return parse_sql(sys.stdin.read())
        return parse_file(source)

    def emit_schema(self, source: str, module_hint: str | None = None, dialect: Dialect = Dialect.POSTGRES) -> Schema:
        # DDL parsing is dialect-independent
        return self.parse(source).schema
