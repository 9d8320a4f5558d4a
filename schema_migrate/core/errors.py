from __future__ import annotations


class SchemaMigrateError(Exception):
    """Base class for errors raised by schema_migrate."""


class UnsupportedDialectError(SchemaMigrateError, ValueError):
    def __init__(self, dialect: object) -> None:
        super().__init__(f"unsupported dialect: {dialect}")
        self.dialect = dialect


class ConfigError(SchemaMigrateError):
    """The CLI configuration file is unreadable or invalid."""
