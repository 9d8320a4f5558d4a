from __future__ import annotations

from abc import ABC, abstractmethod

from schema_migrate.core.ir import Dialect, Schema


class SchemaAdapter(ABC):
    @abstractmethod
    def emit_schema(
        self, source: str, module_hint: str | None = None, dialect: Dialect = Dialect.POSTGRES
    ) -> Schema:  # pragma: no cover - interface
        """Return the Schema described by ``source``."""
