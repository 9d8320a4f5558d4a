from __future__ import annotations

from typing import Callable, Dict, Optional, Tuple

from schema_migrate.adapters.base import SchemaAdapter

# Adapters emit a Schema from a source (file path, directory or URL)
AdapterFactory = Callable[[], SchemaAdapter]


class AdapterRegistry:
    _registry: Dict[str, AdapterFactory] = {}

    @classmethod
    def register(cls, name: str, factory: AdapterFactory) -> None:
        cls._registry[name] = factory

    @classmethod
    def get(cls, name: str) -> Optional[AdapterFactory]:
        return cls._registry.get(name)

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(sorted(cls._registry.keys()))


def _bootstrap_defaults() -> None:
    from schema_migrate.adapters.ddl.adapter import DDLAdapter
    from schema_migrate.adapters.sqlalchemy.adapter import SQLAlchemyAdapter

    AdapterRegistry.register("ddl", DDLAdapter)
    AdapterRegistry.register("sqlalchemy", SQLAlchemyAdapter)


_bootstrap_defaults()
