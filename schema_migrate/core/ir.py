from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from schema_migrate.core.errors import UnsupportedDialectError


class Dialect(str, Enum):
    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLSERVER = "sqlserver"

    @classmethod
    def parse(cls, name: "str | Dialect") -> "Dialect":
        """Resolve a canonical dialect name. No aliases, case-sensitive."""
        if isinstance(name, Dialect):
            return name
        for d in cls:
            if d.value == name:
                return d
        raise UnsupportedDialectError(name)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Column(_Frozen):
    name: str
    type: str
    nullable: bool = True
    default: Optional[str] = None
    is_primary_key: bool = False
    is_unique: bool = False
    is_identity: bool = False
    comment: Optional[str] = None


class PrimaryKey(_Frozen):
    name: Optional[str] = None
    columns: Tuple[str, ...] = ()


class ForeignKey(_Frozen):
    name: Optional[str] = None
    columns: Tuple[str, ...] = ()
    referenced_table: str = ""
    referenced_schema: Optional[str] = None
    referenced_columns: Tuple[str, ...] = ()
    on_delete: Optional[str] = None
    on_update: Optional[str] = None


class Index(_Frozen):
    name: str
    table: str
    schema_name: Optional[str] = None
    columns: Tuple[str, ...] = ()
    unique: bool = False
    primary: bool = False
    method: Optional[str] = None


class ConstraintKind(str, Enum):
    UNIQUE = "UNIQUE"
    CHECK = "CHECK"


class Constraint(_Frozen):
    name: Optional[str] = None
    kind: ConstraintKind
    columns: Tuple[str, ...] = ()
    expression: Optional[str] = None


class View(_Frozen):
    name: str
    schema_name: Optional[str] = None
    definition: str = ""


class Table(_Frozen):
    name: str
    schema_name: Optional[str] = None
    columns: Tuple[Column, ...] = ()
    primary_key: Optional[PrimaryKey] = None
    foreign_keys: Tuple[ForeignKey, ...] = ()
    indexes: Tuple[Index, ...] = ()
    constraints: Tuple[Constraint, ...] = ()

    def column(self, name: str) -> Optional[Column]:
        for c in self.columns:
            if c.name == name:
                return c
        return None


class Schema(_Frozen):
    tables: Tuple[Table, ...] = ()
    indexes: Tuple[Index, ...] = ()
    views: Tuple[View, ...] = ()

    def table(self, name: str) -> Optional[Table]:
        for t in self.tables:
            if t.name == name:
                return t
        return None
