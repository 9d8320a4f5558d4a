from __future__ import annotations

from typing import List, Optional

import yaml
from pydantic import BaseModel

from schema_migrate.core.diff import Changes, TableChanges
from schema_migrate.core.ir import Column, Dialect, Schema
from schema_migrate.core.sqlgen.ddl import generate_sql

FORMATS = ("text", "json", "yaml", "sql")


def _json(model: BaseModel) -> str:
    return model.model_dump_json(indent=2) + "\n"


def _yaml(model: BaseModel) -> str:
    return yaml.safe_dump(model.model_dump(mode="json"), sort_keys=False)


def _nullable(flag: Optional[bool]) -> str:
    return "NULL" if flag else "NOT NULL"


def _column_line(col: Column) -> str:
    parts = [col.name, col.type]
    if col.is_primary_key:
        parts.append("PRIMARY KEY")
    if not col.nullable:
        parts.append("NOT NULL")
    if col.is_unique:
        parts.append("UNIQUE")
    if col.is_identity:
        parts.append("IDENTITY")
    if col.default is not None:
        parts.append(f"DEFAULT {col.default}")
    return " ".join(parts)


def schema_text(schema: Schema) -> str:
    lines: List[str] = []
    lines.append(f"Tables ({len(schema.tables)}):")
    for t in schema.tables:
        qualified = f"{t.schema_name}.{t.name}" if t.schema_name else t.name
        lines.append(f"  {qualified} ({len(t.columns)} columns)")
        for col in t.columns:
            lines.append(f"    {_column_line(col)}")
        for fk in t.foreign_keys:
            lines.append(f"    FK: {', '.join(fk.columns)} -> {fk.referenced_table}({', '.join(fk.referenced_columns)})")
        for idx in t.indexes:
            lines.append(f"    Index: {idx.name} ({', '.join(idx.columns)})")
    if schema.indexes:
        lines.append("")
        lines.append(f"Indexes ({len(schema.indexes)}):")
        for idx in schema.indexes:
            unique = "UNIQUE " if idx.unique else ""
            lines.append(f"  {unique}{idx.name} ON {idx.table} ({', '.join(idx.columns)})")
    if schema.views:
        lines.append("")
        lines.append(f"Views ({len(schema.views)}):")
        for v in schema.views:
            lines.append(f"  {v.name}")
    return "\n".join(lines) + "\n"


def _table_changes_text(tc: TableChanges) -> List[str]:
    lines = [f"Modified Table: {tc.name}", "-" * 40]
    lines += [f"  + Column: {c.name} {c.type}" for c in tc.added_columns]
    lines += [f"  - Column: {c.name}" for c in tc.removed_columns]
    for c in tc.modified_columns:
        if c.type_changed:
            lines.append(f"  ~ Column {c.name}: type {c.old_type} -> {c.new_type}")
        if c.nullable_changed:
            lines.append(f"  ~ Column {c.name}: {_nullable(c.old_nullable)} -> {_nullable(c.new_nullable)}")
        if c.default_changed:
            lines.append(f"  ~ Column {c.name}: default {c.old_default} -> {c.new_default}")
    lines += [f"  + Index: {i.name}" for i in tc.added_indexes]
    lines += [f"  - Index: {i.name}" for i in tc.removed_indexes]
    lines += [f"  ~ Index: {i.name}" for i in tc.modified_indexes]
    lines += [f"  + FK: {', '.join(fk.columns)} -> {fk.referenced_table}" for fk in tc.added_foreign_keys]
    lines += [f"  - FK: {', '.join(fk.columns)} -> {fk.referenced_table}" for fk in tc.removed_foreign_keys]
    lines += [f"  ~ FK: {fk.name}" for fk in tc.modified_foreign_keys]
    if tc.primary_key_changed:
        lines.append("  ~ Primary key changed")
    return lines


def changes_text(changes: Changes) -> str:
    if changes.is_empty():
        return "No differences found.\n"

    sections: List[List[str]] = []
    if changes.added_tables:
        sections.append(["Added Tables:"] + [f"  + {t.name} ({len(t.columns)} columns)" for t in changes.added_tables])
    if changes.removed_tables:
        sections.append(["Removed Tables:"] + [f"  - {t.name}" for t in changes.removed_tables])
    sections += [_table_changes_text(tc) for tc in changes.modified_tables]
    if changes.added_indexes:
        sections.append(["Added Indexes:"] + [f"  + {i.name} ON {i.table}" for i in changes.added_indexes])
    if changes.removed_indexes:
        sections.append(["Removed Indexes:"] + [f"  - {i.name}" for i in changes.removed_indexes])
    if changes.added_views:
        sections.append(["Added Views:"] + [f"  + {v.name}" for v in changes.added_views])
    if changes.removed_views:
        sections.append(["Removed Views:"] + [f"  - {v.name}" for v in changes.removed_views])
    if changes.modified_views:
        sections.append(["Modified Views:"] + [f"  ~ {v.name} (definition changed)" for v in changes.modified_views])
    return "\n\n".join("\n".join(s) for s in sections) + "\n"


def render_schema(schema: Schema, fmt: str = "text", dialect: "Dialect | str" = Dialect.POSTGRES) -> str:
    """Serialize ``schema``; ``sql`` renders DDL for ``dialect``."""
    if fmt == "json":
        return _json(schema)
    if fmt == "yaml":
        return _yaml(schema)
    if fmt == "sql":
        return generate_sql(schema, dialect)
    if fmt == "text":
        return schema_text(schema)
    raise ValueError(f"unknown output format: {fmt}")


def render_changes(changes: Changes, fmt: str = "text") -> str:
    if fmt == "json":
        return _json(changes)
    if fmt == "yaml":
        return _yaml(changes)
    if fmt == "text":
        return changes_text(changes)
    raise ValueError(f"unknown output format: {fmt}")
