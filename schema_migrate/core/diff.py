from __future__ import annotations

from typing import Dict, List, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict

from schema_migrate.core.ir import Column, ForeignKey, Index, PrimaryKey, Schema, Table, View


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ColumnChanges(_Frozen):
    name: str
    old_type: Optional[str] = None
    new_type: Optional[str] = None
    nullable_changed: bool = False
    old_nullable: Optional[bool] = None
    new_nullable: Optional[bool] = None
    default_changed: bool = False
    old_default: Optional[str] = None
    new_default: Optional[str] = None

    @property
    def type_changed(self) -> bool:
        return self.old_type is not None or self.new_type is not None


class IndexChanges(_Frozen):
    name: str
    old: Index
    new: Index


class ForeignKeyChanges(_Frozen):
    name: str
    old: ForeignKey
    new: ForeignKey


class TableChanges(_Frozen):
    name: str
    added_columns: Tuple[Column, ...] = ()
    removed_columns: Tuple[Column, ...] = ()
    modified_columns: Tuple[ColumnChanges, ...] = ()
    added_indexes: Tuple[Index, ...] = ()
    removed_indexes: Tuple[Index, ...] = ()
    modified_indexes: Tuple[IndexChanges, ...] = ()
    added_foreign_keys: Tuple[ForeignKey, ...] = ()
    removed_foreign_keys: Tuple[ForeignKey, ...] = ()
    modified_foreign_keys: Tuple[ForeignKeyChanges, ...] = ()
    primary_key_changed: bool = False

    def is_empty(self) -> bool:
        return not (
            self.added_columns
            or self.removed_columns
            or self.modified_columns
            or self.added_indexes
            or self.removed_indexes
            or self.modified_indexes
            or self.added_foreign_keys
            or self.removed_foreign_keys
            or self.modified_foreign_keys
            or self.primary_key_changed
        )


class ViewChanges(_Frozen):
    name: str
    old_definition: str
    new_definition: str


class Changes(_Frozen):
    added_tables: Tuple[Table, ...] = ()
    removed_tables: Tuple[Table, ...] = ()
    modified_tables: Tuple[TableChanges, ...] = ()
    added_indexes: Tuple[Index, ...] = ()
    removed_indexes: Tuple[Index, ...] = ()
    added_views: Tuple[View, ...] = ()
    removed_views: Tuple[View, ...] = ()
    modified_views: Tuple[ViewChanges, ...] = ()

    def is_empty(self) -> bool:
        return not (
            self.added_tables
            or self.removed_tables
            or self.modified_tables
            or self.added_indexes
            or self.removed_indexes
            or self.added_views
            or self.removed_views
            or self.modified_views
        )


M = TypeVar("M", bound=BaseModel)


def _copy(item: M) -> M:
    return item.model_copy(deep=True)


def _by_name(items, key=lambda x: x.name) -> Dict[str, M]:
    out: Dict[str, M] = {}
    for item in items:
        out.setdefault(key(item), item)
    return out


def _partition(base: Dict[str, M], head: Dict[str, M]) -> Tuple[List[M], List[M], List[str]]:
    added = [_copy(head[k]) for k in sorted(head.keys() - base.keys())]
    removed = [_copy(base[k]) for k in sorted(base.keys() - head.keys())]
    common = sorted(base.keys() & head.keys())
    return added, removed, common


def fk_key(fk: ForeignKey) -> str:
    """Diff identity of a foreign key: its name, or ``<cols>_fk`` when unnamed."""
    return fk.name or "_".join(fk.columns) + "_fk"


def diff_schemas(source: Schema, target: Schema) -> Changes:
    """Compute the structural difference from ``source`` to ``target``.

    Everything is matched by exact name; results inside each category are
    sorted by name.
    """
    src_tables = _by_name(source.tables)
    dst_tables = _by_name(target.tables)
    added_tables, removed_tables, common = _partition(src_tables, dst_tables)

    modified_tables = []
    for name in common:
        tc = _diff_table(src_tables[name], dst_tables[name])
        if tc is not None:
            modified_tables.append(tc)

    added_indexes, removed_indexes, _ = _partition(_by_name(source.indexes), _by_name(target.indexes))

    src_views = _by_name(source.views)
    dst_views = _by_name(target.views)
    added_views, removed_views, common_views = _partition(src_views, dst_views)
    modified_views = [
        ViewChanges(
            name=name,
            old_definition=src_views[name].definition,
            new_definition=dst_views[name].definition,
        )
        for name in common_views
        if normalize_definition(src_views[name].definition) != normalize_definition(dst_views[name].definition)
    ]

    return Changes(
        added_tables=tuple(added_tables),
        removed_tables=tuple(removed_tables),
        modified_tables=tuple(modified_tables),
        added_indexes=tuple(added_indexes),
        removed_indexes=tuple(removed_indexes),
        added_views=tuple(added_views),
        removed_views=tuple(removed_views),
        modified_views=tuple(modified_views),
    )


def _diff_table(base: Table, head: Table) -> Optional[TableChanges]:
    # Columns
    base_cols = _by_name(base.columns)
    head_cols = _by_name(head.columns)
    added_cols, removed_cols, common_cols = _partition(base_cols, head_cols)
    modified_cols = []
    for c in common_cols:
        cc = _diff_column(base_cols[c], head_cols[c])
        if cc is not None:
            modified_cols.append(cc)

    # Indexes
    base_idx = _by_name(base.indexes)
    head_idx = _by_name(head.indexes)
    added_idx, removed_idx, common_idx = _partition(base_idx, head_idx)
    modified_idx = [
        IndexChanges(name=i, old=_copy(base_idx[i]), new=_copy(head_idx[i]))
        for i in common_idx
        if not _same_index(base_idx[i], head_idx[i])
    ]

    # FKs
    base_fk = _by_name(base.foreign_keys, key=fk_key)
    head_fk = _by_name(head.foreign_keys, key=fk_key)
    added_fk, removed_fk, common_fk = _partition(base_fk, head_fk)
    modified_fk = [
        ForeignKeyChanges(name=k, old=_copy(base_fk[k]), new=_copy(head_fk[k]))
        for k in common_fk
        if not _same_foreign_key(base_fk[k], head_fk[k])
    ]

    changes = TableChanges(
        name=base.name,
        added_columns=tuple(added_cols),
        removed_columns=tuple(removed_cols),
        modified_columns=tuple(modified_cols),
        added_indexes=tuple(added_idx),
        removed_indexes=tuple(removed_idx),
        modified_indexes=tuple(modified_idx),
        added_foreign_keys=tuple(added_fk),
        removed_foreign_keys=tuple(removed_fk),
        modified_foreign_keys=tuple(modified_fk),
        primary_key_changed=not _same_primary_key(base.primary_key, head.primary_key),
    )
    return None if changes.is_empty() else changes


def _diff_column(base: Column, head: Column) -> Optional[ColumnChanges]:
    fields = {}
    if base.type.lower() != head.type.lower():
        fields.update(old_type=base.type, new_type=head.type)
    if base.nullable != head.nullable:
        fields.update(nullable_changed=True, old_nullable=base.nullable, new_nullable=head.nullable)
    if not _same_default(base.default, head.default):
        fields.update(default_changed=True, old_default=base.default, new_default=head.default)
    if not fields:
        return None
    return ColumnChanges(name=base.name, **fields)


def _same_default(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return a.lower() == b.lower()


def _same_primary_key(a: Optional[PrimaryKey], b: Optional[PrimaryKey]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return a.columns == b.columns


def _same_text(a: Optional[str], b: Optional[str]) -> bool:
    return (a or "").lower() == (b or "").lower()


def _same_index(a: Index, b: Index) -> bool:
    return a.columns == b.columns and a.unique == b.unique and _same_text(a.method, b.method)


def _same_foreign_key(a: ForeignKey, b: ForeignKey) -> bool:
    return (
        a.columns == b.columns
        and a.referenced_table == b.referenced_table
        and a.referenced_schema == b.referenced_schema
        and a.referenced_columns == b.referenced_columns
        and _same_text(a.on_delete, b.on_delete)
        and _same_text(a.on_update, b.on_update)
    )


def normalize_definition(sql: str) -> str:
    """Whitespace-collapsed, upper-cased view text for comparison; literals are left intact."""
    return " ".join(sql.split()).upper()
