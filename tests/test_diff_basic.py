from pathlib import Path

from schema_migrate.core.diff import diff_schemas, fk_key
from schema_migrate.core.ir import Column, ForeignKey, PrimaryKey, Schema, Table, View
from schema_migrate.core.parser import parse_file

ROOT = Path(__file__).resolve().parents[1]


def make_schemas():
    base = Schema(
        tables=(
            Table(
                name="users",
                columns=(
                    Column(name="id", type="INTEGER", nullable=False, is_primary_key=True),
                    Column(name="email", type="VARCHAR(255)", nullable=False),
                ),
                primary_key=PrimaryKey(columns=("id",)),
            ),
        )
    )
    head = Schema(
        tables=(
            Table(
                name="users",
                columns=(
                    Column(name="id", type="INTEGER", nullable=False, is_primary_key=True),
                    Column(name="email", type="VARCHAR(255)", nullable=False),
                    Column(name="name", type="TEXT"),
                ),
                primary_key=PrimaryKey(columns=("id",)),
            ),
        )
    )
    return base, head


def example_schemas():
    before = parse_file(ROOT / "examples/before/schema.sql").schema
    after = parse_file(ROOT / "examples/after/schema.sql").schema
    return before, after


def test_added_column():
    base, head = make_schemas()
    changes = diff_schemas(base, head)

    assert not changes.is_empty()
    assert [tc.name for tc in changes.modified_tables] == ["users"]
    assert [c.name for c in changes.modified_tables[0].added_columns] == ["name"]
    assert changes.added_tables == ()


def test_identical_schemas_have_no_changes():
    _, after = example_schemas()
    assert diff_schemas(after, after).is_empty()


def test_added_and_removed_are_inverse():
    before, after = example_schemas()
    forward = diff_schemas(before, after)
    backward = diff_schemas(after, before)

    assert [t.name for t in forward.added_tables] == ["posts"]
    assert [t.name for t in forward.added_tables] == [t.name for t in backward.removed_tables]
    assert [i.name for i in forward.added_indexes] == ["idx_posts_metadata", "idx_posts_user_id"]
    assert [i.name for i in forward.added_indexes] == [i.name for i in backward.removed_indexes]
    assert [i.name for i in forward.removed_indexes] == ["idx_users_name"]


def test_column_modifications_from_examples():
    before, after = example_schemas()
    users = diff_schemas(before, after).modified_tables[0]

    assert [c.name for c in users.added_columns] == ["external_id"]
    modified = {c.name: c for c in users.modified_columns}
    assert set(modified) == {"created_at", "email", "name"}

    assert modified["email"].old_type == "VARCHAR(255)"
    assert modified["email"].new_type == "VARCHAR(320)"
    assert modified["name"].nullable_changed
    assert modified["name"].old_nullable is True and modified["name"].new_nullable is False
    assert not modified["name"].type_changed
    assert modified["created_at"].type_changed
    assert not modified["created_at"].default_changed


def test_views():
    before, after = example_schemas()
    changes = diff_schemas(before, after)
    assert [v.name for v in changes.modified_views] == ["active_users"]

    a = Schema(views=(View(name="v", definition="SELECT  id\n FROM t"),))
    b = Schema(views=(View(name="v", definition="select id from t"),))
    assert diff_schemas(a, b).is_empty()


def test_type_compare_is_case_insensitive_and_default_presence_matters():
    base = Schema(tables=(Table(name="t", columns=(Column(name="a", type="varchar(10)"),)),))
    same = Schema(tables=(Table(name="t", columns=(Column(name="a", type="VARCHAR(10)"),)),))
    with_default = Schema(tables=(Table(name="t", columns=(Column(name="a", type="VARCHAR(10)", default="'x'"),)),))

    assert diff_schemas(base, same).is_empty()
    cc = diff_schemas(base, with_default).modified_tables[0].modified_columns[0]
    assert cc.default_changed and cc.old_default is None and cc.new_default == "'x'"


def test_unnamed_foreign_keys_are_keyed_by_columns():
    fk = ForeignKey(columns=("user_id",), referenced_table="users", referenced_columns=("id",))
    base = Schema(tables=(Table(name="posts", foreign_keys=(fk,)),))
    head = Schema(tables=(Table(name="posts", foreign_keys=(fk.model_copy(update={"on_delete": "CASCADE"}),)),))

    assert fk_key(fk) == "user_id_fk"
    tc = diff_schemas(base, head).modified_tables[0]
    assert [m.name for m in tc.modified_foreign_keys] == ["user_id_fk"]
    assert tc.modified_foreign_keys[0].new.on_delete == "CASCADE"


def test_primary_key_changes():
    def table(pk):
        return Schema(tables=(Table(name="t", primary_key=pk),))

    assert diff_schemas(table(None), table(None)).is_empty()
    assert diff_schemas(table(PrimaryKey(columns=("id",))), table(PrimaryKey(name="pk_t", columns=("id",)))).is_empty()
    assert diff_schemas(table(None), table(PrimaryKey(columns=("id",)))).modified_tables[0].primary_key_changed
    changed = diff_schemas(table(PrimaryKey(columns=("id",))), table(PrimaryKey(columns=("id", "tenant_id"))))
    assert changed.modified_tables[0].primary_key_changed


def test_output_is_sorted_and_not_aliased():
    zeta = Table(name="zeta")
    alpha = Table(name="alpha")
    changes = diff_schemas(Schema(), Schema(tables=(zeta, alpha)))

    assert [t.name for t in changes.added_tables] == ["alpha", "zeta"]
    assert changes.added_tables[1] == zeta
    assert changes.added_tables[1] is not zeta


def test_view_literals_that_look_like_comments_are_compared():
    a = Schema(views=(View(name="v", definition="SELECT '--a' AS tag FROM t"),))
    b = Schema(views=(View(name="v", definition="SELECT '--b' AS tag FROM t"),))
    assert [v.name for v in diff_schemas(a, b).modified_views] == ["v"]
