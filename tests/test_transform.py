from pathlib import Path

import pytest

from schema_migrate.core.errors import UnsupportedDialectError
from schema_migrate.core.ir import Column, Dialect, Index, Schema, Table, View
from schema_migrate.core.parser import parse_file, parse_sql
from schema_migrate.core.transform import (
    IDENTITY_TYPES,
    PROJECTIONS,
    map_default,
    map_index_method,
    map_type,
    transform_schema,
)

ROOT = Path(__file__).resolve().parents[1]


def make_schema():
    users = Table(
        name="users",
        columns=(
            Column(name="id", type="SERIAL", nullable=False, is_primary_key=True, is_identity=True),
            Column(name="active", type="BOOLEAN", default="true"),
            Column(name="external_id", type="UUID", default="gen_random_uuid()"),
            Column(name="created_at", type="TIMESTAMP", default="now()"),
        ),
    )
    return Schema(tables=(users,), views=(View(name="v", definition="SELECT id FROM users"),))


def test_boolean_and_identity_projection():
    assert map_type("BOOLEAN", "mysql") == "TINYINT(1)"
    assert map_type("BOOLEAN", "sqlserver") == "BIT"

    result = transform_schema(make_schema(), "postgres", "mysql")
    assert result.schema.table("users").column("id").type == "INT AUTO_INCREMENT"


def test_big_identity_projection():
    table = Table(name="t", columns=(Column(name="id", type="BIGSERIAL", is_identity=True),))
    result = transform_schema(Schema(tables=(table,)), "postgres", "sqlserver")
    assert result.schema.tables[0].columns[0].type == "BIGINT IDENTITY(1,1)"


def test_uuid_to_mysql_warns_once():
    table = Table(name="users", columns=(Column(name="external_id", type="UUID"),))
    result = transform_schema(Schema(tables=(table,)), "postgres", "mysql")

    assert len(result.warnings) == 1
    assert "users.external_id" in result.warnings[0]
    assert "no native UUID type" in result.warnings[0]
    assert result.schema.tables[0].columns[0].type == "CHAR(36)"


def test_defaults_are_mapped_per_dialect():
    assert map_default("now()", "mysql") == "CURRENT_TIMESTAMP"
    assert map_default("CURRENT_TIMESTAMP", "sqlserver") == "GETDATE()"
    assert map_default("true", "sqlserver") == "1"
    assert map_default("FALSE", "mysql") == "0"
    assert map_default("false", "postgres") == "false"
    assert map_default("gen_random_uuid()", "sqlserver") == "NEWID()"
    assert map_default("'pending'", "mysql") == "'pending'"


def test_index_methods():
    assert map_index_method("gin", "mysql") == "BTREE"
    assert map_index_method("hash", "mysql") == "HASH"
    assert map_index_method("gin", "sqlserver") == ""
    assert map_index_method("gin", "postgres") == "gin"
    assert map_index_method(None, "mysql") is None


def test_views_are_carried_with_warning():
    result = transform_schema(make_schema(), "postgres", "mysql")
    assert result.schema.views[0].definition == "SELECT id FROM users"
    assert "View 'v' may contain postgres-specific SQL" in result.warnings[-1]


def test_same_dialect_is_identity():
    schema = make_schema()
    result = transform_schema(schema, "postgres", "postgres")
    assert result.schema == schema
    assert result.schema is not schema
    assert result.warnings == ()


def test_input_is_not_modified_and_order_is_kept():
    schema = make_schema()
    result = transform_schema(schema, Dialect.POSTGRES, Dialect.SQLSERVER)

    assert schema.table("users").column("active").type == "BOOLEAN"
    assert [c.name for c in result.schema.tables[0].columns] == ["id", "active", "external_id", "created_at"]
    assert result.schema.table("users").column("created_at").default == "GETDATE()"


@pytest.mark.parametrize("name", ["oracle", "Postgres", "postgresql", "mssql"])
def test_unsupported_dialect(name):
    with pytest.raises(UnsupportedDialectError) as exc:
        transform_schema(make_schema(), name, "mysql")
    assert str(exc.value) == f"unsupported dialect: {name}"
    assert isinstance(exc.value, ValueError)


def test_every_dialect_has_tables():
    assert set(PROJECTIONS) == set(Dialect)
    assert set(IDENTITY_TYPES) == set(Dialect)


def test_example_schema_to_sqlserver():
    schema = parse_file(ROOT / "examples/after/schema.sql").schema
    result = transform_schema(schema, "postgres", "sqlserver")
    out = result.schema

    posts = out.table("posts")
    assert posts.column("id").type == "BIGINT IDENTITY(1,1)"
    assert posts.column("user_id").type == "INT"
    assert posts.column("title").type == "NVARCHAR(255)"
    assert posts.column("body").type == "NVARCHAR(MAX)"
    assert posts.column("published").default == "0"
    assert out.indexes[1].method == ""

    assert any("posts.metadata" in w and "NVARCHAR(MAX)" in w for w in result.warnings)
    assert any(w.startswith("View 'active_users'") for w in result.warnings)


def test_standalone_index_method_mapping():
    schema = Schema(indexes=(Index(name="i", table="t", columns=("doc",), method="GIN"),))
    result = transform_schema(schema, "postgres", "mysql")
    assert result.schema.indexes[0].method == "BTREE"


def test_timezone_timestamps_to_mysql_warn():
    schema = parse_sql(
        "CREATE TABLE ev (at TIMESTAMP(3) WITH TIME ZONE, b TIMESTAMPTZ(6), c TIMESTAMP WITH TIME ZONE, "
        "d TIMESTAMP(3) WITHOUT TIME ZONE)"
    ).schema
    result = transform_schema(schema, "postgres", "mysql")

    assert [c.type for c in result.schema.tables[0].columns] == ["TIMESTAMP", "TIMESTAMP", "TIMESTAMP", "DATETIME"]
    assert len(result.warnings) == 3
    for column, warning in zip(("at", "b", "c"), result.warnings):
        assert warning.startswith(f"ev.{column}: ")
        assert "Timezone information will be lost" in warning


def test_double_to_sqlserver_warns():
    table = Table(name="metrics", columns=(Column(name="ratio", type="DOUBLE PRECISION"),))
    result = transform_schema(Schema(tables=(table,)), "postgres", "sqlserver")

    assert result.schema.tables[0].columns[0].type == "FLOAT"
    assert result.warnings == ("metrics.ratio: DOUBLE PRECISION mapped to FLOAT - verify precision requirements",)
