from pathlib import Path

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    text,
)

from schema_migrate.adapters.sqlalchemy.adapter import SQLAlchemyAdapter, resolve_url_dialect, schema_from_metadata
from schema_migrate.core.diff import diff_schemas
from schema_migrate.core.ir import Dialect
from schema_migrate.core.registry import AdapterRegistry

ROOT = Path(__file__).resolve().parents[1]


def make_metadata():
    md = MetaData()
    Table(
        "users",
        md,
        Column("id", Integer, primary_key=True),
        Column("email", String(255), nullable=False, unique=True),
        Column("created_at", DateTime, server_default=text("now()")),
    )
    Table(
        "posts",
        md,
        Column("id", Integer, primary_key=True),
        Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        Index("idx_posts_user", "user_id"),
    )
    return md


def test_schema_from_metadata():
    schema = schema_from_metadata(make_metadata(), Dialect.POSTGRES)

    assert [t.name for t in schema.tables] == ["users", "posts"]
    users = schema.table("users")
    assert users.primary_key.columns == ("id",)
    assert users.column("id").is_identity
    assert users.column("email").type == "VARCHAR(255)"
    assert users.column("email").is_unique and not users.column("email").nullable
    assert users.column("created_at").default == "now()"

    posts = schema.table("posts")
    fk = posts.foreign_keys[0]
    assert fk.columns == ("user_id",)
    assert fk.referenced_table == "users"
    assert fk.on_delete == "CASCADE"
    assert posts.indexes[0].name == "idx_posts_user"
    assert posts.indexes[0].columns == ("user_id",)


def test_types_compile_per_dialect():
    schema = schema_from_metadata(make_metadata(), "sqlserver")
    assert schema.table("users").column("created_at").type == "DATETIME"


def test_models_module_diff():
    adapter = SQLAlchemyAdapter()
    before = adapter.emit_schema(str(ROOT), module_hint="examples.before.models")
    after = adapter.emit_schema(str(ROOT), module_hint="examples.after.models")

    assert [t.name for t in before.tables] == ["users"]
    assert after.table("users").column("created_at").type == "TIMESTAMP WITH TIME ZONE"
    assert after.table("posts").column("published").default == "'false'"

    changes = diff_schemas(before, after)
    assert [t.name for t in changes.added_tables] == ["posts"]
    users = changes.modified_tables[0]
    assert {c.name for c in users.modified_columns} == {"created_at", "email", "name"}


def test_reflect_sqlite(tmp_path: Path):
    url = f"sqlite:///{tmp_path / 'app.db'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE users (id INTEGER PRIMARY KEY, email VARCHAR(255) NOT NULL)"))
        conn.execute(text("CREATE VIEW active_users AS SELECT id, email FROM users"))
    engine.dispose()

    schema = SQLAlchemyAdapter().emit_schema(url)

    assert [t.name for t in schema.tables] == ["users"]
    assert schema.tables[0].primary_key.columns == ("id",)
    assert not schema.tables[0].column("email").nullable
    assert [v.name for v in schema.views] == ["active_users"]
    assert schema.views[0].definition == "SELECT id, email FROM users"


def test_url_dialects_and_registry():
    assert resolve_url_dialect("postgresql+psycopg://localhost/db") is Dialect.POSTGRES
    assert resolve_url_dialect("mariadb://localhost/db") is Dialect.MYSQL
    assert resolve_url_dialect("mssql+pyodbc://localhost/db") is Dialect.SQLSERVER
    assert resolve_url_dialect("sqlite://") is None
    assert AdapterRegistry.names() == ("ddl", "sqlalchemy")
