import json
from pathlib import Path

import pytest
import yaml

from schema_migrate.core.diff import Changes, diff_schemas
from schema_migrate.core.parser import parse_file
from schema_migrate.core.sqlgen.ddl import generate_sql
from schema_migrate.render import render_changes, render_schema

ROOT = Path(__file__).resolve().parents[1]


def example_changes():
    before = parse_file(ROOT / "examples/before/schema.sql").schema
    after = parse_file(ROOT / "examples/after/schema.sql").schema
    return diff_schemas(before, after)


def test_empty_changes_text():
    assert render_changes(Changes()) == "No differences found.\n"


def test_changes_text():
    out = render_changes(example_changes(), "text")

    assert "Added Tables:\n  + posts (6 columns)" in out
    assert "Modified Table: users" in out
    assert "  + Column: external_id UUID" in out
    assert "  ~ Column email: type VARCHAR(255) -> VARCHAR(320)" in out
    assert "  ~ Column name: NULL -> NOT NULL" in out
    assert "Removed Indexes:\n  - idx_users_name" in out
    assert "  ~ active_users (definition changed)" in out


def test_changes_json_and_yaml():
    changes = example_changes()
    as_json = render_changes(changes, "json")
    assert as_json == render_changes(changes, "json")

    data = json.loads(as_json)
    assert data["added_tables"][0]["name"] == "posts"
    assert data["added_tables"][0]["constraints"][0]["kind"] == "CHECK"

    data = yaml.safe_load(render_changes(changes, "yaml"))
    assert data["modified_tables"][0]["name"] == "users"


def test_schema_formats():
    schema = parse_file(ROOT / "examples/after/schema.sql").schema

    text = render_schema(schema)
    assert text.startswith("Tables (2):\n  users (5 columns)\n")
    assert "    FK: user_id -> users(id)" in text
    assert "Views (1):\n  active_users" in text

    assert yaml.safe_load(render_schema(schema, "yaml"))["tables"][0]["name"] == "users"
    assert render_schema(schema, "sql", dialect="mysql") == generate_sql(schema, "mysql")

    with pytest.raises(ValueError):
        render_schema(schema, "xml")
