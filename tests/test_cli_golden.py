from pathlib import Path
import json
import subprocess
import sys

from schema_migrate import __version__

ROOT = Path(__file__).resolve().parents[1]
BEFORE = str(ROOT / "examples/before/schema.sql")
AFTER = str(ROOT / "examples/after/schema.sql")


def run_cli(*args: str) -> subprocess.CompletedProcess:
    cmd = [sys.executable, "-m", "schema_migrate.cli", *args]
    return subprocess.run(cmd, cwd=ROOT, capture_output=True, text=True)


def test_cli_diff_json():
    proc = run_cli("diff", "--source", BEFORE, "--target", AFTER, "--output", "json")
    assert proc.returncode == 0, proc.stderr

    data = json.loads(proc.stdout)
    assert [t["name"] for t in data["added_tables"]] == ["posts"]
    assert [t["name"] for t in data["modified_tables"]] == ["users"]
    assert "Schema Diff Summary" in proc.stderr


def test_cli_fail_on_changes():
    assert run_cli("diff", "--source", BEFORE, "--target", AFTER, "--fail-on-changes").returncode == 2
    same = run_cli("diff", "--source", AFTER, "--target", AFTER, "--fail-on-changes")
    assert same.returncode == 0
    assert "No differences found." in same.stdout


def test_cli_transform_to_mysql(tmp_path: Path):
    out_file = tmp_path / "mysql.sql"
    proc = run_cli("transform", AFTER, "--from", "postgres", "--to", "mysql", "--out-file", str(out_file))
    assert proc.returncode == 0, proc.stderr

    sql = out_file.read_text()
    assert "CREATE TABLE users (" in sql
    assert "id INT AUTO_INCREMENT NOT NULL" in sql
    assert "published TINYINT(1) DEFAULT 0" in sql
    assert "users.external_id" in proc.stderr


def test_cli_analyze_and_version():
    proc = run_cli("analyze", BEFORE, "--output", "sql", "--dialect", "postgres")
    assert proc.returncode == 0, proc.stderr
    assert "CREATE INDEX idx_users_name ON users (name);" in proc.stdout

    proc = run_cli("version")
    assert proc.stdout == f"schema-migrate {__version__}\n"


def test_cli_rejects_unknown_dialect():
    proc = run_cli("transform", AFTER, "--from", "oracle", "--to", "mysql")
    assert proc.returncode == 2
    assert "oracle" in proc.stderr


def test_cli_run_with_config(tmp_path: Path):
    out_file = tmp_path / "diff.yaml"
    cfg = tmp_path / "schema-migrate.yml"
    cfg.write_text(f"source: {BEFORE}\ntarget: {AFTER}\noutput: yaml\nout_file: {out_file}\n")

    proc = run_cli("run", "--config", str(cfg))
    assert proc.returncode == 0, proc.stderr
    assert "added_tables:" in out_file.read_text()
