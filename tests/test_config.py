from pathlib import Path

import pytest

from schema_migrate.config.loader import load_cli_config
from schema_migrate.core.errors import ConfigError


def write(tmp_path: Path, text: str) -> str:
    p = tmp_path / "schema-migrate.yml"
    p.write_text(text)
    return str(p)


def test_missing_config(tmp_path: Path):
    assert load_cli_config(None) is None
    assert load_cli_config(str(tmp_path / "nope.yml")) is None


def test_diff_config_defaults(tmp_path: Path):
    cfg = load_cli_config(write(tmp_path, "source: a.sql\ntarget: b.sql\nfail_on_changes: true\n"))
    assert cfg.command == "diff"
    assert cfg.adapter == "ddl"
    assert cfg.output == "text"
    assert cfg.fail_on_changes is True


def test_transform_config_uses_from_and_to(tmp_path: Path):
    cfg = load_cli_config(write(tmp_path, "command: transform\ninput: a.sql\nfrom: postgres\nto: mysql\n"))
    assert cfg.from_dialect == "postgres"
    assert cfg.to_dialect == "mysql"


@pytest.mark.parametrize(
    "text",
    [
        "source: a.sql\n",
        "command: transform\ninput: a.sql\nfrom: oracle\nto: mysql\n",
        "source: a.sql\ntarget: b.sql\nbase_dir: x\n",
        "source: a.sql\ntarget: b.sql\noutput: xml\n",
        "- a\n- b\n",
        "source: [unclosed\n",
    ],
)
def test_invalid_configs(tmp_path: Path, text: str):
    with pytest.raises(ConfigError):
        load_cli_config(write(tmp_path, text))
