from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from schema_migrate.core.errors import ConfigError

from .config_schema import CLIConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "schema-migrate.yml"


def load_cli_config(path: Optional[str]) -> Optional[CLIConfig]:
    """Load and validate a YAML config; None when ``path`` does not exist."""
    if not path:
        return None
    p = Path(path)
    if not p.exists():
        return None
    try:
        cfg_raw = yaml.safe_load(p.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read {p}: {e}") from e
    if not isinstance(cfg_raw, dict):
        raise ConfigError(f"{p}: expected a mapping at the top level")
    try:
        cfg = CLIConfig.model_validate(cfg_raw)
    except ValidationError as e:
        raise ConfigError(f"{p}: {e}") from e
    logger.debug("loaded %s config from %s", cfg.command, p)
    return cfg
