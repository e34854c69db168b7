"""
Configuration loader — reads an optional YAML file into BootstrapConfig.

Lookup order for the file:

    --config PATH  >  $ENVBOOT_CONFIG  >  ~/.config/envboot/config.yml

No file at all is fine: the defaults describe the complete target
state. A file that exists but is unreadable or invalid is an error.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from envboot.core.models.config import BootstrapConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ENVBOOT_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/envboot/config.yml")


class ConfigError(Exception):
    """Raised when the configuration file is invalid or unreadable."""


def find_config_file(explicit: Path | None = None) -> Path | None:
    """Resolve which configuration file to use, if any.

    An explicit path is returned even when missing, so that
    ``load_config`` can report it; the implicit locations are only
    used when they exist.
    """
    if explicit is not None:
        return Path(explicit).expanduser()

    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()

    default = DEFAULT_CONFIG_PATH.expanduser()
    if default.is_file():
        return default
    return None


def parse_config(raw: str, source: str = "<string>") -> BootstrapConfig:
    """Validate YAML text into a BootstrapConfig.

    Raises:
        ConfigError: on YAML syntax errors or schema violations.
    """
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {source}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {source}, got {type(data).__name__}")

    # Accept the settings either flat or wrapped under an "envboot" key
    if "envboot" in data and isinstance(data["envboot"], dict):
        data = data["envboot"]

    try:
        return BootstrapConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {source}: {e}") from e


def load_config(path: Path | None = None) -> BootstrapConfig:
    """Load configuration from ``path`` (or the default locations).

    Returns:
        The validated configuration; defaults when no file is found.

    Raises:
        ConfigError: if the chosen file is missing or invalid.
    """
    path = find_config_file(path)
    if path is None:
        logger.debug("No configuration file found, using defaults")
        return BootstrapConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading configuration from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    config = parse_config(raw, source=str(path))
    logger.info("Loaded configuration from %s", path)
    return config


def dump_config(config: BootstrapConfig) -> str:
    """Effective configuration as YAML text."""
    data = config.model_dump(mode="json")
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
