"""Load and save the project configuration.

The config lives next to the signal log in ``.arc/config.yaml``. A missing
file means defaults; JSON content is accepted as well since it is valid YAML.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from schemas.config import ArcConfig
from storage.signal_store import ARC_DIR

CONFIG_FILE = "config.yaml"


class ConfigError(Exception):
    """Raised when the config file cannot be read or is invalid."""


def config_path(root: Path) -> Path:
    return Path(root) / ARC_DIR / CONFIG_FILE


def load_config(root: Path) -> ArcConfig:
    """Read ``.arc/config.yaml`` under ``root``, falling back to defaults."""
    path = config_path(root)
    if not path.exists():
        return ArcConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must be a mapping at top-level")
    try:
        return ArcConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid config in {path}: {e}") from e


def save_config(root: Path, config: ArcConfig) -> Path:
    path = config_path(root)
    text = yaml.safe_dump(config.model_dump(mode="json"), sort_keys=True)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot write {path}: {e}") from e
    return path


def ruby_api_version(ruby_version: str) -> str:
    """Derive the library API version: ``"3.3.6"`` -> ``"3.3.0"``.

    Strings that are not ``major.minor.patch`` are returned unchanged.
    """
    parts = ruby_version.split(".", 2)
    if len(parts) != 3:
        return ruby_version
    major, minor, _patch = parts
    return f"{major}.{minor}.0"


__all__ = ["CONFIG_FILE", "ConfigError", "config_path", "load_config", "save_config", "ruby_api_version"]
