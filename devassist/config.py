"""Configuration loader — reads ``.devassist.yml`` into a validated Settings model.

The config file is optional: without one, every setting has a default.
Environment variables override whatever the file says.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from devassist.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE = ".devassist.yml"
DEFAULT_DB_FILE = ".dev-assistant.db"

# Environment variable → Settings field
ENV_OVERRIDES = {
    "DEVASSIST_DB_PATH": "db_path",
    "DEVASSIST_LOG_LEVEL": "log_level",
    "DEVASSIST_LOG_FILE": "log_file",
    "DEVASSIST_DEPLOYED_BY": "deployed_by",
}


class Settings(BaseModel):
    """Runtime settings for the server and CLI."""

    project_root: Path = Field(default_factory=Path.cwd)
    db_path: Path | None = None
    backup_existing: bool = True
    deployed_by: str | None = None
    log_level: str = "WARNING"
    log_file: str | None = None
    max_recent_changes: int = Field(default=100, ge=1)
    watch: bool = True

    @property
    def database_path(self) -> Path:
        """Effective database location (relative paths resolve against the project)."""
        if self.db_path is None:
            return self.project_root / DEFAULT_DB_FILE
        if self.db_path.is_absolute():
            return self.db_path
        return self.project_root / self.db_path


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for .devassist.yml starting from the given directory, walking up."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_settings(
    config_path: Path | None = None,
    project_root: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from YAML (if any) and apply environment overrides.

    Args:
        config_path: Explicit config file. If None, searches upward from
            ``project_root`` (or the cwd).
        project_root: Project directory; overrides ``project_root`` in the file.
        env: Environment mapping, defaults to ``os.environ``.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    env = os.environ if env is None else env
    data: dict = {}

    if config_path is not None and not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")

    path = config_path or find_config_file(project_root)
    if path is not None:
        data = _read_yaml(path)
        # A config file's own directory is the natural project root
        data.setdefault("project_root", str(path.parent.resolve()))

    if project_root is not None:
        data["project_root"] = str(project_root)

    for var, field_name in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            data[field_name] = value

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.debug("Settings loaded (project_root=%s, db=%s)", settings.project_root, settings.database_path)
    return settings


def _read_yaml(path: Path) -> dict:
    logger.debug("Loading config from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data
