"""Settings and configuration file handling.

Settings come from three places, in increasing priority: environment
variables (and a local .env file), an optional JSON or YAML config file, and
explicit keyword overrides such as CLI flags.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic.alias_generators import to_snake
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".agentwatch.json"
ENV_PREFIX = "AGENTWATCH_"
WORKSPACE_ENV_VAR = f"{ENV_PREFIX}WORKSPACE_PATH"


class AgentWatchSettings(BaseSettings):
    """Settings for the agent store and CLI.

    Every field can be set from the environment with the AGENTWATCH_ prefix,
    e.g. AGENTWATCH_WORKSPACE_PATH or AGENTWATCH_CONTEXT_WINDOW_RUNS.
    """

    workspace_path: Optional[Path] = Field(default=None, description="Directory holding agents/")
    context_window_runs: int = Field(default=5, description="Recent runs kept in state.json")
    write_reports: bool = Field(default=True, description="Write a .md report next to each run")
    resolved_issue_ttl_days: int = Field(default=30, description="Days resolved issues stay in state.json")
    lock_timeout: float = Field(default=10.0, description="Seconds to wait for an agent lock held elsewhere")
    log_level: str = Field(default="WARNING")

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("context_window_runs", "resolved_issue_ttl_days")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate positive integer fields."""
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    @field_validator("lock_timeout")
    @classmethod
    def validate_lock_timeout(cls, v: float) -> float:
        """Validate lock timeout; a negative value waits forever."""
        if v == 0:
            raise ValueError("Lock timeout must not be zero")
        return v


def find_config_file(explicit_path: Optional[str] = None) -> Optional[Path]:
    """Locate the config file.

    Args:
        explicit_path: Path given by the caller; must exist when provided

    Returns:
        Path of the config file, or None when no file is present

    Raises:
        FileNotFoundError: If an explicit path does not exist
    """
    if explicit_path:
        path = Path(explicit_path).expanduser()
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")
        return path

    candidates = []
    env_workspace = os.environ.get(WORKSPACE_ENV_VAR)
    if env_workspace:
        candidates.append(Path(env_workspace).expanduser() / CONFIG_FILE_NAME)
    candidates.append(Path.cwd() / CONFIG_FILE_NAME)

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: Path) -> Dict[str, Any]:
    """Read a JSON or YAML config file into a dictionary.

    Raises:
        ValueError: If the file does not contain a mapping
    """
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() in [".yml", ".yaml"]:
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def load_settings(config_file: Optional[str] = None, **overrides: Any) -> AgentWatchSettings:
    """Build settings from environment, config file and explicit overrides.

    Values read from the config file take precedence over environment
    variables; non-None keyword overrides take precedence over both.
    """
    values: Dict[str, Any] = {}

    path = find_config_file(config_file)
    if path is not None:
        logger.debug("Loading config file %s", path)
        values.update({to_snake(key): value for key, value in load_config_file(path).items()})

    values.update({k: v for k, v in overrides.items() if v is not None})
    return AgentWatchSettings(**values)


def resolve_workspace_path(settings: AgentWatchSettings) -> Path:
    """Return the configured workspace, falling back to the current directory."""
    if settings.workspace_path is None or str(settings.workspace_path) == "":
        return Path.cwd()
    return Path(settings.workspace_path).expanduser().resolve()
