"""Configuration loading and management."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from chat_miner.logging import DEFAULT_LOG_DIR


@dataclass
class DefaultsConfig:
    conversation_limit: int = 50
    search_limit: int = 20
    statistics_days: int = 30
    statistics_group_by: str = "day"
    diagnose_limit: int = 30
    export_format: str = "json"


@dataclass
class Config:
    workspace_storage_path: Path | None = None  # None means the platform default
    log_dir: Path = field(default_factory=lambda: DEFAULT_LOG_DIR)
    log_level: str = "INFO"
    pairing_strategy: str = "positional"
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)


def expand_env_var(value: str) -> str:
    """Expand environment variables in string (e.g. ${VAR})."""
    if value.startswith("${") and value.endswith("}"):
        env_var = value[2:-1]
        return os.environ.get(env_var, value)
    return value


def expand_path(path_str: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expandvars(os.path.expanduser(path_str)))


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file."""
    if config_path is None:
        # Look for config in standard locations
        search_paths = [
            Path.cwd() / "config.yaml",
            Path.home() / ".config" / "chat-miner" / "config.yaml",
            Path("/etc/chat-miner/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    if config_path is None or not config_path.exists():
        return Config()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    storage_path = data.get("workspace_storage_path")
    workspace_storage_path = expand_path(storage_path) if storage_path else None

    log_dir = data.get("log_dir")

    defaults_data = data.get("defaults", {}) or {}
    defaults = DefaultsConfig(
        conversation_limit=defaults_data.get("conversation_limit", 50),
        search_limit=defaults_data.get("search_limit", 20),
        statistics_days=defaults_data.get("statistics_days", 30),
        statistics_group_by=defaults_data.get("statistics_group_by", "day"),
        diagnose_limit=defaults_data.get("diagnose_limit", 30),
        export_format=defaults_data.get("export_format", "json"),
    )

    return Config(
        workspace_storage_path=workspace_storage_path,
        log_dir=expand_path(log_dir) if log_dir else DEFAULT_LOG_DIR,
        log_level=expand_env_var(data.get("log_level", "INFO")),
        pairing_strategy=data.get("pairing_strategy", "positional"),
        defaults=defaults,
    )
