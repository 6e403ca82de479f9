"""
Configuration management with YAML loading and environment variable support.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import DEFAULT_BACKUP_EXPIRATION, LOCAL_CONFIG_FILES


def _env_path(env_var: str, default: Path | None = None) -> Path | None:
    """Get path from environment variable or return default."""
    if value := os.environ.get(env_var):
        return Path(value)
    return default


@dataclass
class BackupConfig:
    """Checkpoint settings - the file path can be overridden via CKR_BACKUP_FILE."""

    file_path: Path | None = field(default_factory=lambda: _env_path("CKR_BACKUP_FILE"))
    expiration_seconds: float = DEFAULT_BACKUP_EXPIRATION
    enabled: bool = True


@dataclass
class GitConfig:
    enabled: bool = True
    repo_path: Path | None = field(default_factory=lambda: _env_path("CKR_REPO_PATH"))


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file_logging: bool = False
    console_logging: bool = True
    logs_dir: Path | None = None


_SECTIONS = ("backup", "git", "logging")
_PATH_KEYS = {"file_path", "repo_path", "logs_dir"}


@dataclass
class AppConfig:
    backup: BackupConfig = field(default_factory=BackupConfig)
    git: GitConfig = field(default_factory=GitConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> AppConfig:
        """Load configuration from YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> AppConfig:
        """Create config from dictionary."""
        config = cls()

        for section_name in _SECTIONS:
            if section_name not in data:
                continue
            section = getattr(config, section_name)
            for key, value in (data[section_name] or {}).items():
                if hasattr(section, key):
                    if key in _PATH_KEYS and isinstance(value, str):
                        value = Path(value).expanduser()
                    setattr(section, key, value)

        return config

    def _to_dict(self) -> dict:
        """Convert config to dictionary."""
        result = {}
        for attr in _SECTIONS:
            section = getattr(self, attr)
            result[attr] = {
                key: str(value) if isinstance(value, Path) else value for key, value in vars(section).items()
            }
        return result


def _get_default_config_dir() -> Path:
    """Get default config directory."""
    if config_dir := os.environ.get("CKR_CONFIG_DIR"):
        return Path(config_dir)

    if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_config) / "checkpoint-runner"

    return Path.home() / ".config" / "checkpoint-runner"


def load_config(config_path: Path | None = None, config_dir: Path | None = None) -> AppConfig:
    """
    Load configuration.

    Args:
        config_path: Path to config file (default: searches standard locations)
        config_dir: Config directory to search (default: CKR_CONFIG_DIR / XDG / ~/.config)

    Returns:
        AppConfig (defaults when no file is found)
    """
    if config_path is None:
        config_dir = config_dir or _get_default_config_dir()
        search_paths = [config_dir / "config.yaml", *(Path.cwd() / name for name in LOCAL_CONFIG_FILES)]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    return AppConfig.from_yaml(config_path) if config_path else AppConfig()


def validate_config(config: AppConfig) -> list[str]:
    """
    Validate configuration values.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    if config.backup.expiration_seconds <= 0:
        errors.append("backup.expiration_seconds must be positive")

    if config.git.repo_path is not None and not config.git.repo_path.is_dir():
        errors.append(f"git.repo_path does not exist: {config.git.repo_path}")

    if config.logging.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        errors.append(f"Unknown logging.level: {config.logging.level}")

    if config.logging.file_logging and config.logging.logs_dir is None:
        errors.append("logging.logs_dir must be set when file_logging is enabled")

    return errors
