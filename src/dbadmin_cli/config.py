"""Configuration management for the DB Admin CLI."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any
import os

import yaml


CONFIG_DIR = Path.home() / ".dbadmin"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

DEFAULT_URL = "http://localhost:8081"
URL_ENV_VAR = "DBADMIN_URL"


@dataclass
class CLIConfig:
    """CLI configuration."""

    url: str = DEFAULT_URL

    @classmethod
    def load(cls) -> "CLIConfig":
        """Load configuration from file and environment.

        Priority (highest to lowest):
        1. Environment variable DBADMIN_URL
        2. Config file (~/.dbadmin/config.yaml)
        3. Defaults
        """
        config = cls()

        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = yaml.safe_load(f) or {}
                config.url = data.get("url") or DEFAULT_URL
            except (OSError, yaml.YAMLError, AttributeError):
                pass  # Unreadable file, use defaults

        if env_url := os.environ.get(URL_ENV_VAR):
            config.url = env_url

        return config

    def save(self) -> None:
        """Save configuration to file."""
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)

        with open(CONFIG_FILE, "w") as f:
            yaml.dump({"url": self.url}, f, default_flow_style=False)

    def set_value(self, key: str, value: str) -> None:
        """Set a configuration value."""
        if key.lower() != "url":
            raise ValueError(f"Unknown config key: {key}")
        self.url = value.rstrip("/")
        self.save()

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url}

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []
        if not self.url.startswith(("http://", "https://")):
            errors.append(
                f"Invalid URL {self.url!r}. Use: dbadmin config set url http://host:port"
            )
        return errors


def get_config() -> CLIConfig:
    """Get the current configuration."""
    return CLIConfig.load()
