"""Configuration loader with TOML support and environment variable overrides."""

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from .settings import APIConfig, ModelConfig, Settings


class ConfigLoader:
    """Load configuration from TOML files with environment variable overrides."""

    SECTIONS = {
        "model": ModelConfig,
        "api": APIConfig,
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to TOML configuration file
        """
        self.config_path = config_path or self._get_default_config_path()

    def _get_default_config_path(self) -> Path:
        """Get default configuration file path."""
        config_env = os.getenv("WHISPER_STT_CONFIG_FILE")
        if config_env:
            return Path(config_env)

        config_locations = [
            Path("config.toml"),
            Path("/etc/whisper-stt/config.toml"),
            Path.home() / ".config" / "whisper-stt" / "config.toml",
        ]

        for path in config_locations:
            if path.exists():
                return path

        return Path("config.toml")

    def load_toml(self) -> Dict[str, Any]:
        """Load configuration from TOML file."""
        if not self.config_path.exists():
            return {}

        with open(self.config_path, "rb") as f:
            return tomllib.load(f)

    def merge_env_vars(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Merge environment variables into configuration.

        Each TOML section is built into its own settings object so the
        section's environment variables still override the file.
        """
        merged = dict(config)
        for section, section_cls in self.SECTIONS.items():
            values = merged.get(section)
            if isinstance(values, dict):
                merged[section] = section_cls(**values)
        return merged

    def load(self) -> Settings:
        """Load complete configuration with all overrides applied."""
        toml_config = self.load_toml()
        config = self.merge_env_vars(toml_config)
        return Settings(**config)


def load_config(config_path: Optional[Path] = None) -> Settings:
    """Load configuration from TOML file and environment variables.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Loaded configuration settings
    """
    loader = ConfigLoader(config_path)
    return loader.load()
