"""TOML configuration loading with environment variable overrides.

Precedence, lowest first: field defaults, the TOML file, environment
variables. Environment variables win inside each section as well as at
the top level, so ``RELAY_TRANSLATION_TARGET_LANGUAGE`` overrides
``[translation] target_language``.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib

from pydantic_settings import BaseSettings

from .settings import Settings

CONFIG_ENV_VAR = "RELAY_CONFIG_FILE"


def config_search_paths() -> List[Path]:
    """Candidate config files, most specific first."""
    return [
        Path("config.toml"),
        Path("/etc/speech-relay/config.toml"),
        Path.home() / ".config" / "speech-relay" / "config.toml",
    ]


class ConfigError(ValueError):
    """Configuration file could not be parsed."""


class ConfigLoader:
    """Build ``Settings`` from a TOML file and the environment."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration loader.

        Args:
            config_path: TOML file to read; searched for when omitted
        """
        self.config_path = Path(config_path) if config_path else self.find_config()

    @staticmethod
    def find_config() -> Path:
        """Resolve the config file from ``RELAY_CONFIG_FILE`` or the search path.

        Falls back to ``./config.toml`` even if it does not exist, in which
        case only defaults and environment variables apply.
        """
        explicit = os.getenv(CONFIG_ENV_VAR)
        if explicit:
            return Path(explicit)

        for candidate in config_search_paths():
            if candidate.exists():
                return candidate
        return Path("config.toml")

    def load_toml(self) -> Dict[str, Any]:
        """Read the TOML file, or nothing if it is absent.

        Raises:
            ConfigError: If the file is not valid TOML
        """
        if not self.config_path.is_file():
            return {}

        with open(self.config_path, "rb") as f:
            try:
                return tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Invalid TOML in {self.config_path}: {e}") from e

    @staticmethod
    def env_overrides() -> Dict[str, Any]:
        """Values explicitly set through environment variables, by section."""
        overrides = Settings().model_dump(exclude_unset=True)

        for name, field in Settings.model_fields.items():
            section_cls = field.annotation
            if isinstance(section_cls, type) and issubclass(section_cls, BaseSettings):
                section = section_cls().model_dump(exclude_unset=True)
                if section:
                    overrides[name] = section
        return overrides

    def merge_env_vars(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Overlay environment overrides on the file configuration."""
        merged = dict(config)
        for key, value in self.env_overrides().items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
        return merged

    def load(self) -> Settings:
        """Load complete configuration with all overrides applied."""
        return Settings(**self.merge_env_vars(self.load_toml()))


def load_config(config_path: Optional[Path] = None) -> Settings:
    """Load configuration from TOML file and environment variables.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Loaded configuration settings
    """
    return ConfigLoader(config_path).load()
