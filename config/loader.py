"""
Configuration loading and management with template support.

Reads the JSON config file, fills in defaults, applies environment
overrides and validates the result.
"""

import json
import os
from pathlib import Path
from string import Template
from typing import Any, Dict, Optional, Union
import logging

from pydantic import ValidationError

from core.errors import ConfigurationError
from core.models.config import BentenConfig, GlobalSettings
from .defaults import ENV_VAR_MAPPING, LEGACY_KEYS, get_default_config

logger = logging.getLogger(__name__)


class ConfigurationLoader:
    """Load and validate benten configuration files"""

    def __init__(self, global_settings: Optional[GlobalSettings] = None):
        self.global_settings = global_settings or GlobalSettings()
        self.config_cache: Dict[str, BentenConfig] = {}

    def load(self, config_file: Optional[Union[str, Path]] = None) -> BentenConfig:
        """
        Load configuration from a JSON file.

        Args:
            config_file: Path to the config file, or None for the default location

        Returns:
            Validated configuration

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        if config_file is None:
            config_file = self.global_settings.config_file
        config_file = Path(config_file).expanduser().resolve()

        cache_key = str(config_file)
        if cache_key in self.config_cache:
            return self.config_cache[cache_key]

        if not config_file.exists():
            raise ConfigurationError(f"Config file does not exist: {config_file}")

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Unable to read {config_file}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file must contain a JSON object: {config_file}")

        config = self.build(data, config_file.parent)
        self.config_cache[cache_key] = config
        logger.info(f"Loaded configuration from {config_file}")
        return config

    def build(self, data: Dict[str, Any], config_dir: Path) -> BentenConfig:
        """Merge raw settings with defaults and environment overrides"""
        config_data = get_default_config()
        config_data.update(self._rename_legacy_keys(data))

        config_data = self._substitute_template_vars(
            config_data, {'config_dir': str(config_dir)}
        )
        config_data = self._apply_env_overrides(config_data)

        if not config_data.get('target'):
            raise ConfigurationError("Configuration must name a target directory")

        try:
            return BentenConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _rename_legacy_keys(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Map old-style key spellings to current names"""
        renamed = {}
        for key, value in data.items():
            new_key = LEGACY_KEYS.get(key, key)
            if new_key != key:
                logger.debug(f"Using legacy config key {key} as {new_key}")
            renamed[new_key] = value
        return renamed

    def _substitute_template_vars(
        self,
        data: Any,
        substitutions: Dict[str, str]
    ) -> Any:
        """Recursively substitute template variables in configuration"""
        if isinstance(data, dict):
            return {
                key: self._substitute_template_vars(value, substitutions)
                for key, value in data.items()
            }
        elif isinstance(data, list):
            return [
                self._substitute_template_vars(item, substitutions)
                for item in data
            ]
        elif isinstance(data, str):
            try:
                return Template(data).safe_substitute(substitutions)
            except (ValueError, KeyError):
                return data
        else:
            return data

    def _apply_env_overrides(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides; values are coerced by validation"""
        for env_var, key in ENV_VAR_MAPPING.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                config_data[key] = env_value

        return config_data

    def clear_cache(self) -> None:
        """Clear configuration cache"""
        self.config_cache.clear()
