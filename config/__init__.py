"""
Configuration management for benten

Handles loading, validation, environment overrides and logging setup.
"""

from .loader import ConfigurationLoader
from .defaults import DEFAULT_SETTINGS
from .logging_setup import configure_logging

__all__ = ["ConfigurationLoader", "DEFAULT_SETTINGS", "configure_logging"]
