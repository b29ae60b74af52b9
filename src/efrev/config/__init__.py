"""Configuration module for efrev."""

from .settings import Settings, get_settings, load_settings, write_default_config
from .logging import setup_logging, get_logger

__all__ = [
    "Settings",
    "get_settings",
    "load_settings",
    "write_default_config",
    "setup_logging",
    "get_logger",
]
