"""Module de configuration."""

from runcmd.config.loader import ConfigLoader, FileConfigLoader
from runcmd.config.models import LoggingConfig, RuncmdConfig, TargetConfig

__all__ = [
    "ConfigLoader",
    "FileConfigLoader",
    "LoggingConfig",
    "RuncmdConfig",
    "TargetConfig",
]
