"""Configuration loading and validation."""

from .models import (
    # Enums
    BrowserMode,
    ScheduleType,
    # Config models
    AppConfig,
    BrowserConfig,
    DatabaseConfig,
    LoggingConfig,
    NotifierConfig,
    PortalConfig,
    ScheduleConfig,
    TimingProfile,
)
from .loader import ConfigError, load_app_config, validate_config_file

__all__ = [
    # Enums
    "BrowserMode",
    "ScheduleType",
    # Config models
    "AppConfig",
    "BrowserConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "NotifierConfig",
    "PortalConfig",
    "ScheduleConfig",
    "TimingProfile",
    # Loaders
    "ConfigError",
    "load_app_config",
    "validate_config_file",
]
