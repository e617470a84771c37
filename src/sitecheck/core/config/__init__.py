"""Configuration loading and validation."""

from .models import (
    # Enums
    CheckerMode,
    # Config models
    AppConfig,
    PolitenessConfig,
    LabelConfig,
    ThemeCheckerConfig,
    GitHubConfig,
    LoggingConfig,
    VOLANTIS_SENTINEL,
)
from .loader import ConfigError, load_app_config

__all__ = [
    # Enums
    "CheckerMode",
    # Config models
    "AppConfig",
    "PolitenessConfig",
    "LabelConfig",
    "ThemeCheckerConfig",
    "GitHubConfig",
    "LoggingConfig",
    "VOLANTIS_SENTINEL",
    # Loaders
    "ConfigError",
    "load_app_config",
]
