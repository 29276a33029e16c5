"""Configuration module for toolsmithy."""

from .defaults import get_default_config
from .logging_config import apply_logging_settings, follow_logging_config
from .manager import ConfigManager, create_config_manager, get_config_manager
from .providers import ConfigProvider, LocalFileConfigProvider
from .schema import (
    AgentConfig,
    AppConfig,
    ConfigValidationError,
    LifecycleConfig,
    validate_config,
)
from .settings import Settings, settings

__all__ = [
    "apply_logging_settings",
    "follow_logging_config",
    "settings",
    "Settings",
    "AgentConfig",
    "AppConfig",
    "ConfigManager",
    "ConfigValidationError",
    "LifecycleConfig",
    "create_config_manager",
    "get_config_manager",
    "ConfigProvider",
    "LocalFileConfigProvider",
    "get_default_config",
    "validate_config",
]
