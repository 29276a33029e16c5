"""Logging setup driven by the configuration file."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from toolsmithy.utils.logger import configure_structlog

if TYPE_CHECKING:
    from toolsmithy.config.manager import ConfigManager
    from toolsmithy.config.settings import Settings


def apply_logging_settings(settings: Settings) -> None:
    """Rebuild the log pipeline from ``log_format``, ``log_colors`` and ``log_level``."""
    configure_structlog(
        log_format=settings.log_format,
        log_colors=settings.log_colors,
        log_level=settings.log_level,
    )


def follow_logging_config(config_manager: ConfigManager, settings: Settings) -> None:
    """Re-apply logging settings whenever the configuration changes."""

    def _reapply(_config: dict[str, Any]) -> None:
        apply_logging_settings(settings)

    config_manager.register_change_callback(_reapply)
