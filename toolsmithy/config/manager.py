"""Process-wide configuration holder that re-broadcasts provider changes."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from toolsmithy.config.defaults import get_default_config
from toolsmithy.config.logging_config import follow_logging_config
from toolsmithy.config.providers import ConfigProvider, LocalFileConfigProvider
from toolsmithy.config.schema import AppConfig, LifecycleConfig, deep_merge
from toolsmithy.config.settings import settings
from toolsmithy.utils.logger import get_logger

logger = get_logger("config.manager")


class ConfigManager:
    """Holds the active configuration and notifies listeners on change."""

    def __init__(self, provider: ConfigProvider):
        self.provider = provider
        self._config: dict[str, Any] = {}
        self._change_callbacks: list[Callable[[dict[str, Any]], None]] = []
        self._loaded = False

    async def initialize(self) -> None:
        self._config = await self.provider.load()
        self._loaded = True
        logger.info("Configuration initialized", config_keys=list(self._config.keys()))
        # Listeners registered before loading see the initial config too
        self._notify_callbacks()

    async def start_watching(self) -> None:
        await self.provider.watch(self._on_config_changed)

    async def stop_watching(self) -> None:
        await self.provider.stop_watching()

    @property
    def loaded(self) -> bool:
        return self._loaded

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def get_all(self) -> dict[str, Any]:
        """Shallow copy of the merged configuration."""
        return self._config.copy()

    def app_config(self) -> AppConfig:
        return AppConfig.model_validate(self._config)

    def lifecycle_for(self, agent_name: str | None) -> LifecycleConfig:
        return self.app_config().lifecycle_for(agent_name)

    async def set(self, key: str, value: Any) -> None:
        await self.update({key: value})

    async def update(self, updates: dict[str, Any]) -> None:
        """Deep-merge updates into the configuration and persist them."""
        new_config = deep_merge(self._config, updates)
        await self.provider.save(new_config)
        self._config = new_config
        logger.info("Configuration updated", keys=list(updates.keys()))
        self._notify_callbacks()

    def register_change_callback(
        self, callback: Callable[[dict[str, Any]], None]
    ) -> None:
        """Callbacks receive a copy of the full config after every change."""
        self._change_callbacks.append(callback)

    def _on_config_changed(self, new_config: dict[str, Any]) -> None:
        changed_keys = _changed_keys(self._config, new_config)
        self._config = new_config
        if changed_keys:
            logger.info("Configuration reloaded", changed_keys=changed_keys)
        else:
            logger.debug("Configuration reloaded with no changes")

        self._notify_callbacks()

    def _notify_callbacks(self) -> None:
        for callback in self._change_callbacks:
            try:
                callback(self._config.copy())
            except Exception as e:
                logger.error(
                    "Error in config change callback",
                    error=str(e),
                    callback=getattr(callback, "__name__", repr(callback)),
                )


def _changed_keys(old: dict[str, Any], new: dict[str, Any]) -> list[str]:
    return sorted(key for key in old.keys() | new.keys() if old.get(key) != new.get(key))


_config_manager: ConfigManager | None = None


def create_config_manager(
    config_path: Path,
    *,
    defaults: dict[str, Any] | None = None,
) -> ConfigManager:
    """Create the global config manager backed by a JSON file.

    The module-level ``settings`` reads through it and the log pipeline follows
    its ``log_*`` keys. Call ``await manager.initialize()`` before reading values.
    """
    global _config_manager

    provider = LocalFileConfigProvider(
        config_path, defaults=defaults if defaults is not None else get_default_config()
    )
    _config_manager = ConfigManager(provider)
    settings.bind(_config_manager)
    follow_logging_config(_config_manager, settings)

    logger.info("Config manager created", config_path=str(config_path))
    return _config_manager


def get_config_manager() -> ConfigManager:
    """Get the global config manager instance."""
    if _config_manager is None:
        raise RuntimeError(
            "Config manager not initialized. Call create_config_manager() first."
        )
    return _config_manager
