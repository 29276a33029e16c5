"""Typed accessors over the live configuration, with environment fallbacks."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from toolsmithy.config.constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_RATE_LIMIT_MAX,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    DEFAULT_TOOL_TIMEOUT_SECONDS,
)
from toolsmithy.config.schema import LifecycleConfig

if TYPE_CHECKING:
    from toolsmithy.config.manager import ConfigManager


class Settings:
    """Reads through to the config manager on every access, so reloads apply."""

    def __init__(self, config_manager: ConfigManager | None = None):
        self._config_manager = config_manager

    def bind(self, config_manager: ConfigManager | None) -> None:
        """Read through ``config_manager`` from now on; None detaches."""
        self._config_manager = config_manager

    def _from_manager(self, key: str) -> Any:
        if not self._config_manager:
            return None
        node: Any = self._config_manager.get_all()
        for part in key.split("."):
            if not isinstance(node, dict):
                return None
            node = node.get(part)
        return node

    @staticmethod
    def _from_env(env_key: str | None, default: Any) -> Any:
        raw = os.getenv(env_key) if env_key else None
        if not raw:
            return None
        # bool before int: bool is an int subclass
        if isinstance(default, bool):
            return raw.lower() in ("true", "1", "yes")
        if isinstance(default, (int, float)):
            return type(default)(raw)
        return raw

    def _get(self, key: str, default: Any, env_key: str | None = None) -> Any:
        """Resolve ``key`` (dotted) from the manager, then ``env_key``, then ``default``."""
        for value in (self._from_manager(key), self._from_env(env_key, default)):
            if value is not None:
                return value
        return default

    # Lifecycle Configuration
    @property
    def cache_ttl(self) -> float:
        return self._get(
            "lifecycle.cache_ttl", DEFAULT_CACHE_TTL_SECONDS, "TOOLSMITHY_CACHE_TTL"
        )

    @property
    def rate_limit_window(self) -> float:
        return self._get(
            "lifecycle.rate_limit_window",
            DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
            "TOOLSMITHY_RATE_LIMIT_WINDOW",
        )

    @property
    def rate_limit_max(self) -> int:
        return self._get(
            "lifecycle.rate_limit_max",
            DEFAULT_RATE_LIMIT_MAX,
            "TOOLSMITHY_RATE_LIMIT_MAX",
        )

    @property
    def tool_timeout(self) -> float | None:
        value = self._get(
            "lifecycle.tool_timeout",
            DEFAULT_TOOL_TIMEOUT_SECONDS,
            "TOOLSMITHY_TOOL_TIMEOUT",
        )
        # 0 (or negative) disables the timeout
        return value if value and value > 0 else None

    def lifecycle_for(self, agent_name: str | None = None) -> LifecycleConfig:
        """Effective limits for an agent: defaults overlaid with ``agents.<name>``."""
        base = LifecycleConfig(
            cache_ttl=self.cache_ttl,
            rate_limit_window=self.rate_limit_window,
            rate_limit_max=self.rate_limit_max,
            tool_timeout=self.tool_timeout,
        )
        agents = self._get("agents", {})
        override = agents.get(agent_name) if isinstance(agents, dict) else None
        if not isinstance(override, dict):
            return base
        updates = {k: v for k, v in override.items() if v is not None}
        return LifecycleConfig.model_validate(base.model_dump() | updates)

    # Logging Configuration
    @property
    def log_level(self) -> str:
        return self._get("log_level", "INFO", "LOG_LEVEL")

    @property
    def log_format(self) -> str:
        return self._get("log_format", "pretty", "LOG_FORMAT")

    @property
    def log_colors(self) -> bool:
        return self._get("log_colors", True, "LOG_COLORS")


settings = Settings()
