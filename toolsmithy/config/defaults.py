"""Default configuration values for toolsmithy."""

from typing import Any

from toolsmithy.config.constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_RATE_LIMIT_MAX,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    DEFAULT_TOOL_TIMEOUT_SECONDS,
)


def get_default_config() -> dict[str, Any]:
    """Return the default configuration dictionary."""
    return {
        # Lifecycle limits applied to every agent unless overridden
        "lifecycle": {
            "cache_ttl": DEFAULT_CACHE_TTL_SECONDS,
            "rate_limit_window": DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
            "rate_limit_max": DEFAULT_RATE_LIMIT_MAX,
            "tool_timeout": DEFAULT_TOOL_TIMEOUT_SECONDS,
        },
        # Per-agent overrides keyed by agent name, e.g.
        # {"code_search_agent": {"cache_ttl": 600}}
        "agents": {},
        # Logging Configuration
        "log_level": "INFO",
        "log_format": "pretty",
        "log_colors": True,
    }
