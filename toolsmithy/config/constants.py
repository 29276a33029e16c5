"""Hard-coded fallback values for the request lifecycle."""

DEFAULT_CACHE_TTL_SECONDS = 300.0
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 60.0
DEFAULT_RATE_LIMIT_MAX = 100
DEFAULT_TOOL_TIMEOUT_SECONDS = 30.0
DEFAULT_SHUTDOWN_TIMEOUT_SECONDS = 5.0
