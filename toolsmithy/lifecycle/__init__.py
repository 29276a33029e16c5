"""Request lifecycle: admission, caching, queueing and sequential dispatch."""

from .cache import CacheEntry, ResultCache
from .manager import CancelOutcome, LifecycleManager
from .metrics import LifecycleMetrics
from .queue import RequestQueue
from .rate_limiter import Admission, RateLimiter
from .request import Priority, ToolRequest, derive_cache_key, generate_request_id
from .slot import ActiveRequest, ExecutionSlot

__all__ = [
    "ActiveRequest",
    "Admission",
    "CacheEntry",
    "CancelOutcome",
    "ExecutionSlot",
    "LifecycleManager",
    "LifecycleMetrics",
    "Priority",
    "RateLimiter",
    "RequestQueue",
    "ResultCache",
    "ToolRequest",
    "derive_cache_key",
    "generate_request_id",
]
