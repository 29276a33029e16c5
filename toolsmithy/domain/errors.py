"""Exception hierarchy for tool agents.

Per-request failures (validation, invocation) are normally reported as
notifications and never escape the lifecycle; the exceptions here are used
at the seams where a caller has to be told synchronously.
"""

from __future__ import annotations


class ToolsmithyError(Exception):
    """Base exception for all toolsmithy errors."""


class RateLimitedError(ToolsmithyError):
    """Admission denied by the sliding-window rate limiter."""

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded, retry after {retry_after}s")


class ParamsValidationError(ToolsmithyError):
    """Request parameters were rejected before invocation."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Validation failed: {reason}")


class InvocationError(ToolsmithyError):
    """The tool failed while executing a request."""

    def __init__(self, reason: str, code: str = "execution_failed"):
        self.reason = reason
        self.code = code
        super().__init__(reason)


class RequestNotFoundError(ToolsmithyError):
    """No queued or in-flight request has this id."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Request not found: {request_id}")


class DuplicateRequestError(ToolsmithyError):
    """A queued or in-flight request already uses this id."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Request id already in use: {request_id}")


class CacheKeyError(ToolsmithyError):
    """Request parameters cannot be serialised into a cache key."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Cannot derive cache key: {reason}")


class InvalidPriorityError(ToolsmithyError, ValueError):
    """Priority is not one of high, normal, low."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(
            f"Invalid priority {value!r}. Allowed: high, normal, low"
        )


class SlotOccupiedError(ToolsmithyError, RuntimeError):
    """Dispatch attempted while the execution slot is busy."""

    def __init__(self, active_id: str):
        self.active_id = active_id
        super().__init__(f"Execution slot is occupied by {active_id}")


class AgentNotFoundError(ToolsmithyError):
    """Requested agent is not registered in the pool."""

    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = available
        avail_str = ", ".join(sorted(available)) if available else "none"
        super().__init__(f"Agent '{name}' not found. Available agents: {avail_str}")
