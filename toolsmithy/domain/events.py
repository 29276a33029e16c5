"""Notification event types and factory for tool agents.

Every event serialises to a flat dict via ``to_dict()``; that dict is what
the notification sink receives.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Literal

# Signature: async def sink(event: dict[str, Any]) -> None
EventSink = Callable[[dict[str, Any]], Awaitable[None]]


class EventType(str, Enum):
    TOOL_PROGRESS = "tool_progress"
    TOOL_RESULT = "tool_result"
    TOOL_ERROR = "tool_error"
    RATE_LIMITED = "tool_rate_limited"
    REQUEST_CANCELLED = "request_cancelled"
    METRICS_REPORT = "metrics_report"
    CACHE_CLEARED = "cache_cleared"


# Outcomes that end a request's lifecycle; exactly one is emitted per request
TERMINAL_EVENT_TYPES = frozenset(
    {
        EventType.TOOL_RESULT,
        EventType.TOOL_ERROR,
        EventType.RATE_LIMITED,
        EventType.REQUEST_CANCELLED,
    }
)


@dataclass
class BaseEvent:
    tool: str | None = None
    request_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        # Shallow: result payloads are opaque and passed through uncopied
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        for k, v in list(data.items()):
            if isinstance(v, Enum):
                data[k] = v.value
        return {k: v for k, v in data.items() if v is not None}

    @property
    def is_terminal(self) -> bool:
        return getattr(self, "type", None) in TERMINAL_EVENT_TYPES


@dataclass
class ToolProgressEvent(BaseEvent):
    type: Literal[EventType.TOOL_PROGRESS] = EventType.TOOL_PROGRESS
    status: str = "started"
    details: dict[str, Any] | None = None


@dataclass
class ToolResultEvent(BaseEvent):
    type: Literal[EventType.TOOL_RESULT] = EventType.TOOL_RESULT
    result: Any = None
    from_cache: bool = False
    execution_time: float | None = None  # milliseconds


@dataclass
class ToolErrorEvent(BaseEvent):
    type: Literal[EventType.TOOL_ERROR] = EventType.TOOL_ERROR
    error: str = ""
    code: str = "execution_failed"
    error_type: str | None = None


@dataclass
class RateLimitedEvent(BaseEvent):
    type: Literal[EventType.RATE_LIMITED] = EventType.RATE_LIMITED
    error: str = "Rate limit exceeded"
    retry_after: int = 0


@dataclass
class RequestCancelledEvent(BaseEvent):
    type: Literal[EventType.REQUEST_CANCELLED] = EventType.REQUEST_CANCELLED
    reason: str | None = None


@dataclass
class MetricsReportEvent(BaseEvent):
    type: Literal[EventType.METRICS_REPORT] = EventType.METRICS_REPORT
    metrics: dict[str, Any] = field(default_factory=dict)


@dataclass
class CacheClearedEvent(BaseEvent):
    type: Literal[EventType.CACHE_CLEARED] = EventType.CACHE_CLEARED
    entries: int = 0


class EventFactory:
    @staticmethod
    def started(tool: str, request_id: str) -> ToolProgressEvent:
        return ToolProgressEvent(tool=tool, request_id=request_id)

    @staticmethod
    def progress(
        tool: str, request_id: str, details: dict[str, Any] | None = None
    ) -> ToolProgressEvent:
        return ToolProgressEvent(
            tool=tool, request_id=request_id, status="progress", details=details
        )

    @staticmethod
    def result(
        tool: str,
        request_id: str,
        result: Any,
        *,
        from_cache: bool = False,
        execution_time: float | None = None,
    ) -> ToolResultEvent:
        return ToolResultEvent(
            tool=tool,
            request_id=request_id,
            result=result,
            from_cache=from_cache,
            execution_time=execution_time,
        )

    @staticmethod
    def error(
        tool: str,
        request_id: str | None,
        message: str,
        *,
        code: str = "execution_failed",
        error_type: str | None = None,
    ) -> ToolErrorEvent:
        return ToolErrorEvent(
            tool=tool,
            request_id=request_id,
            error=message,
            code=code,
            error_type=error_type,
        )

    @staticmethod
    def rate_limited(tool: str, request_id: str, retry_after: int) -> RateLimitedEvent:
        return RateLimitedEvent(
            tool=tool, request_id=request_id, retry_after=retry_after
        )

    @staticmethod
    def cancelled(
        tool: str, request_id: str, reason: str | None = None
    ) -> RequestCancelledEvent:
        return RequestCancelledEvent(tool=tool, request_id=request_id, reason=reason)

    @staticmethod
    def metrics_report(tool: str, metrics: dict[str, Any]) -> MetricsReportEvent:
        return MetricsReportEvent(tool=tool, metrics=metrics)

    @staticmethod
    def cache_cleared(tool: str, entries: int) -> CacheClearedEvent:
        return CacheClearedEvent(tool=tool, entries=entries)
