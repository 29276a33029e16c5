"""Domain types shared by the lifecycle, tools and agents."""

from .errors import (
    AgentNotFoundError,
    CacheKeyError,
    DuplicateRequestError,
    InvalidPriorityError,
    InvocationError,
    ParamsValidationError,
    RateLimitedError,
    RequestNotFoundError,
    SlotOccupiedError,
    ToolsmithyError,
)
from .events import (
    TERMINAL_EVENT_TYPES,
    BaseEvent,
    EventFactory,
    EventSink,
    EventType,
)
from .signals import Signal, SignalType

__all__ = [
    "AgentNotFoundError",
    "BaseEvent",
    "CacheKeyError",
    "DuplicateRequestError",
    "EventFactory",
    "EventSink",
    "EventType",
    "InvalidPriorityError",
    "InvocationError",
    "ParamsValidationError",
    "RateLimitedError",
    "RequestNotFoundError",
    "Signal",
    "SignalType",
    "SlotOccupiedError",
    "TERMINAL_EVENT_TYPES",
    "ToolsmithyError",
]
