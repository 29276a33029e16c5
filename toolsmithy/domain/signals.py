"""Incoming signals understood by tool agents."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SignalType:
    TOOL_REQUEST = "tool_request"
    CANCEL_REQUEST = "cancel_request"
    GET_METRICS = "get_metrics"
    CLEAR_CACHE = "clear_cache"


class Signal(BaseModel):
    """A structured message addressed to an agent.

    ``data`` is deliberately loose: each signal type reads only the keys it
    needs (``params``, ``priority``, ``request_id`` for tool requests).
    """

    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    source: str | None = None

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def coerce(cls, value: Signal | dict[str, Any]) -> Signal:
        if isinstance(value, Signal):
            return value
        return cls.model_validate(value)
