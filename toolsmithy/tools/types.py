from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

# Public types this module exports
__all__ = [
    "ToolError",
    "ToolResult",
    "ToolOutcome",
    "as_outcome",
]


class ToolError(BaseModel):
    """Standard error result for all tools.

    Use isinstance(result, ToolError) to check for errors.
    """

    type: Literal["tool_error"] = "tool_error"
    name: str
    code: str
    error: str
    error_type: str | None = None
    details: dict[str, Any] | None = None

    @classmethod
    def from_exception(
        cls, name: str, exc: BaseException, code: str = "execution_failed"
    ) -> ToolError:
        return cls(
            name=name,
            code=code,
            error=str(exc) or type(exc).__name__,
            error_type=type(exc).__name__,
        )


class ToolResult(BaseModel):
    type: Literal["success"] = "success"
    name: str | None = None
    payload: Any = None
    metadata: dict[str, Any] | None = None


ToolOutcome = ToolResult | ToolError


def as_outcome(name: str, value: Any) -> ToolOutcome:
    """Normalise whatever a tool returned into an explicit outcome.

    Tools may return a ``ToolResult``/``ToolError``, a dict shaped like one
    (``{"type": "tool_error", ...}``), or any plain payload.
    """
    if isinstance(value, (ToolResult, ToolError)):
        return value
    if isinstance(value, dict) and value.get("type") == "tool_error":
        data = {"name": name, "code": "execution_failed", "error": ""} | value
        return ToolError.model_validate(data)
    return ToolResult(name=name, payload=value)
