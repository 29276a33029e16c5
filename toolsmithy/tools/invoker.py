"""The boundary between a lifecycle manager and the work it schedules.

The lifecycle only needs ``execute(tool_id, params)``; how the work is done
(and whether it is bounded by a timeout) is up to the invoker.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from toolsmithy.utils.logger import tool_logger

from .base_tool import ProgressCallback
from .registry import ToolRegistry
from .types import ToolError, ToolOutcome, as_outcome


@runtime_checkable
class ToolInvoker(Protocol):
    async def execute(self, tool_id: str, params: dict[str, Any]) -> ToolOutcome: ...


class CallableToolInvoker:
    """Adapt a plain function ``fn(params)`` (sync or async) to ``ToolInvoker``.

    Exceptions propagate; the lifecycle manager converts them into failures.
    """

    def __init__(self, fn: Callable[[dict[str, Any]], Any]) -> None:
        self._fn = fn

    async def execute(self, tool_id: str, params: dict[str, Any]) -> ToolOutcome:
        value = self._fn(params)
        if inspect.isawaitable(value):
            value = await value
        return as_outcome(tool_id, value)


class RegistryToolInvoker:
    """Run tools from a ``ToolRegistry`` with an optional per-call timeout.

    A timed-out call comes back as ``ToolError(code="timeout")``. Without a
    timeout a hung tool keeps its agent's execution slot occupied.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        timeout: float | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.registry = registry
        self.timeout = timeout
        self._progress = progress

    def set_progress_callback(self, callback: ProgressCallback | None) -> None:
        self._progress = callback

    async def execute(self, tool_id: str, params: dict[str, Any]) -> ToolOutcome:
        call = self.registry.run_tool(tool_id, progress=self._progress, **params)
        if self.timeout is None or self.timeout <= 0:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except TimeoutError:
            tool_logger.warning(
                "Tool call timed out", tool=tool_id, timeout_seconds=self.timeout
            )
            return ToolError(
                name=tool_id,
                code="timeout",
                error=f"Tool call '{tool_id}' timed out after {self.timeout}s",
                error_type="ToolCallTimeoutError",
            )
