"""Base class for agents that front a single tool.

An agent translates incoming signals into lifecycle operations and owns the
LifecycleManager that enforces rate limits, caching and sequential dispatch
for its tool. Concrete agents set ``name``/``tool``/``description`` and may
override the hooks.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from toolsmithy.config.schema import LifecycleConfig
from toolsmithy.config.settings import settings
from toolsmithy.domain.errors import ToolsmithyError
from toolsmithy.domain.events import EventFactory, EventSink
from toolsmithy.domain.signals import Signal, SignalType
from toolsmithy.lifecycle.manager import CancelOutcome, LifecycleManager
from toolsmithy.lifecycle.request import ToolRequest, generate_request_id
from toolsmithy.tools.invoker import ToolInvoker
from toolsmithy.utils.logger import agent_logger


class BaseToolAgent:
    """Signal front end for one tool."""

    name: str = "tool_agent"
    tool: str = "tool"
    description: str = ""

    def __init__(
        self,
        invoker: ToolInvoker,
        *,
        config: LifecycleConfig | None = None,
        sink: EventSink | None = None,
        clock: Callable[[], float] = time.monotonic,
        name: str | None = None,
    ):
        if name:
            self.name = name
        if config is None:
            # Environment and the bound config file, overlaid with agents.<name>
            config = settings.lifecycle_for(self.name)
        self.invoker = invoker
        self.lifecycle = LifecycleManager(
            self.tool,
            invoker,
            config=config,
            sink=sink,
            validate_params=self.validate_params,
            process_result=self.process_result,
            clock=clock,
        )
        self._apply_timeout(config)
        # Tools running behind a registry invoker report progress through us
        set_progress = getattr(invoker, "set_progress_callback", None)
        if callable(set_progress):
            set_progress(self._on_progress)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def validate_params(self, params: dict[str, Any]) -> dict[str, Any]:
        """Check or normalise params before invocation.

        Raise ``ParamsValidationError`` to reject the request.
        """
        return params

    def process_result(self, result: Any, request: ToolRequest) -> Any:
        """Transform a successful result before it is cached and notified."""
        return result

    async def handle_tool_signal(self, signal: Signal) -> bool:
        """Handle agent-specific signals; return True when handled."""
        return False

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    async def handle_signal(self, signal: Signal | dict[str, Any]) -> Any:
        signal = Signal.coerce(signal)
        agent_logger.debug("Signal received", agent=self.name, signal_type=signal.type)

        if signal.type == SignalType.TOOL_REQUEST:
            return await self.request(
                signal.data.get("params"),
                priority=signal.data.get("priority"),
                request_id=signal.data.get("request_id"),
            )
        if signal.type == SignalType.CANCEL_REQUEST:
            request_id = signal.data.get("request_id")
            if not request_id:
                agent_logger.warning("Cancel signal without request_id", agent=self.name)
                return CancelOutcome.NOT_FOUND
            return await self.lifecycle.cancel(str(request_id))
        if signal.type == SignalType.GET_METRICS:
            metrics = self.get_metrics()
            await self.lifecycle.emit(EventFactory.metrics_report(self.tool, metrics))
            return metrics
        if signal.type == SignalType.CLEAR_CACHE:
            cleared = self.lifecycle.clear_cache()
            await self.lifecycle.emit(EventFactory.cache_cleared(self.tool, cleared))
            return cleared

        if not await self.handle_tool_signal(signal):
            agent_logger.warning(
                "Unknown signal type", agent=self.name, signal_type=signal.type
            )
        return None

    async def request(
        self,
        params: dict[str, Any] | None = None,
        *,
        priority: str | None = None,
        request_id: str | None = None,
    ) -> str:
        """Submit a request; malformed submissions end in a ``tool_error``."""
        rid = request_id or generate_request_id(self.tool)
        try:
            return await self.lifecycle.submit(params, priority=priority, request_id=rid)
        except ToolsmithyError as e:
            agent_logger.warning(
                "Rejected malformed request", agent=self.name, request_id=rid, error=str(e)
            )
            await self.lifecycle.emit(
                EventFactory.error(
                    self.tool,
                    rid,
                    str(e),
                    code="invalid_request",
                    error_type=type(e).__name__,
                )
            )
            return rid

    # ------------------------------------------------------------------
    # Management
    # ------------------------------------------------------------------

    def get_metrics(self) -> dict[str, Any]:
        return {"agent": self.name, "tool": self.tool, **self.lifecycle.get_metrics()}

    def set_sink(self, sink: EventSink | None) -> None:
        self.lifecycle.set_sink(sink)

    def reconfigure(self, config: LifecycleConfig) -> None:
        self.lifecycle.reconfigure(config)
        self._apply_timeout(config)

    def _apply_timeout(self, config: LifecycleConfig) -> None:
        if hasattr(self.invoker, "timeout"):
            timeout = config.tool_timeout
            self.invoker.timeout = timeout if timeout and timeout > 0 else None

    async def _on_progress(self, details: dict[str, Any]) -> None:
        await self.lifecycle.report_progress(details)

    async def shutdown(self, timeout: float = 5.0) -> None:
        agent_logger.info("Shutting down agent", agent=self.name)
        await self.lifecycle.shutdown(timeout=timeout)
