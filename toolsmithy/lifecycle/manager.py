"""Request lifecycle for a single tool agent.

A submitted request moves through::

    submitted ──> rate checked ──┬──> rate limited                  (terminal)
                                 ├──> cache hit ──> result          (terminal)
                                 └──> queued ──┬──> cancelled       (terminal)
                                               └──> dispatched ──> result | error | cancelled

Dispatch is strictly sequential: one execution slot per manager. The
invocation runs as a background task; its completion frees the slot, updates
cache and metrics, and immediately dispatches the next queued request.
Every request gets exactly one terminal notification.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from toolsmithy.config.schema import LifecycleConfig
from toolsmithy.core.background_tasks import BackgroundTaskManager
from toolsmithy.domain.errors import (
    DuplicateRequestError,
    InvocationError,
    ParamsValidationError,
    RateLimitedError,
    RequestNotFoundError,
)
from toolsmithy.domain.events import BaseEvent, EventFactory, EventSink
from toolsmithy.tools.invoker import ToolInvoker
from toolsmithy.tools.types import ToolError, ToolOutcome, ToolResult, as_outcome
from toolsmithy.utils.logger import event_log, lifecycle_logger

from .cache import ResultCache
from .metrics import LifecycleMetrics
from .queue import RequestQueue
from .rate_limiter import RateLimiter
from .request import Priority, ToolRequest, derive_cache_key, generate_request_id
from .slot import ActiveRequest, ExecutionSlot

# validate_params(params) -> params; raise ParamsValidationError to reject
ParamsValidator = Callable[[dict[str, Any]], Any]
# process_result(result, request) -> result
ResultProcessor = Callable[[Any, ToolRequest], Any]


class CancelOutcome(str, Enum):
    CANCELLED = "cancelled"  # removed from the queue
    PENDING = "pending"  # in flight; flagged, completes as cancelled
    NOT_FOUND = "not_found"


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class LifecycleManager:
    """Queue, rate limiter, cache and execution slot for one tool."""

    def __init__(
        self,
        tool_name: str,
        invoker: ToolInvoker,
        *,
        config: LifecycleConfig | None = None,
        sink: EventSink | None = None,
        validate_params: ParamsValidator | None = None,
        process_result: ResultProcessor | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.tool_name = tool_name
        self.invoker = invoker
        self.config = config or LifecycleConfig()
        self._sink = sink
        self._validate_params = validate_params
        self._process_result = process_result
        self._clock = clock

        self.rate_limiter = RateLimiter(
            self.config.rate_limit_max, self.config.rate_limit_window
        )
        self.cache = ResultCache(self.config.cache_ttl)
        self.queue = RequestQueue()
        self.slot = ExecutionSlot()
        self.metrics = LifecycleMetrics()
        self._tasks = BackgroundTaskManager(owner=tool_name)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_sink(self, sink: EventSink | None) -> None:
        self._sink = sink

    def reconfigure(self, config: LifecycleConfig) -> None:
        """Apply new limits; existing window history and cache entries are kept."""
        self.config = config
        self.rate_limiter.reconfigure(config.rate_limit_max, config.rate_limit_window)
        self.cache.ttl = config.cache_ttl
        lifecycle_logger.info(
            "Lifecycle reconfigured",
            tool=self.tool_name,
            cache_ttl=config.cache_ttl,
            rate_limit_max=config.rate_limit_max,
            rate_limit_window=config.rate_limit_window,
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def submit(
        self,
        params: dict[str, Any] | None = None,
        priority: Priority | str | None = None,
        request_id: str | None = None,
    ) -> str:
        """Admit, answer from cache, or enqueue a request; returns its id.

        Returns as soon as the request is queued: the outcome arrives later
        through the sink. Malformed submissions raise before any notification
        is emitted: ``ParamsValidationError`` when params is not a mapping,
        ``InvalidPriorityError``, ``CacheKeyError``, or
        ``DuplicateRequestError`` when the id is queued or in flight.
        """
        if params is None:
            params = {}
        elif not isinstance(params, Mapping):
            raise ParamsValidationError(
                f"params must be an object, got {type(params).__name__}"
            )
        params = dict(params)
        prio = Priority.coerce(priority)
        cache_key = derive_cache_key(params)
        rid = request_id or generate_request_id(self.tool_name)
        if rid in self.queue or rid in self.slot:
            raise DuplicateRequestError(rid)
        now = self._clock()

        try:
            self.rate_limiter.acquire(now)
        except RateLimitedError as e:
            self.metrics.record_rate_limited()
            lifecycle_logger.warning(
                "Request rate limited",
                tool=self.tool_name,
                request_id=rid,
                retry_after=e.retry_after,
            )
            await self.emit(
                EventFactory.rate_limited(self.tool_name, rid, e.retry_after)
            )
            return rid

        hit, cached = self.cache.lookup(cache_key, now)
        if hit:
            self.metrics.record_cache_hit()
            lifecycle_logger.debug("Cache hit", tool=self.tool_name, request_id=rid)
            await self.emit(
                EventFactory.result(self.tool_name, rid, cached, from_cache=True)
            )
            return rid

        request = ToolRequest(
            id=rid,
            params=params,
            priority=prio,
            created_at=now,
            cache_key=cache_key,
        )
        self.queue.enqueue(request)
        lifecycle_logger.debug(
            "Request queued",
            tool=self.tool_name,
            request_id=rid,
            priority=prio.value,
            queue_length=len(self.queue),
        )
        self._try_dispatch()
        return rid

    async def cancel(self, request_id: str) -> CancelOutcome:
        """Best-effort cancellation.

        Queued requests are dropped and notified at once. An in-flight request
        is only flagged: the invocation keeps running and its completion is
        reported as ``request_cancelled`` instead of a result or error.
        """
        if self.queue.remove(request_id) is not None:
            lifecycle_logger.info(
                "Queued request cancelled", tool=self.tool_name, request_id=request_id
            )
            await self.emit(
                EventFactory.cancelled(self.tool_name, request_id, "removed from queue")
            )
            return CancelOutcome.CANCELLED

        active = self.slot.get(request_id)
        if active is not None:
            active.cancelled = True
            lifecycle_logger.info(
                "In-flight request flagged for cancellation",
                tool=self.tool_name,
                request_id=request_id,
            )
            return CancelOutcome.PENDING

        lifecycle_logger.debug(
            "Cancel for unknown request ignored",
            tool=self.tool_name,
            request_id=request_id,
        )
        return CancelOutcome.NOT_FOUND

    def get_metrics(self) -> dict[str, Any]:
        return {
            **self.metrics.snapshot(),
            "queue_length": len(self.queue),
            "active_count": len(self.slot),
            "cache_size": len(self.cache),
        }

    def clear_cache(self) -> int:
        cleared = self.cache.clear()
        lifecycle_logger.info("Cache cleared", tool=self.tool_name, entries=cleared)
        return cleared

    async def report_progress(
        self, details: dict[str, Any] | None = None, request_id: str | None = None
    ) -> bool:
        """Emit a progress notification for the in-flight request.

        Without ``request_id`` the request currently holding the slot is used.
        Returns False when nothing matching is running.
        """
        if request_id is None:
            active = next(iter(self.slot), None)
        else:
            active = self.slot.get(request_id)
        if active is None:
            return False
        await self.emit(EventFactory.progress(self.tool_name, active.id, details))
        return True

    @property
    def queue_length(self) -> int:
        return len(self.queue)

    @property
    def active_count(self) -> int:
        return len(self.slot)

    @property
    def is_idle(self) -> bool:
        return self.slot.is_free and not self.queue

    def request_status(self, request_id: str) -> str:
        """Return ``"queued"`` or ``"in_flight"``.

        Raises:
            RequestNotFoundError: the request is unknown or already finished.
        """
        if request_id in self.queue:
            return "queued"
        if request_id in self.slot:
            return "in_flight"
        raise RequestNotFoundError(request_id)

    async def join(self) -> None:
        """Wait until the queue is drained and nothing is in flight."""
        await self._tasks.join()

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Stop accepting work from the queue and settle outstanding requests.

        In-flight invocations get ``timeout`` seconds to finish. Whatever is
        left (queued or stuck in the slot) is notified as cancelled.
        """
        pending = self.queue.drain()
        for request in pending:
            await self.emit(
                EventFactory.cancelled(self.tool_name, request.id, "shutdown")
            )
        await self._tasks.shutdown(timeout=timeout)
        for active in self.slot:
            # Cancelled before the execution coroutine could report back
            self.slot.release(active.id)
            await self.emit(
                EventFactory.cancelled(self.tool_name, active.id, "shutdown")
            )
        lifecycle_logger.info(
            "Lifecycle shut down", tool=self.tool_name, dropped=len(pending)
        )

    # ------------------------------------------------------------------
    # Dispatch and completion
    # ------------------------------------------------------------------

    def _try_dispatch(self) -> bool:
        """Start the next queued request if the slot is free."""
        if not self.slot.is_free:
            return False
        request = self.queue.dequeue()
        if request is None:
            return False
        active = self.slot.occupy(request, self._clock())
        self._tasks.create_task(
            self._execute(active), name=f"{self.tool_name}:{request.id}"
        )
        lifecycle_logger.debug(
            "Request dispatched",
            tool=self.tool_name,
            request_id=request.id,
            waited_seconds=round(active.started_at - request.created_at, 3),
        )
        return True

    async def _execute(self, active: ActiveRequest) -> None:
        request = active.request
        try:
            await self.emit(EventFactory.started(self.tool_name, request.id))
            outcome = await self._invoke(request)
        except asyncio.CancelledError:
            if self.slot.release(request.id) is not None:
                await asyncio.shield(
                    self.emit(
                        EventFactory.cancelled(self.tool_name, request.id, "shutdown")
                    )
                )
            raise
        except Exception as exc:
            lifecycle_logger.error(
                "Request execution failed",
                tool=self.tool_name,
                request_id=request.id,
                error=str(exc),
                exc_info=True,
            )
            outcome = ToolError.from_exception(self.tool_name, exc)
        elapsed_ms = (self._clock() - active.started_at) * 1000.0
        await self._complete(active, outcome, elapsed_ms)

    async def _invoke(self, request: ToolRequest) -> ToolOutcome:
        """Validate, invoke and post-process; never raises for tool faults."""
        params: Any = request.params
        if self._validate_params is not None:
            try:
                validated = await _maybe_await(self._validate_params(request.params))
            except Exception as exc:
                reason = exc.reason if isinstance(exc, ParamsValidationError) else str(exc)
                return ToolError(
                    name=self.tool_name,
                    code="validation",
                    error=f"Validation failed: {reason}",
                    error_type=type(exc).__name__,
                )
            if validated is not None:
                params = validated

        try:
            raw = await self.invoker.execute(self.tool_name, params)
        except InvocationError as exc:
            lifecycle_logger.warning(
                "Tool reported failure",
                tool=self.tool_name,
                request_id=request.id,
                code=exc.code,
                error=exc.reason,
            )
            return ToolError(
                name=self.tool_name,
                code=exc.code,
                error=exc.reason,
                error_type=type(exc).__name__,
            )
        except Exception as exc:
            lifecycle_logger.error(
                "Tool invocation raised",
                tool=self.tool_name,
                request_id=request.id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return ToolError.from_exception(self.tool_name, exc)

        try:
            outcome = as_outcome(self.tool_name, raw)
        except Exception as exc:
            lifecycle_logger.error(
                "Tool returned a malformed outcome",
                tool=self.tool_name,
                request_id=request.id,
                error=str(exc),
            )
            return ToolError.from_exception(self.tool_name, exc, code="invalid_result")
        if isinstance(outcome, ToolError) or self._process_result is None:
            return outcome

        try:
            processed = await _maybe_await(
                self._process_result(outcome.payload, request)
            )
        except Exception as exc:
            lifecycle_logger.error(
                "Result processing failed",
                tool=self.tool_name,
                request_id=request.id,
                error=str(exc),
            )
            return ToolError.from_exception(
                self.tool_name, exc, code="result_processing"
            )
        return outcome.model_copy(update={"payload": processed})

    async def _complete(
        self, active: ActiveRequest, outcome: ToolOutcome, elapsed_ms: float
    ) -> None:
        request = active.request
        self.slot.release(request.id)

        event: BaseEvent
        if isinstance(outcome, ToolResult):
            self.cache.put(request.cache_key, outcome.payload, self._clock())
            self.metrics.record_success(elapsed_ms)
            event = EventFactory.result(
                self.tool_name,
                request.id,
                outcome.payload,
                execution_time=round(elapsed_ms, 3),
            )
            lifecycle_logger.info(
                "Request completed",
                tool=self.tool_name,
                request_id=request.id,
                execution_time_ms=round(elapsed_ms, 3),
            )
        else:
            self.metrics.record_failure()
            event = EventFactory.error(
                self.tool_name,
                request.id,
                outcome.error,
                code=outcome.code,
                error_type=outcome.error_type,
            )
            lifecycle_logger.warning(
                "Request failed",
                tool=self.tool_name,
                request_id=request.id,
                code=outcome.code,
                error=outcome.error,
            )

        if active.cancelled:
            event = EventFactory.cancelled(
                self.tool_name, request.id, "cancelled while running"
            )

        self._try_dispatch()
        await self.emit(event)

    async def emit(self, event: BaseEvent) -> None:
        """Deliver a notification to the sink; sink failures are logged only."""
        payload = event.to_dict()
        event_log(lifecycle_logger, payload.get("type", "unknown"), event.request_id)
        if self._sink is None:
            return
        try:
            await self._sink(payload)
        except Exception as e:
            lifecycle_logger.error(
                "Failed to emit event",
                tool=self.tool_name,
                event_type=payload.get("type"),
                error=str(e),
            )
