"""Shared pytest fixtures for all tests."""

import asyncio
from typing import Any

import pytest
from pydantic import BaseModel, Field

from toolsmithy.config.schema import LifecycleConfig
from toolsmithy.lifecycle.manager import LifecycleManager
from toolsmithy.tools.base_tool import BaseTool
from toolsmithy.tools.types import ToolError


class ManualClock:
    """Monotonic clock that only moves when a test advances it."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSink:
    """Notification sink that keeps every event it receives."""

    def __init__(self):
        self.events: list[dict[str, Any]] = []

    async def __call__(self, event: dict[str, Any]) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e["type"] == event_type]

    def for_request(self, request_id: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e.get("request_id") == request_id]

    def terminal_for(self, request_id: str) -> list[dict[str, Any]]:
        terminal = {"tool_result", "tool_error", "tool_rate_limited", "request_cancelled"}
        return [e for e in self.for_request(request_id) if e["type"] in terminal]


class GatedInvoker:
    """ToolInvoker whose calls block until the gate is opened.

    ``results`` maps a params key to a value, a ``ToolError`` or an exception
    to raise; anything else echoes the params back.
    """

    def __init__(self, clock: ManualClock | None = None, step: float = 0.0):
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()
        self.calls: list[dict[str, Any]] = []
        self.results: dict[str, Any] = {}
        self._clock = clock
        self._step = step

    def open(self) -> None:
        self.gate.set()

    async def execute(self, tool_id: str, params: dict[str, Any]) -> Any:
        self.calls.append(params)
        self.entered.set()
        await self.gate.wait()
        if self._clock is not None:
            self._clock.advance(self._step)
        outcome = self.results.get(params.get("key"), {"echo": params})
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def wait_entered(self) -> None:
        await asyncio.wait_for(self.entered.wait(), timeout=1.0)
        self.entered.clear()


class EchoArgs(BaseModel):
    text: str = Field(..., description="Text to echo back")
    repeat: int = Field(1, ge=1)


class EchoTool(BaseTool):
    name: str = "echo"
    description: str = "Echo text back, optionally repeated"
    args_schema: type[BaseModel] | dict[str, Any] | None = EchoArgs

    async def _arun(self, **kwargs: Any) -> dict[str, Any]:
        await self.report_progress(stage="echoing")
        return {"text": kwargs["text"] * kwargs["repeat"]}


class FailingTool(BaseTool):
    name: str = "failing"
    description: str = "Always raises"

    async def _arun(self, **kwargs: Any) -> Any:
        raise RuntimeError("boom")


class SlowTool(BaseTool):
    name: str = "slow"
    description: str = "Sleeps longer than any sensible timeout"

    async def _arun(self, **kwargs: Any) -> Any:
        await asyncio.sleep(10)
        return "late"


class SoftErrorTool(BaseTool):
    name: str = "soft_error"
    description: str = "Returns an error dict instead of raising"

    async def _arun(self, **kwargs: Any) -> Any:
        return ToolError(name=self.name, code="no_match", error="nothing found").model_dump()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def invoker(clock):
    return GatedInvoker(clock=clock, step=0.25)


@pytest.fixture
def make_manager(invoker, sink, clock):
    """Build a LifecycleManager wired to the shared clock, sink and invoker."""

    def _make(**overrides: Any) -> LifecycleManager:
        config_fields = {
            k: overrides.pop(k)
            for k in ("cache_ttl", "rate_limit_window", "rate_limit_max", "tool_timeout")
            if k in overrides
        }
        return LifecycleManager(
            overrides.pop("tool_name", "search"),
            overrides.pop("invoker", invoker),
            config=LifecycleConfig(**config_fields),
            sink=overrides.pop("sink", sink),
            clock=clock,
            **overrides,
        )

    return _make
