from __future__ import annotations

from abc import ABC
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from langchain_core.callbacks.base import BaseCallbackHandler
from langchain_core.callbacks.manager import BaseCallbackManager
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool as LCBaseTool

# Signature: async def callback(details: dict[str, Any]) -> None
ProgressCallback = Callable[[dict[str, Any]], Awaitable[None]]


class BaseTool(LCBaseTool, ABC):
    """Base class for tools executed by tool agents.

    Tools receive validated arguments and may report intermediate progress
    through the callback installed by the registry. Subclasses implement
    ``_arun``.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        # Plain attribute, not a pydantic field
        self._progress_callback: ProgressCallback | None = None

    def set_progress_callback(self, callback: ProgressCallback | None) -> None:
        self._progress_callback = callback

    async def report_progress(self, **details: Any) -> None:
        """Forward ``details`` to the current caller; a no-op outside a registry call."""
        if self._progress_callback is not None:
            await self._progress_callback(details)

    # Same parameters as LangChain's arun; only tool_input and kwargs are used
    async def arun(
        self,
        tool_input: str | dict[Any, Any],
        verbose: bool | None = None,
        start_color: str | None = None,
        color: str | None = None,
        callbacks: list[BaseCallbackHandler] | BaseCallbackManager | None = None,
        *,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
        run_name: str | None = None,
        run_id: UUID | None = None,
        config: RunnableConfig | None = None,
        tool_call_id: str | None = None,
        **kwargs: Any,
    ) -> Any:
        if not isinstance(tool_input, dict):
            raise TypeError(f"{self.name} expects a dict of arguments, got {type(tool_input).__name__}")
        return await self._arun(**{**tool_input, **kwargs})

    def _run(self, *args: Any, **kwargs: Any) -> Any:  # pragma: no cover
        raise NotImplementedError(
            f"{type(self).__name__} is async-only; call arun() instead"
        )
