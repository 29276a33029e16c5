from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from toolsmithy.utils.logger import tool_logger

from .base_tool import BaseTool, ProgressCallback
from .types import ToolError, ToolOutcome, as_outcome


def _tool_name(tool: BaseTool) -> str:
    """Name a tool is registered under.

    Falls back to the class-level pydantic default, then the class name.
    """
    name = getattr(tool, "name", None)
    if isinstance(name, str) and name:
        return name
    field_info = getattr(type(tool), "model_fields", {}).get("name")
    return getattr(field_info, "default", None) or type(tool).__name__.lower()


def _payload_size(outcome: ToolOutcome) -> int | None:
    try:
        return len(json.dumps(outcome.model_dump(mode="json"), ensure_ascii=False).encode("utf-8"))
    except (TypeError, ValueError):
        return None


class ToolRegistry:
    """Tools by name, plus ``run_tool``, which reports every fault as a value.

    Unknown tools, argument validation failures and exceptions raised by the
    tool all come back as ``ToolError``; ``run_tool`` itself does not raise.
    """

    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}

    def register(self, tool: BaseTool) -> None:
        name = _tool_name(tool)
        tool.name = name
        self._tools[name] = tool
        tool_logger.debug("Tool registered", tool=name)

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def unregister(self, name: str) -> bool:
        """Remove a tool; False when it was not registered."""
        return self._tools.pop(name, None) is not None

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> list[BaseTool]:
        return list(self._tools.values())

    async def run_tool(
        self,
        name: str,
        progress: ProgressCallback | None = None,
        **kwargs: Any,
    ) -> ToolOutcome:
        tool = self.get(name)
        if tool is None:
            return ToolError(
                name=name,
                code="not_found",
                error=f"Tool not found: {name}",
                error_type="ToolNotFoundError",
            )
        tool_logger.info("Tool call", tool=name, args=kwargs)

        schema = getattr(tool, "args_schema", None)
        args = kwargs
        if isinstance(schema, type):
            try:
                args = schema(**kwargs).model_dump()
            except ValidationError as ve:
                return ToolError.from_exception(name, ve, code="args_validation")

        # Progress is scoped to this call only
        tool.set_progress_callback(progress)
        try:
            result = await tool.arun(tool_input=args)
        except Exception as e:
            tool_logger.error(
                "Tool raised",
                tool=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ToolError.from_exception(name, e)
        finally:
            tool.set_progress_callback(None)

        outcome = as_outcome(name, result)
        tool_logger.info(
            "Tool finished",
            tool=name,
            ok=not isinstance(outcome, ToolError),
            size_bytes=_payload_size(outcome),
        )
        return outcome
