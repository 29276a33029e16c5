from .base_tool import BaseTool, ProgressCallback
from .invoker import CallableToolInvoker, RegistryToolInvoker, ToolInvoker
from .registry import ToolRegistry
from .types import ToolError, ToolOutcome, ToolResult, as_outcome

__all__ = [
    "BaseTool",
    "CallableToolInvoker",
    "ProgressCallback",
    "RegistryToolInvoker",
    "ToolError",
    "ToolInvoker",
    "ToolOutcome",
    "ToolRegistry",
    "ToolResult",
    "as_outcome",
]
