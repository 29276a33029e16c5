from .base_tool_agent import BaseToolAgent
from .pool import AgentPool

__all__ = ["AgentPool", "BaseToolAgent"]
