"""Registry of independent tool agents.

Each agent keeps its own limiter, cache, queue and slot; the pool only routes
signals by agent name and pushes configuration changes down to the agents.
"""

from __future__ import annotations

import asyncio
from typing import Any

from toolsmithy.config.manager import ConfigManager
from toolsmithy.config.schema import AppConfig, validate_config
from toolsmithy.domain.errors import AgentNotFoundError
from toolsmithy.domain.events import EventSink
from toolsmithy.domain.signals import Signal
from toolsmithy.utils.logger import agent_logger

from .base_tool_agent import BaseToolAgent


class AgentPool:
    def __init__(self, sink: EventSink | None = None) -> None:
        self._agents: dict[str, BaseToolAgent] = {}
        self._sink = sink
        self._config: AppConfig | None = None

    def register(self, agent: BaseToolAgent) -> None:
        """Add an agent; the pool sink and any loaded config are applied to it."""
        if self._sink is not None:
            agent.set_sink(self._sink)
        if self._config is not None:
            agent.reconfigure(self._config.lifecycle_for(agent.name))
        self._agents[agent.name] = agent
        agent_logger.info("Agent registered", agent=agent.name, tool=agent.tool)

    def get(self, name: str) -> BaseToolAgent:
        agent = self._agents.get(name)
        if agent is None:
            raise AgentNotFoundError(name, list(self._agents))
        return agent

    def unregister(self, name: str) -> BaseToolAgent | None:
        return self._agents.pop(name, None)

    def names(self) -> list[str]:
        return list(self._agents)

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, name: object) -> bool:
        return name in self._agents

    async def route(self, agent_name: str, signal: Signal | dict[str, Any]) -> Any:
        return await self.get(agent_name).handle_signal(signal)

    def apply_config(self, config: dict[str, Any] | AppConfig) -> None:
        """Reconfigure every agent from a full configuration dict.

        Raises:
            ConfigValidationError: when the configuration is invalid; agents
                keep their current limits.
        """
        if isinstance(config, AppConfig):
            app_config = config
        else:
            app_config = AppConfig.model_validate(validate_config(config))

        self._config = app_config
        for name, agent in self._agents.items():
            agent.reconfigure(app_config.lifecycle_for(name))
        agent_logger.info("Agent limits applied", agents=sorted(self._agents))

    def attach(self, config_manager: ConfigManager) -> None:
        """Follow a config manager: apply its config now and on every change."""
        if config_manager.loaded:
            self.apply_config(config_manager.get_all())
        config_manager.register_change_callback(self.apply_config)

    async def shutdown(self, timeout: float = 5.0) -> None:
        await asyncio.gather(
            *(agent.shutdown(timeout=timeout) for agent in self._agents.values())
        )
