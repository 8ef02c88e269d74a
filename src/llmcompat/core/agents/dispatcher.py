"""AgentDispatcher: fixed-priority, first-match agent selection.

Pure logic, no I/O. The dispatcher walks the specialised agents in priority
order (``image > code > tool``), returns the first whose ``classify`` matches,
and otherwise falls back to the configured default agent.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from llmcompat.core.agents.base import Agent, ConvertFn
from llmcompat.core.agents.handlers import BUILTIN_AGENTS
from llmcompat.core.agents.models import AgentConfig
from llmcompat.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class AgentDispatcher:
    """Select one agent per request and run it."""

    def __init__(self, agents: Sequence[Agent], fallback: Agent) -> None:
        self._agents = [agent for agent in agents if agent is not fallback]
        self._fallback = fallback

    @classmethod
    def from_config(cls, config: AgentConfig | None = None) -> AgentDispatcher:
        """Build the built-in registry filtered by the enable flags.

        Raises:
            ConfigurationError: If ``default_agent`` is not an enabled agent.
        """
        config = config or AgentConfig()
        enabled = {name: BUILTIN_AGENTS[name]() for name in config.enabled_names()}
        fallback = enabled.get(config.default_agent)
        if fallback is None:
            raise ConfigurationError(
                f"default agent {config.default_agent!r} is not enabled "
                f"(available: {', '.join(enabled)})"
            )
        specialised = [agent for name, agent in enabled.items() if name != "general"]
        logger.info("Agents initialized: %s (default: %s)", ", ".join(enabled), fallback.name)
        return cls(specialised, fallback)

    @property
    def agents(self) -> list[Agent]:
        """Every registered agent, in priority order, ending with the fallback."""
        return [*self._agents, self._fallback]

    @property
    def agent_names(self) -> list[str]:
        return [agent.name for agent in self.agents]

    @property
    def fallback(self) -> Agent:
        return self._fallback

    def select(self, request: Mapping[str, Any]) -> Agent:
        """Return the first agent whose ``classify`` matches, else the fallback."""
        for agent in self._agents:
            if agent.classify(request):
                return agent
        return self._fallback

    def dispatch(self, request: Mapping[str, Any], convert: ConvertFn) -> dict[str, Any]:
        """Select an agent for *request* and let it convert the request."""
        agent = self.select(request)
        logger.debug("Selected agent %s", agent.name)
        return agent.handle(request, convert)
