"""Content-based agent dispatch for agent-oriented providers."""

from llmcompat.core.agents.base import Agent, ConvertFn
from llmcompat.core.agents.dispatcher import AgentDispatcher
from llmcompat.core.agents.handlers import (
    BUILTIN_AGENTS,
    CodeAgent,
    GeneralAgent,
    ImageAgent,
    ToolAgent,
)
from llmcompat.core.agents.models import AGENT_PRIORITY, AgentConfig

__all__ = [
    "AGENT_PRIORITY",
    "BUILTIN_AGENTS",
    "Agent",
    "AgentConfig",
    "AgentDispatcher",
    "CodeAgent",
    "ConvertFn",
    "GeneralAgent",
    "ImageAgent",
    "ToolAgent",
]
