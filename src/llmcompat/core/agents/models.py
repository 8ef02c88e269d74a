"""Pydantic models for agent dispatch configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

AGENT_PRIORITY = ("image", "code", "tool", "general")


class AgentConfig(BaseModel):
    """Which specialised agents are enabled, and which one catches the rest.

    The ``general`` agent is always registered; ``default_agent`` must name
    an enabled agent.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enable_image_agent: bool = False
    enable_code_agent: bool = False
    enable_tool_agent: bool = False
    default_agent: str = "general"

    def enabled_names(self) -> list[str]:
        """Enabled agent names in dispatch priority order."""
        flags = {
            "image": self.enable_image_agent,
            "code": self.enable_code_agent,
            "tool": self.enable_tool_agent,
            "general": True,
        }
        return [name for name in AGENT_PRIORITY if flags[name]]
