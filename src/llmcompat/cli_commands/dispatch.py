"""``llmcompat dispatch``: show which agent would handle a request."""

from __future__ import annotations

from typing import IO

import click

from llmcompat.cli_commands._output import fail, print_dispatch, print_json
from llmcompat.cli_commands.convert import read_json
from llmcompat.core.errors import CompatibilityError


@click.command()
@click.argument("input_file", type=click.File("r"), default="-")
@click.option(
    "--agent",
    "agents",
    multiple=True,
    type=click.Choice(["image", "code", "tool"]),
    help="Enable a specialised agent (repeatable). Defaults to all three.",
)
@click.option("--default-agent", default="general", show_default=True, help="Fallback agent name.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def dispatch(input_file: IO[str], agents: tuple[str, ...], default_agent: str, as_json: bool) -> None:
    """Classify the chat request in INPUT_FILE (default: stdin)."""
    from llmcompat.core.agents import AgentConfig, AgentDispatcher

    enabled = set(agents) or {"image", "code", "tool"}
    config = AgentConfig(
        enable_image_agent="image" in enabled,
        enable_code_agent="code" in enabled,
        enable_tool_agent="tool" in enabled,
        default_agent=default_agent,
    )

    try:
        dispatcher = AgentDispatcher.from_config(config)
    except CompatibilityError as exc:
        fail("Configuration error", exc)

    request = read_json(input_file)
    if not isinstance(request, dict):
        fail("Invalid request", "expected a JSON object")

    agent = dispatcher.select(request)
    if as_json:
        print_json(
            {
                "agent": agent.name,
                "processingType": agent.processing_type,
                "candidates": dispatcher.agent_names,
                "tools": sorted(agent.tools),
            }
        )
        return
    print_dispatch(agent.name, agent.processing_type, dispatcher.agent_names)
