"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from llmcompat.cli_commands.convert import convert
    from llmcompat.cli_commands.dispatch import dispatch
    from llmcompat.cli_commands.tables import tables

    cli.add_command(convert)
    cli.add_command(dispatch)
    cli.add_command(tables)
