"""Shared CLI output formatters."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, NoReturn

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from llmcompat.core.mapping.models import MappingTable  # noqa: TC001

console = Console()
err_console = Console(stderr=True)


def configure_logging(level: int = logging.DEBUG) -> None:
    """Route library logging through a rich handler on stderr."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def fail(prefix: str, exc: BaseException | str) -> NoReturn:
    """Print a red error line and exit with status 1."""
    console.print(f"[red]{prefix}:[/red] {escape(str(exc))}", soft_wrap=True)
    sys.exit(1)


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def print_tables_list(tables: dict[str, MappingTable | Exception]) -> None:
    """Pretty-print available mapping tables as a table."""
    table = Table(title="Mapping Tables")
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Source")
    table.add_column("Target")
    table.add_column("Fields", justify="right")

    for name, entry in tables.items():
        if isinstance(entry, Exception):
            table.add_row(name, "[red]invalid[/red]", "-", "-", "-")
            continue
        table.add_row(
            name,
            entry.version,
            entry.formats.source,
            entry.formats.target,
            str(len(entry.field_mappings)),
        )

    console.print(table)


def print_table_detail(name: str, mapping_table: MappingTable) -> None:
    """Pretty-print the field mappings of one table."""
    console.print(f"\n[bold]{escape(name)}[/bold] v{mapping_table.version}")
    console.print(f"  {escape(_truncate(mapping_table.description))}")
    console.print(f"  {mapping_table.formats.source} -> {mapping_table.formats.target}")

    table = Table(title="Field Mappings")
    table.add_column("Source", style="cyan")
    table.add_column("Target")
    table.add_column("Transform")
    table.add_column("Required")

    for source_field, mapping in mapping_table.normalized().items():
        table.add_row(
            source_field,
            mapping.target_field,
            mapping.transform or "-",
            "yes" if mapping.required else "",
        )
    console.print(table)

    if mapping_table.transform_functions:
        console.print("\n[bold]Transforms:[/bold]")
        for transform_name, definition in mapping_table.transform_functions.items():
            console.print(f"  {transform_name}: {definition.type}")


def print_dispatch(agent_name: str, processing_type: str, candidates: list[str]) -> None:
    console.print(f"Selected agent: [bold cyan]{agent_name}[/bold cyan]")
    console.print(f"  Processing type: {processing_type}")
    console.print(f"  Candidates: {', '.join(candidates)}")


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
