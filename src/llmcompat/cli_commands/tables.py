"""``llmcompat tables``: list, show and check mapping tables."""

from __future__ import annotations

from pathlib import Path

import click
from rich.markup import escape

from llmcompat.cli_commands._output import console, fail, print_json, print_table_detail, print_tables_list
from llmcompat.core.errors import CompatibilityError
from llmcompat.core.mapping.models import MappingTable
from llmcompat.core.mapping.store import MappingTableStore, parse_document

_tables_dir_option = click.option(
    "--tables-dir",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Directory searched for tables before the bundled ones.",
)


def _store(tables_dir: str | None) -> MappingTableStore:
    return MappingTableStore.default(Path(tables_dir) if tables_dir else None)


@click.group()
def tables() -> None:
    """Inspect mapping tables."""


@tables.command("list")
@_tables_dir_option
def list_tables(tables_dir: str | None) -> None:
    """List every table the store can find."""
    store = _store(tables_dir)
    names = store.list_names()
    if not names:
        console.print("[yellow]No mapping tables found.[/yellow]")
        return

    entries: dict[str, MappingTable | Exception] = {}
    for name in names:
        try:
            entries[name] = store.load_sync(name)
        except CompatibilityError as exc:
            entries[name] = exc
    print_tables_list(entries)


@tables.command("show")
@click.argument("name")
@_tables_dir_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--reverse", is_flag=True, help="Show the derived reverse table instead.")
def show_table(name: str, tables_dir: str | None, as_json: bool, reverse: bool) -> None:
    """Show the field mappings of table NAME."""
    from llmcompat.core.mapping.reverse import derive_reverse_table

    try:
        table = _store(tables_dir).load_sync(name)
        if reverse:
            table = derive_reverse_table(table)
    except CompatibilityError as exc:
        fail("Error loading table", exc)

    if as_json:
        print_json(table.model_dump(mode="json", by_alias=True, exclude_unset=True))
        return
    print_table_detail(name, table)


@tables.command("check")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
def check_tables(files: tuple[str, ...]) -> None:
    """Validate mapping table FILES (JSON or YAML)."""
    store = MappingTableStore.default()
    failed = 0
    for file in files:
        path = Path(file)
        try:
            fmt = "json" if path.suffix == ".json" else "yaml"
            raw = parse_document(path.read_text(encoding="utf-8"), format=fmt, origin=str(path))
            table = store.validate(path.stem, raw)
        except CompatibilityError as exc:
            failed += 1
            console.print(f"[red]FAIL[/red] {path}: {escape(str(exc))}", soft_wrap=True)
            continue
        console.print(
            f"[green]OK[/green] {path} ({table.formats.source} -> {table.formats.target}, "
            f"{len(table.field_mappings)} fields)",
            soft_wrap=True,
        )

    if failed:
        fail("Check failed", f"{failed} of {len(files)} table(s) invalid")
