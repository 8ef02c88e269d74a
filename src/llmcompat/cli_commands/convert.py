"""``llmcompat convert``: convert a JSON request or response file."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import IO, Any

import click

from llmcompat.cli_commands._output import fail, print_json
from llmcompat.core.errors import CompatibilityError


def read_json(stream: IO[str]) -> Any:
    try:
        return json.load(stream)
    except json.JSONDecodeError as exc:
        fail("Invalid JSON input", exc)


@click.command()
@click.argument("input_file", type=click.File("r"), default="-")
@click.option("--table", "-t", "table_name", default=None, help="Apply this mapping table directly.")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Compatibility module config (YAML/JSON).",
)
@click.option("--response", is_flag=True, help="Convert a vendor response instead of a request (--config only).")
@click.option("--reverse", is_flag=True, help="Apply the derived reverse of --table.")
@click.option(
    "--tables-dir",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Directory searched for tables before the bundled ones.",
)
@click.option("--preserve-unknown", is_flag=True, help="Copy unmapped input fields to the output.")
@click.option("--strict", is_flag=True, help="Fail on input fields the table does not cover.")
def convert(
    input_file: IO[str],
    table_name: str | None,
    config_path: str | None,
    response: bool,
    reverse: bool,
    tables_dir: str | None,
    preserve_unknown: bool,
    strict: bool,
) -> None:
    """Convert the JSON document in INPUT_FILE (default: stdin).

    Use --table to apply one mapping table, or --config to run a configured
    compatibility module (model mapping, agents and validation included).
    """
    if (table_name is None) == (config_path is None):
        fail("Usage error", "pass exactly one of --table or --config")
    if table_name is not None and response:
        fail("Usage error", "--response requires --config")
    if config_path is not None:
        table_only = [
            flag
            for flag, given in (
                ("--reverse", reverse),
                ("--tables-dir", tables_dir is not None),
                ("--preserve-unknown", preserve_unknown),
                ("--strict", strict),
            )
            if given
        ]
        if table_only:
            fail("Usage error", f"{', '.join(table_only)} cannot be combined with --config")

    data = read_json(input_file)

    try:
        if table_name is not None:
            output = _convert_with_table(
                data,
                table_name,
                tables_dir=Path(tables_dir) if tables_dir else None,
                reverse=reverse,
                preserve_unknown=preserve_unknown,
                strict=strict,
            )
        else:
            assert config_path is not None
            output = _convert_with_config(data, Path(config_path), response=response)
    except CompatibilityError as exc:
        fail("Conversion error", exc)

    print_json(output)


def _convert_with_table(
    data: Any,
    table_name: str,
    *,
    tables_dir: Path | None,
    reverse: bool,
    preserve_unknown: bool,
    strict: bool,
) -> dict[str, Any]:
    from llmcompat.core.mapping.applier import ApplyOptions, FieldMappingApplier
    from llmcompat.core.mapping.reverse import derive_reverse_table
    from llmcompat.core.mapping.store import MappingTableStore

    table = MappingTableStore.default(tables_dir).load_sync(table_name)
    if reverse:
        table = derive_reverse_table(table)
    options = ApplyOptions(preserve_unknown_fields=preserve_unknown, strict_mapping=strict)
    return FieldMappingApplier(table).apply(data, options)


def _convert_with_config(data: Any, config_path: Path, *, response: bool) -> dict[str, Any]:
    from llmcompat.compat.config import load_config
    from llmcompat.compat.module import CompatibilityModule

    module = CompatibilityModule(load_config(config_path))
    asyncio.run(module.configure())
    if response:
        return module.convert_response(data)
    return module.convert_request(data)
