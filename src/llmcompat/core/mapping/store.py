"""Mapping Table Store: load named tables from files, inline config, or HTTP.

Typical usage::

    store = MappingTableStore.default()
    table = await store.load("openai-to-qwen")

A load is a single point-in-time read; tables are never watched or reloaded.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol

import httpx
import yaml
from pydantic import ValidationError

from llmcompat.core.errors import ConfigurationError
from llmcompat.core.mapping.functions import FunctionRegistry, get_default_registry
from llmcompat.core.mapping.models import MappingTable

logger = logging.getLogger(__name__)

BUNDLED_TABLES_DIR = Path(__file__).resolve().parent.parent.parent / "tables"

_SUFFIXES = (".json", ".yaml", ".yml")


class TableSource(Protocol):
    """Somewhere raw mapping-table documents can be fetched from."""

    async def fetch(self, name: str) -> dict[str, Any] | None:
        """Return the raw document for *name*, or ``None`` if not found here."""
        ...

    def names(self) -> list[str]:
        """Return the table names this source can enumerate (may be empty)."""
        ...


def parse_document(raw: str, *, format: str = "json", origin: str = "<inline>") -> dict[str, Any]:
    """Parse a JSON or YAML table document into a dict.

    Raises:
        ConfigurationError: On parse errors or a non-mapping document.
    """
    try:
        data: Any = json.loads(raw) if format == "json" else yaml.safe_load(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"cannot parse mapping table {origin}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"mapping table {origin} must be an object")
    return data


class DirectorySource:
    """Tables stored as ``<name>.json`` / ``<name>.yaml`` files in a directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    async def fetch(self, name: str) -> dict[str, Any] | None:
        for suffix in _SUFFIXES:
            path = self.directory / f"{name}{suffix}"
            if path.is_file():
                logger.debug("Loading mapping table from file: %s", path)
                try:
                    raw = path.read_text(encoding="utf-8")
                except OSError as exc:
                    raise ConfigurationError(f"cannot read {path}: {exc}") from exc
                fmt = "json" if suffix == ".json" else "yaml"
                return parse_document(raw, format=fmt, origin=str(path))
        return None

    def names(self) -> list[str]:
        if not self.directory.is_dir():
            return []
        return sorted({p.stem for p in self.directory.iterdir() if p.suffix in _SUFFIXES})


class InlineSource:
    """Tables embedded directly in the module configuration."""

    def __init__(self, tables: dict[str, dict[str, Any]]) -> None:
        self._tables = dict(tables)

    async def fetch(self, name: str) -> dict[str, Any] | None:
        return self._tables.get(name)

    def names(self) -> list[str]:
        return sorted(self._tables)


class HttpSource:
    """Tables served as ``{base_url}/{name}.json`` by a remote store."""

    def __init__(self, base_url: str, *, client: httpx.AsyncClient | None = None, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._timeout = timeout

    async def fetch(self, name: str) -> dict[str, Any] | None:
        url = f"{self.base_url}/{name}.json"
        logger.debug("Fetching mapping table from %s", url)
        try:
            if self._client is not None:
                response = await self._client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url)
        except httpx.HTTPError as exc:
            raise ConfigurationError(f"cannot fetch mapping table {url}: {exc}") from exc

        if response.status_code == 404:
            return None
        if response.is_error:
            raise ConfigurationError(f"cannot fetch mapping table {url}: HTTP {response.status_code}")
        return parse_document(response.text, format="json", origin=url)

    def names(self) -> list[str]:
        return []


class MappingTableStore:
    """Resolve table names against an ordered list of sources."""

    def __init__(
        self,
        sources: list[TableSource],
        *,
        registry: FunctionRegistry | None = None,
    ) -> None:
        self._sources = list(sources)
        self._registry = registry or get_default_registry()

    @classmethod
    def default(
        cls,
        tables_dir: Path | None = None,
        registry: FunctionRegistry | None = None,
    ) -> MappingTableStore:
        """A store backed by the bundled tables, with *tables_dir* searched first."""
        sources: list[TableSource] = []
        if tables_dir is not None:
            sources.append(DirectorySource(tables_dir))
        sources.append(DirectorySource(BUNDLED_TABLES_DIR))
        return cls(sources, registry=registry)

    @property
    def sources(self) -> list[TableSource]:
        return list(self._sources)

    async def load(self, name: str) -> MappingTable:
        """Load and validate table *name* from the first source that has it.

        Raises:
            ConfigurationError: If no source has the table, or it is malformed.
        """
        for source in self._sources:
            raw = await source.fetch(name)
            if raw is not None:
                table = self.validate(name, raw)
                logger.info(
                    "Mapping table loaded: %s (version %s, %s -> %s, %d fields)",
                    name,
                    table.version,
                    table.formats.source,
                    table.formats.target,
                    len(table.field_mappings),
                )
                return table
        raise ConfigurationError(f"mapping table not found: {name}")

    def load_sync(self, name: str) -> MappingTable:
        """Blocking :meth:`load` for callers without an event loop."""
        return asyncio.run(self.load(name))

    def list_names(self) -> list[str]:
        """All table names the sources can enumerate."""
        found: set[str] = set()
        for source in self._sources:
            found.update(source.names())
        return sorted(found)

    def validate(self, name: str, raw: dict[str, Any]) -> MappingTable:
        """Validate a raw document as table *name*.

        Raises:
            ConfigurationError: On structural problems or unknown function/rule names.
        """
        try:
            table = MappingTable.model_validate(raw)
        except ValidationError as exc:
            raise ConfigurationError(f"mapping table {name} is invalid: {_summarize(exc)}") from exc

        missing = sorted(f for f in table.referenced_functions() if not self._registry.has_function(f))
        if missing:
            raise ConfigurationError(f"mapping table {name} references unknown function(s): {', '.join(missing)}")
        missing = sorted(r for r in table.referenced_rules() if not self._registry.has_rule(r))
        if missing:
            raise ConfigurationError(
                f"mapping table {name} references unknown validation rule(s): {', '.join(missing)}"
            )
        return table


def _summarize(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error["loc"]) or "<root>"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)
