"""Compatibility module configuration and its YAML/JSON loader.

Configuration documents use the camelCase keys of the gateway config
(``mappingTable``, ``agentConfig.enableImageAgent`` ...); snake_case names are
accepted too.
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from llmcompat.core.agents.models import AgentConfig
from llmcompat.core.errors import ConfigurationError
from llmcompat.core.mapping.models import FieldValidation, JsonType, ValidationRules

CANONICAL_DIRECTIONS = ("a-to-b", "b-to-a", "bidirectional")

_DIRECTION_RE = re.compile(r"^(?P<source>[A-Za-z0-9_.]+)-to-(?P<target>[A-Za-z0-9_.]+)$")


class _ConfigModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ValidationSettings(_ConfigModel):
    """Rules checked against converted output when ``enabled``."""

    enabled: bool = False
    required: list[str] = Field(default_factory=list)
    types: dict[str, JsonType] = Field(default_factory=dict)
    constraints: dict[str, FieldValidation] = Field(default_factory=dict)

    def as_rules(self) -> ValidationRules:
        return ValidationRules(required=self.required, types=self.types, constraints=self.constraints)


class ModelMapping(_ConfigModel):
    """Model-name substitutions applied after table mapping."""

    request: dict[str, str] = Field(default_factory=dict)
    response: dict[str, str] = Field(default_factory=dict)


class CompatibilityConfig(_ConfigModel):
    """Configuration surface of one compatibility module instance."""

    mapping_table: str = Field(min_length=1)
    response_mapping_table: str | None = None
    direction: str = "a-to-b"
    strict_mapping: bool = False
    preserve_unknown_fields: bool = False
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    enable_agents: bool = False
    agent_config: AgentConfig = Field(default_factory=AgentConfig)
    model_mapping: ModelMapping = Field(default_factory=ModelMapping)
    tables_dir: Path | None = None
    tables_url: str | None = None
    inline_tables: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @field_validator("direction")
    @classmethod
    def _check_direction(cls, value: str) -> str:
        if value in CANONICAL_DIRECTIONS or _DIRECTION_RE.match(value):
            return value
        msg = f"direction must be one of {', '.join(CANONICAL_DIRECTIONS)} or '<source>-to-<target>', got {value!r}"
        raise ValueError(msg)


def resolve_direction(direction: str, source_format: str, target_format: str) -> str:
    """Normalise *direction* to ``a-to-b``, ``b-to-a`` or ``bidirectional``.

    ``<source>-to-<target>`` spellings are matched against the forward
    table's formats, so ``openai-to-qwen`` is ``a-to-b`` for an
    openai -> qwen table.

    Raises:
        ConfigurationError: If a named direction matches neither orientation.
    """
    if direction in CANONICAL_DIRECTIONS:
        return direction
    if direction == f"{source_format}-to-{target_format}":
        return "a-to-b"
    if direction == f"{target_format}-to-{source_format}":
        return "b-to-a"
    raise ConfigurationError(
        f"direction {direction!r} does not match mapping table formats {source_format} -> {target_format}"
    )


def load_config(path: Path) -> CompatibilityConfig:
    """Read a YAML or JSON config file, interpolate env vars, and validate.

    Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
    using :func:`os.path.expandvars` before parsing.

    Raises:
        ConfigurationError: On read, parse or schema validation failures.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"cannot read {path}: {exc}") from exc

    expanded = os.path.expandvars(raw)

    try:
        data: Any = json.loads(expanded) if path.suffix == ".json" else yaml.safe_load(expanded)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"cannot parse {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")

    try:
        config = CompatibilityConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc

    if config.tables_dir is not None and not config.tables_dir.is_absolute():
        config = config.model_copy(update={"tables_dir": path.parent / config.tables_dir})
    return config
