"""CompatibilityModule: the collaborator interface the gateway pipeline calls.

One instance owns a configuration, the tables it names, and (optionally) an
agent dispatcher. Tables are loaded once by :meth:`CompatibilityModule.configure`;
after that every conversion is synchronous and side-effect free.

Usage::

    module = CompatibilityModule(CompatibilityConfig(mapping_table="openai-to-qwen", direction="bidirectional"))
    await module.configure()
    qwen_request = module.convert_request(openai_request)
    openai_response = module.convert_response(qwen_response)
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from llmcompat.compat.config import CompatibilityConfig, resolve_direction
from llmcompat.core.agents.dispatcher import AgentDispatcher
from llmcompat.core.errors import ConfigurationError, ValidationFailed
from llmcompat.core.mapping.applier import ApplyOptions, FieldMappingApplier
from llmcompat.core.mapping.functions import FunctionRegistry, get_default_registry
from llmcompat.core.mapping.models import MappingTable, ValidationResult
from llmcompat.core.mapping.paths import json_type
from llmcompat.core.mapping.reverse import derive_reverse_table
from llmcompat.core.mapping.store import (
    BUNDLED_TABLES_DIR,
    DirectorySource,
    HttpSource,
    InlineSource,
    MappingTableStore,
    TableSource,
)
from llmcompat.core.mapping.validation import ValidationEngine, check_chat_request
from llmcompat.utils.telemetry import (
    ATTR_AGENT,
    ATTR_DIRECTION,
    ATTR_FIELD_COUNT,
    ATTR_MAPPING_TABLE,
    ATTR_MODEL,
    ATTR_PROVIDER,
    ATTR_REQUEST_ID,
    ATTR_SOURCE_FORMAT,
    ATTR_TABLE_VERSION,
    ATTR_TARGET_FORMAT,
    ATTR_WARNING_COUNT,
    get_tracer,
)

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

OPENAI_FORMAT = "openai"


class _InfoModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConversionContext(_InfoModel):
    """Per-request identifiers carried into logs and spans."""

    request_id: str = Field(default_factory=lambda: uuid4().hex[:12])
    provider: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class FieldMappingInfo(_InfoModel):
    """One field mapping, described for introspection."""

    source_field: str
    target_field: str
    direction: str
    type: str
    transform: str | None = None
    required: bool = False


class CompatibilityInfo(_InfoModel):
    direction: str
    mapping_table: str
    response_mapping_table: str | None = None
    strict_mapping: bool = False
    model_mappings: dict[str, str] = Field(default_factory=dict)
    supported_conversions: list[str] = Field(default_factory=list)
    agent_enabled: bool = False
    available_agents: list[str] = Field(default_factory=list)


class CompatibilityModule:
    """Convert requests and responses between two wire formats."""

    def __init__(
        self,
        config: CompatibilityConfig,
        store: MappingTableStore | None = None,
        registry: FunctionRegistry | None = None,
    ) -> None:
        self._config = config
        self._registry = registry or get_default_registry()
        self._store = store or MappingTableStore(self._default_sources(config), registry=self._registry)
        self._validator = ValidationEngine()
        self._options = ApplyOptions(
            preserve_unknown_fields=config.preserve_unknown_fields,
            strict_mapping=config.strict_mapping,
        )
        self._lock = asyncio.Lock()
        self._configured = False
        self._direction: str | None = None
        self._request_applier: FieldMappingApplier | None = None
        self._response_applier: FieldMappingApplier | None = None
        self._dispatcher: AgentDispatcher | None = None

    @staticmethod
    def _default_sources(config: CompatibilityConfig) -> list[TableSource]:
        sources: list[TableSource] = []
        if config.inline_tables:
            sources.append(InlineSource(config.inline_tables))
        if config.tables_dir is not None:
            sources.append(DirectorySource(config.tables_dir))
        if config.tables_url:
            sources.append(HttpSource(config.tables_url))
        sources.append(DirectorySource(BUNDLED_TABLES_DIR))
        return sources

    # -- properties -------------------------------------------------------

    @property
    def config(self) -> CompatibilityConfig:
        return self._config

    @property
    def is_configured(self) -> bool:
        return self._configured

    @property
    def direction(self) -> str:
        """Normalised direction (``a-to-b``, ``b-to-a`` or ``bidirectional``)."""
        self._require_configured()
        assert self._direction is not None
        return self._direction

    @property
    def request_table(self) -> MappingTable | None:
        return self._request_applier.table if self._request_applier else None

    @property
    def response_table(self) -> MappingTable | None:
        return self._response_applier.table if self._response_applier else None

    @property
    def dispatcher(self) -> AgentDispatcher | None:
        return self._dispatcher

    # -- lifecycle --------------------------------------------------------

    async def configure(self) -> None:
        """Load tables, derive the reverse table, and build the dispatcher.

        Repeated calls are no-ops.

        Raises:
            ConfigurationError: On missing or malformed tables, an unknown
                direction, or an agent configuration naming a disabled default.
        """
        async with self._lock:
            if self._configured:
                return

            with _tracer.start_as_current_span("llmcompat.configure") as span:
                span.set_attribute(ATTR_MAPPING_TABLE, self._config.mapping_table)
                forward = await self._store.load(self._config.mapping_table)
                direction = resolve_direction(self._config.direction, forward.formats.source, forward.formats.target)
                span.set_attribute(ATTR_DIRECTION, direction)

                if direction in ("a-to-b", "bidirectional"):
                    self._request_applier = FieldMappingApplier(forward, registry=self._registry)
                if direction in ("b-to-a", "bidirectional"):
                    response_table = await self._load_response_table(forward)
                    self._response_applier = FieldMappingApplier(response_table, registry=self._registry)

                if self._config.enable_agents:
                    self._dispatcher = AgentDispatcher.from_config(self._config.agent_config)

                self._direction = direction
                self._configured = True

        logger.info(
            "Compatibility module configured: table=%s direction=%s agents=%s",
            self._config.mapping_table,
            self._direction,
            ", ".join(self._dispatcher.agent_names) if self._dispatcher else "disabled",
        )

    async def _load_response_table(self, forward: MappingTable) -> MappingTable:
        name = self._config.response_mapping_table
        if name:
            table = await self._store.load(name)
            if (table.formats.source, table.formats.target) != (forward.formats.target, forward.formats.source):
                logger.warning(
                    "Response table %s converts %s -> %s; expected %s -> %s",
                    name,
                    table.formats.source,
                    table.formats.target,
                    forward.formats.target,
                    forward.formats.source,
                )
            return table
        logger.info("Deriving reverse mapping table from %s", self._config.mapping_table)
        return derive_reverse_table(forward)

    def _require_configured(self) -> None:
        if not self._configured:
            raise ConfigurationError("compatibility module is not configured; await configure() first")

    # -- conversion -------------------------------------------------------

    def convert_request(self, data: Any, context: ConversionContext | None = None) -> dict[str, Any]:
        """Convert a request from the table's source format to its target format.

        Raises:
            ConfigurationError: If the module does not convert requests.
            CompatibilityError: Any mapping, validation or transform failure.
        """
        self._require_configured()
        if self._request_applier is None:
            raise ConfigurationError(f"direction {self._config.direction} does not support request conversion")
        context = context or ConversionContext()
        table = self._request_applier.table

        with _tracer.start_as_current_span("llmcompat.convert_request") as span:
            self._annotate(span, table, context)
            if not isinstance(data, Mapping):
                raise ValidationFailed("$", "object", f"expected an object, got {json_type(data)}")

            if self._dispatcher is not None:
                output = self._dispatcher.dispatch(data, self._map_request)
                span.set_attribute(ATTR_AGENT, str(output.get("agent", "")))
            else:
                output = self._map_request(data)

            _apply_model_mapping(output, self._config.model_mapping.request)
            if isinstance(output.get("model"), str):
                span.set_attribute(ATTR_MODEL, output["model"])

            settings = self._config.validation
            if settings.enabled:
                self._validator.evaluate_rules(output, settings.as_rules()).raise_for_errors()

        logger.info(
            "Request converted: %s -> %s (request_id=%s)",
            table.formats.source,
            table.formats.target,
            context.request_id,
        )
        return output

    def convert_response(self, data: Any, context: ConversionContext | None = None) -> dict[str, Any]:
        """Convert a vendor response back to the table's source format.

        Raises:
            ConfigurationError: If the module does not convert responses.
            CompatibilityError: Any mapping, validation or transform failure.
        """
        self._require_configured()
        if self._response_applier is None:
            raise ConfigurationError(f"direction {self._config.direction} does not support response conversion")
        context = context or ConversionContext()
        table = self._response_applier.table

        with _tracer.start_as_current_span("llmcompat.convert_response") as span:
            self._annotate(span, table, context)
            result = self._response_applier.apply_with_result(data, self._options)
            span.set_attribute(ATTR_WARNING_COUNT, len(result.warnings))
            output: dict[str, Any] = result.transformed_data

            _apply_model_mapping(output, self._config.model_mapping.response)
            if table.formats.target == OPENAI_FORMAT:
                output.setdefault("object", "chat.completion")
                output.setdefault("created", int(time.time()))

        logger.info(
            "Response converted: %s -> %s (request_id=%s)",
            table.formats.source,
            table.formats.target,
            context.request_id,
        )
        return output

    def _map_request(self, data: Mapping[str, Any]) -> dict[str, Any]:
        assert self._request_applier is not None
        result = self._request_applier.apply_with_result(data, self._options)
        for warning in result.warnings:
            logger.debug(warning)
        output: dict[str, Any] = result.transformed_data
        return output

    @staticmethod
    def _annotate(span: Any, table: MappingTable, context: ConversionContext) -> None:
        span.set_attribute(ATTR_REQUEST_ID, context.request_id)
        if context.provider:
            span.set_attribute(ATTR_PROVIDER, context.provider)
        span.set_attribute(ATTR_SOURCE_FORMAT, table.formats.source)
        span.set_attribute(ATTR_TARGET_FORMAT, table.formats.target)
        span.set_attribute(ATTR_TABLE_VERSION, table.version)
        span.set_attribute(ATTR_FIELD_COUNT, len(table.field_mappings))

    # -- introspection ----------------------------------------------------

    def validate_request(self, request: Any) -> ValidationResult:
        """Sanity-check an OpenAI-style chat request without converting it."""
        return check_chat_request(request)

    def get_field_mappings(self) -> list[FieldMappingInfo]:
        """Describe every field mapping, request table first."""
        self._require_configured()
        infos: list[FieldMappingInfo] = []
        for label, applier in (("request", self._request_applier), ("response", self._response_applier)):
            if applier is None:
                continue
            for source_field, mapping in applier.table.normalized().items():
                infos.append(
                    FieldMappingInfo(
                        source_field=source_field,
                        target_field=mapping.target_field,
                        direction=label,
                        type="transform" if mapping.transform else "direct",
                        transform=mapping.transform,
                        required=mapping.required,
                    )
                )
        return infos

    def get_compatibility_info(self) -> CompatibilityInfo:
        self._require_configured()
        conversions = [
            f"{applier.table.formats.source}-to-{applier.table.formats.target}"
            for applier in (self._request_applier, self._response_applier)
            if applier is not None
        ]
        return CompatibilityInfo(
            direction=self.direction,
            mapping_table=self._config.mapping_table,
            response_mapping_table=self._config.response_mapping_table,
            strict_mapping=self._config.strict_mapping,
            model_mappings=dict(self._config.model_mapping.request),
            supported_conversions=conversions,
            agent_enabled=self._dispatcher is not None,
            available_agents=self._dispatcher.agent_names if self._dispatcher else [],
        )


def _apply_model_mapping(output: dict[str, Any], mapping: Mapping[str, str]) -> None:
    model = output.get("model")
    if isinstance(model, str) and model in mapping:
        logger.debug("Model mapped: %s -> %s", model, mapping[model])
        output["model"] = mapping[model]
