"""Compatibility module: configuration, conversion surface and pipeline harness."""

from llmcompat.compat.config import (
    CompatibilityConfig,
    ModelMapping,
    ValidationSettings,
    load_config,
    resolve_direction,
)
from llmcompat.compat.module import (
    CompatibilityInfo,
    CompatibilityModule,
    ConversionContext,
    FieldMappingInfo,
)
from llmcompat.compat.pipeline import CompatibilityPipeline, HttpTransport, Transport

__all__ = [
    "CompatibilityConfig",
    "CompatibilityInfo",
    "CompatibilityModule",
    "CompatibilityPipeline",
    "ConversionContext",
    "FieldMappingInfo",
    "HttpTransport",
    "ModelMapping",
    "Transport",
    "ValidationSettings",
    "load_config",
    "resolve_direction",
]
