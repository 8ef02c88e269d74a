"""Mapping-table engine: schema, interpreter, applier, validation and storage."""

from llmcompat.core.mapping.applier import ApplyOptions, FieldMappingApplier
from llmcompat.core.mapping.context import TransformContext
from llmcompat.core.mapping.functions import (
    FunctionRegistry,
    build_default_registry,
    get_default_registry,
)
from llmcompat.core.mapping.interpreter import TransformInterpreter
from llmcompat.core.mapping.models import (
    MAX_TRANSFORM_DEPTH,
    FieldMapping,
    FieldValidation,
    Formats,
    MappingTable,
    TransformDefinition,
    ValidationIssue,
    ValidationResult,
    ValidationRules,
)
from llmcompat.core.mapping.reverse import derive_reverse_table
from llmcompat.core.mapping.store import (
    DirectorySource,
    HttpSource,
    InlineSource,
    MappingTableStore,
    TableSource,
)
from llmcompat.core.mapping.validation import ValidationEngine, check_chat_request

__all__ = [
    "MAX_TRANSFORM_DEPTH",
    "ApplyOptions",
    "DirectorySource",
    "FieldMapping",
    "FieldMappingApplier",
    "FieldValidation",
    "Formats",
    "FunctionRegistry",
    "HttpSource",
    "InlineSource",
    "MappingTable",
    "MappingTableStore",
    "TableSource",
    "TransformContext",
    "TransformDefinition",
    "TransformInterpreter",
    "ValidationEngine",
    "ValidationIssue",
    "ValidationResult",
    "ValidationRules",
    "build_default_registry",
    "check_chat_request",
    "derive_reverse_table",
    "get_default_registry",
]
