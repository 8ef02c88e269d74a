"""Mapping Table Schema: the declarative document that drives protocol conversion.

A mapping table describes how one wire shape (``formats.source``) is turned
into another (``formats.target``). Documents are authored in camelCase JSON
or YAML; the models accept those keys verbatim through aliases while Python
code uses snake_case attribute names.

Tables are frozen once validated and are shared across concurrent requests.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from llmcompat.core.errors import ValidationFailed

MAX_TRANSFORM_DEPTH = 16

JsonType = Literal["string", "number", "integer", "boolean", "array", "object", "null"]

DEFAULT_FORBIDDEN_FIELDS = ["__proto__", "constructor", "prototype"]


class _TableModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ---------------------------------------------------------------------------
# Validation blocks
# ---------------------------------------------------------------------------


class FieldValidation(_TableModel):
    """Per-field constraints, evaluated in declaration order of the attributes."""

    allow_empty: bool = False
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    allowed: list[Any] | None = None
    pattern: str | None = None

    @model_validator(mode="after")
    def _compile_pattern(self) -> FieldValidation:
        if self.pattern is not None:
            try:
                re.compile(self.pattern)
            except re.error as exc:
                msg = f"invalid pattern {self.pattern!r}: {exc}"
                raise ValueError(msg) from exc
        return self


class ValidationRules(_TableModel):
    """Table-level rules checked against the whole input object."""

    required: list[str] = Field(default_factory=list)
    types: dict[str, JsonType] = Field(default_factory=dict)
    constraints: dict[str, FieldValidation] = Field(default_factory=dict)
    forbidden_fields: list[str] = Field(default_factory=lambda: list(DEFAULT_FORBIDDEN_FIELDS))
    max_depth: int = 32
    max_array_length: int = 10_000


# ---------------------------------------------------------------------------
# Transform definitions, tagged by ``type``
# ---------------------------------------------------------------------------


class MappingTransform(_TableModel):
    """Literal value lookup with an optional fallback."""

    type: Literal["mapping"]
    mappings: dict[str, Any] = Field(default_factory=dict)
    default_value: Any = None

    @property
    def has_default(self) -> bool:
        return "default_value" in self.model_fields_set


class StringTransform(_TableModel):
    """String operation applied to string values only."""

    type: Literal["string_transform"]
    operation: Literal["prefix", "suffix", "uppercase", "lowercase", "replace"]
    prefix: str = ""
    suffix: str = ""
    pattern: str | None = None
    flags: str = "g"
    replacement: str = ""

    @model_validator(mode="after")
    def _check_replace(self) -> StringTransform:
        if self.operation == "replace":
            if self.pattern is None:
                msg = "replace operation requires 'pattern'"
                raise ValueError(msg)
            try:
                re.compile(self.pattern)
            except re.error as exc:
                msg = f"invalid pattern {self.pattern!r}: {exc}"
                raise ValueError(msg) from exc
        return self


class ArrayTransform(_TableModel):
    """Applies ``element_transform`` to every element of a list."""

    type: Literal["array_transform"]
    element_transform: str | TransformDefinition


class ObjectFieldSpec(_TableModel):
    """How one field of an ``object_transform`` is produced."""

    target_field: str | None = None
    mapping: dict[str, Any] | None = None
    default_value: Any = None
    transform: str | None = None
    required: bool = False

    @property
    def has_default(self) -> bool:
        return "default_value" in self.model_fields_set


class ObjectTransform(_TableModel):
    """Rebuilds an object from its declared fields."""

    type: Literal["object_transform"]
    fields: dict[str, str | ObjectFieldSpec] = Field(default_factory=dict)


class FunctionTransform(_TableModel):
    """Named pure function from the function registry."""

    type: Literal["function"]
    function: str
    params: dict[str, Any] = Field(default_factory=dict)


class ValidationTransform(_TableModel):
    """Cross-field assertion; returns the value unchanged."""

    type: Literal["validation"]
    validation: str
    fields: list[str] = Field(default_factory=list)


TransformDefinition = Annotated[
    Union[
        MappingTransform,
        StringTransform,
        ArrayTransform,
        ObjectTransform,
        FunctionTransform,
        ValidationTransform,
    ],
    Field(discriminator="type"),
]

ArrayTransform.model_rebuild()


# ---------------------------------------------------------------------------
# Field mappings and the table itself
# ---------------------------------------------------------------------------


class FieldMapping(_TableModel):
    """Where one source field goes and what happens to it on the way."""

    target_field: str = Field(min_length=1)
    transform: str | None = None
    reverse_transform: str | None = None
    default_value: Any = None
    required: bool = False
    validation: FieldValidation | None = None

    @property
    def has_default(self) -> bool:
        return "default_value" in self.model_fields_set

    @model_validator(mode="after")
    def _check_path(self) -> FieldMapping:
        if any(not segment for segment in self.target_field.split(".")):
            msg = f"invalid targetField path {self.target_field!r}"
            raise ValueError(msg)
        return self


class Formats(_TableModel):
    source: str = Field(min_length=1)
    target: str = Field(min_length=1)


class MappingTable(_TableModel):
    """A named, versioned conversion document."""

    version: str = Field(min_length=1)
    description: str = Field(min_length=1)
    formats: Formats
    field_mappings: dict[str, str | FieldMapping]
    validation_rules: ValidationRules = Field(default_factory=ValidationRules)
    transform_functions: dict[str, TransformDefinition] = Field(default_factory=dict)

    def normalized(self) -> dict[str, FieldMapping]:
        """Return the field mappings with plain string renames expanded."""
        result: dict[str, FieldMapping] = {}
        for source_field, mapping in self.field_mappings.items():
            if isinstance(mapping, str):
                result[source_field] = FieldMapping(target_field=mapping)
            else:
                result[source_field] = mapping
        return result

    def referenced_functions(self) -> set[str]:
        """Names used by ``function`` transforms anywhere in the table."""
        return {d.function for d in _iter_definitions(self.transform_functions) if isinstance(d, FunctionTransform)}

    def referenced_rules(self) -> set[str]:
        """Names used by ``validation`` transforms anywhere in the table."""
        return {d.validation for d in _iter_definitions(self.transform_functions) if isinstance(d, ValidationTransform)}

    @model_validator(mode="after")
    def _check_references(self) -> MappingTable:
        for source_field, mapping in self.field_mappings.items():
            if isinstance(mapping, str):
                if not mapping or any(not s for s in mapping.split(".")):
                    msg = f"field mapping {source_field!r} has an invalid target path {mapping!r}"
                    raise ValueError(msg)
                continue
            for ref in (mapping.transform, mapping.reverse_transform):
                if ref is not None and ref not in self.transform_functions:
                    msg = f"field mapping {source_field!r} references unknown transform {ref!r}"
                    raise ValueError(msg)

        for name in self.transform_functions:
            depth = _definition_depth(self.transform_functions, name, ())
            if depth > MAX_TRANSFORM_DEPTH:
                msg = f"transform {name!r} nests {depth} levels deep (limit {MAX_TRANSFORM_DEPTH})"
                raise ValueError(msg)
        return self


def _iter_definitions(definitions: dict[str, Any]) -> list[Any]:
    """Flatten named and inline definitions into one list."""
    found: list[Any] = []
    pending = list(definitions.values())
    while pending:
        definition = pending.pop()
        found.append(definition)
        if isinstance(definition, ArrayTransform) and not isinstance(definition.element_transform, str):
            pending.append(definition.element_transform)
    return found


def _definition_depth(definitions: dict[str, Any], name: str, stack: tuple[str, ...]) -> int:
    if name in stack:
        chain = " -> ".join((*stack, name))
        msg = f"transform reference cycle: {chain}"
        raise ValueError(msg)
    if name not in definitions:
        msg = f"unknown transform {name!r}" + (f" referenced by {stack[-1]!r}" if stack else "")
        raise ValueError(msg)
    return _inline_depth(definitions, definitions[name], (*stack, name))


def _inline_depth(definitions: dict[str, Any], definition: Any, stack: tuple[str, ...]) -> int:
    if isinstance(definition, ArrayTransform):
        element = definition.element_transform
        if isinstance(element, str):
            return 1 + _definition_depth(definitions, element, stack)
        return 1 + _inline_depth(definitions, element, stack)
    if isinstance(definition, ObjectTransform):
        nested = [
            _definition_depth(definitions, spec.transform, stack)
            for spec in definition.fields.values()
            if isinstance(spec, ObjectFieldSpec) and spec.transform is not None
        ]
        return 1 + max(nested, default=0)
    return 1


# ---------------------------------------------------------------------------
# Validation results
# ---------------------------------------------------------------------------


class ValidationIssue(BaseModel):
    """A single violated constraint."""

    field: str
    constraint: str
    message: str


class ValidationResult(BaseModel):
    """Structured pass/fail outcome of a validation pass."""

    is_valid: bool = True
    errors: list[str] = []
    warnings: list[str] = []
    issues: list[ValidationIssue] = []
    transformed_data: Any = None

    def add_issue(self, field: str, constraint: str, message: str) -> None:
        """Record a failure and mark the result invalid."""
        self.issues.append(ValidationIssue(field=field, constraint=constraint, message=message))
        self.errors.append(message)
        self.is_valid = False

    def raise_for_errors(self) -> None:
        """Raise :class:`ValidationFailed` for the first recorded issue, if any."""
        if not self.issues:
            return
        first = self.issues[0]
        raise ValidationFailed(first.field, first.constraint, "; ".join(self.errors))
