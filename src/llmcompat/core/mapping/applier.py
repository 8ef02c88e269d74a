"""Field Mapping Applier: turns one input object into one output object.

Walks the table's field mappings in declaration order, transforming,
validating and writing each value at its dot-path target. Application is a
pure function of ``(data, table, options)``: values are deep-copied into a
fresh output and neither the input nor the table is mutated.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from llmcompat.core.errors import RequiredFieldMissing, ValidationFailed
from llmcompat.core.mapping.context import TransformContext
from llmcompat.core.mapping.functions import FunctionRegistry
from llmcompat.core.mapping.interpreter import TransformInterpreter
from llmcompat.core.mapping.models import MappingTable, ValidationResult
from llmcompat.core.mapping.paths import MISSING, get_path, json_type, set_path
from llmcompat.core.mapping.validation import ValidationEngine

logger = logging.getLogger(__name__)


class ApplyOptions(BaseModel):
    """Per-call behaviour switches taken from the module configuration."""

    preserve_unknown_fields: bool = False
    strict_mapping: bool = False


class FieldMappingApplier:
    """Apply one :class:`MappingTable` to input objects.

    Usage::

        applier = FieldMappingApplier(table)
        output = applier.apply({"model": "gpt-4", "messages": [...]})
    """

    def __init__(
        self,
        table: MappingTable,
        *,
        registry: FunctionRegistry | None = None,
        interpreter: TransformInterpreter | None = None,
        validator: ValidationEngine | None = None,
    ) -> None:
        self._table = table
        self._mappings = table.normalized()
        self._interpreter = interpreter or TransformInterpreter(table, registry)
        self._validator = validator or ValidationEngine()
        # A top-level input key is known if it is a table key or the head of a dotted one.
        self._covered = {source_field.split(".", 1)[0] for source_field in self._mappings}
        self._covered.update(self._mappings)

    @property
    def table(self) -> MappingTable:
        return self._table

    def apply(self, data: Any, options: ApplyOptions | None = None) -> dict[str, Any]:
        """Return the mapped output for *data*.

        Raises:
            ValidationFailed: Input is not an object, or a constraint is violated.
            RequiredFieldMissing: A required source field is absent with no default.
            UnknownTransformType: A referenced transform/function does not exist.
            TransformExecutionError: A transform failed while running.
        """
        result = self.apply_with_result(data, options)
        output: dict[str, Any] = result.transformed_data
        return output

    def apply_with_result(self, data: Any, options: ApplyOptions | None = None) -> ValidationResult:
        """Like :meth:`apply` but also report warnings about preserved fields."""
        if not isinstance(data, Mapping):
            raise ValidationFailed("$", "object", f"expected an object, got {json_type(data)}")
        options = options or ApplyOptions()

        self._validator.evaluate_rules(data, self._table.validation_rules).raise_for_errors()

        output: dict[str, Any] = {}
        for source_field, mapping in self._mappings.items():
            value = get_path(data, source_field)

            if value is not MISSING:
                if mapping.transform is not None:
                    context = TransformContext.root(source_field, data)
                    value = self._interpreter.apply(mapping.transform, value, context)
                if mapping.validation is not None:
                    self._validator.validate_field(source_field, value, mapping.validation)
                set_path(output, mapping.target_field, copy.deepcopy(value))
            elif mapping.has_default:
                logger.debug("Applied default value for field: %s", source_field)
                set_path(output, mapping.target_field, copy.deepcopy(mapping.default_value))
            elif mapping.required:
                raise RequiredFieldMissing(source_field)

        result = ValidationResult(transformed_data=output)
        unknown = [key for key in data if key not in self._covered]

        if options.preserve_unknown_fields:
            for key in unknown:
                _preserve(output, key, data[key], key, result)
                result.warnings.append(f"Preserved unknown field: {key}")
            if unknown:
                logger.debug("Preserved %d unknown field(s): %s", len(unknown), unknown[:10])
        elif options.strict_mapping and unknown:
            field = unknown[0]
            raise ValidationFailed(
                field,
                "unmapped",
                f"Field {field} is not covered by mapping table {self._table.formats.source}->{self._table.formats.target}",
            )

        return result


def _preserve(output: dict[str, Any], key: str, value: Any, path: str, result: ValidationResult) -> None:
    """Copy an unknown input field into *output*, merging into mapped objects.

    Where both sides are objects the keys are merged recursively; on any other
    collision the mapped value is kept and a warning is recorded.
    """
    existing = output.get(key, MISSING)
    if existing is MISSING:
        output[key] = copy.deepcopy(value)
        return
    if isinstance(existing, dict) and isinstance(value, Mapping):
        for child_key, child_value in value.items():
            _preserve(existing, child_key, child_value, f"{path}.{child_key}", result)
        return
    logger.warning("Unknown field %s collides with a mapped field; mapped value kept", path)
    result.warnings.append(f"Unknown field {path} collides with a mapped field; mapped value kept")
