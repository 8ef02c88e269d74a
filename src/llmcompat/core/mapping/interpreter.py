"""Transform Interpreter: runs named transform definitions from a mapping table.

Definitions nest (an ``array_transform`` whose element is an
``object_transform`` whose fields reference other named transforms); the
interpreter recurses through them with an explicit depth ceiling.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Mapping
from typing import Any

from llmcompat.core.errors import (
    CompatibilityError,
    RequiredFieldMissing,
    TransformExecutionError,
    UnknownTransformType,
)
from llmcompat.core.mapping.context import TransformContext
from llmcompat.core.mapping.functions import FunctionRegistry, get_default_registry
from llmcompat.core.mapping.models import (
    MAX_TRANSFORM_DEPTH,
    ArrayTransform,
    FunctionTransform,
    MappingTable,
    MappingTransform,
    ObjectFieldSpec,
    ObjectTransform,
    StringTransform,
    ValidationTransform,
)

logger = logging.getLogger(__name__)

_JS_REPLACEMENT_REF = re.compile(r"\$(\$|&|\d{1,2})")


class TransformInterpreter:
    """Execute transform definitions owned by one :class:`MappingTable`.

    The interpreter holds no per-request state and may be shared between
    concurrent callers.
    """

    def __init__(
        self,
        table: MappingTable,
        registry: FunctionRegistry | None = None,
        *,
        max_depth: int = MAX_TRANSFORM_DEPTH,
    ) -> None:
        self._table = table
        self._registry = registry or get_default_registry()
        self._max_depth = max_depth

    @property
    def table(self) -> MappingTable:
        return self._table

    @property
    def registry(self) -> FunctionRegistry:
        return self._registry

    def apply(self, name: str, value: Any, context: TransformContext) -> Any:
        """Resolve transform *name* and run it against *value*.

        Raises:
            UnknownTransformType: If *name* is not defined by the table.
        """
        definition = self._table.transform_functions.get(name)
        if definition is None:
            raise UnknownTransformType(name)
        return self._run(name, definition, value, context)

    def _run(self, name: str, definition: Any, value: Any, context: TransformContext) -> Any:
        if context.depth >= self._max_depth:
            raise TransformExecutionError(name, f"nesting exceeds {self._max_depth} levels")

        logger.debug("Applying transform %s (%s) at %s", name, definition.type, context.path)

        if isinstance(definition, MappingTransform):
            return self._apply_mapping(definition, value)
        if isinstance(definition, StringTransform):
            return self._apply_string(name, definition, value)
        if isinstance(definition, ArrayTransform):
            return self._apply_array(name, definition, value, context.deeper())
        if isinstance(definition, ObjectTransform):
            return self._apply_object(definition, value, context.deeper())
        if isinstance(definition, FunctionTransform):
            return self._apply_function(name, definition, value, context.deeper(definition.params))
        if isinstance(definition, ValidationTransform):
            rule = self._registry.resolve_rule(definition.validation)
            rule(value, list(definition.fields), context.deeper())
            return value
        raise UnknownTransformType(str(getattr(definition, "type", definition)), "transform type")

    # -- mapping ----------------------------------------------------------

    def _apply_mapping(self, definition: MappingTransform, value: Any) -> Any:
        fallback = definition.default_value if definition.has_default else value
        return lookup(definition.mappings, value, fallback)

    # -- string_transform -------------------------------------------------

    def _apply_string(self, name: str, definition: StringTransform, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        op = definition.operation
        if op == "prefix":
            return definition.prefix + value
        if op == "suffix":
            return value + definition.suffix
        if op == "uppercase":
            return value.upper()
        if op == "lowercase":
            return value.lower()
        # replace
        assert definition.pattern is not None
        regex, count = _compile_js_regex(definition.pattern, definition.flags)
        try:
            return regex.sub(_python_replacement(definition.replacement, regex.groups), value, count=count)
        except (re.error, IndexError) as exc:
            raise TransformExecutionError(name, str(exc)) from exc

    # -- array_transform --------------------------------------------------

    def _apply_array(
        self,
        name: str,
        definition: ArrayTransform,
        value: Any,
        context: TransformContext,
    ) -> Any:
        if not isinstance(value, list):
            return value
        element = definition.element_transform
        result: list[Any] = []
        for index, item in enumerate(value):
            element_context = context.for_element(index, item)
            if isinstance(element, str):
                result.append(self.apply(element, item, element_context))
            else:
                result.append(self._run(f"{name}.elementTransform", element, item, element_context))
        return result

    # -- object_transform -------------------------------------------------

    def _apply_object(self, definition: ObjectTransform, value: Any, context: TransformContext) -> Any:
        if not isinstance(value, Mapping):
            return value
        object_context = context.for_object(value)
        result: dict[str, Any] = {}

        for field_name, spec in definition.fields.items():
            if isinstance(spec, str):
                if field_name in value:
                    result[spec] = value[field_name]
                continue

            target = spec.target_field or field_name
            if field_name in value:
                result[target] = self._object_field(spec, value[field_name], object_context.for_field(field_name))
            elif spec.has_default:
                result[target] = spec.default_value
            elif spec.required:
                raise RequiredFieldMissing(f"{context.path}.{field_name}")

        return result

    def _object_field(self, spec: ObjectFieldSpec, field_value: Any, context: TransformContext) -> Any:
        if spec.mapping is not None:
            fallback = spec.default_value if spec.has_default else field_value
            return lookup(spec.mapping, field_value, fallback)
        if spec.transform is not None:
            return self.apply(spec.transform, field_value, context)
        return field_value

    # -- function ---------------------------------------------------------

    def _apply_function(
        self,
        name: str,
        definition: FunctionTransform,
        value: Any,
        context: TransformContext,
    ) -> Any:
        function = self._registry.resolve(definition.function)
        try:
            return function(value, context)
        except CompatibilityError:
            raise
        except Exception as exc:
            raise TransformExecutionError(name, f"{type(exc).__name__}: {exc}") from exc


def lookup(mappings: Mapping[str, Any], value: Any, fallback: Any) -> Any:
    """Look *value* up in a string-keyed table, returning *fallback* on a miss."""
    key = _lookup_key(value)
    if key is not None and key in mappings:
        return mappings[key]
    return fallback


def _lookup_key(value: Any) -> str | None:
    """JSON object keys are strings; scalars match by their JSON spelling."""
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return None


@functools.lru_cache(maxsize=256)
def _compile_js_regex(pattern: str, flags: str) -> tuple[re.Pattern[str], int]:
    """Translate JS-style regex flags; ``g`` means replace every occurrence."""
    re_flags = 0
    if "i" in flags:
        re_flags |= re.IGNORECASE
    if "m" in flags:
        re_flags |= re.MULTILINE
    if "s" in flags:
        re_flags |= re.DOTALL
    count = 0 if "g" in flags else 1
    return re.compile(pattern, re_flags), count


def _python_replacement(replacement: str, groups: int) -> str:
    """Turn ``$1`` / ``$&`` / ``$$`` references into an ``re.sub`` template.

    As in JavaScript, ``$0`` and references to groups the pattern does not
    have stay literal; ``$12`` falls back to ``$1`` followed by ``2`` when
    there are fewer than twelve groups.
    """
    escaped = replacement.replace("\\", "\\\\")

    def _ref(match: re.Match[str]) -> str:
        token = match.group(1)
        if token == "$":
            return "$"
        if token == "&":
            return r"\g<0>"
        if 1 <= int(token) <= groups:
            return rf"\g<{int(token)}>"
        if len(token) == 2 and 1 <= int(token[0]) <= groups:
            return rf"\g<{token[0]}>" + token[1]
        return match.group(0)

    return _JS_REPLACEMENT_REF.sub(_ref, escaped)
