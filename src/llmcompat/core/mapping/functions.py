"""Closed registry of named pure functions and cross-field validation rules.

Mapping tables can only reference functions that exist here; there is no
evaluation of code taken from table documents. Operators extend the
vocabulary by registering a Python callable under a new name before tables
are loaded.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from llmcompat.core.errors import UnknownTransformType, ValidationFailed
from llmcompat.core.mapping.context import TransformContext
from llmcompat.core.mapping.paths import MISSING, get_path

TransformFunction = Callable[[Any, TransformContext], Any]
ValidationRule = Callable[[Any, list[str], TransformContext], None]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# Built-in functions
# ---------------------------------------------------------------------------


def identity(value: Any, context: TransformContext) -> Any:
    return value


def scale(value: Any, context: TransformContext) -> Any:
    factor = context.params.get("factor")
    if _is_number(value) and factor is not None:
        return value * factor
    return value


def offset(value: Any, context: TransformContext) -> Any:
    amount = context.params.get("offset")
    if _is_number(value) and amount is not None:
        return value + amount
    return value


def clamp(value: Any, context: TransformContext) -> Any:
    """Clamp a number into ``[params.min, params.max]`` (either bound optional)."""
    if not _is_number(value):
        return value
    low = context.params.get("min")
    high = context.params.get("max")
    result = value
    if low is not None:
        result = max(result, low)
    if high is not None:
        result = min(result, high)
    return result


def to_string(value: Any, context: TransformContext) -> Any:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def json_dumps(value: Any, context: TransformContext) -> Any:
    """Serialize structured tool-call arguments; strings pass through."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def json_loads(value: Any, context: TransformContext) -> Any:
    if not isinstance(value, str):
        return value
    return json.loads(value)


def join_text(value: Any, context: TransformContext) -> Any:
    """Flatten OpenAI multi-part content into one string of its text parts."""
    if not isinstance(value, list):
        return value
    separator = context.params.get("separator", "")
    texts = [
        part.get("text", "")
        for part in value
        if isinstance(part, dict) and part.get("type") == "text"
    ]
    return separator.join(texts)


def first(value: Any, context: TransformContext) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def wrap_list(value: Any, context: TransformContext) -> Any:
    if isinstance(value, list):
        return value
    return [value]


def pick(value: Any, context: TransformContext) -> Any:
    """Read ``params.path`` out of an object value (``None`` when absent)."""
    path = context.params.get("path")
    if not path or not isinstance(value, dict):
        return value
    result = get_path(value, path)
    return None if result is MISSING else result


def as_choices(value: Any, context: TransformContext) -> Any:
    """Wrap a single completion result as an OpenAI ``choices`` list.

    Lists pass through. Tool calls are read from ``params.toolCallsField`` of
    the enclosing object; when present the finish reason is ``tool_calls``.
    """
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        content = value.get("content")
    else:
        content = value if value is None or isinstance(value, str) else json.dumps(value)

    message: dict[str, Any] = {"role": "assistant", "content": content}
    finish_reason = "stop"
    tool_calls_field = context.params.get("toolCallsField")
    if tool_calls_field:
        tool_calls = get_path(context.scope, tool_calls_field)
        if isinstance(tool_calls, list) and tool_calls:
            message["tool_calls"] = tool_calls
            finish_reason = "tool_calls"
    return [{"index": 0, "message": message, "finish_reason": finish_reason}]


BUILTIN_FUNCTIONS: dict[str, TransformFunction] = {
    "as_choices": as_choices,
    "identity": identity,
    "scale": scale,
    "offset": offset,
    "clamp": clamp,
    "to_string": to_string,
    "json_dumps": json_dumps,
    "json_loads": json_loads,
    "join_text": join_text,
    "first": first,
    "wrap_list": wrap_list,
    "pick": pick,
}


# ---------------------------------------------------------------------------
# Built-in validation rules
# ---------------------------------------------------------------------------


def sum_equals_total(value: Any, fields: list[str], context: TransformContext) -> None:
    """Assert that the named fields of the enclosing object sum to *value*."""
    total = 0
    for name in fields:
        part = get_path(context.scope, name, 0)
        if part is None:
            part = 0
        if not _is_number(part):
            raise ValidationFailed(name, "sum_equals_total", f"{part!r} is not a number")
        total += part
    if total != value:
        raise ValidationFailed(
            context.path,
            "sum_equals_total",
            f"sum of fields ({total}) does not equal total ({value})",
        )


BUILTIN_RULES: dict[str, ValidationRule] = {
    "sum_equals_total": sum_equals_total,
}


class FunctionRegistry:
    """Maps names to transform functions and validation rules."""

    def __init__(self) -> None:
        self._functions: dict[str, TransformFunction] = {}
        self._rules: dict[str, ValidationRule] = {}

    def register(self, name: str, function: TransformFunction) -> None:
        """Register a ``function`` transform under *name*."""
        self._functions[name] = function

    def register_rule(self, name: str, rule: ValidationRule) -> None:
        """Register a ``validation`` rule under *name*."""
        self._rules[name] = rule

    def resolve(self, name: str) -> TransformFunction:
        try:
            return self._functions[name]
        except KeyError:
            raise UnknownTransformType(name, "function") from None

    def resolve_rule(self, name: str) -> ValidationRule:
        try:
            return self._rules[name]
        except KeyError:
            raise UnknownTransformType(name, "validation rule") from None

    def function_names(self) -> list[str]:
        return sorted(self._functions)

    def rule_names(self) -> list[str]:
        return sorted(self._rules)

    def has_function(self, name: str) -> bool:
        return name in self._functions

    def has_rule(self, name: str) -> bool:
        return name in self._rules


def build_default_registry() -> FunctionRegistry:
    """Return a registry pre-loaded with the built-in functions and rules."""
    registry = FunctionRegistry()
    for name, function in BUILTIN_FUNCTIONS.items():
        registry.register(name, function)
    for name, rule in BUILTIN_RULES.items():
        registry.register_rule(name, rule)
    return registry


_default_registry: FunctionRegistry | None = None


def get_default_registry() -> FunctionRegistry:
    """Return (and cache) the default registry."""
    global _default_registry
    if _default_registry is None:
        _default_registry = build_default_registry()
    return _default_registry
