"""Validation Engine: per-field constraints and table-level rules.

Field constraints short-circuit in a fixed order: empty value, string
length, numeric range, enumeration, regex pattern. Table-level rules collect
every issue into a :class:`ValidationResult`; callers decide whether to raise.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from llmcompat.core.errors import ValidationFailed
from llmcompat.core.mapping.models import (
    FieldValidation,
    ValidationIssue,
    ValidationResult,
    ValidationRules,
)
from llmcompat.core.mapping.paths import MISSING, get_path, json_type, matches_type

CHAT_ROLES = ("system", "user", "assistant", "tool")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


class ValidationEngine:
    """Stateless evaluator for :class:`FieldValidation` and :class:`ValidationRules`."""

    def validate_field(self, field: str, value: Any, validation: FieldValidation) -> None:
        """Raise :class:`ValidationFailed` on the first violated constraint."""
        issue = self.check_field(field, value, validation)
        if issue is not None:
            raise ValidationFailed(issue.field, issue.constraint, issue.message)

    def check_field(self, field: str, value: Any, validation: FieldValidation) -> ValidationIssue | None:
        """Return the first violated constraint for *value*, or ``None``."""
        if _is_empty(value) and not validation.allow_empty:
            return ValidationIssue(field=field, constraint="empty", message=f"Field {field} cannot be empty")

        if isinstance(value, str):
            if validation.min_length is not None and len(value) < validation.min_length:
                return ValidationIssue(
                    field=field,
                    constraint="min_length",
                    message=f"Field {field} is too short: minimum length {validation.min_length}",
                )
            if validation.max_length is not None and len(value) > validation.max_length:
                return ValidationIssue(
                    field=field,
                    constraint="max_length",
                    message=f"Field {field} is too long: maximum length {validation.max_length}",
                )

        if _is_number(value):
            if validation.min is not None and value < validation.min:
                return ValidationIssue(
                    field=field,
                    constraint="min",
                    message=f"Field {field} is too small: minimum {_fmt(validation.min)}",
                )
            if validation.max is not None and value > validation.max:
                return ValidationIssue(
                    field=field,
                    constraint="max",
                    message=f"Field {field} is too large: maximum {_fmt(validation.max)}",
                )

        if validation.allowed and not _is_allowed(value, validation.allowed):
            allowed = ", ".join(str(a) for a in validation.allowed)
            return ValidationIssue(
                field=field,
                constraint="allowed",
                message=f"Field {field} has invalid value: {value}. Allowed values: {allowed}",
            )

        if validation.pattern is not None and isinstance(value, str):
            if re.search(validation.pattern, value) is None:
                return ValidationIssue(
                    field=field,
                    constraint="pattern",
                    message=f"Field {field} does not match pattern: {validation.pattern}",
                )

        return None

    def evaluate_rules(self, data: Mapping[str, Any], rules: ValidationRules) -> ValidationResult:
        """Check *data* against table-level *rules*, collecting every issue."""
        result = ValidationResult(transformed_data=data)

        for field in rules.required:
            value = get_path(data, field)
            if value is MISSING or value is None:
                result.add_issue(field, "required", f"Required field missing: {field}")

        for field, expected in rules.types.items():
            value = get_path(data, field)
            if value is MISSING:
                continue
            if not matches_type(value, expected):
                result.add_issue(
                    field,
                    "type",
                    f"Field {field} has invalid type: expected {expected}, got {json_type(value)}",
                )

        for field, constraint in rules.constraints.items():
            value = get_path(data, field)
            if value is MISSING or value is None:
                continue
            issue = self.check_field(field, value, constraint)
            if issue is not None:
                result.add_issue(issue.field, issue.constraint, issue.message)

        self._check_structure(data, rules, result)
        return result

    def _check_structure(self, data: Mapping[str, Any], rules: ValidationRules, result: ValidationResult) -> None:
        """Walk the input for forbidden names and depth/array ceilings."""
        forbidden = set(rules.forbidden_fields)
        depth_reported = False
        stack: list[tuple[Any, str, int]] = [(data, "$", 1)]

        while stack:
            value, path, depth = stack.pop()
            if depth > rules.max_depth:
                if not depth_reported:
                    result.add_issue(
                        path,
                        "max_depth",
                        f"Field {path} exceeds maximum nesting depth {rules.max_depth}",
                    )
                    depth_reported = True
                continue

            if isinstance(value, Mapping):
                for key, child in value.items():
                    child_path = key if path == "$" else f"{path}.{key}"
                    if key in forbidden:
                        result.add_issue(child_path, "forbidden", f"Field name {key!r} is not allowed")
                        continue
                    if isinstance(child, (Mapping, list)):
                        stack.append((child, child_path, depth + 1))
            elif isinstance(value, list):
                if len(value) > rules.max_array_length:
                    result.add_issue(
                        path,
                        "max_array_length",
                        f"Field {path} has {len(value)} items: maximum {rules.max_array_length}",
                    )
                    continue
                for index, child in enumerate(value):
                    if isinstance(child, (Mapping, list)):
                        stack.append((child, f"{path}[{index}]", depth + 1))


def check_chat_request(request: Any) -> ValidationResult:
    """Sanity-check an OpenAI-style chat-completion request.

    Missing model, missing/empty messages, a message without a role, and a
    non-tool message without content are errors; unknown roles are warnings.
    """
    result = ValidationResult(transformed_data=request)
    if not isinstance(request, Mapping):
        result.add_issue("$", "object", "Request must be an object")
        return result

    if not request.get("model"):
        result.add_issue("model", "required", "Model is required")

    messages = request.get("messages")
    if not isinstance(messages, list) or not messages:
        result.add_issue("messages", "required", "Messages are required and cannot be empty")
        return result

    for index, message in enumerate(messages):
        if not isinstance(message, Mapping) or not message.get("role"):
            result.add_issue(f"messages[{index}].role", "required", f"Message {index} role is required")
            continue
        role = message["role"]
        if not message.get("content") and role != "tool" and not message.get("tool_calls"):
            result.add_issue(
                f"messages[{index}].content",
                "required",
                f"Message {index} content is required for role: {role}",
            )
        if role not in CHAT_ROLES:
            result.warnings.append(f"Message {index} has invalid role: {role}")

    return result


def _is_allowed(value: Any, allowed: list[Any]) -> bool:
    # bool is an int subclass; keep True from matching 1.
    return any(
        value == candidate and isinstance(value, bool) == isinstance(candidate, bool)
        for candidate in allowed
    )


def _fmt(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)
