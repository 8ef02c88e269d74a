"""Tests for ValidationEngine and check_chat_request."""

from __future__ import annotations

import pytest

from llmcompat.core.errors import ValidationFailed
from llmcompat.core.mapping.models import FieldValidation, ValidationRules
from llmcompat.core.mapping.validation import ValidationEngine, check_chat_request


class TestFieldValidation:
    def setup_method(self) -> None:
        self.engine = ValidationEngine()

    def _constraint(self, value: object, **rules: object) -> str | None:
        issue = self.engine.check_field("f", value, FieldValidation(**rules))
        return issue.constraint if issue else None

    def test_empty_rejected_by_default(self) -> None:
        assert self._constraint("") == "empty"
        assert self._constraint(None) == "empty"

    def test_allow_empty(self) -> None:
        assert self._constraint("", allow_empty=True) is None
        assert self._constraint(None, allow_empty=True) is None

    def test_empty_checked_before_length(self) -> None:
        assert self._constraint("", min_length=3) == "empty"

    def test_string_length(self) -> None:
        assert self._constraint("ab", min_length=3) == "min_length"
        assert self._constraint("abcd", max_length=3) == "max_length"
        assert self._constraint("abc", min_length=3, max_length=3) is None

    def test_length_ignores_non_strings(self) -> None:
        assert self._constraint([1], min_length=3) is None

    def test_numeric_range(self) -> None:
        assert self._constraint(-0.1, min=0) == "min"
        assert self._constraint(2.5, max=2) == "max"
        assert self._constraint(2, min=0, max=2) is None

    def test_booleans_are_not_numbers(self) -> None:
        assert self._constraint(True, min=5) is None

    def test_range_checked_before_allowed(self) -> None:
        assert self._constraint(10, max=5, allowed=[1, 2]) == "max"

    def test_allowed(self) -> None:
        assert self._constraint("system", allowed=["user", "assistant"]) == "allowed"
        assert self._constraint("user", allowed=["user", "assistant"]) is None

    def test_allowed_distinguishes_true_and_one(self) -> None:
        assert self._constraint(True, allowed=[1]) == "allowed"
        assert self._constraint(1, allowed=[1]) is None

    def test_pattern_uses_search(self) -> None:
        assert self._constraint("gpt-4o", pattern="^gpt-") is None
        assert self._constraint("my-gpt-4", pattern="gpt") is None
        assert self._constraint("qwen", pattern="^gpt-") == "pattern"

    def test_validate_field_raises(self) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            self.engine.validate_field("temperature", 3, FieldValidation(max=2))
        assert exc_info.value.field == "temperature"
        assert exc_info.value.constraint == "max"
        assert "maximum 2" in str(exc_info.value)

    def test_messages(self) -> None:
        issue = self.engine.check_field("role", "x", FieldValidation(allowed=["user"]))
        assert issue is not None
        assert issue.message == "Field role has invalid value: x. Allowed values: user"


class TestTableRules:
    def setup_method(self) -> None:
        self.engine = ValidationEngine()

    def _constraints(self, data: dict[str, object], rules: ValidationRules) -> list[str]:
        return [issue.constraint for issue in self.engine.evaluate_rules(data, rules).issues]

    def test_valid(self) -> None:
        result = self.engine.evaluate_rules({"model": "gpt-4"}, ValidationRules(required=["model"]))
        assert result.is_valid
        assert result.errors == []

    def test_required(self) -> None:
        rules = ValidationRules(required=["model", "messages"])
        assert self._constraints({"model": "gpt-4"}, rules) == ["required"]
        assert self._constraints({"model": None, "messages": []}, rules) == ["required"]

    def test_required_nested_path(self) -> None:
        rules = ValidationRules(required=["input.messages"])
        assert self._constraints({"input": {"messages": []}}, rules) == []
        assert self._constraints({"input": {}}, rules) == ["required"]

    def test_types(self) -> None:
        rules = ValidationRules(types={"temperature": "number", "stream": "boolean", "max_tokens": "integer"})
        assert self._constraints({"temperature": 1, "stream": True, "max_tokens": 10}, rules) == []
        assert self._constraints({"temperature": "hot"}, rules) == ["type"]
        assert self._constraints({"max_tokens": 1.5}, rules) == ["type"]

    def test_absent_fields_skip_type_check(self) -> None:
        assert self._constraints({}, ValidationRules(types={"temperature": "number"})) == []

    def test_constraints(self) -> None:
        rules = ValidationRules(constraints={"temperature": FieldValidation(min=0, max=2)})
        assert self._constraints({"temperature": 3}, rules) == ["max"]

    def test_forbidden_fields_at_any_depth(self) -> None:
        result = self.engine.evaluate_rules(
            {"messages": [{"role": "user", "__proto__": {"polluted": True}}]},
            ValidationRules(),
        )
        assert not result.is_valid
        assert result.issues[0].constraint == "forbidden"
        assert result.issues[0].field == "messages[0].__proto__"

    def test_custom_forbidden_list(self) -> None:
        rules = ValidationRules(forbidden_fields=["secret"])
        assert self._constraints({"a": {"secret": 1}}, rules) == ["forbidden"]
        assert self._constraints({"constructor": 1}, rules) == []

    def test_max_depth(self) -> None:
        rules = ValidationRules(max_depth=2)
        assert self._constraints({"a": {"b": 1}}, rules) == []
        assert self._constraints({"a": {"b": {"c": 1}}}, rules) == ["max_depth"]

    def test_max_depth_reported_once(self) -> None:
        rules = ValidationRules(max_depth=1)
        assert self._constraints({"a": {"x": 1}, "b": {"y": 2}}, rules) == ["max_depth"]

    def test_max_array_length(self) -> None:
        rules = ValidationRules(max_array_length=2)
        assert self._constraints({"messages": [1, 2, 3]}, rules) == ["max_array_length"]
        assert self._constraints({"messages": [1, 2]}, rules) == []

    def test_collects_every_issue(self) -> None:
        rules = ValidationRules(required=["model"], types={"stream": "boolean"})
        result = self.engine.evaluate_rules({"stream": "yes"}, rules)
        assert len(result.errors) == 2


class TestCheckChatRequest:
    def test_valid_request(self) -> None:
        result = check_chat_request({"model": "gpt-4", "messages": [{"role": "user", "content": "hi"}]})
        assert result.is_valid
        assert result.warnings == []

    def test_missing_model_and_messages(self) -> None:
        result = check_chat_request({})
        assert "Model is required" in result.errors
        assert "Messages are required and cannot be empty" in result.errors

    def test_message_role_and_content(self) -> None:
        result = check_chat_request(
            {
                "model": "gpt-4",
                "messages": [
                    {"content": "no role"},
                    {"role": "user"},
                    {"role": "tool", "tool_call_id": "c1"},
                    {"role": "assistant", "tool_calls": [{"id": "c1"}]},
                ],
            }
        )
        assert result.errors == [
            "Message 0 role is required",
            "Message 1 content is required for role: user",
        ]

    def test_unknown_role_is_warning(self) -> None:
        result = check_chat_request({"model": "gpt-4", "messages": [{"role": "developer", "content": "x"}]})
        assert result.is_valid
        assert result.warnings == ["Message 0 has invalid role: developer"]

    def test_non_object(self) -> None:
        assert not check_chat_request(["not", "an", "object"]).is_valid
