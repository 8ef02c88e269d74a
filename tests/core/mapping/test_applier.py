"""Tests for FieldMappingApplier."""

from __future__ import annotations

import copy
import json
import logging
from typing import Any

import pytest

from llmcompat.core.errors import RequiredFieldMissing, ValidationFailed
from llmcompat.core.mapping.applier import ApplyOptions, FieldMappingApplier
from llmcompat.core.mapping.models import MappingTable


def _table(field_mappings: dict[str, Any], **extra: Any) -> MappingTable:
    return MappingTable.model_validate(
        {
            "version": "1",
            "description": "applier test",
            "formats": {"source": "openai", "target": "qwen"},
            "fieldMappings": field_mappings,
            **extra,
        }
    )


class TestApplyBasics:
    def test_concrete_example(self) -> None:
        applier = FieldMappingApplier(_table({"model": "model", "messages": "input.messages"}))
        output = applier.apply({"model": "gpt-4", "messages": [{"role": "user", "content": "hi"}]})
        assert output == {"model": "gpt-4", "input": {"messages": [{"role": "user", "content": "hi"}]}}

    def test_nested_paths_keep_siblings(self) -> None:
        applier = FieldMappingApplier(_table({"messages": "input.messages", "history": "input.other"}))
        output = applier.apply({"messages": [1], "history": [2]})
        assert output == {"input": {"messages": [1], "other": [2]}}

    def test_unknown_fields_dropped_by_default(self) -> None:
        applier = FieldMappingApplier(_table({"model": "model"}))
        assert applier.apply({"model": "gpt-4", "user": "u1"}) == {"model": "gpt-4"}

    def test_absent_optional_field_omitted(self) -> None:
        applier = FieldMappingApplier(_table({"model": "model", "temperature": "parameters.temperature"}))
        assert applier.apply({"model": "gpt-4"}) == {"model": "gpt-4"}

    def test_null_value_counts_as_present(self) -> None:
        applier = FieldMappingApplier(_table({"stop": "parameters.stop"}))
        assert applier.apply({"stop": None}) == {"parameters": {"stop": None}}

    def test_dotted_source_reads_nested(self) -> None:
        applier = FieldMappingApplier(_table({"usage.input_tokens": "usage.prompt_tokens"}))
        assert applier.apply({"usage": {"input_tokens": 7}}) == {"usage": {"prompt_tokens": 7}}

    def test_transform_applied(self) -> None:
        applier = FieldMappingApplier(
            _table(
                {"model": {"targetField": "model", "transform": "models"}},
                transformFunctions={"models": {"type": "mapping", "mappings": {"gpt-4": "qwen-plus"}}},
            )
        )
        assert applier.apply({"model": "gpt-4"}) == {"model": "qwen-plus"}

    def test_non_object_input(self) -> None:
        applier = FieldMappingApplier(_table({"model": "model"}))
        with pytest.raises(ValidationFailed) as exc_info:
            applier.apply(["gpt-4"])
        assert exc_info.value.field == "$"
        assert exc_info.value.constraint == "object"


class TestPurity:
    def setup_method(self) -> None:
        self.applier = FieldMappingApplier(
            _table(
                {"model": "model", "messages": {"targetField": "input.messages", "transform": "msgs"}},
                transformFunctions={
                    "msgs": {"type": "array_transform", "elementTransform": "msg"},
                    "msg": {"type": "object_transform", "fields": {"role": "role", "content": "content"}},
                },
            )
        )
        self.data = {"model": "gpt-4", "messages": [{"role": "user", "content": "hi", "name": "bob"}]}

    def test_repeatable(self) -> None:
        first = self.applier.apply(self.data)
        second = self.applier.apply(self.data)
        assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)

    def test_input_not_mutated(self) -> None:
        before = copy.deepcopy(self.data)
        self.applier.apply(self.data)
        assert self.data == before

    def test_output_not_aliased(self) -> None:
        applier = FieldMappingApplier(_table({"tools": "tools"}))
        data = {"tools": [{"type": "function"}]}
        output = applier.apply(data)
        output["tools"][0]["type"] = "changed"
        assert data["tools"][0]["type"] == "function"


class TestRequiredAndDefaults:
    def test_required_missing(self) -> None:
        applier = FieldMappingApplier(_table({"model": {"targetField": "model", "required": True}}))
        with pytest.raises(RequiredFieldMissing) as exc_info:
            applier.apply({})
        assert exc_info.value.field == "model"

    def test_required_with_default(self) -> None:
        applier = FieldMappingApplier(
            _table({"model": {"targetField": "model", "required": True, "defaultValue": "qwen-turbo"}})
        )
        assert applier.apply({}) == {"model": "qwen-turbo"}

    def test_default_written_at_nested_path(self) -> None:
        applier = FieldMappingApplier(
            _table({"temperature": {"targetField": "parameters.temperature", "defaultValue": 0.7}})
        )
        assert applier.apply({}) == {"parameters": {"temperature": 0.7}}

    def test_explicit_null_default(self) -> None:
        applier = FieldMappingApplier(_table({"stop": {"targetField": "stop", "defaultValue": None}}))
        assert applier.apply({}) == {"stop": None}

    def test_default_not_aliased(self) -> None:
        applier = FieldMappingApplier(_table({"tools": {"targetField": "tools", "defaultValue": []}}))
        first = applier.apply({})
        first["tools"].append("x")
        assert applier.apply({}) == {"tools": []}


class TestFieldValidation:
    def setup_method(self) -> None:
        self.applier = FieldMappingApplier(
            _table(
                {
                    "temperature": {
                        "targetField": "parameters.temperature",
                        "validation": {"min": 0, "max": 2},
                    },
                    "role": {"targetField": "role", "validation": {"allowed": ["user", "assistant"]}},
                    "model": {"targetField": "model", "validation": {"pattern": "^gpt-", "minLength": 3}},
                }
            )
        )

    @pytest.mark.parametrize(
        ("data", "field", "constraint"),
        [
            ({"temperature": 2.5}, "temperature", "max"),
            ({"temperature": -1}, "temperature", "min"),
            ({"role": "system"}, "role", "allowed"),
            ({"model": "qwen"}, "model", "pattern"),
            ({"model": "g"}, "model", "min_length"),
            ({"model": ""}, "model", "empty"),
        ],
    )
    def test_violations(self, data: dict[str, Any], field: str, constraint: str) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            self.applier.apply(data)
        assert exc_info.value.field == field
        assert exc_info.value.constraint == constraint

    def test_valid_values(self) -> None:
        output = self.applier.apply({"temperature": 1.5, "role": "user", "model": "gpt-4"})
        assert output == {"parameters": {"temperature": 1.5}, "role": "user", "model": "gpt-4"}

    def test_validation_runs_on_transformed_value(self) -> None:
        applier = FieldMappingApplier(
            _table(
                {
                    "model": {
                        "targetField": "model",
                        "transform": "models",
                        "validation": {"allowed": ["qwen-plus"]},
                    }
                },
                transformFunctions={"models": {"type": "mapping", "mappings": {"gpt-4": "qwen-plus"}}},
            )
        )
        assert applier.apply({"model": "gpt-4"}) == {"model": "qwen-plus"}


class TestTableRules:
    def test_required_rule(self) -> None:
        applier = FieldMappingApplier(_table({"model": "model"}, validationRules={"required": ["messages"]}))
        with pytest.raises(ValidationFailed) as exc_info:
            applier.apply({"model": "gpt-4"})
        assert exc_info.value.field == "messages"
        assert exc_info.value.constraint == "required"

    def test_type_rule(self) -> None:
        applier = FieldMappingApplier(_table({"stream": "stream"}, validationRules={"types": {"stream": "boolean"}}))
        with pytest.raises(ValidationFailed) as exc_info:
            applier.apply({"stream": "yes"})
        assert exc_info.value.constraint == "type"

    def test_forbidden_field_rejected(self) -> None:
        applier = FieldMappingApplier(_table({"model": "model"}))
        with pytest.raises(ValidationFailed) as exc_info:
            applier.apply({"model": "gpt-4", "constructor": {"prototype": {}}})
        assert exc_info.value.constraint == "forbidden"


class TestUnknownFields:
    def test_preserve_unknown(self) -> None:
        applier = FieldMappingApplier(_table({"model": "model"}))
        result = applier.apply_with_result(
            {"model": "gpt-4", "user": "u1"},
            ApplyOptions(preserve_unknown_fields=True),
        )
        assert result.transformed_data == {"model": "gpt-4", "user": "u1"}
        assert result.warnings == ["Preserved unknown field: user"]

    def test_preserved_scalar_keeps_mapped_value(self, caplog: pytest.LogCaptureFixture) -> None:
        applier = FieldMappingApplier(_table({"a": "b"}))
        with caplog.at_level(logging.WARNING, logger="llmcompat.core.mapping.applier"):
            result = applier.apply_with_result({"a": 1, "b": 2}, ApplyOptions(preserve_unknown_fields=True))
        assert result.transformed_data == {"b": 1}
        assert "Unknown field b collides with a mapped field; mapped value kept" in result.warnings
        assert "collides with a mapped field" in caplog.text

    def test_preserved_object_merges_with_mapped_object(self) -> None:
        applier = FieldMappingApplier(_table({"messages": "input.messages"}))
        output = applier.apply(
            {"messages": [1], "input": {"extra": 1, "nested": {"deep": True}}},
            ApplyOptions(preserve_unknown_fields=True),
        )
        assert output == {"input": {"messages": [1], "extra": 1, "nested": {"deep": True}}}

    def test_preserved_object_merge_does_not_alias_input(self) -> None:
        applier = FieldMappingApplier(_table({"messages": "input.messages"}))
        data = {"messages": [1], "input": {"nested": {"deep": True}}}
        output = applier.apply(data, ApplyOptions(preserve_unknown_fields=True))
        output["input"]["nested"]["deep"] = False
        assert data["input"]["nested"]["deep"] is True

    def test_dotted_keys_cover_their_head(self) -> None:
        applier = FieldMappingApplier(_table({"usage.input_tokens": "usage.prompt_tokens"}))
        output = applier.apply({"usage": {"input_tokens": 1}}, ApplyOptions(strict_mapping=True))
        assert output == {"usage": {"prompt_tokens": 1}}

    def test_strict_mapping_rejects_unknown(self) -> None:
        applier = FieldMappingApplier(_table({"model": "model"}))
        with pytest.raises(ValidationFailed) as exc_info:
            applier.apply({"model": "gpt-4", "user": "u1"}, ApplyOptions(strict_mapping=True))
        assert exc_info.value.field == "user"
        assert exc_info.value.constraint == "unmapped"

    def test_preserve_wins_over_strict(self) -> None:
        applier = FieldMappingApplier(_table({"model": "model"}))
        output = applier.apply(
            {"model": "gpt-4", "user": "u1"},
            ApplyOptions(strict_mapping=True, preserve_unknown_fields=True),
        )
        assert output == {"model": "gpt-4", "user": "u1"}
