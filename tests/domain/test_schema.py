"""Tests for JSON Schema mode."""

from __future__ import annotations

from typing import Any

import pytest

from treeq.domain.errors import DepthLimitError, RuleLoadError
from treeq.domain.schema import compile_schema, validate_schema

SCORE_SCHEMA = {
    "type": "object",
    "required": ["id", "score"],
    "properties": {
        "id": {"type": "integer"},
        "score": {"type": "number", "maximum": 100},
    },
}


def _check(schema: Any, records: list[Any]) -> list[dict[str, Any]]:
    return [m.as_data() for m in validate_schema(compile_schema(schema), records)]


class TestValidateSchema:
    def test_valid_records_pass(self) -> None:
        assert _check(SCORE_SCHEMA, [{"id": 1, "score": 50}, {"id": 2, "score": 100}]) == []

    def test_mismatch_shape(self) -> None:
        found = _check(SCORE_SCHEMA, [{"id": "x", "score": 200}])
        assert [(m["path"], m["rule_kind"], m["reason"]) for m in found] == [
            ("$[0].id", "schema", "schema_mismatch"),
            ("$[0].score", "schema", "schema_mismatch"),
        ]
        assert found[0]["actual"] == "x"
        assert found[0]["expected"]["schema_path"] == "/properties/id/type"
        assert "integer" in found[0]["expected"]["message"]
        assert found[1]["actual"] == 200
        assert found[1]["expected"]["schema_path"] == "/properties/score/maximum"

    def test_missing_property_reports_the_object(self) -> None:
        found = _check(SCORE_SCHEMA, [{"score": 1}])
        assert len(found) == 1
        assert found[0]["path"] == "$[0]"
        assert found[0]["actual"] == {"score": 1}
        assert found[0]["expected"]["schema_path"] == "/required"
        assert "'id' is a required property" in found[0]["expected"]["message"]

    def test_sorted_by_record_then_path(self) -> None:
        records = [{"id": 1, "score": 101}, {"id": "b", "score": 1}, {"id": "c", "score": 500}]
        found = _check(SCORE_SCHEMA, records)
        assert [m["path"] for m in found] == ["$[0].score", "$[1].id", "$[2].id", "$[2].score"]

    def test_awkward_keys_are_bracketed(self) -> None:
        schema = {
            "properties": {
                "first name": {"type": "string"},
                "tags": {"items": {"type": "string"}},
            }
        }
        found = _check(schema, [{"first name": 1, "tags": ["a", 2]}])
        assert [m["path"] for m in found] == ['$[0]["first name"]', "$[0].tags[1]"]
        assert found[1]["expected"]["schema_path"] == "/properties/tags/items/type"

    def test_false_schema_rejects_every_record(self) -> None:
        found = _check(False, [{}, 1])
        assert [m["path"] for m in found] == ["$[0]", "$[1]"]
        assert found[0]["expected"]["schema_path"] == ""

    def test_true_schema_accepts_everything(self) -> None:
        assert _check(True, [{}, [], None]) == []

    def test_depth_limit(self) -> None:
        validator = compile_schema({"type": "object"})
        with pytest.raises(DepthLimitError):
            validate_schema(validator, [{"a": {"b": {}}}], max_depth=2)


class TestCompileSchema:
    def test_default_draft(self) -> None:
        assert type(compile_schema({})).__name__ == "Draft202012Validator"

    def test_declared_draft(self) -> None:
        schema = {"$schema": "http://json-schema.org/draft-07/schema#"}
        assert type(compile_schema(schema)).__name__ == "Draft7Validator"

    def test_invalid_schema(self) -> None:
        with pytest.raises(RuleLoadError, match="invalid schema") as info:
            compile_schema({"type": 123})
        assert info.value.code == "USAGE_ERROR"
        assert "schema_path" in info.value.detail

    @pytest.mark.parametrize("schema", [[], "object", 3, None])
    def test_schema_must_be_object_or_boolean(self, schema: Any) -> None:
        with pytest.raises(RuleLoadError, match="expected an object or a boolean"):
            compile_schema(schema)
