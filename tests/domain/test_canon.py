"""Tests for the canonicalizer."""

from __future__ import annotations

import pytest

from treeq.domain.canon import canonicalize, canonicalize_records, to_canonical_json
from treeq.domain.errors import DepthLimitError


class TestCanonicalize:
    def test_sorts_keys_recursively(self) -> None:
        result = canonicalize({"b": 1, "a": {"d": 2, "c": 3}})
        assert list(result) == ["a", "b"]
        assert list(result["a"]) == ["c", "d"]

    def test_arrays_keep_order(self) -> None:
        assert canonicalize([3, 1, 2]) == [3, 1, 2]

    def test_idempotent(self) -> None:
        value = {"z": [{"y": 1, "x": [True, None, "s"]}], "a": 2.5}
        once = canonicalize(value)
        assert to_canonical_json(canonicalize(once)) == to_canonical_json(once)

    def test_key_order_never_matters(self) -> None:
        left = canonicalize({"a": 1, "b": {"c": 2, "d": 3}})
        right = canonicalize({"b": {"d": 3, "c": 2}, "a": 1})
        assert to_canonical_json(left) == to_canonical_json(right)

    def test_scalars_untouched(self) -> None:
        assert canonicalize({"n": "true", "m": "1"}) == {"m": "1", "n": "true"}

    def test_input_not_mutated(self) -> None:
        value = {"b": [1], "a": 0}
        result = canonicalize(value)
        result["b"].append(2)
        assert list(value) == ["b", "a"]
        assert value["b"] == [1]

    def test_no_sort_keeps_input_order(self) -> None:
        assert list(canonicalize({"b": 1, "a": 2}, sort_keys=False)) == ["b", "a"]

    def test_sorts_by_code_point(self) -> None:
        result = canonicalize({"b": 1, "B": 2, "é": 3, "a": 4})
        assert list(result) == ["B", "a", "b", "é"]

    def test_depth_limit(self) -> None:
        with pytest.raises(DepthLimitError):
            canonicalize([[[1]]], max_depth=2)


class TestCanonicalizeRecords:
    def test_each_record_canonical(self) -> None:
        records = canonicalize_records([{"b": 1, "a": 2}, {"d": 1, "c": 2}])
        assert [list(r) for r in records] == [["a", "b"], ["c", "d"]]


class TestCanonicalJson:
    def test_compact_and_sorted(self) -> None:
        assert to_canonical_json({"b": [1, 2], "a": "x"}) == '{"a":"x","b":[1,2]}'

    def test_unicode_kept(self) -> None:
        assert to_canonical_json({"k": "ü"}) == '{"k":"ü"}'
