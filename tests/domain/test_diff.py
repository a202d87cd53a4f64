"""Tests for the structural diff engine."""

from __future__ import annotations

import pytest

from treeq.domain.diff import DiffReport, diff
from treeq.domain.errors import DepthLimitError, InternalFault, UsageError
from treeq.domain.paths import ValuePath

ID = ValuePath.of("id")


def _paths(report: DiffReport) -> list[str]:
    return [str(item.path) for item in report.values.items]


class TestIdentity:
    @pytest.mark.parametrize(
        "records",
        [
            [],
            [{"a": 1}],
            [{"a": [1, {"b": None}], "c": "x"}, 3, "s", None, [True]],
        ],
    )
    def test_self_diff_is_empty(self, records: list[object]) -> None:
        report = diff(records, records)
        assert report.values.total == 0
        assert report.keys.left_only == ()
        assert report.keys.right_only == ()
        assert not report.has_differences

    def test_key_order_and_numeric_form_ignored(self) -> None:
        report = diff([{"a": 1, "b": 2}], [{"b": 2.0, "a": 1}])
        assert report.values.total == 0


class TestPositional:
    def test_scalar_change(self) -> None:
        report = diff([{"a": 1}], [{"a": 2}])
        assert report.values.total == 1
        item = report.values.items[0]
        assert str(item.path) == '$[0]["a"]'
        assert (item.actual, item.expected) == (1, 2)

    def test_kind_mismatch(self) -> None:
        report = diff([{"a": 1}], [{"a": "1"}])
        assert _paths(report) == ['$[0]["a"]']

    def test_bool_vs_number_differs(self) -> None:
        assert diff([True], [1]).values.total == 1

    def test_one_sided_keys_render_null(self) -> None:
        report = diff([{"a": 1}], [{"b": 2}])
        items = [(str(i.path), i.actual, i.expected) for i in report.values.items]
        assert items == [('$[0]["a"]', 1, None), ('$[0]["b"]', None, 2)]

    def test_array_length_mismatch(self) -> None:
        report = diff([{"arr": [1, 2, 3]}], [{"arr": [1, 9]}])
        assert _paths(report) == ['$[0]["arr"][1]', '$[0]["arr"]']
        assert report.values.items[1].actual == [1, 2, 3]
        assert report.values.items[1].expected == [1, 9]

    def test_traversal_order(self) -> None:
        left = [{"b": 1, "a": {"y": 1, "x": 1}}, {"z": 1}]
        right = [{"b": 2, "a": {"y": 2, "x": 2}}, {"z": 2}]
        assert _paths(diff(left, right)) == [
            '$[0]["a"]["x"]',
            '$[0]["a"]["y"]',
            '$[0]["b"]',
            '$[1]["z"]',
        ]

    def test_unpaired_indexes(self) -> None:
        report = diff([1, 2, 3], [1])
        assert [str(p) for p in report.keys.left_only] == ["$[1]", "$[2]"]
        assert report.keys.right_only == ()
        assert report.values.total == 0
        assert report.counts.delta == -2
        assert not report.counts.equal
        assert report.has_differences

    def test_values_in_items_are_canonical(self) -> None:
        report = diff([{"a": {"d": 1, "c": 2}}], [{"a": 1}])
        assert list(report.values.items[0].actual) == ["c", "d"]


class TestKeyed:
    def test_pairs_by_key(self) -> None:
        report = diff([{"id": 1, "a": 1}], [{"id": 1, "a": 2}], key_path=ID)
        assert report.values.total == 1
        assert _paths(report) == ['$[0]["a"]']

    def test_reordered_records_pair_up(self) -> None:
        left = [{"id": 1, "v": "a"}, {"id": 2, "v": "b"}]
        right = [{"id": 2, "v": "b"}, {"id": 1, "v": "a"}]
        assert diff(left, right, key_path=ID).values.total == 0

    def test_item_paths_use_left_index(self) -> None:
        left = [{"id": 1, "v": 0}, {"id": 2, "v": 0}]
        right = [{"id": 2, "v": 1}]
        report = diff(left, right, key_path=ID)
        assert _paths(report) == ['$[1]["v"]']
        assert [str(p) for p in report.keys.left_only] == ["$[0]"]

    def test_unpaired_lists_own_side_index(self) -> None:
        left = [{"id": "a"}, {"id": "b"}]
        right = [{"id": "c"}, {"id": "b"}, {"id": "d"}]
        report = diff(left, right, key_path=ID)
        assert [str(p) for p in report.keys.left_only] == ["$[0]"]
        assert [str(p) for p in report.keys.right_only] == ["$[0]", "$[2]"]

    def test_numeric_key_forms_match(self) -> None:
        report = diff([{"id": 1, "v": 1}], [{"id": 1.0, "v": 1}], key_path=ID)
        assert not report.has_differences

    def test_missing_key_is_usage_error(self) -> None:
        with pytest.raises(UsageError, match="no value at key path"):
            diff([{"id": 1}, {"x": 2}], [], key_path=ID)

    def test_duplicate_key_is_usage_error(self) -> None:
        with pytest.raises(UsageError, match="duplicate key") as excinfo:
            diff([], [{"id": 1}, {"id": 1}], key_path=ID)
        assert excinfo.value.detail["side"] == "right"


class TestIgnore:
    def test_ignored_subtree_skipped(self) -> None:
        left = [{"meta": {"ts": 1, "etag": "a"}, "v": 1}]
        right = [{"meta": {"ts": 2, "etag": "b"}, "v": 1}]
        report = diff(left, right, ignore_paths=[ValuePath.of("meta")])
        assert report.values.total == 0

    def test_ignored_leaf_only(self) -> None:
        left = [{"meta": {"ts": 1, "etag": "a"}}]
        right = [{"meta": {"ts": 2, "etag": "b"}}]
        report = diff(left, right, ignore_paths=[ValuePath.of("meta", "ts")])
        assert _paths(report) == ['$[0]["meta"]["etag"]']

    def test_ignored_one_sided_key(self) -> None:
        report = diff([{"a": 1, "tmp": 1}], [{"a": 1}], ignore_paths=[ValuePath.of("tmp")])
        assert report.values.total == 0

    def test_ignored_paths_echoed_sorted_unique(self) -> None:
        ignore = [ValuePath.of("b"), ValuePath.of("a"), ValuePath.of("b")]
        report = diff([], [], ignore_paths=ignore)
        assert [str(p) for p in report.ignored_paths] == ['$["a"]', '$["b"]']


class TestCap:
    @pytest.mark.parametrize("cap", [0, 1, 3, 5, 100])
    def test_items_capped(self, cap: int) -> None:
        left = [{"k": i} for i in range(5)]
        right = [{"k": i + 1} for i in range(5)]
        report = diff(left, right, value_diff_cap=cap)
        assert report.values.total == 5
        assert len(report.values.items) == min(5, cap)
        assert report.values.truncated == (5 > cap)

    def test_negative_cap_is_usage_error(self) -> None:
        with pytest.raises(UsageError):
            diff([], [], value_diff_cap=-1)


class TestSymmetry:
    def test_swap_preserves_total_and_swaps_sides(self) -> None:
        left = [{"a": 1, "b": [1, 2]}, {"c": 1}, {"d": 0}]
        right = [{"a": 2, "b": [1]}, {"c": 1, "e": 2}]
        forward = diff(left, right)
        backward = diff(right, left)
        assert forward.values.total == backward.values.total
        assert forward.keys.left_only == backward.keys.right_only
        assert forward.keys.right_only == backward.keys.left_only
        pairs = {(str(i.path), repr(i.actual), repr(i.expected)) for i in forward.values.items}
        swapped = {(str(i.path), repr(i.expected), repr(i.actual)) for i in backward.values.items}
        assert pairs == swapped


class TestReportData:
    def test_as_data_shape(self) -> None:
        data = diff([{"a": 1}], [{"a": 2}, {"a": 3}]).as_data()
        assert data["counts"] == {"left": 1, "right": 2, "delta": 1, "equal": False}
        assert data["keys"] == {"left_only": [], "right_only": ["$[1]"]}
        assert data["key_paths"] == {"left_only": [], "right_only": [], "shared": ['$["a"]']}
        assert data["values"]["items"] == [{"path": '$[0]["a"]', "actual": 1, "expected": 2}]


class TestKeyPaths:
    def test_split_by_side(self) -> None:
        left = [{"id": 1, "meta": {"a": 1, "b": 2}, "tags": [{"n": 1}, {"m": 2}]}]
        right = [{"id": 1, "meta": {"a": 1}, "extra": True}]
        data = diff(left, right).as_data()["key_paths"]
        assert data["shared"] == ['$["id"]', '$["meta"]', '$["meta"]["a"]']
        assert data["left_only"] == [
            '$["meta"]["b"]',
            '$["tags"]',
            '$["tags"]["m"]',
            '$["tags"]["n"]',
        ]
        assert data["right_only"] == ['$["extra"]']

    def test_unpaired_records_contribute(self) -> None:
        report = diff([{"a": 1}], [{"a": 1}, {"b": 2}])
        assert report.key_paths.right_only == (ValuePath.of("b"),)
        assert report.key_paths.shared == (ValuePath.of("a"),)

    def test_ignored_subtree_excluded(self) -> None:
        left = [{"meta": {"ts": 1}, "a": 1}]
        right = [{"meta": {"ts": 2, "etag": "x"}, "a": 1}]
        report = diff(left, right, ignore_paths=[ValuePath.of("meta")])
        assert report.key_paths.left_only == ()
        assert report.key_paths.right_only == ()
        assert report.key_paths.shared == (ValuePath.of("a"),)

    def test_self_diff_shares_everything(self) -> None:
        records = [{"a": {"b": [{"c": 1}]}}, 5]
        report = diff(records, records)
        assert report.key_paths.left_only == ()
        assert report.key_paths.right_only == ()
        assert [str(p) for p in report.key_paths.shared] == [
            '$["a"]',
            '$["a"]["b"]',
            '$["a"]["b"]["c"]',
        ]

    def test_swap_exchanges_sides(self) -> None:
        left = [{"a": 1, "b": {"c": 1}}]
        right = [{"a": 2, "d": 1}]
        forward = diff(left, right).key_paths
        backward = diff(right, left).key_paths
        assert forward.left_only == backward.right_only
        assert forward.right_only == backward.left_only
        assert forward.shared == backward.shared


class TestGuards:
    def test_depth_limit(self) -> None:
        deep: object = 1
        for _ in range(6):
            deep = {"n": deep}
        with pytest.raises(DepthLimitError):
            diff([deep], [{}], max_depth=5)
        assert diff([deep], [deep], max_depth=6).values.total == 0

    def test_unrenderable_path_is_internal_fault(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("treeq.domain.paths._encode_segment", lambda segment: f"[{segment}]")
        with pytest.raises(InternalFault, match="does not parse back"):
            diff([{"a": 1}], [{"a": 2}])
