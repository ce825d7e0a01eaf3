"""Tests for value classification, entity snapshots and the comparators."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from functools import cmp_to_key

import pytest

from pathstore import Key, PathElement, ValidationError, ValueKind, compare_keys, compare_values
from pathstore.values import check_filter_value, kind_of, snapshot_entity


class TestKindOf:
    @pytest.mark.parametrize(
        "value, kind",
        [
            (1, ValueKind.INT),
            (True, ValueKind.BOOL),
            (1.5, ValueKind.FLOAT),
            ("a", ValueKind.STRING),
            (datetime(2024, 1, 1), ValueKind.TIMESTAMP),
            (Key.root().append("K", 1), ValueKind.KEY),
            (b"\x00", ValueKind.BLOB),
        ],
    )
    def test_kinds(self, value, kind):
        assert kind_of(value) == kind

    def test_unsupported(self):
        with pytest.raises(ValidationError, match="Unsupported"):
            kind_of({"nested": 1})

    def test_none_unsupported(self):
        with pytest.raises(ValidationError):
            kind_of(None)

    def test_int64_range(self):
        with pytest.raises(ValidationError, match="64-bit"):
            kind_of(2**64)

    def test_incomplete_key_value(self):
        with pytest.raises(ValidationError, match="complete"):
            kind_of(Key.root().append("K"))


class TestSnapshot:
    def test_copies_lists(self):
        original = {"Values": [1, 2, 3]}
        snap = snapshot_entity(original)
        original["Values"].append(4)
        assert snap == {"Values": [1, 2, 3]}

    def test_tuple_stored_as_list(self):
        assert snapshot_entity({"Values": (1, 2)}) == {"Values": [1, 2]}

    def test_bytes_is_single_value(self):
        assert snapshot_entity({"Data": b"abc"}) == {"Data": b"abc"}

    def test_rejects_non_mapping(self):
        with pytest.raises(ValidationError, match="mapping"):
            snapshot_entity([("a", 1)])

    def test_rejects_non_string_field_names(self):
        with pytest.raises(ValidationError, match="Field names"):
            snapshot_entity({1: "a"})

    def test_rejects_nested_lists(self):
        with pytest.raises(ValidationError, match="nested"):
            snapshot_entity({"Values": [[1], [2]]})

    def test_rejects_bad_list_element(self):
        with pytest.raises(ValidationError):
            snapshot_entity({"Values": [1, object()]})


class TestFilterValues:
    def test_blob_not_filterable(self):
        with pytest.raises(ValidationError, match="unindexed"):
            check_filter_value(b"abc")

    def test_list_not_filterable(self):
        with pytest.raises(ValidationError, match="single"):
            check_filter_value([1, 2])


class TestCompareValues:
    def test_kind_precedence(self):
        ordered = [
            7,
            datetime(2000, 1, 1),
            False,
            "text",
            0.5,
            Key.root().append("K", 1),
        ]
        for lower, higher in zip(ordered, ordered[1:]):
            assert compare_values(lower, higher) == -1
            assert compare_values(higher, lower) == 1

    def test_int_precedes_float_regardless_of_magnitude(self):
        assert compare_values(1000, 0.1) == -1

    def test_within_kind(self):
        assert compare_values(1, 2) == -1
        assert compare_values(2.5, 2.5) == 0
        assert compare_values("b", "a") == 1
        assert compare_values(False, True) == -1

    def test_strings_by_code_point(self):
        assert compare_values("Z", "a") == -1

    def test_timestamps(self):
        early = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert compare_values(early, early + timedelta(seconds=1)) == -1

    def test_naive_timestamps_compare_as_utc(self):
        aware = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        naive = datetime(2024, 1, 1, 12)
        assert compare_values(naive, aware) == 0

    def test_blobs_not_comparable(self):
        with pytest.raises(ValidationError):
            compare_values(b"a", b"b")


class TestCompareKeys:
    def test_deeper_keys_first(self):
        shallow = Key.root().append("Test", 1)
        deep = Key.root().append("Parent", 9).append("Test", 1)
        assert compare_keys(deep, shallow) == -1
        assert compare_keys(shallow, deep) == 1

    def test_int_ids_before_string_ids(self):
        assert compare_keys(Key.root().append("T", 2), Key.root().append("T", "2")) == -1

    def test_ids_compared_by_value(self):
        assert compare_keys(Key.root().append("T", 2), Key.root().append("T", 10)) == -1
        assert compare_keys(Key.root().append("T", "b"), Key.root().append("T", "a")) == 1

    def test_tie_falls_back_to_parents(self):
        left = Key.root().append("Parent", 1).append("Test", 2)
        right = Key.root().append("Parent", 2).append("Test", 2)
        assert compare_keys(left, right) == -1

    def test_equal_keys(self):
        key = Key.root().append("Parent", 1).append("Test", 2)
        assert compare_keys(key, key) == 0

    def test_kind_and_namespace_ignored(self):
        assert compare_keys(Key.root("a").append("X", 1), Key.root("b").append("Y", 1)) == 0

    def test_key_values_use_key_order(self):
        assert compare_values(Key.root().append("T", 1), Key.root().append("T", "1")) == -1


class TestFloatEdges:
    def test_nan_before_every_float(self):
        nan = float("nan")
        for value in (float("-inf"), -1.0, 0.0, 2.5, float("inf")):
            assert compare_values(nan, value) == -1
            assert compare_values(value, nan) == 1

    def test_nan_equals_nan(self):
        assert compare_values(float("nan"), float("nan")) == 0

    def test_infinities_bound_finite_floats(self):
        assert compare_values(float("-inf"), -1e308) == -1
        assert compare_values(float("inf"), 1e308) == 1
        assert compare_values(float("inf"), float("inf")) == 0

    def test_nan_still_after_other_kinds(self):
        assert compare_values(10**18, float("nan")) == -1
        assert compare_values(float("nan"), Key.root().append("K", 1)) == -1

    def test_sorting_with_nan_is_total(self):
        nan = float("nan")
        values = [3.0, nan, 1.0, float("-inf"), nan, 0.5]
        ordered = sorted(values, key=cmp_to_key(compare_values))
        assert all(math.isnan(v) for v in ordered[:2])
        assert ordered[2:] == [float("-inf"), 0.5, 1.0, 3.0]


class TestHandBuiltKeyValues:
    def test_float_id_in_key_value(self):
        with pytest.raises(ValidationError, match="Key id"):
            kind_of(Key("", (PathElement("K", 1.5),)))

    def test_list_path_in_key_value(self):
        with pytest.raises(ValidationError, match="tuple"):
            kind_of(Key("", [PathElement("K", 1)]))
