"""
Tests for comparison operators and dot-path access.
"""

import pytest

from dynaforms.core.value_utils import (
    compare_values,
    deep_equals,
    get_nested_value,
    has_nested_property,
    set_nested_value,
)


class TestEquality:
    """Tests for equals and notEquals."""

    def test_equals_is_strict(self):
        assert compare_values(5, 5, "equals")
        assert not compare_values("5", 5, "equals")
        assert not compare_values(1, True, "equals")

    def test_none_equals_none(self):
        assert compare_values(None, None, "equals")
        assert not compare_values(None, "", "equals")

    def test_not_equals(self):
        assert compare_values("a", "b", "notEquals")
        assert not compare_values("a", "a", "notEquals")

    def test_containers_compare_by_identity(self):
        items = ["a"]
        assert compare_values(items, items, "equals")
        assert not compare_values(["a"], ["a"], "equals")


class TestOrdering:
    """Tests for numeric ordering operators."""

    @pytest.mark.parametrize(
        "actual,expected,operator,result",
        [
            (10, 5, "greater", True),
            (5, 5, "greater", False),
            (5, 5, "greaterOrEqual", True),
            (3, 5, "less", True),
            (5, 5, "lessOrEqual", True),
            ("10", 9, "greater", True),
            ("", 1, "less", True),
        ],
    )
    def test_orders_with_number_coercion(self, actual, expected, operator, result):
        assert compare_values(actual, expected, operator) is result

    def test_nan_operands_are_false(self):
        assert not compare_values("abc", 1, "greater")
        assert not compare_values("abc", 1, "less")
        assert not compare_values(None, 0, "greaterOrEqual")


class TestStringOperators:
    """Tests for contains, startsWith, endsWith and matches."""

    def test_contains(self):
        assert compare_values("hello world", "world", "contains")
        assert not compare_values("hello", "xyz", "contains")

    def test_contains_coerces_arrays(self):
        assert compare_values(["a", "b"], "a,b", "contains")

    def test_starts_and_ends_with(self):
        assert compare_values("prefix-x", "prefix", "startsWith")
        assert compare_values("file.pdf", ".pdf", "endsWith")
        assert compare_values(123, 1, "startsWith")

    def test_matches_searches(self):
        assert compare_values("order-42", r"\d+", "matches")
        assert not compare_values("order", r"^\d+$", "matches")

    def test_invalid_pattern_is_false(self):
        assert compare_values("abc", "(", "matches") is False

    def test_unknown_operator_is_false(self):
        assert compare_values(1, 1, "sameAs") is False


class TestGetNestedValue:
    """Tests for dot-path reads."""

    def test_reads_nested_keys(self):
        assert get_nested_value({"a": {"b": {"c": 1}}}, "a.b.c") == 1

    def test_reads_list_indexes(self):
        assert get_nested_value({"hobbies": ["x", "y"]}, "hobbies.1") == "y"

    def test_missing_paths_are_none(self):
        assert get_nested_value({"a": 1}, "b") is None
        assert get_nested_value({"a": 1}, "a.b") is None
        assert get_nested_value({"a": [1]}, "a.5") is None
        assert get_nested_value(None, "a") is None

    def test_empty_path_is_none(self):
        assert get_nested_value({"a": 1}, "") is None

    def test_has_nested_property_sees_none_values(self):
        assert has_nested_property({"a": None}, "a")
        assert not has_nested_property({"a": None}, "a.b")


class TestSetNestedValue:
    """Tests for copy-on-write dot-path writes."""

    def test_does_not_mutate_the_original(self):
        original = {"a": {"b": 1}, "c": 2}
        updated = set_nested_value(original, "a.b", 5)
        assert updated == {"a": {"b": 5}, "c": 2}
        assert original == {"a": {"b": 1}, "c": 2}

    def test_creates_intermediate_objects(self):
        assert set_nested_value({}, "a.b.c", 1) == {"a": {"b": {"c": 1}}}

    def test_writes_list_indexes(self):
        assert set_nested_value({"items": ["a"]}, "items.2", "c") == {"items": ["a", None, "c"]}

    def test_empty_path_raises(self):
        with pytest.raises(ValueError):
            set_nested_value({}, "", 1)


class TestDeepEquals:
    """Tests for structural equality."""

    def test_structures(self):
        assert deep_equals({"a": [1, {"b": 2}]}, {"a": [1, {"b": 2}]})
        assert not deep_equals({"a": 1}, {"a": 1, "b": 2})
        assert not deep_equals([1, 2], [2, 1])

    def test_primitives_are_strict(self):
        assert not deep_equals(1, True)
        assert not deep_equals("1", 1)
        assert not deep_equals([], {})
