"""
Tests for the expression evaluator.
"""

import math
from datetime import date
from typing import Any, Dict, Optional

import pytest

from dynaforms.expr import (
    EvaluationError,
    ExpressionParser,
    ExpressionScope,
    LimitExceededError,
    MethodError,
    OperatorError,
    SecurityError,
    evaluate,
    evaluate_as_boolean,
    evaluate_expression,
    parse,
)
from dynaforms.expr.limits import ExpressionLimits


def eval_expr(expression: str, bindings: Optional[Dict[str, Any]] = None) -> Any:
    """Evaluates an expression and returns its value, raising on failure."""
    return evaluate_expression(expression, bindings or {})


class TestLiterals:
    """Tests for literal evaluation."""

    def test_evaluates_literals(self):
        assert eval_expr('"hi"') == "hi"
        assert eval_expr("42") == 42
        assert eval_expr("true") is True
        assert eval_expr("null") is None
        assert eval_expr("undefined") is None

    def test_evaluates_array_literals(self):
        assert eval_expr("[1, 'a', null]") == [1, "a", None]


class TestBindings:
    """Tests for identifier and property resolution."""

    def test_resolves_bindings(self):
        assert eval_expr("fieldValue", {"fieldValue": "x"}) == "x"

    def test_missing_identifier_is_none(self):
        assert eval_expr("nothing") is None

    def test_reads_nested_properties(self):
        bindings = {"formValue": {"address": {"city": "Oslo"}}}
        assert eval_expr("formValue.address.city", bindings) == "Oslo"

    def test_missing_property_is_none(self):
        assert eval_expr("formValue.a.b.c", {"formValue": {}}) is None

    def test_property_of_null_is_none(self):
        assert eval_expr("formValue.a", {"formValue": None}) is None

    def test_reads_length(self):
        assert eval_expr("fieldValue.length", {"fieldValue": "abc"}) == 3
        assert eval_expr("fieldValue.length", {"fieldValue": [1, 2]}) == 2

    def test_reads_index(self):
        assert eval_expr("items[1]", {"items": ["a", "b"]}) == "b"
        assert eval_expr("items[5]", {"items": ["a"]}) is None
        assert eval_expr("obj['key']", {"obj": {"key": 1}}) == 1

    def test_does_not_expose_host_attributes(self):
        assert eval_expr("fieldValue.upper", {"fieldValue": "abc"}) is None

    def test_non_ascii_digits_are_not_indexes(self):
        assert eval_expr('items["\u00b2"]', {"items": ["a", "b", "c"]}) is None
        assert eval_expr('name["\u0663"]', {"name": "abcd"}) is None


class TestArithmetic:
    """Tests for arithmetic with JavaScript semantics."""

    def test_adds_numbers(self):
        assert eval_expr("3 + 4") == 7

    def test_concatenates_strings(self):
        assert eval_expr("'a' + 1") == "a1"
        assert eval_expr("1 + '2'") == "12"

    def test_null_in_arithmetic_is_nan(self):
        assert math.isnan(eval_expr("a + 1"))

    def test_division_keeps_integers_integral(self):
        assert eval_expr("6 / 3") == 2
        assert eval_expr("7 / 2") == 3.5

    def test_division_by_zero_is_none(self):
        assert eval_expr("1 / 0") is None
        assert eval_expr("1 % 0") is None

    def test_remainder_follows_dividend_sign(self):
        assert eval_expr("-7 % 3") == -1

    def test_overflow_is_an_operator_error(self):
        big = {"big": 10**400}
        with pytest.raises(OperatorError) as info:
            eval_expr("big / 3", big)
        assert info.value.operator == "/"
        with pytest.raises(OperatorError):
            eval_expr("big * 1.5", big)
        with pytest.raises(OperatorError):
            eval_expr("big % 2.5", big)

    def test_large_integers_stay_exact(self):
        assert eval_expr("big + 1", {"big": 10**400}) == 10**400 + 1

    def test_unary_operators(self):
        assert eval_expr("-'3'") == -3
        assert eval_expr("+'4'") == 4
        assert eval_expr("!0") is True


class TestComparison:
    """Tests for comparison and equality."""

    def test_strict_equality(self):
        assert eval_expr("1 === 1") is True
        assert eval_expr("1 === '1'") is False
        assert eval_expr("null === undefined") is True

    def test_loose_equality(self):
        assert eval_expr("1 == '1'") is True
        assert eval_expr("true == 1") is True
        assert eval_expr("null == 0") is False

    def test_compares_strings_lexicographically(self):
        assert eval_expr("'b' > 'a'") is True

    def test_compares_mixed_values_numerically(self):
        assert eval_expr("'10' > 9") is True

    def test_comparison_with_nan_is_false(self):
        assert eval_expr("'abc' < 1") is False
        assert eval_expr("'abc' >= 1") is False


class TestLogical:
    """Tests for logical operators and the ternary."""

    def test_and_returns_operand(self):
        assert eval_expr("'a' && 'b'") == "b"
        assert eval_expr("'' && 'b'") == ""

    def test_or_returns_operand(self):
        assert eval_expr("null || 'default'") == "default"

    def test_or_short_circuits(self):
        # The right side would call a method on null
        assert eval_expr("true || x.trim()") is True

    def test_empty_array_is_truthy(self):
        assert eval_expr("[] ? 'yes' : 'no'") == "yes"

    def test_ternary(self):
        assert eval_expr("age >= 18 ? 'adult' : 'minor'", {"age": 20}) == "adult"


class TestTypeof:
    """Tests for the typeof operator."""

    def test_typeof_values(self):
        assert eval_expr("typeof 1") == "number"
        assert eval_expr("typeof 'a'") == "string"
        assert eval_expr("typeof true") == "boolean"
        assert eval_expr("typeof null") == "undefined"
        assert eval_expr("typeof []") == "object"


class TestMethods:
    """Tests for whitelisted methods."""

    def test_string_methods(self):
        bindings = {"s": "  Hello World  "}
        assert eval_expr("s.trim()", bindings) == "Hello World"
        assert eval_expr("s.trim().toLowerCase()", bindings) == "hello world"
        assert eval_expr("s.includes('World')", bindings) is True
        assert eval_expr("s.trim().split(' ')", bindings) == ["Hello", "World"]

    def test_string_slicing(self):
        assert eval_expr("'abcdef'.slice(-2)") == "ef"
        assert eval_expr("'abcdef'.substring(4, 1)") == "bcd"

    def test_pad_start(self):
        assert eval_expr("'7'.padStart(3, '0')") == "007"

    def test_number_methods(self):
        assert eval_expr("n.toFixed(2)", {"n": 3.14159}) == "3.14"
        assert eval_expr("n.toString(2)", {"n": 5}) == "101"

    def test_array_methods(self):
        bindings = {"items": ["a", "b", "c"]}
        assert eval_expr("items.includes('b')", bindings) is True
        assert eval_expr("items.indexOf('c')", bindings) == 2
        assert eval_expr("items.join('-')", bindings) == "a-b-c"

    def test_date_methods(self):
        bindings = {"d": date(2024, 3, 15)}
        assert eval_expr("d.getFullYear()", bindings) == 2024
        assert eval_expr("d.getMonth()", bindings) == 2

    def test_method_on_null_raises(self):
        with pytest.raises(EvaluationError):
            eval_expr("x.trim()")

    def test_unknown_method_raises_security_error(self):
        with pytest.raises(SecurityError):
            eval_expr("'a'.localeCompare('b')")

    def test_repeat_with_negative_count_raises(self):
        with pytest.raises(MethodError):
            eval_expr("'a'.repeat(-1)")

    def test_repeat_is_bounded(self):
        with pytest.raises(LimitExceededError):
            eval_expr("'a'.repeat(100000)")


class TestSecurity:
    """Tests for blocked property access."""

    @pytest.mark.parametrize(
        "expression",
        [
            "formValue.constructor",
            "formValue.__proto__",
            "formValue['constructor']",
            "formValue.__class__",
            "fieldValue.prototype",
        ],
    )
    def test_blocks_dangerous_properties(self, expression):
        with pytest.raises(SecurityError):
            eval_expr(expression, {"formValue": {}, "fieldValue": "x"})

    def test_blocks_properties_on_null_receivers(self):
        with pytest.raises(SecurityError):
            eval_expr("nothing.constructor")


class TestResultApi:
    """Tests for the non-raising evaluate helpers."""

    def test_evaluate_reports_success(self):
        scope = ExpressionScope(bindings={"a": 1}, source="a + 1")
        result = evaluate(parse("a + 1"), scope)
        assert result.success
        assert result.value == 2

    def test_evaluate_reports_failure(self):
        scope = ExpressionScope(bindings={}, source="x.trim()")
        result = evaluate(parse("x.trim()"), scope)
        assert not result.success
        assert result.value is None
        assert result.error

    def test_evaluate_as_boolean(self):
        scope = ExpressionScope(bindings={"v": "x"})
        assert evaluate_as_boolean(parse("v"), scope) == (True, None)

    def test_evaluate_as_boolean_failure_is_false(self):
        scope = ExpressionScope(bindings={})
        value, error = evaluate_as_boolean(parse("x.trim()"), scope)
        assert value is False
        assert error


class TestExpressionParser:
    """Tests for the cached parser front end."""

    def test_caches_parsed_expressions(self):
        parser = ExpressionParser()
        parser.evaluate("a + 1", {"a": 1})
        parser.evaluate("a + 1", {"a": 2})
        assert parser.cache_info().hits == 1

    def test_validate_returns_message_for_invalid_expressions(self):
        parser = ExpressionParser()
        assert parser.validate("a +") is not None
        assert parser.validate("a + 1") is None

    def test_custom_limits_apply(self):
        parser = ExpressionParser(limits=ExpressionLimits(max_expression_length=5))
        with pytest.raises(LimitExceededError):
            parser.evaluate("aaaaaa", {})
