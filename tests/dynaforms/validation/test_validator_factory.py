"""
Tests for attaching validators to fields.
"""

import logging
import re

import pytest

from dynaforms.form.form_engine import FormEngine
from dynaforms.validation.validator_factory import apply_validator, parse_validator_config
from dynaforms.validation.validator_types import FieldError


def single_field(validators, value=None, extra_fields=(), custom_fn_config=None, **field_keys):
    config = {
        "fields": [
            *extra_fields,
            {"key": "target", "type": "input", "value": value, "validators": validators, **field_keys},
        ]
    }
    if custom_fn_config is not None:
        config["customFnConfig"] = custom_fn_config
    engine = FormEngine(config)
    return engine, engine.require_field("target")


class TestParseValidatorConfig:
    """Tests for validator entry parsing."""

    def test_builtin(self):
        assert parse_validator_config({"type": "minLength", "value": 3}).value == 3

    def test_malformed_entry_is_none(self, caplog):
        with caplog.at_level(logging.ERROR, logger="dynaforms.validation.validator_factory"):
            assert parse_validator_config({"type": "nonsense"}) is None
        assert any(r.message == "invalid_validator_config" for r in caplog.records)

    def test_custom_needs_a_source(self):
        assert parse_validator_config({"type": "custom"}) is None


class TestBuiltinValidators:
    """Tests for built-in validators on fields."""

    def test_required_and_min_length_combine(self):
        engine, node = single_field([{"type": "required"}, {"type": "minLength", "value": 3}])
        engine.set_field_value("target", "")
        assert set(node.errors()) == {"required"}
        engine.set_field_value("target", "ab")
        assert set(node.errors()) == {"minLength"}
        engine.set_field_value("target", "abc")
        assert node.errors() == {}
        assert node.valid()

    def test_required_sets_required_flag(self):
        _, node = single_field([{"type": "required"}])
        assert node.required() is True

    def test_min_without_value_is_skipped(self):
        _, node = single_field([{"type": "min"}], value=-5)
        assert node.errors() == {}

    def test_first_error_per_kind_wins(self):
        _, node = single_field([{"type": "min", "value": 10}, {"type": "min", "value": 100}], value=5)
        assert node.errors()["min"].params["min"] == 10

    def test_shorthand_keys(self):
        _, node = single_field([], value="x", minLength=2, pattern="[0-9]+")
        assert set(node.errors()) == {"minLength", "pattern"}

    def test_invalid_static_pattern_raises(self):
        with pytest.raises(re.error):
            single_field([{"type": "pattern", "value": "("}], value="x")


class TestConditionalValidators:
    """Tests for ``when`` gating."""

    def test_when_gates_validator(self):
        engine, node = single_field(
            [
                {
                    "type": "required",
                    "when": {"type": "fieldValue", "fieldPath": "contact", "operator": "equals", "value": "email"},
                }
            ],
            extra_fields=[{"key": "contact", "type": "select", "value": "phone"}],
        )
        assert node.errors() == {}
        assert node.required() is False
        engine.set_field_value("contact", "email")
        assert set(node.errors()) == {"required"}
        assert node.required() is True


class TestDynamicLimits:
    """Tests for expression-driven limits."""

    def test_limit_follows_other_field(self):
        engine, node = single_field(
            [{"type": "max", "expression": "formValue.budget"}],
            value=50,
            extra_fields=[{"key": "budget", "type": "input", "value": 100}],
        )
        assert node.errors() == {}
        engine.set_field_value("budget", 40)
        assert node.errors()["max"].params["max"] == 40

    def test_expression_wins_over_value(self):
        _, node = single_field([{"type": "min", "value": 1, "expression": "10"}], value=5)
        assert node.errors()["min"].params["min"] == 10

    def test_failing_expression_disables_check(self):
        _, node = single_field([{"type": "min", "expression": "formValue.nope.trim()"}], value=5)
        assert node.errors() == {}

    def test_dynamic_pattern(self):
        engine, node = single_field(
            [{"type": "pattern", "expression": "formValue.format"}],
            value="abc",
            extra_fields=[{"key": "format", "type": "input", "value": "[a-z]+"}],
        )
        assert node.errors() == {}
        engine.set_field_value("format", "[0-9]+")
        assert "pattern" in node.errors()

    def test_invalid_dynamic_pattern_is_logged(self, caplog):
        with caplog.at_level(logging.ERROR, logger="dynaforms.validation.validator_factory"):
            _, node = single_field(
                [{"type": "pattern", "expression": "formValue.format"}],
                value="abc",
                extra_fields=[{"key": "format", "type": "input", "value": "("}],
            )
            assert node.errors() == {}
        assert any(r.message == "dynamic_pattern_invalid" for r in caplog.records)


class TestExpressionValidators:
    """Tests for custom expression validators."""

    def test_truthy_expression_passes(self):
        engine, node = single_field(
            [
                {
                    "type": "custom",
                    "expression": "fieldValue === formValue.password",
                    "kind": "passwordMismatch",
                    "errorParams": {"expected": "formValue.password.length"},
                }
            ],
            value="secret",
            extra_fields=[{"key": "password", "type": "input", "value": "secret"}],
        )
        assert node.errors() == {}
        engine.set_field_value("password", "changed!")
        error = node.errors()["passwordMismatch"]
        assert error.params == {"expected": 8}

    def test_default_kind(self):
        _, node = single_field([{"type": "custom", "expression": "false"}])
        assert set(node.errors()) == {"custom"}

    def test_evaluation_error_is_a_failure(self):
        _, node = single_field([{"type": "custom", "expression": "fieldValue.trim()", "kind": "bad"}])
        assert set(node.errors()) == {"bad"}


class TestFunctionValidators:
    """Tests for registered validator functions."""

    def test_simple_validator(self):
        def no_spaces(value, params):
            if value and " " in value:
                return {"kind": "noSpaces", "limit": params["limit"]}
            return None

        engine, node = single_field(
            [{"type": "custom", "functionName": "noSpaces", "params": {"limit": 1}}],
            value="ok",
            custom_fn_config={"validators": {"noSpaces": no_spaces}},
        )
        assert node.errors() == {}
        engine.set_field_value("target", "not ok")
        assert node.errors()["noSpaces"].params == {"limit": 1}

    def test_context_validator_reads_other_fields(self):
        def after_start(ctx, params):
            form = ctx.evaluation_context().form_value
            if form["target"] is not None and form["target"] < form["start"]:
                return FieldError("beforeStart")
            return None

        engine, node = single_field(
            [{"type": "custom", "functionName": "afterStart"}],
            value=5,
            extra_fields=[{"key": "start", "type": "input", "value": 1}],
            custom_fn_config={"contextValidators": {"afterStart": after_start}},
        )
        assert node.errors() == {}
        engine.set_field_value("start", 10)
        assert set(node.errors()) == {"beforeStart"}

    def test_tree_validator_wins_over_simple(self):
        engine, node = single_field(
            [{"type": "custom", "functionName": "check"}],
            custom_fn_config={
                "validators": {"check": lambda value, params: FieldError("simple")},
                "treeValidators": {"check": lambda ctx, params: FieldError("tree")},
            },
        )
        assert set(node.errors()) == {"tree"}

    def test_missing_function_is_skipped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="dynaforms.validation.validator_factory"):
            _, node = single_field([{"type": "custom", "functionName": "ghost"}])
        assert node.errors() == {}
        assert any(r.message == "custom_validator_not_found" for r in caplog.records)

    def test_raising_validator_is_logged(self, caplog):
        def broken(value, params):
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR, logger="dynaforms.validation.validator_factory"):
            _, node = single_field(
                [{"type": "custom", "functionName": "broken"}],
                custom_fn_config={"validators": {"broken": broken}},
            )
            assert node.errors() == {}
        assert any(r.message == "custom_validator_failed" for r in caplog.records)


class TestBindingLifecycle:
    """Tests for removing validators."""

    def test_disposing_binding_removes_errors(self):
        engine, node = single_field([], value="")
        binding = apply_validator({"type": "required"}, node, engine.field_context(node))
        assert "required" in node.errors()
        binding.dispose()
        assert node.errors() == {}
