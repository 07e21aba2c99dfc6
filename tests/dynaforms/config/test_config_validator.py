"""
Tests for raw form configuration validation.
"""

import pytest

from dynaforms.config.config_validator import get_fix_suggestion, validate_form_config
from dynaforms.config.errors import ConfigurationError
from dynaforms.models.form_config import FormConfig


def errors_at(result, path):
    return [error for error in result.errors if error.path == path]


class TestValidConfigs:
    """Tests for configurations that pass."""

    def test_minimal_config(self):
        result = validate_form_config({"fields": [{"key": "name", "type": "input"}]})
        assert result.valid
        assert isinstance(result.config, FormConfig)
        assert result.format_report() == "Form configuration is valid."

    def test_model_input(self):
        config = FormConfig.model_validate({"fields": [{"key": "name", "type": "input", "required": True}]})
        assert validate_form_config(config).valid

    def test_ui_integration_is_recorded(self):
        assert validate_form_config({"fields": []}, ui_integration="material").ui_integration == "material"

    def test_unknown_ui_integration_raises(self):
        with pytest.raises(ValueError):
            validate_form_config({"fields": []}, ui_integration="tkinter")


class TestStructuralRules:
    """Tests for the rules checked on raw mappings."""

    def test_hide_when_has_fix_hint(self):
        result = validate_form_config({"fields": [{"key": "a", "type": "input", "hideWhen": "x"}]})
        [error] = errors_at(result, "fields.0.hideWhen")
        assert "logic" in error.fix

    def test_container_label(self):
        result = validate_form_config({"fields": [{"key": "g", "type": "group", "label": "G", "fields": []}]})
        [error] = errors_at(result, "fields.0.label")
        assert error.fix.startswith("Remove `label`")

    def test_array_template(self):
        result = validate_form_config({"fields": [{"key": "items", "type": "array", "template": []}]})
        assert errors_at(result, "fields.0.template")

    def test_hidden_field_needs_value(self):
        result = validate_form_config({"fields": [{"key": "id", "type": "hidden"}]})
        [error] = errors_at(result, "fields.0.value")
        assert "value" in error.fix

    def test_hidden_field_forbids_validators(self):
        result = validate_form_config(
            {"fields": [{"key": "id", "type": "hidden", "value": 1, "required": True}]}
        )
        assert errors_at(result, "fields.0.required")

    def test_containers_only_take_hidden_logic(self):
        result = validate_form_config(
            {
                "fields": [
                    {
                        "key": "g",
                        "type": "group",
                        "fields": [],
                        "logic": [{"type": "hidden", "condition": True}, {"type": "disabled", "condition": True}],
                    }
                ]
            }
        )
        assert [error.path for error in result.errors] == ["fields.0.logic.1"]

    def test_nested_fields_are_checked(self):
        result = validate_form_config(
            {"fields": [{"key": "p", "type": "page", "fields": [{"key": "x", "type": "input", "showWhen": 1}]}]}
        )
        assert errors_at(result, "fields.0.fields.0.showWhen")

    def test_duplicate_keys(self):
        result = validate_form_config(
            {
                "fields": [
                    {"key": "r", "type": "row", "fields": [{"key": "email", "type": "input"}]},
                    {"key": "email", "type": "input"},
                ]
            }
        )
        [error] = errors_at(result, "fields")
        assert "'email'" in error.message

    def test_same_key_in_different_groups_is_fine(self):
        result = validate_form_config(
            {
                "fields": [
                    {"key": "home", "type": "group", "fields": [{"key": "city", "type": "input"}]},
                    {"key": "work", "type": "group", "fields": [{"key": "city", "type": "input"}]},
                ]
            }
        )
        assert result.valid


class TestExpressionChecks:
    """Tests for expression syntax checks."""

    def test_invalid_derivation(self):
        result = validate_form_config({"fields": [{"key": "t", "type": "input", "derivation": "a +"}]})
        [error] = errors_at(result, "fields.0.derivation")
        assert error.message.startswith("Invalid expression: ")

    def test_invalid_condition_expression(self):
        result = validate_form_config(
            {
                "fields": [
                    {
                        "key": "t",
                        "type": "input",
                        "logic": [
                            {
                                "type": "hidden",
                                "condition": {
                                    "type": "and",
                                    "conditions": [{"type": "javascript", "expression": "alert(1)"}],
                                },
                            }
                        ],
                    }
                ]
            }
        )
        assert errors_at(result, "fields.0.logic.0.condition.conditions.0.expression")

    def test_invalid_error_param(self):
        result = validate_form_config(
            {
                "fields": [
                    {
                        "key": "t",
                        "type": "input",
                        "validators": [{"type": "custom", "expression": "true", "errorParams": {"n": "=="}}],
                    }
                ]
            }
        )
        assert errors_at(result, "fields.0.validators.0.errorParams.n")


class TestModelErrors:
    """Tests for type errors reported by the models."""

    def test_missing_key(self):
        result = validate_form_config({"fields": [{"type": "input"}]})
        assert errors_at(result, "fields.0.key")

    def test_not_a_mapping(self):
        result = validate_form_config(["fields"])
        assert result.errors[0].message == "Form configuration must be an object"

    def test_custom_validator_without_source_is_reported_once(self):
        result = validate_form_config(
            {"fields": [{"key": "t", "type": "input", "validators": [{"type": "custom"}]}]}
        )
        assert [error.path for error in result.errors] == ["fields.0.validators.0"]


class TestReporting:
    """Tests for error reporting."""

    def test_raise_for_errors(self):
        result = validate_form_config({"fields": [{"key": "a", "type": "input", "hideWhen": "x"}]})
        with pytest.raises(ConfigurationError) as info:
            result.raise_for_errors()
        assert info.value.errors == result.errors
        assert "fields.0.hideWhen" in str(info.value)

    def test_format_report(self):
        result = validate_form_config({"fields": [{"key": "id", "type": "hidden"}]})
        report = result.format_report()
        assert report.startswith("Form configuration has 1 error(s):")
        assert "  Fix: " in report

    def test_fix_suggestion_from_message(self):
        assert get_fix_suggestion("fields.0.x", "uses targetField") is not None
        assert get_fix_suggestion("fields.0.x", "something else") is None


class TestHttpChecks:
    """Tests for HTTP conditions and async derivations."""

    def test_invalid_query_param_expression(self):
        result = validate_form_config(
            {
                "fields": [
                    {
                        "key": "t",
                        "type": "input",
                        "logic": [
                            {
                                "type": "hidden",
                                "condition": {
                                    "type": "http",
                                    "http": {"url": "/api/check", "queryParams": {"q": "formValue.a +"}},
                                    "responseExpression": "response.hidden",
                                },
                            }
                        ],
                    }
                ]
            }
        )
        assert errors_at(result, "fields.0.logic.0.condition.http.queryParams.q")

    def test_nested_http_condition_is_rejected(self):
        nested = {"type": "http", "http": {"url": "/api/check"}}
        result = validate_form_config(
            {
                "fields": [
                    {
                        "key": "t",
                        "type": "input",
                        "logic": [{"type": "hidden", "condition": {"type": "or", "conditions": [nested]}}],
                    }
                ]
            }
        )
        [error] = errors_at(result, "fields.0.logic.0.condition.conditions.0")
        assert "cannot be nested" in error.message

    def test_invalid_response_expression(self):
        result = validate_form_config(
            {
                "fields": [
                    {"key": "zip", "type": "input"},
                    {
                        "key": "city",
                        "type": "input",
                        "logic": [
                            {
                                "type": "derivation",
                                "http": {"url": "/api/city", "queryParams": {"zip": "formValue.zip"}},
                                "responseExpression": "response.",
                                "dependsOn": ["zip"],
                            }
                        ],
                    },
                ]
            }
        )
        assert errors_at(result, "fields.1.logic.0.responseExpression")

    def test_async_derivation_needs_depends_on(self):
        result = validate_form_config(
            {
                "fields": [
                    {"key": "city", "type": "input", "logic": [{"type": "derivation", "asyncFunctionName": "lookup"}]}
                ]
            }
        )
        assert not result.valid
        assert any("dependsOn" in error.message for error in result.errors)

    def test_async_sources_are_exclusive(self):
        result = validate_form_config(
            {
                "fields": [
                    {
                        "key": "city",
                        "type": "input",
                        "logic": [
                            {
                                "type": "derivation",
                                "asyncFunctionName": "lookup",
                                "expression": "formValue.zip",
                                "dependsOn": ["zip"],
                            }
                        ],
                    }
                ]
            }
        )
        assert any("cannot be combined" in error.message for error in result.errors)

    def test_model_input_keeps_explicit_null_value(self):
        config = FormConfig.model_validate(
            {"fields": [{"key": "s", "type": "input", "logic": [{"type": "derivation", "value": None}]}]}
        )
        validated = validate_form_config(config).raise_for_errors()
        assert validated.fields[0].logic[0].has_static_value
