"""
Tests for validation message lookup and interpolation.
"""

import logging
import re

from dynaforms.form.form_engine import FormEngine
from dynaforms.validation.messages import MessageResolver, interpolate_params
from dynaforms.validation.validator_types import FieldError


class TestInterpolateParams:
    """Tests for placeholder substitution."""

    def test_replaces_params(self):
        error = FieldError("minLength", {"requiredLength": 3, "actualLength": 1})
        message = interpolate_params("Need {{requiredLength}} characters, got {{ actualLength }}", error)
        assert message == "Need 3 characters, got 1"

    def test_unknown_placeholders_are_kept(self):
        assert interpolate_params("Hello {{name}}", FieldError("x")) == "Hello {{name}}"

    def test_kind_is_not_interpolated(self):
        assert interpolate_params("{{kind}}", FieldError("x", {"kind": "y"})) == "{{kind}}"

    def test_patterns_render_between_slashes(self):
        error = FieldError("pattern", {"pattern": re.compile("[a-z]+")})
        assert interpolate_params("Must match {{pattern}}", error) == "Must match /[a-z]+/"

    def test_values_use_javascript_formatting(self):
        error = FieldError("min", {"min": 5.0, "flag": True, "none": None})
        assert interpolate_params("{{min}} {{flag}} [{{none}}]", error) == "5 true []"


class TestMessageResolver:
    """Tests for message precedence."""

    def test_field_message_wins(self):
        resolver = MessageResolver({"required": "Default"})
        error = FieldError("required", message="From validator")
        assert resolver.resolve(error, {"required": "Field"}) == "Field"

    def test_default_message(self):
        resolver = MessageResolver({"required": "Default"})
        assert resolver.resolve(FieldError("required"), {}) == "Default"

    def test_validator_message(self):
        assert MessageResolver().resolve(FieldError("taken", message="Taken")) == "Taken"

    def test_missing_message_warns_once(self, caplog):
        resolver = MessageResolver()
        with caplog.at_level(logging.WARNING, logger="dynaforms.validation.messages"):
            assert resolver.resolve(FieldError("taken"), field_path="name") is None
            assert resolver.resolve(FieldError("taken"), field_path="name") is None
        warnings = [r for r in caplog.records if r.message == "validation_message_missing"]
        assert len(warnings) == 1


class TestMessagesOnFields:
    """Tests for messages attached to field errors."""

    def test_errors_carry_resolved_messages(self):
        engine = FormEngine(
            {
                "fields": [
                    {
                        "key": "name",
                        "type": "input",
                        "value": "a",
                        "minLength": 3,
                        "validationMessages": {"minLength": "At least {{requiredLength}} characters"},
                    },
                    {"key": "email", "type": "input", "required": True},
                ],
                "defaultValidationMessages": {"required": "This field is required"},
            }
        )
        assert engine.require_field("name").errors()["minLength"].message == "At least 3 characters"
        assert engine.require_field("email").errors()["required"].message == "This field is required"
