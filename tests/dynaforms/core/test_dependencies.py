"""
Tests for static dependency extraction.
"""

from dynaforms.core.dependencies import (
    WHOLE_FORM,
    extract_condition_dependencies,
    extract_expression_dependencies,
)


class TestExpressionDependencies:
    """Tests for dependencies read through formValue."""

    def test_collects_member_paths(self):
        deps = extract_expression_dependencies("formValue.price * formValue.quantity")
        assert deps == ["price", "quantity"]

    def test_nested_paths_include_root_key(self):
        deps = extract_expression_dependencies("formValue.address.city")
        assert deps == ["address", "address.city"]

    def test_index_access_with_literals(self):
        deps = extract_expression_dependencies("formValue['items'][0]")
        assert deps == ["items", "items.0"]

    def test_bare_form_value_is_whole_form(self):
        assert extract_expression_dependencies("formValue") == [WHOLE_FORM]

    def test_dynamic_index_stops_at_known_prefix(self):
        deps = extract_expression_dependencies("formValue.items[fieldValue]")
        assert deps == ["items"]

    def test_method_receivers_are_dependencies(self):
        deps = extract_expression_dependencies("formValue.name.trim().length > 0")
        assert deps == ["name"]

    def test_deduplicates(self):
        deps = extract_expression_dependencies("formValue.a + formValue.a")
        assert deps == ["a"]

    def test_ignores_other_identifiers(self):
        assert extract_expression_dependencies("fieldValue + externalData.rate") == []

    def test_root_form_value_paths(self):
        assert extract_expression_dependencies("rootFormValue.currency") == ["currency"]

    def test_invalid_expression_has_no_dependencies(self):
        assert extract_expression_dependencies("formValue.a +") == []


class TestConditionDependencies:
    """Tests for dependencies of condition trees."""

    def test_field_value_condition(self):
        condition = {"type": "fieldValue", "fieldPath": "address.zip", "operator": "equals"}
        assert extract_condition_dependencies(condition) == ["address", "address.zip"]

    def test_form_value_and_custom_conditions_are_whole_form(self):
        assert extract_condition_dependencies({"type": "formValue", "operator": "equals"}) == [WHOLE_FORM]
        assert extract_condition_dependencies({"type": "custom", "expression": "fn"}) == [WHOLE_FORM]

    def test_javascript_condition(self):
        condition = {"type": "javascript", "expression": "formValue.age > 18"}
        assert extract_condition_dependencies(condition) == ["age"]

    def test_composed_conditions(self):
        condition = {
            "type": "or",
            "conditions": [
                {"type": "fieldValue", "fieldPath": "a", "operator": "equals"},
                {"type": "and", "conditions": [{"type": "javascript", "expression": "formValue.b"}]},
            ],
        }
        assert extract_condition_dependencies(condition) == ["a", "b"]

    def test_literal_conditions_have_none(self):
        assert extract_condition_dependencies(True) == []
        assert extract_condition_dependencies("formInvalid") == []
        assert extract_condition_dependencies(None) == []

    def test_http_condition_reads_request_expressions(self):
        condition = {
            "type": "http",
            "http": {
                "url": "/api/check",
                "queryParams": {"name": "formValue.username", "team": "formValue.team.id"},
                "body": {"note": "formValue.note", "fixed": 1},
                "evaluateBodyExpressions": True,
            },
            "responseExpression": "response.ok",
        }
        assert extract_condition_dependencies(condition) == ["username", "team", "team.id", "note"]

    def test_http_condition_without_expressions(self):
        assert extract_condition_dependencies({"type": "http", "http": {"url": "/api/ping"}}) == []
