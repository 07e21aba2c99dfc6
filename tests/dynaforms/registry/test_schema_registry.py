"""
Tests for the schema registry.
"""

import pytest

from dynaforms.models.schema import SchemaDefinition
from dynaforms.registry.schema_registry import SchemaRegistry


class TestSchemaRegistry:
    """Tests for registration and resolution."""

    def test_register_from_mapping(self):
        registry = SchemaRegistry()
        schema = registry.register_schema({"name": "email", "validators": [{"type": "email"}]})
        assert isinstance(schema, SchemaDefinition)
        assert registry.get_schema("email") is schema

    def test_register_requires_a_name(self):
        with pytest.raises(ValueError):
            SchemaRegistry().register_schema({"validators": []})

    def test_resolve_by_name(self):
        registry = SchemaRegistry()
        registry.register_schema(SchemaDefinition(name="s"))
        assert registry.resolve_schema("s").name == "s"

    def test_resolve_unknown_name_is_none(self):
        assert SchemaRegistry().resolve_schema("missing") is None

    def test_resolve_inline_definition(self):
        schema = SchemaRegistry().resolve_schema({"validators": [{"type": "required"}]})
        assert schema.name is None
        assert len(schema.validators) == 1

    def test_later_registration_replaces(self):
        registry = SchemaRegistry()
        registry.register_schema({"name": "s", "description": "one"})
        registry.register_schema({"name": "s", "description": "two"})
        assert registry.get_schema("s").description == "two"
        assert len(registry.get_all_schemas()) == 1

    def test_clear(self):
        registry = SchemaRegistry()
        registry.register_schema({"name": "s"})
        registry.clear()
        assert registry.get_all_schemas() == {}
