"""
Named, reusable bundles of validators and logic.

A schema is referenced from a field's ``schemas`` list either by name or
inline; resolving a name that was never registered yields None.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

from dynaforms.models.schema import SchemaDefinition

logger = logging.getLogger("dynaforms.registry.schema_registry")


class SchemaRegistry:
    def __init__(self) -> None:
        self._schemas: Dict[str, SchemaDefinition] = {}

    def register_schema(self, schema: Union[SchemaDefinition, Mapping[str, Any]]) -> SchemaDefinition:
        """Registers a schema under its ``name``, replacing any previous one."""
        definition = (
            schema
            if isinstance(schema, SchemaDefinition)
            else SchemaDefinition.model_validate(schema)
        )
        if not definition.name:
            raise ValueError("Cannot register a schema without a name")
        self._schemas[definition.name] = definition
        return definition

    def get_schema(self, name: str) -> Optional[SchemaDefinition]:
        return self._schemas.get(name)

    def resolve_schema(
        self, schema: Union[str, SchemaDefinition, Mapping[str, Any]]
    ) -> Optional[SchemaDefinition]:
        """Looks up a schema by name, or validates an inline definition."""
        if isinstance(schema, str):
            definition = self._schemas.get(schema)
            if definition is None:
                logger.warning("schema_not_found", extra={"schema_name": schema})
            return definition
        if isinstance(schema, SchemaDefinition):
            return schema
        return SchemaDefinition.model_validate(schema)

    def get_all_schemas(self) -> Dict[str, SchemaDefinition]:
        return dict(self._schemas)

    def clear(self) -> None:
        self._schemas.clear()
