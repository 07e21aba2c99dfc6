"""
Reusable validator and logic bundles, and how fields apply them.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .logic import LogicConfig
from .validators import ValidatorConfig

SchemaApplicationType = Literal["apply", "applyWhen", "applyWhenValue", "applyEach"]


class SchemaDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: Optional[str] = None
    description: Optional[str] = None
    path_pattern: Optional[str] = Field(default=None, alias="pathPattern")
    validators: List[ValidatorConfig] = Field(default_factory=list)
    logic: List[LogicConfig] = Field(default_factory=list)
    sub_schemas: List[SchemaApplicationConfig] = Field(default_factory=list, alias="subSchemas")


class SchemaApplicationConfig(BaseModel):
    """
    Applies a schema, by name or inline, to a field.

    ``applyWhen`` gates the schema on ``condition``; ``applyWhenValue`` on
    the ``typeof`` of the field value matching ``typePredicate``;
    ``applyEach`` applies it to every item of an array field.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    type: SchemaApplicationType = "apply"
    schema_ref: Union[str, SchemaDefinition] = Field(alias="schema")
    condition: Any = None
    type_predicate: Optional[str] = Field(default=None, alias="typePredicate")


SchemaDefinition.model_rebuild()
