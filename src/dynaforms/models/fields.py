"""
Field definitions.

Fields fall in three families:

- value fields (``input``, ``select`` ...) hold a value
- containers (``group``, ``array``, ``row``, ``page``) hold child fields;
  ``group`` and ``array`` nest their children's values under their key,
  ``row`` and ``page`` flatten them into the parent
- non-value fields (buttons and static text) hold no value
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .logic import LogicConfig
from .schema import SchemaApplicationConfig
from .validators import ValidatorConfig

CONTAINER_TYPES = ("group", "array", "row", "page")
NESTING_CONTAINER_TYPES = ("group", "array")
FLATTENING_CONTAINER_TYPES = ("row", "page")
NON_VALUE_TYPES = ("button", "submit", "next", "previous", "text")

VALUE_FIELD_TYPES = (
    "input",
    "select",
    "checkbox",
    "textarea",
    "datepicker",
    "radio",
    "toggle",
    "slider",
    "multi-checkbox",
    "hidden",
)


def is_container_type(field_type: str) -> bool:
    return field_type in CONTAINER_TYPES


def is_value_type(field_type: str) -> bool:
    """Every type that is neither a container nor a non-value field holds a value."""
    return field_type not in CONTAINER_TYPES and field_type not in NON_VALUE_TYPES


class FieldConfig(BaseModel):
    """
    One field of a form.

    Presentation keys (``label``, ``props``, ``col`` and anything the UI
    layer adds) are kept as extras and ignored by the engine.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, arbitrary_types_allowed=True)

    key: str
    type: str
    label: Optional[str] = None
    value: Any = None

    # Validation shorthands
    required: Optional[bool] = None
    email: Optional[bool] = None
    min: Optional[Union[int, float]] = None
    max: Optional[Union[int, float]] = None
    min_length: Optional[int] = Field(default=None, alias="minLength")
    max_length: Optional[int] = Field(default=None, alias="maxLength")
    pattern: Any = None

    # Shorthand for a derivation entry computing this field from an expression
    derivation: Optional[str] = None

    # Static state
    disabled: Optional[bool] = None
    readonly: Optional[bool] = None
    hidden: Optional[bool] = None

    validators: List[ValidatorConfig] = Field(default_factory=list)
    logic: List[LogicConfig] = Field(default_factory=list)
    validation_messages: Dict[str, str] = Field(default_factory=dict, alias="validationMessages")
    schemas: List[SchemaApplicationConfig] = Field(default_factory=list)

    fields: Optional[List[FieldConfig]] = None

    @property
    def is_container(self) -> bool:
        return is_container_type(self.type)

    @property
    def is_value_field(self) -> bool:
        return is_value_type(self.type)

    @property
    def children(self) -> List[FieldConfig]:
        return list(self.fields or [])


FieldConfig.model_rebuild()
