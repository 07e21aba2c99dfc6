"""
Top-level form configuration.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .fields import FieldConfig
from .schema import SchemaDefinition


class SubmitButtonOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    disable_when_invalid: bool = Field(default=True, alias="disableWhenInvalid")
    disable_while_submitting: bool = Field(default=True, alias="disableWhileSubmitting")


class NextButtonOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    disable_when_page_invalid: bool = Field(default=True, alias="disableWhenPageInvalid")
    disable_while_submitting: bool = Field(default=True, alias="disableWhileSubmitting")


class FormOptions(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    disabled: bool = False
    submit_button: SubmitButtonOptions = Field(
        default_factory=SubmitButtonOptions, alias="submitButton"
    )
    next_button: NextButtonOptions = Field(default_factory=NextButtonOptions, alias="nextButton")


class CustomFnConfig(BaseModel):
    """
    Functions and validators registered with the engine on creation.

    Configs loaded from JSON or YAML only carry names; callables are
    supplied when the config is built in code.
    """

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    custom_functions: Dict[str, Any] = Field(default_factory=dict, alias="customFunctions")
    derivations: Dict[str, Any] = Field(default_factory=dict)
    async_derivations: Dict[str, Any] = Field(default_factory=dict, alias="asyncDerivations")
    validators: Dict[str, Any] = Field(default_factory=dict)
    context_validators: Dict[str, Any] = Field(default_factory=dict, alias="contextValidators")
    tree_validators: Dict[str, Any] = Field(default_factory=dict, alias="treeValidators")
    async_validators: Dict[str, Any] = Field(default_factory=dict, alias="asyncValidators")
    http_validators: Dict[str, Any] = Field(default_factory=dict, alias="httpValidators")


class FormConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    fields: List[FieldConfig] = Field(default_factory=list)
    options: FormOptions = Field(default_factory=FormOptions)
    schemas: List[SchemaDefinition] = Field(default_factory=list)
    default_validation_messages: Dict[str, str] = Field(
        default_factory=dict, alias="defaultValidationMessages"
    )
    custom_fn_config: Optional[CustomFnConfig] = Field(default=None, alias="customFnConfig")
