"""
Validator entry models.

Built-in validators take a static ``value`` or a reactive ``expression``;
custom validators name a registered function or carry an expression.
Every entry may be gated by ``when``.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

BUILTIN_VALIDATOR_TYPES = (
    "required",
    "email",
    "min",
    "max",
    "minLength",
    "maxLength",
    "pattern",
)


class _ValidatorModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, arbitrary_types_allowed=True)

    when: Any = None


class BuiltInValidatorConfig(_ValidatorModel):
    type: Literal["required", "email", "min", "max", "minLength", "maxLength", "pattern"]
    # A number for min/max/minLength/maxLength, a string or compiled pattern for pattern
    value: Any = None
    expression: Optional[str] = None


class CustomValidatorConfig(_ValidatorModel):
    type: Literal["custom"] = "custom"
    function_name: Optional[str] = Field(default=None, alias="functionName")
    expression: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    kind: Optional[str] = None
    error_params: Optional[Dict[str, str]] = Field(default=None, alias="errorParams")

    @model_validator(mode="after")
    def _require_source(self) -> "CustomValidatorConfig":
        if not self.function_name and not self.expression:
            raise ValueError("Custom validators need either 'functionName' or 'expression'")
        return self


class AsyncValidatorConfig(_ValidatorModel):
    type: Literal["customAsync"] = "customAsync"
    function_name: str = Field(alias="functionName", min_length=1)
    params: Optional[Dict[str, Any]] = None


class HttpValidatorConfig(_ValidatorModel):
    type: Literal["customHttp"] = "customHttp"
    function_name: str = Field(alias="functionName", min_length=1)
    params: Optional[Dict[str, Any]] = None


ValidatorConfig = Annotated[
    Union[
        BuiltInValidatorConfig,
        CustomValidatorConfig,
        AsyncValidatorConfig,
        HttpValidatorConfig,
    ],
    Field(discriminator="type"),
]
