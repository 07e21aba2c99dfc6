"""
Logic entry models.

State logic binds a condition to one of a field's boolean attributes;
derivation logic computes the field's own value.
"""

from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .http import HttpRequestConfig

DEFAULT_DEBOUNCE_MS = 500

# Async derivations without an explicit debounceMs
DEFAULT_ASYNC_DEBOUNCE_MS = 300

LogicTrigger = Literal["onChange", "debounced"]

STATE_LOGIC_TYPES = ("hidden", "readonly", "disabled", "required")


class _LogicModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    trigger: LogicTrigger = "onChange"
    debounce_ms: int = Field(default=DEFAULT_DEBOUNCE_MS, ge=0, alias="debounceMs")


class StateLogicConfig(_LogicModel):
    type: Literal["hidden", "readonly", "disabled", "required"]
    # A boolean, a form-state condition name or a ConditionalExpression
    condition: Any = True


class DerivationLogicConfig(_LogicModel):
    """
    Computes the field's own value.

    The value source is the first of ``value``, ``expression`` and
    ``functionName`` that is set; with none of them the entry does nothing.
    An explicit ``value: null`` counts as set and clears the field.
    ``dependsOn`` narrows re-computation to the listed paths (``*`` for the
    whole form).

    ``asyncFunctionName`` and ``http`` are asynchronous sources. Each
    excludes every other source and requires ``dependsOn``; ``http`` also
    requires ``responseExpression``, evaluated with the response bound to
    ``response``.
    """

    type: Literal["derivation"] = "derivation"
    value: Any = None
    expression: Optional[str] = None
    function_name: Optional[str] = Field(default=None, alias="functionName")
    async_function_name: Optional[str] = Field(default=None, alias="asyncFunctionName")
    http: Optional[HttpRequestConfig] = None
    response_expression: Optional[str] = Field(default=None, alias="responseExpression")
    depends_on: Optional[List[str]] = Field(default=None, alias="dependsOn")
    condition: Any = True

    @model_validator(mode="after")
    def _check_async_sources(self) -> "DerivationLogicConfig":
        if self.response_expression is not None and self.http is None:
            raise ValueError("'responseExpression' is only valid with 'http'")
        sources = [
            name
            for name, is_set in (
                ("asyncFunctionName", bool(self.async_function_name)),
                ("http", self.http is not None),
                ("value", self.has_static_value),
                ("expression", bool(self.expression)),
                ("functionName", bool(self.function_name)),
            )
            if is_set
        ]
        if not self.is_async:
            return self
        if len(sources) > 1:
            raise ValueError(f"'{sources[0]}' cannot be combined with '{sources[1]}'")
        if not self.depends_on:
            raise ValueError(f"'{sources[0]}' derivations need 'dependsOn'")
        if self.http is not None and not self.response_expression:
            raise ValueError("'http' derivations need 'responseExpression'")
        return self

    @property
    def has_static_value(self) -> bool:
        return "value" in self.model_fields_set

    @property
    def is_async(self) -> bool:
        return bool(self.async_function_name) or self.http is not None

    @property
    def async_debounce_ms(self) -> int:
        if self.http is not None and self.http.debounce_ms is not None:
            return self.http.debounce_ms
        if "debounce_ms" in self.model_fields_set:
            return self.debounce_ms
        return DEFAULT_ASYNC_DEBOUNCE_MS

    @property
    def has_value_source(self) -> bool:
        return (
            self.has_static_value
            or bool(self.expression)
            or bool(self.function_name)
            or self.is_async
        )


LogicConfig = Annotated[
    Union[StateLogicConfig, DerivationLogicConfig],
    Field(discriminator="type"),
]
