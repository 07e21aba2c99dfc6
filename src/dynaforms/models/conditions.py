"""
Condition models.

The evaluator accepts these models or the equivalent plain mappings, so
configs built by hand never have to go through pydantic.
"""

from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .http import HttpRequestConfig

ComparisonOperator = Literal[
    "equals",
    "notEquals",
    "greater",
    "less",
    "greaterOrEqual",
    "lessOrEqual",
    "contains",
    "startsWith",
    "endsWith",
    "matches",
]

FormStateCondition = Literal["formInvalid", "formSubmitting", "pageInvalid"]


class _ConditionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class FieldValueCondition(_ConditionModel):
    """Compares the value at ``fieldPath`` with ``value``."""

    type: Literal["fieldValue"] = "fieldValue"
    field_path: str = Field(alias="fieldPath")
    operator: ComparisonOperator
    value: Any = None


class FormValueCondition(_ConditionModel):
    """Compares the whole form value with ``value``."""

    type: Literal["formValue"] = "formValue"
    operator: ComparisonOperator
    value: Any = None


class CustomCondition(_ConditionModel):
    """Calls the registered custom function named by ``expression``."""

    type: Literal["custom"] = "custom"
    expression: str = Field(min_length=1)


class JavascriptCondition(_ConditionModel):
    """Evaluates a restricted expression."""

    type: Literal["javascript"] = "javascript"
    expression: str = Field(min_length=1)


class HttpCondition(_ConditionModel):
    """
    Sends a request and tests the response.

    The result is ``pendingValue`` until the first response arrives.
    ``responseExpression`` is evaluated with the response bound to
    ``response``; without it the response itself is tested for truthiness.
    Only usable as a logic entry's top-level condition.
    """

    type: Literal["http"] = "http"
    http: HttpRequestConfig
    response_expression: Optional[str] = Field(default=None, alias="responseExpression")
    pending_value: bool = Field(default=False, alias="pendingValue")


class AndCondition(_ConditionModel):
    type: Literal["and"] = "and"
    conditions: List[ConditionalExpression] = Field(default_factory=list)


class OrCondition(_ConditionModel):
    type: Literal["or"] = "or"
    conditions: List[ConditionalExpression] = Field(default_factory=list)


ConditionalExpression = Annotated[
    Union[
        FieldValueCondition,
        FormValueCondition,
        CustomCondition,
        JavascriptCondition,
        HttpCondition,
        AndCondition,
        OrCondition,
    ],
    Field(discriminator="type"),
]

AndCondition.model_rebuild()
OrCondition.model_rebuild()

# What a logic entry's ``condition`` may hold
LogicCondition = Union[bool, FormStateCondition, ConditionalExpression]


def field_value(field_path: str, operator: str, value: Any = None) -> FieldValueCondition:
    return FieldValueCondition(field_path=field_path, operator=operator, value=value)


def javascript(expression: str) -> JavascriptCondition:
    return JavascriptCondition(expression=expression)


def all_of(*conditions: Any) -> AndCondition:
    return AndCondition(conditions=list(conditions))


def any_of(*conditions: Any) -> OrCondition:
    return OrCondition(conditions=list(conditions))
