from .conditions import (
    AndCondition,
    ComparisonOperator,
    ConditionalExpression,
    CustomCondition,
    FieldValueCondition,
    FormStateCondition,
    FormValueCondition,
    HttpCondition,
    JavascriptCondition,
    LogicCondition,
    OrCondition,
    all_of,
    any_of,
    field_value,
    javascript,
)
from .fields import (
    CONTAINER_TYPES,
    NON_VALUE_TYPES,
    VALUE_FIELD_TYPES,
    FieldConfig,
    is_container_type,
    is_value_type,
)
from .form_config import (
    CustomFnConfig,
    FormConfig,
    FormOptions,
    NextButtonOptions,
    SubmitButtonOptions,
)
from .http import DEFAULT_HTTP_DEBOUNCE_MS, HttpRequestConfig
from .logic import (
    DEFAULT_ASYNC_DEBOUNCE_MS,
    DEFAULT_DEBOUNCE_MS,
    STATE_LOGIC_TYPES,
    DerivationLogicConfig,
    LogicConfig,
    StateLogicConfig,
)
from .schema import SchemaApplicationConfig, SchemaDefinition
from .validators import (
    BUILTIN_VALIDATOR_TYPES,
    AsyncValidatorConfig,
    BuiltInValidatorConfig,
    CustomValidatorConfig,
    HttpValidatorConfig,
    ValidatorConfig,
)

__all__ = [
    "AndCondition",
    "ComparisonOperator",
    "ConditionalExpression",
    "CustomCondition",
    "FieldValueCondition",
    "FormStateCondition",
    "FormValueCondition",
    "HttpCondition",
    "JavascriptCondition",
    "LogicCondition",
    "OrCondition",
    "all_of",
    "any_of",
    "field_value",
    "javascript",
    "CONTAINER_TYPES",
    "NON_VALUE_TYPES",
    "VALUE_FIELD_TYPES",
    "FieldConfig",
    "is_container_type",
    "is_value_type",
    "CustomFnConfig",
    "FormConfig",
    "FormOptions",
    "NextButtonOptions",
    "SubmitButtonOptions",
    "DEFAULT_HTTP_DEBOUNCE_MS",
    "HttpRequestConfig",
    "DEFAULT_ASYNC_DEBOUNCE_MS",
    "DEFAULT_DEBOUNCE_MS",
    "STATE_LOGIC_TYPES",
    "DerivationLogicConfig",
    "LogicConfig",
    "StateLogicConfig",
    "SchemaApplicationConfig",
    "SchemaDefinition",
    "BUILTIN_VALIDATOR_TYPES",
    "AsyncValidatorConfig",
    "BuiltInValidatorConfig",
    "CustomValidatorConfig",
    "HttpValidatorConfig",
    "ValidatorConfig",
]
