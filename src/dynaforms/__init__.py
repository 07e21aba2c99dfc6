"""
dynaforms: logic and validation engine for declaratively configured forms.

A ``FormEngine`` builds a reactive field tree from a ``FormConfig`` and
keeps each field's ``hidden``, ``readonly``, ``disabled`` and ``required``
state, derived values and validation errors up to date as values change.
"""

from .config import (
    ConfigurationError,
    DerivationCycleError,
    FormattedValidationError,
    load_form_config,
    validate_form_config,
)
from .core.condition_evaluator import EvaluationContext, evaluate_condition
from .core.value_utils import compare_values, get_nested_value, set_nested_value
from .expr import ExpressionError, ExpressionParser
from .form.field_node import FieldNode
from .form.form_engine import FormEngine
from .models import FieldConfig, FormConfig, SchemaDefinition
from .reactive import Computed, Effect, Signal, batch, untracked
from .registry.function_registry import FunctionRegistry
from .validation.validator_types import (
    AsyncValidator,
    FieldError,
    HttpRequest,
    HttpValidator,
)

__all__ = [
    "AsyncValidator",
    "Computed",
    "ConfigurationError",
    "DerivationCycleError",
    "Effect",
    "EvaluationContext",
    "ExpressionError",
    "ExpressionParser",
    "FieldConfig",
    "FieldError",
    "FieldNode",
    "FormConfig",
    "FormEngine",
    "FormattedValidationError",
    "FunctionRegistry",
    "HttpRequest",
    "HttpValidator",
    "SchemaDefinition",
    "Signal",
    "batch",
    "compare_values",
    "evaluate_condition",
    "get_nested_value",
    "load_form_config",
    "set_nested_value",
    "untracked",
    "validate_form_config",
]
