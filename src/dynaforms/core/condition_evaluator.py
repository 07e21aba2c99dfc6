"""
Evaluation of ``ConditionalExpression`` trees.

A condition is a nested mapping (or the equivalent pydantic model)
discriminated by ``type``:

- ``fieldValue``: compares the value at ``fieldPath`` with ``value``
- ``formValue``: compares the whole form value with ``value``
- ``custom``: calls a registered custom function with the context
- ``javascript``: evaluates a restricted expression
- ``and`` / ``or``: combine ``conditions``; ``and([])`` is True and
  ``or([])`` is False
- ``http``: tests a response; it needs a running request, so it only
  works as the top-level condition of a logic function and is False here

Evaluation never raises. Malformed nodes, missing functions and expression
errors are logged and evaluate to False.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from dynaforms.expr.coercion import is_truthy
from dynaforms.expr.errors import ExpressionError
from dynaforms.expr.expression_parser import ExpressionParser, default_expression_parser

from .value_utils import compare_values, get_nested_value, split_path

logger = logging.getLogger("dynaforms.core.condition_evaluator")

# Custom functions receive the evaluation context and return any value
CustomFunction = Callable[["EvaluationContext"], Any]

# Model attribute names for the camelCase keys of a condition mapping
_ATTRIBUTE_NAMES = {
    "fieldPath": "field_path",
    "responseExpression": "response_expression",
    "pendingValue": "pending_value",
}


@dataclass
class EvaluationContext:
    """Everything a condition or expression can observe about a field."""

    field_value: Any
    form_value: Any
    field_path: str
    custom_functions: Optional[Mapping[str, CustomFunction]] = None
    root_form_value: Optional[Any] = None
    """Set for fields inside array items, where ``form_value`` is the item."""
    array_index: Optional[int] = None
    array_path: Optional[str] = None
    external_data: Optional[Mapping[str, Any]] = None
    expression_parser: ExpressionParser = field(default=default_expression_parser)

    def bindings(self) -> Dict[str, Any]:
        """Variables visible to ``javascript`` expressions."""
        return {
            "fieldValue": self.field_value,
            "formValue": self.form_value,
            "fieldPath": self.field_path,
            "externalData": self.external_data,
            "rootFormValue": self.root_form_value,
            "arrayIndex": self.array_index,
            "arrayPath": self.array_path,
        }


def condition_attr(expr: Any, key: str) -> Any:
    """Reads a condition key from a mapping or a condition model."""
    if isinstance(expr, Mapping):
        return expr.get(key)
    return getattr(expr, _ATTRIBUTE_NAMES.get(key, key), None)


def resolve_field_value(path: str, ctx: EvaluationContext) -> Any:
    """
    Resolves ``path`` against the context's form value.

    Inside an array item the scoped item value is searched first; when its
    first segment is absent there, the root form value is used instead.
    """
    scoped = ctx.form_value
    if ctx.root_form_value is not None:
        head = split_path(path)[0]
        if not (isinstance(scoped, Mapping) and head in scoped):
            return get_nested_value(ctx.root_form_value, path)
    return get_nested_value(scoped, path)


def _evaluate_field_value(expr: Any, ctx: EvaluationContext) -> bool:
    field_path = condition_attr(expr, "fieldPath")
    operator = condition_attr(expr, "operator")
    if not field_path or not operator:
        logger.debug(
            "incomplete_field_value_condition",
            extra={"field_path": field_path, "operator": operator},
        )
        return False
    actual = resolve_field_value(field_path, ctx)
    return compare_values(actual, condition_attr(expr, "value"), operator)


def _evaluate_form_value(expr: Any, ctx: EvaluationContext) -> bool:
    operator = condition_attr(expr, "operator")
    if not operator:
        return False
    return compare_values(ctx.form_value, condition_attr(expr, "value"), operator)


def _evaluate_javascript(expr: Any, ctx: EvaluationContext) -> bool:
    expression = condition_attr(expr, "expression")
    if not isinstance(expression, str) or not expression.strip():
        return False
    try:
        result = ctx.expression_parser.evaluate(expression, ctx.bindings())
    except ExpressionError as error:
        logger.error(
            "expression_condition_failed",
            extra={
                "expression": expression,
                "field_path": ctx.field_path,
                "error": error.format_with_context(),
            },
        )
        return False
    except Exception as error:
        logger.error(
            "expression_condition_failed",
            extra={
                "expression": expression,
                "field_path": ctx.field_path,
                "error": str(error),
            },
            exc_info=True,
        )
        return False
    return is_truthy(result)


def _evaluate_custom(expr: Any, ctx: EvaluationContext) -> bool:
    function_name = condition_attr(expr, "expression")
    if not isinstance(function_name, str) or not function_name:
        return False
    fn = (ctx.custom_functions or {}).get(function_name)
    if fn is None:
        logger.error(
            "custom_function_not_found",
            extra={"function_name": function_name, "field_path": ctx.field_path},
        )
        return False
    try:
        return is_truthy(fn(ctx))
    except Exception as error:
        logger.error(
            "custom_function_failed",
            extra={
                "function_name": function_name,
                "field_path": ctx.field_path,
                "error": str(error),
            },
            exc_info=True,
        )
        return False


def evaluate_condition(expr: Any, ctx: EvaluationContext) -> bool:
    """
    Evaluates a condition against a context.

    Returns False for unknown or malformed conditions; never raises.
    """
    if expr is None:
        return False
    if isinstance(expr, bool):
        return expr

    condition_type = condition_attr(expr, "type")

    if condition_type == "fieldValue":
        return _evaluate_field_value(expr, ctx)

    if condition_type == "formValue":
        return _evaluate_form_value(expr, ctx)

    if condition_type == "javascript":
        return _evaluate_javascript(expr, ctx)

    if condition_type == "custom":
        return _evaluate_custom(expr, ctx)

    if condition_type == "http":
        logger.warning("http_condition_not_top_level", extra={"field_path": ctx.field_path})
        return False

    if condition_type in ("and", "or"):
        conditions = condition_attr(expr, "conditions")
        if not isinstance(conditions, (list, tuple)):
            return False
        results = (evaluate_condition(child, ctx) for child in conditions)
        return all(results) if condition_type == "and" else any(results)

    logger.warning("unknown_condition_type", extra={"condition_type": condition_type})
    return False
