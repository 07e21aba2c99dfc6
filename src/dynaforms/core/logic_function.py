"""
Factories for the zero-argument functions that logic and validators bind to.

A logic function reads whatever reactive state its condition depends on, so
calling it inside an effect or computed value subscribes to exactly those
sources.
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from dynaforms.expr.errors import ExpressionError

from .condition_evaluator import condition_attr, evaluate_condition
from .http_condition import create_http_condition_function

if TYPE_CHECKING:
    from dynaforms.registry.root_form_registry import FieldContext

logger = logging.getLogger("dynaforms.core.logic_function")

LogicFunction = Callable[[], bool]

FORM_STATE_CONDITIONS = ("formInvalid", "formSubmitting", "pageInvalid")


def is_form_state_condition(condition: Any) -> bool:
    return isinstance(condition, str) and condition in FORM_STATE_CONDITIONS


def _form_state_function(condition: str, field_context: "FieldContext") -> LogicFunction:
    form_state = field_context.form_state

    if form_state is None:
        logger.warning(
            "form_state_unavailable",
            extra={"condition": condition, "field_path": field_context.field_path},
        )
        return lambda: False

    if condition == "formInvalid":
        return lambda: not form_state.form_valid()

    if condition == "formSubmitting":
        return lambda: form_state.submitting()

    return lambda: not form_state.page_valid(field_context.node)


def create_logic_function(condition: Any, field_context: "FieldContext") -> LogicFunction:
    """
    Builds a boolean logic function for a condition.

    Args:
        condition: A boolean, a form-state condition name, or a
            ``ConditionalExpression`` (mapping or model); a top-level
            ``http`` condition starts its request right away
        field_context: The field the condition is evaluated for

    Returns:
        A zero-argument function returning the current truth value
    """
    if isinstance(condition, bool):
        return lambda: condition

    if is_form_state_condition(condition):
        return _form_state_function(condition, field_context)

    if condition_attr(condition, "type") == "http":
        return create_http_condition_function(condition, field_context)

    if isinstance(condition, str):
        # Not a known form-state name, so nothing can make it true
        logger.warning(
            "unknown_form_state_condition",
            extra={"condition": condition, "field_path": field_context.field_path},
        )
        return lambda: False

    return lambda: evaluate_condition(condition, field_context.evaluation_context())


def create_expression_function(
    expression: str, field_context: "FieldContext"
) -> Callable[[], Optional[Any]]:
    """
    Builds a function evaluating an expression for a field.

    Evaluation errors are logged and yield None.
    """

    def evaluate() -> Optional[Any]:
        ctx = field_context.evaluation_context()
        try:
            return ctx.expression_parser.evaluate(expression, ctx.bindings())
        except ExpressionError as error:
            logger.error(
                "expression_evaluation_failed",
                extra={
                    "expression": expression,
                    "field_path": field_context.field_path,
                    "error": error.format_with_context(),
                },
            )
            return None
        except Exception as error:
            logger.error(
                "expression_evaluation_failed",
                extra={
                    "expression": expression,
                    "field_path": field_context.field_path,
                    "error": str(error),
                },
                exc_info=True,
            )
            return None

    return evaluate
