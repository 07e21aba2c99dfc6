"""
Logic functions backed by an HTTP request.

The function reads a signal holding the latest answer, so logic bound to
it re-runs when a response arrives. An effect resolves the request from
the field's evaluation context; whenever the resolved request changes
(and once on creation) it is sent after ``debounceMs``, cancelling any
request still in flight. Until the first response, and after a failed
request, the answer is ``pendingValue``.
"""

import logging
from typing import TYPE_CHECKING, Any, List, Optional

from dynaforms.expr.coercion import is_truthy
from dynaforms.expr.errors import ExpressionError
from dynaforms.logic.binding import Binding
from dynaforms.logic.debounce import DebounceTimer
from dynaforms.logic.latest_task import LatestTask
from dynaforms.models.http import DEFAULT_HTTP_DEBOUNCE_MS
from dynaforms.reactive import Effect, Signal, untracked
from dynaforms.validation.validator_types import HttpRequest

from .condition_evaluator import condition_attr
from .http_request import as_request_config, evaluate_response, resolve_http_request

if TYPE_CHECKING:
    from dynaforms.registry.root_form_registry import FieldContext

    from .logic_function import LogicFunction

logger = logging.getLogger("dynaforms.core.http_condition")


def create_http_condition_function(condition: Any, field_context: "FieldContext") -> "LogicFunction":
    path = field_context.field_path
    try:
        request_config = as_request_config(condition_attr(condition, "http"))
    except ValueError as error:
        logger.error("invalid_http_condition", extra={"field_path": path, "error": str(error)})
        return lambda: False

    response_expression = condition_attr(condition, "responseExpression")
    pending_value = bool(condition_attr(condition, "pendingValue"))
    answer: Signal[bool] = Signal(pending_value, name=f"{path}.http_condition")

    transport = field_context.http_transport
    if transport is None:
        logger.warning("http_condition_without_transport", extra={"field_path": path, "url": request_config.url})
        return answer.get

    binding = field_context.node.own(Binding(f"{path}.http_condition"))
    task = binding.add(LatestTask(f"{path}.http_condition"))
    latest: List[Optional[HttpRequest]] = [None]
    warned = [False]

    def on_response(response: Any) -> None:
        try:
            result = evaluate_response(response, response_expression, field_context.expression_parser)
        except ExpressionError as error:
            logger.error(
                "http_response_expression_failed",
                extra={"field_path": path, "error": error.format_with_context()},
            )
            answer.set(pending_value)
            return
        except Exception as error:
            logger.error(
                "http_response_expression_failed",
                extra={"field_path": path, "error": str(error)},
                exc_info=True,
            )
            answer.set(pending_value)
            return
        answer.set(is_truthy(result))

    def on_error(error: Exception) -> None:
        logger.warning("http_condition_failed", extra={"field_path": path, "error": str(error)})
        answer.set(pending_value)

    def send() -> None:
        request = latest[0]
        if request is None:
            return
        if not task.start(lambda: transport(request), on_response, on_error) and not warned[0]:
            warned[0] = True
            logger.warning("http_condition_without_event_loop", extra={"field_path": path})

    delay = request_config.debounce_ms
    timer = binding.add(
        DebounceTimer(
            DEFAULT_HTTP_DEBOUNCE_MS if delay is None else delay,
            send,
            name=f"{path}.http_condition",
        )
    )

    def resolve() -> None:
        try:
            request = resolve_http_request(request_config, field_context.evaluation_context())
        except ExpressionError as error:
            logger.error(
                "http_request_resolution_failed",
                extra={"field_path": path, "error": error.format_with_context()},
            )
            return
        except Exception as error:
            logger.error(
                "http_request_resolution_failed",
                extra={"field_path": path, "error": str(error)},
                exc_info=True,
            )
            return
        if request == latest[0]:
            return
        latest[0] = request
        untracked(timer.trigger)

    binding.add(Effect(resolve, name=f"{path}.http_condition"))
    return answer.get
