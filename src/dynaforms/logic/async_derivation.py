"""
Asynchronous derivations: values loaded by a coroutine or an HTTP request.

An async derivation names a function registered with
``register_async_derivation_function`` (``asyncFunctionName``) or describes
a request (``http`` plus ``responseExpression``). It runs on creation and
whenever one of its ``dependsOn`` paths changes, always debounced: by
``http.debounceMs`` or ``debounceMs`` when given, else
``DEFAULT_ASYNC_DEBOUNCE_MS``.

Each run checks the condition, then starts the load and cancels any load
still in flight, so only the latest result is ever written. A result
equal to the current value is skipped. Missing functions, a missing
transport and failed loads are logged as warnings and leave the value
alone.
"""

import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Set

from dynaforms.core.condition_evaluator import EvaluationContext
from dynaforms.core.http_request import evaluate_response, resolve_http_request
from dynaforms.core.logic_function import LogicFunction, create_logic_function
from dynaforms.core.value_utils import deep_equals
from dynaforms.expr.errors import ExpressionError
from dynaforms.models.logic import DerivationLogicConfig
from dynaforms.reactive import Effect, untracked

from .binding import Binding
from .debounce import DebounceTimer
from .derivation import derivation_dependencies, read_dependency
from .latest_task import LatestTask

if TYPE_CHECKING:
    from dynaforms.form.field_node import FieldNode
    from dynaforms.registry.root_form_registry import FieldContext

logger = logging.getLogger("dynaforms.logic.async_derivation")

Load = Callable[[], Awaitable[Any]]


def apply_async_derivation(
    config: DerivationLogicConfig,
    field_node: "FieldNode",
    field_context: "FieldContext",
    gate: Optional[LogicFunction] = None,
) -> Binding:
    path = field_node.path
    name = f"{path}.derivation"
    dependencies = derivation_dependencies(config, field_context)
    condition = create_logic_function(config.condition, field_context)
    binding = Binding(name)
    task = binding.add(LatestTask(name))
    warned: Set[str] = set()

    def warn_once(event: str, **extra: Any) -> None:
        if event in warned:
            return
        warned.add(event)
        logger.warning(event, extra={"field_path": path, **extra})

    def http_load(ctx: EvaluationContext) -> Optional[Load]:
        transport = field_context.http_transport
        if transport is None:
            warn_once("http_derivation_without_transport")
            return None
        request = resolve_http_request(config.http, ctx)
        parser = field_context.expression_parser

        async def load() -> Any:
            response = await transport(request)
            return evaluate_response(response, config.response_expression, parser)

        return load

    def function_load(ctx: EvaluationContext) -> Optional[Load]:
        fn = field_context.functions.get_async_derivation_function(config.async_function_name)
        if fn is None:
            logger.warning(
                "async_derivation_function_not_found",
                extra={"field_path": path, "function_name": config.async_function_name},
            )
            return None

        async def load() -> Any:
            result = fn(ctx)
            if inspect.isawaitable(result):
                result = await result
            return result

        return load

    def apply_result(new_value: Any) -> None:
        if field_node.destroyed or deep_equals(field_node.peek_value(), new_value):
            return
        field_node.set_value(new_value)
        logger.debug("async_derivation_applied", extra={"field_path": path})

    def fail(error: Exception) -> None:
        logger.warning("async_derivation_failed", extra={"field_path": path, "error": str(error)})

    def run() -> None:
        if field_node.destroyed or not condition():
            return
        ctx = field_context.evaluation_context()
        try:
            load = http_load(ctx) if config.http is not None else function_load(ctx)
        except ExpressionError as error:
            logger.error(
                "http_request_resolution_failed",
                extra={"field_path": path, "error": error.format_with_context()},
            )
            return
        if load is None:
            return
        if not task.start(load, apply_result, fail):
            warn_once("async_derivation_without_event_loop")

    timer = binding.add(DebounceTimer(config.async_debounce_ms, lambda: untracked(run), name=name))

    def schedule() -> None:
        for dependency in dependencies:
            read_dependency(dependency, field_context)
        if gate is None or gate():
            untracked(timer.trigger)

    binding.add(Effect(schedule, name=name))
    logger.debug(
        "async_derivation_bound",
        extra={"field_path": path, "source": "http" if config.http is not None else "function"},
    )
    return binding
