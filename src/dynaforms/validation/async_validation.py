"""
Asynchronous and remote validators.

Each run is an ``asyncio`` task owned by a ``LatestTask``. A new run
cancels the previous task, and only the latest run may commit errors or
clear the pending flag, so a slow stale response can never overwrite a
newer result.
"""

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional, Tuple

from dynaforms.core.logic_function import LogicFunction
from dynaforms.logic.binding import Binding
from dynaforms.logic.latest_task import LatestTask, has_running_loop
from dynaforms.models.validators import AsyncValidatorConfig, HttpValidatorConfig
from dynaforms.reactive import Effect, Signal

from .validator_types import (
    FieldError,
    HttpRequest,
    HttpTransport,
    ValidationResult,
    normalize_errors,
)

if TYPE_CHECKING:
    from dynaforms.form.field_node import FieldNode
    from dynaforms.registry.root_form_registry import FieldContext

logger = logging.getLogger("dynaforms.validation.async_validation")

ASYNC_VALIDATION_FAILED = "asyncValidationFailed"

ResultMapper = Callable[[Any, "FieldContext"], ValidationResult]
ErrorMapper = Callable[[BaseException, "FieldContext"], ValidationResult]


class AsyncValidationRunner:
    """
    Runs one asynchronous validator for one field.

    ``prepare`` is called inside a reactive effect and returns the request
    for ``execute``, or None to skip validation; whatever it reads decides
    when validation re-runs.
    """

    def __init__(
        self,
        name: str,
        field_node: "FieldNode",
        field_context: "FieldContext",
        prepare: Callable[[], Any],
        execute: Callable[[Any], Awaitable[Any]],
        on_success: Optional[ResultMapper],
        on_error: Optional[ErrorMapper],
        active: Optional[LogicFunction] = None,
    ):
        self.name = name
        self._node = field_node
        self._context = field_context
        self._prepare = prepare
        self._execute = execute
        self._on_success = on_success
        self._on_error = on_error
        self._active = active

        self.pending: Signal[bool] = Signal(False, name=f"{field_node.path}.{name}.pending")
        self.errors: Signal[Tuple[FieldError, ...]] = Signal((), name=f"{field_node.path}.{name}.errors")
        self._task = LatestTask(f"{field_node.path}.{name}")

    @property
    def generation(self) -> int:
        return self._task.generation

    def error_source(self) -> List[FieldError]:
        return list(self.errors())

    def run(self) -> None:
        """Effect body: reads dependencies and starts a new generation."""
        self._task.cancel()

        active = self._active is None or self._active()
        self._node.value()
        request = None
        if active:
            try:
                request = self._prepare()
            except Exception as error:
                logger.error(
                    "async_validation_params_failed",
                    extra={"field_path": self._node.path, "validator": self.name, "error": str(error)},
                    exc_info=True,
                )

        if request is None:
            self.errors.set(())
            self.pending.set(False)
            return

        if not has_running_loop():
            logger.warning(
                "async_validation_without_event_loop",
                extra={"field_path": self._node.path, "validator": self.name},
            )
            self.pending.set(False)
            return

        self.errors.set(())
        self._task.start(lambda: self._validate(request), self._commit, self._fail)
        self.pending.set(True)

    async def _validate(self, request: Any) -> List[FieldError]:
        result = await self._execute(request)
        mapped = self._on_success(result, self._context) if self._on_success else result
        return normalize_errors(mapped)

    def _commit(self, errors: List[FieldError]) -> None:
        self.errors.set(tuple(errors))
        self.pending.set(False)

    def _fail(self, error: Exception) -> None:
        logger.warning(
            "async_validation_failed",
            extra={"field_path": self._node.path, "validator": self.name, "error": str(error)},
        )
        self._commit(self._map_failure(error))

    def _map_failure(self, error: BaseException) -> List[FieldError]:
        if self._on_error is not None:
            try:
                return normalize_errors(self._on_error(error, self._context))
            except Exception as mapping_error:
                logger.error(
                    "async_validation_error_mapping_failed",
                    extra={"field_path": self._node.path, "validator": self.name, "error": str(mapping_error)},
                )
        return [FieldError(ASYNC_VALIDATION_FAILED, {"error": str(error)})]

    def dispose(self) -> None:
        self._task.cancel()
        self.pending.set(False)

    def bind(self) -> Binding:
        binding = Binding(f"{self._node.path}.{self.name}")
        binding.add(self)
        binding.add(self._node.add_error_source(self.error_source))
        binding.add(self._node.add_pending_flag(self.pending))
        binding.add(Effect(self.run, name=f"{self._node.path}.{self.name}"))
        return binding


def apply_async_validator(
    config: AsyncValidatorConfig,
    field_node: "FieldNode",
    field_context: "FieldContext",
    active: Optional[LogicFunction] = None,
) -> Optional[Binding]:
    validator = field_context.functions.get_async_validator(config.function_name)
    if validator is None:
        logger.warning(
            "async_validator_not_found",
            extra={"function_name": config.function_name, "field_path": field_node.path},
        )
        return None

    def prepare() -> Any:
        if validator.params is None:
            return {"value": field_context.value(), "params": config.params}
        return validator.params(field_context, config.params)

    runner = AsyncValidationRunner(
        config.function_name,
        field_node,
        field_context,
        prepare=prepare,
        execute=validator.load,
        on_success=validator.on_success,
        on_error=validator.on_error,
        active=active,
    )
    return runner.bind()


def apply_http_validator(
    config: HttpValidatorConfig,
    field_node: "FieldNode",
    field_context: "FieldContext",
    transport: Optional[HttpTransport],
    active: Optional[LogicFunction] = None,
) -> Optional[Binding]:
    validator = field_context.functions.get_http_validator(config.function_name)
    if validator is None:
        logger.warning(
            "http_validator_not_found",
            extra={"function_name": config.function_name, "field_path": field_node.path},
        )
        return None
    if transport is None:
        logger.warning(
            "http_validator_without_transport",
            extra={"function_name": config.function_name, "field_path": field_node.path},
        )
        return None

    def prepare() -> Optional[HttpRequest]:
        request = validator.request(field_context, config.params)
        if isinstance(request, str):
            return HttpRequest(url=request)
        return request

    runner = AsyncValidationRunner(
        config.function_name,
        field_node,
        field_context,
        prepare=prepare,
        execute=transport,
        on_success=validator.on_success,
        on_error=validator.on_error,
        active=active,
    )
    return runner.bind()
