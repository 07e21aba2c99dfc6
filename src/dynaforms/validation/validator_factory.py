"""
Attaches validator entries to field nodes.

Every synchronous validator becomes an error source on the node; the node
re-evaluates its sources whenever something they read changes, so dynamic
limits (``expression``) and ``when`` conditions stay current without extra
bookkeeping. Asynchronous validators are handed to
``dynaforms.validation.async_validation``.
"""

import logging
import re
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Mapping, Optional

from pydantic import TypeAdapter, ValidationError

from dynaforms.core.logic_function import (
    LogicFunction,
    create_expression_function,
    create_logic_function,
)
from dynaforms.expr.coercion import is_truthy
from dynaforms.expr.errors import ExpressionError
from dynaforms.logic.binding import Binding
from dynaforms.models.validators import (
    AsyncValidatorConfig,
    BuiltInValidatorConfig,
    CustomValidatorConfig,
    HttpValidatorConfig,
    ValidatorConfig,
)
from dynaforms.reactive import Effect, untracked

from .async_validation import apply_async_validator, apply_http_validator
from .builtin_validators import BUILTIN_CHECKS, compile_pattern
from .validator_types import FieldError, HttpTransport, normalize_errors

if TYPE_CHECKING:
    from dynaforms.form.field_node import FieldNode
    from dynaforms.registry.root_form_registry import FieldContext

logger = logging.getLogger("dynaforms.validation.validator_factory")

_validator_adapter: TypeAdapter = TypeAdapter(ValidatorConfig)

_VALIDATOR_MODELS = (
    BuiltInValidatorConfig,
    CustomValidatorConfig,
    AsyncValidatorConfig,
    HttpValidatorConfig,
)

LimitFunction = Callable[[], Any]


def parse_validator_config(config: Any) -> Optional[Any]:
    """Validates a validator entry; None (logged) when it is malformed."""
    if isinstance(config, _VALIDATOR_MODELS):
        return config
    try:
        return _validator_adapter.validate_python(config)
    except ValidationError as error:
        validator_type = config.get("type") if isinstance(config, Mapping) else None
        logger.error(
            "invalid_validator_config",
            extra={"validator_type": validator_type, "error": str(error)},
        )
        return None


def _activation(config: Any, field_context: "FieldContext", gate: Optional[LogicFunction]) -> LogicFunction:
    when = create_logic_function(config.when, field_context) if config.when is not None else None

    def active() -> bool:
        if gate is not None and not gate():
            return False
        return when is None or when()

    return active


def _limit_function(
    config: BuiltInValidatorConfig, field_context: "FieldContext"
) -> Optional[LimitFunction]:
    """
    The limit a built-in validator checks against, or None when it has none.

    ``expression`` wins over ``value``. Static patterns are compiled here, so
    an invalid pattern string raises ``re.error`` immediately.
    """
    if config.expression:
        evaluate = create_expression_function(config.expression, field_context)
        if config.type != "pattern":
            return evaluate

        def dynamic_pattern() -> Any:
            pattern = evaluate()
            if pattern is None:
                return None
            try:
                return compile_pattern(pattern)
            except (TypeError, re.error) as error:
                logger.error(
                    "dynamic_pattern_invalid",
                    extra={"field_path": field_context.field_path, "error": str(error)},
                )
                return None

        return dynamic_pattern

    if config.value is None:
        return None

    if config.type == "pattern":
        compiled = compile_pattern(config.value)
        return lambda: compiled

    static_value = config.value
    return lambda: static_value


def _bind_required_state(field_node: "FieldNode", active: LogicFunction, binding: Binding) -> None:
    def run() -> None:
        value = active()
        untracked(lambda: field_node.required.set(value))

    binding.add(Effect(run, name=f"{field_node.path}.required"))


def apply_builtin_validator(
    config: BuiltInValidatorConfig,
    field_node: "FieldNode",
    field_context: "FieldContext",
    gate: Optional[LogicFunction] = None,
) -> Optional[Binding]:
    check = BUILTIN_CHECKS[config.type]
    active = _activation(config, field_context, gate)
    binding = Binding(f"{field_node.path}.{config.type}")

    if config.type in ("required", "email"):
        limit: Optional[LimitFunction] = lambda: True
    else:
        limit = _limit_function(config, field_context)
        if limit is None:
            logger.debug(
                "validator_not_configured",
                extra={"field_path": field_node.path, "validator_type": config.type},
            )
            return None

    def errors() -> List[FieldError]:
        if not active():
            return []
        current_limit = limit()
        if current_limit is None:
            return []
        error = check(field_node.value(), current_limit)
        return [error] if error else []

    if config.type == "required":
        _bind_required_state(field_node, active, binding)
    binding.add(field_node.add_error_source(errors))
    return binding


def _call_validator_function(
    config: CustomValidatorConfig,
    field_node: "FieldNode",
    field_context: "FieldContext",
) -> Optional[Callable[[], List[FieldError]]]:
    resolved = field_context.functions.resolve_validator(config.function_name)
    if resolved is None:
        logger.warning(
            "custom_validator_not_found",
            extra={"function_name": config.function_name, "field_path": field_node.path},
        )
        return None

    def run() -> List[FieldError]:
        try:
            if resolved.kind == "simple":
                result = resolved.fn(field_node.value(), config.params)
            else:
                result = resolved.fn(field_context, config.params)
            return normalize_errors(result)
        except Exception as error:
            logger.error(
                "custom_validator_failed",
                extra={"function_name": config.function_name, "field_path": field_node.path, "error": str(error)},
                exc_info=True,
            )
            return []

    return run


def _expression_validator(
    config: CustomValidatorConfig, field_context: "FieldContext"
) -> Callable[[], List[FieldError]]:
    expression = config.expression
    kind = config.kind or "custom"

    def run() -> List[FieldError]:
        ctx = field_context.evaluation_context()
        parser = ctx.expression_parser
        bindings = ctx.bindings()
        try:
            if is_truthy(parser.evaluate(expression, bindings)):
                return []
        except ExpressionError as error:
            logger.error(
                "validator_expression_failed",
                extra={
                    "expression": expression,
                    "field_path": field_context.field_path,
                    "error": error.format_with_context(),
                },
            )
            return [FieldError(kind)]
        except Exception as error:
            logger.error(
                "validator_expression_failed",
                extra={
                    "expression": expression,
                    "field_path": field_context.field_path,
                    "error": str(error),
                },
                exc_info=True,
            )
            return [FieldError(kind)]

        params = {}
        for name, param_expression in (config.error_params or {}).items():
            try:
                params[name] = parser.evaluate(param_expression, bindings)
            except Exception as error:
                logger.warning(
                    "error_param_evaluation_failed",
                    extra={"param": name, "field_path": field_context.field_path, "error": str(error)},
                )
        return [FieldError(kind, params)]

    return run


def apply_custom_validator(
    config: CustomValidatorConfig,
    field_node: "FieldNode",
    field_context: "FieldContext",
    gate: Optional[LogicFunction] = None,
) -> Optional[Binding]:
    if config.expression:
        validate = _expression_validator(config, field_context)
    else:
        validate = _call_validator_function(config, field_node, field_context)
        if validate is None:
            return None

    active = _activation(config, field_context, gate)

    def errors() -> List[FieldError]:
        return validate() if active() else []

    name = config.kind or config.function_name or "custom"
    return Binding(f"{field_node.path}.{name}", field_node.add_error_source(errors))


def apply_validator(
    config: Any,
    field_node: "FieldNode",
    field_context: "FieldContext",
    gate: Optional[LogicFunction] = None,
    http_transport: Optional[HttpTransport] = None,
) -> Optional[Binding]:
    """
    Attaches one validator entry to a field.

    Args:
        config: A validator model or the equivalent mapping
        field_node: The field to validate
        field_context: Evaluation scope for the field
        gate: Optional extra activation condition, ANDed with ``when``
        http_transport: Sends requests for ``customHttp`` validators

    Returns:
        The binding, owned by ``field_node``, or None when nothing was attached

    Raises:
        re.error: A static ``pattern`` string does not compile
    """
    entry = parse_validator_config(config)
    if entry is None:
        return None

    if isinstance(entry, BuiltInValidatorConfig):
        binding = apply_builtin_validator(entry, field_node, field_context, gate)
    elif isinstance(entry, CustomValidatorConfig):
        binding = apply_custom_validator(entry, field_node, field_context, gate)
    elif isinstance(entry, AsyncValidatorConfig):
        binding = apply_async_validator(entry, field_node, field_context, _activation(entry, field_context, gate))
    else:
        binding = apply_http_validator(
            entry, field_node, field_context, http_transport, _activation(entry, field_context, gate)
        )

    if binding is not None:
        field_node.own(binding)
    return binding


def apply_validators(
    configs: Iterable[Any],
    field_node: "FieldNode",
    field_context: "FieldContext",
    gate: Optional[LogicFunction] = None,
    http_transport: Optional[HttpTransport] = None,
) -> List[Binding]:
    """Attaches each entry independently; errors combine by kind on the node."""
    bindings: List[Binding] = []
    for config in configs or []:
        binding = apply_validator(config, field_node, field_context, gate, http_transport)
        if binding is not None:
            bindings.append(binding)
    return bindings
