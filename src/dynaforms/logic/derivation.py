"""
Derivation logic: computing a field's own value from other values.

A derivation re-runs when one of its dependencies changes. Dependencies are
``dependsOn`` when given; otherwise the ``formValue`` paths read by the
expression, the whole form for function-backed derivations, plus whatever
the gating condition reads, and external data when the expression reads
it. The computation itself reads the form untracked, so only the
dependencies decide when it runs.

``onChange`` derivations run in the same flush as the change that
triggered them. ``debounced`` derivations run once ``debounceMs`` after the
last change, and not at all on creation.

Errors while computing are logged and the derivation is skipped. Writing a
value equal to the current one is skipped too, which lets mutually
dependent derivations settle; runaway chains are cut by the reactive
runtime's per-flush run limit.

Asynchronous sources (``asyncFunctionName`` and ``http``) are bound by
``dynaforms.logic.async_derivation``.
"""

import copy
import logging
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from dynaforms.core.condition_evaluator import EvaluationContext
from dynaforms.core.dependencies import (
    WHOLE_FORM,
    extract_condition_dependencies,
    extract_expression_dependencies,
)
from dynaforms.core.logic_function import LogicFunction, create_logic_function
from dynaforms.core.value_utils import deep_equals, split_path
from dynaforms.expr.ast import collect_identifiers
from dynaforms.expr.errors import ExpressionError
from dynaforms.models.logic import DerivationLogicConfig
from dynaforms.reactive import Effect, untracked

from .binding import Binding
from .debounce import DebounceTimer

if TYPE_CHECKING:
    from dynaforms.form.field_node import FieldNode
    from dynaforms.registry.root_form_registry import FieldContext

logger = logging.getLogger("dynaforms.logic.derivation")

ValueSource = Callable[[EvaluationContext], Any]


def _reads_identifier(expression: Optional[str], name: str, field_context: "FieldContext") -> bool:
    if not expression:
        return False
    try:
        ast = field_context.expression_parser.parse(expression)
    except ExpressionError:
        return False
    return name in collect_identifiers(ast)


def derivation_dependencies(config: DerivationLogicConfig, field_context: "FieldContext") -> List[str]:
    """The form paths whose changes re-run a derivation."""
    parser = field_context.expression_parser
    if config.depends_on:
        deps = list(config.depends_on)
    elif config.expression:
        deps = extract_expression_dependencies(config.expression, parser)
        if _reads_identifier(config.expression, "fieldValue", field_context):
            deps.append(field_context.field_path)
    elif config.function_name:
        deps = [WHOLE_FORM]
    else:
        deps = []
    for dependency in extract_condition_dependencies(config.condition, parser):
        if dependency not in deps:
            deps.append(dependency)
    return deps


def _value_source(config: DerivationLogicConfig, field_context: "FieldContext") -> Optional[ValueSource]:
    if config.has_static_value:
        static_value = config.value
        return lambda ctx: copy.deepcopy(static_value)

    if config.expression:
        expression = config.expression
        return lambda ctx: ctx.expression_parser.evaluate(expression, ctx.bindings())

    if config.function_name:
        name = config.function_name
        functions = field_context.functions

        def call(ctx: EvaluationContext) -> Any:
            fn = functions.get_derivation_function(name) or functions.get_custom_function(name)
            if fn is None:
                raise LookupError(f"Derivation function '{name}' is not registered")
            return fn(ctx)

        return call

    return None


def read_dependency(path: str, field_context: "FieldContext") -> None:
    """Reads the node backing ``path`` so the calling effect tracks it."""
    if path == WHOLE_FORM:
        field_context.root_form_value()
        return

    registry = field_context.registry
    item_path = field_context.metadata.item_path
    candidates = [f"{item_path}.{path}", path] if item_path is not None else [path]

    for candidate in candidates:
        segments = split_path(candidate)
        # Deepest registered node on the path, so 'name.length' tracks 'name'
        for end in range(len(segments), 0, -1):
            node = registry.get_field(".".join(segments[:end]))
            if node is not None:
                node.value()
                return

    field_context.root_form_value()


def apply_derivation(
    config: DerivationLogicConfig,
    field_node: "FieldNode",
    field_context: "FieldContext",
    gate: Optional[LogicFunction] = None,
) -> Optional[Binding]:
    """
    Binds a derivation to its own field.

    Returns None when the entry has no value source.
    """
    compute = _value_source(config, field_context)
    if compute is None:
        logger.debug("derivation_without_value_source", extra={"field_path": field_node.path})
        return None

    dependencies = derivation_dependencies(config, field_context)
    reads_external = _reads_identifier(config.expression, "externalData", field_context)
    condition = create_logic_function(config.condition, field_context)
    binding = Binding(f"{field_node.path}.derivation")

    def derive() -> None:
        if field_node.destroyed:
            return
        if not condition():
            return
        ctx = field_context.evaluation_context()
        try:
            new_value = compute(ctx)
        except ExpressionError as error:
            logger.error(
                "derivation_failed",
                extra={"field_path": field_node.path, "error": error.format_with_context()},
            )
            return
        except Exception as error:
            logger.error(
                "derivation_failed",
                extra={"field_path": field_node.path, "error": str(error)},
                exc_info=True,
            )
            return
        if deep_equals(field_node.peek_value(), new_value):
            return
        field_node.set_value(new_value)
        logger.debug("derivation_applied", extra={"field_path": field_node.path})

    def track() -> bool:
        """Reads every dependency; False when the gate is closed."""
        for dependency in dependencies:
            read_dependency(dependency, field_context)
        if reads_external:
            field_context.external_data()
        return gate is None or gate()

    if config.trigger == "debounced":
        timer = binding.add(
            DebounceTimer(
                config.debounce_ms,
                lambda: untracked(derive),
                name=f"{field_node.path}.derivation",
            )
        )
        started = [False]

        def run_debounced() -> None:
            open_gate = track()
            if not started[0]:
                started[0] = True
                return
            if open_gate:
                timer.trigger()

        binding.add(Effect(run_debounced, name=f"{field_node.path}.derivation"))
    else:

        def run() -> None:
            if track():
                untracked(derive)

        binding.add(Effect(run, name=f"{field_node.path}.derivation"))

    return binding
