"""
Binds logic entries to field nodes.

State logic (``hidden``, ``readonly``, ``disabled``, ``required``) drives
the field signal of the same name from a logic function; all four share
one binding mechanism. Derivation logic is handled by
``dynaforms.logic.derivation``, or ``dynaforms.logic.async_derivation`` for
asynchronous sources.

Each applied entry is an independent reactive binding, so entries that
target the same attribute simply overwrite each other: the last one to
re-run wins. Unknown or malformed entries are logged and ignored.
"""

import logging
from typing import TYPE_CHECKING, Any, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from dynaforms.core.logic_function import LogicFunction, create_logic_function
from dynaforms.models.logic import (
    STATE_LOGIC_TYPES,
    DerivationLogicConfig,
    StateLogicConfig,
)
from dynaforms.reactive import Effect, untracked

from .binding import Binding
from .debounce import DebounceTimer
from .async_derivation import apply_async_derivation
from .derivation import apply_derivation

if TYPE_CHECKING:
    from dynaforms.form.field_node import FieldNode
    from dynaforms.registry.root_form_registry import FieldContext

logger = logging.getLogger("dynaforms.logic.logic_applicator")

LogicEntry = Union[StateLogicConfig, DerivationLogicConfig]


def parse_logic_config(config: Any) -> Optional[LogicEntry]:
    """Validates a logic entry; None for unknown types or malformed entries."""
    if isinstance(config, (StateLogicConfig, DerivationLogicConfig)):
        return config

    logic_type = config.get("type") if isinstance(config, Mapping) else getattr(config, "type", None)
    try:
        if logic_type in STATE_LOGIC_TYPES:
            return StateLogicConfig.model_validate(config)
        if logic_type == "derivation":
            return DerivationLogicConfig.model_validate(config)
    except ValidationError as error:
        logger.error(
            "invalid_logic_config",
            extra={"logic_type": logic_type, "error": str(error)},
        )
        return None

    logger.warning("unknown_logic_type", extra={"logic_type": logic_type})
    return None


def _state_signal(field_node: "FieldNode", logic_type: str):
    return getattr(field_node, logic_type)


def apply_state_logic(
    config: StateLogicConfig,
    field_node: "FieldNode",
    field_context: "FieldContext",
    gate: Optional[LogicFunction] = None,
) -> Binding:
    logic_fn = create_logic_function(config.condition, field_context)
    state = _state_signal(field_node, config.type)
    name = f"{field_node.path}.{config.type}"
    binding = Binding(name)

    if config.type == "required":
        field_node.enable_required_check()

    def current() -> bool:
        if gate is not None and not gate():
            return False
        return bool(logic_fn())

    if config.trigger == "debounced":
        latest = [False]
        timer = binding.add(
            DebounceTimer(config.debounce_ms, lambda: state.set(latest[0]), name=name)
        )
        started = [False]

        def run_debounced() -> None:
            latest[0] = current()
            if not started[0]:
                started[0] = True
                untracked(lambda: state.set(latest[0]))
                return
            timer.trigger()

        binding.add(Effect(run_debounced, name=name))
    else:

        def run() -> None:
            value = current()
            untracked(lambda: state.set(value))

        binding.add(Effect(run, name=name))

    logger.debug(
        "state_logic_applied",
        extra={"field_path": field_node.path, "logic_type": config.type, "trigger": config.trigger},
    )
    return binding


def apply_logic(
    config: Any,
    field_node: "FieldNode",
    field_context: "FieldContext",
    gate: Optional[LogicFunction] = None,
) -> Optional[Binding]:
    """
    Applies one logic entry to a field.

    Args:
        config: A logic model or the equivalent mapping
        field_node: The field whose state or value the entry drives
        field_context: Evaluation scope for the field
        gate: Optional extra condition; while it is false state logic
            yields False and derivations do not run

    Returns:
        The binding, owned by ``field_node``, or None when nothing was bound
    """
    entry = parse_logic_config(config)
    if entry is None:
        return None

    if isinstance(entry, StateLogicConfig):
        binding: Optional[Binding] = apply_state_logic(entry, field_node, field_context, gate)
    elif entry.is_async:
        binding = apply_async_derivation(entry, field_node, field_context, gate)
    else:
        binding = apply_derivation(entry, field_node, field_context, gate)

    if binding is not None:
        field_node.own(binding)
    return binding


def apply_multiple_logic(
    configs: Iterable[Any],
    field_node: "FieldNode",
    field_context: "FieldContext",
    gate: Optional[LogicFunction] = None,
) -> List[Binding]:
    """Applies entries in order; later entries win on a shared attribute."""
    bindings: List[Binding] = []
    for config in configs or []:
        binding = apply_logic(config, field_node, field_context, gate)
        if binding is not None:
            bindings.append(binding)
    return bindings
