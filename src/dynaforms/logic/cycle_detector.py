"""
Build-time detection of derivation cycles.

Derivations are self-targeting: an entry for ``total`` that depends on
``price`` adds the edge ``price -> total``. A field deriving from itself
(``email`` lower-casing its own value) and two fields deriving from each
other (a currency pair) settle at runtime because equal values are not
re-written, so neither counts as a cycle. Longer loops do not settle and are
rejected.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from dynaforms.config.errors import DerivationCycleError
from dynaforms.core.dependencies import WHOLE_FORM

logger = logging.getLogger("dynaforms.logic.cycle_detector")


@dataclass
class DerivationEntry:
    field_key: str
    depends_on: Sequence[str] = field(default_factory=list)


@dataclass
class CycleDetectionResult:
    has_cycle: bool
    cycle_path: Optional[List[str]] = None
    error_message: Optional[str] = None


def _build_graph(entries: Iterable[DerivationEntry]) -> Dict[str, List[str]]:
    graph: Dict[str, List[str]] = {}
    for entry in entries:
        graph.setdefault(entry.field_key, [])
        for dependency in entry.depends_on:
            # Whole-form dependencies would make every derivation cyclic
            if dependency == WHOLE_FORM or dependency == entry.field_key:
                continue
            targets = graph.setdefault(dependency, [])
            if entry.field_key not in targets:
                targets.append(entry.field_key)
    return graph


def detect_cycles(entries: Iterable[DerivationEntry]) -> CycleDetectionResult:
    graph = _build_graph(entries)
    visited: Dict[str, bool] = {}
    stack: List[str] = []
    on_stack: Dict[str, int] = {}

    def visit(node: str) -> Optional[List[str]]:
        visited[node] = True
        on_stack[node] = len(stack)
        stack.append(node)
        for target in graph.get(node, []):
            if target in on_stack:
                cycle = stack[on_stack[target]:] + [target]
                if len(cycle) > 3:
                    return cycle
                continue
            if not visited.get(target):
                found = visit(target)
                if found:
                    return found
        stack.pop()
        del on_stack[node]
        return None

    for node in graph:
        if visited.get(node):
            continue
        cycle = visit(node)
        if cycle:
            message = f"Derivation cycle detected: {' -> '.join(cycle)}"
            return CycleDetectionResult(has_cycle=True, cycle_path=cycle, error_message=message)

    return CycleDetectionResult(has_cycle=False)


def validate_no_cycles(entries: Iterable[DerivationEntry]) -> None:
    """Raises ``DerivationCycleError`` when the derivations loop."""
    result = detect_cycles(entries)
    if result.has_cycle:
        logger.error("derivation_cycle_detected", extra={"cycle": result.cycle_path})
        raise DerivationCycleError(result.error_message or "Derivation cycle detected", result.cycle_path or [])
