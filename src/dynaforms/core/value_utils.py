"""
Comparison operators and dot-path access over form values.

Form values are plain JSON-like trees (dicts, lists and scalars). Paths use
dot notation from the form root; numeric segments index into lists
(``hobbies.0``).
"""

import logging
import re
from typing import Any, List, Mapping

from dynaforms.expr.coercion import (
    is_array,
    is_date,
    is_nan,
    strict_equals,
    to_js_string,
    to_number,
)
from dynaforms.expr.errors import LimitExceededError
from dynaforms.expr.limits import check_regex_pattern_length

logger = logging.getLogger("dynaforms.core.value_utils")

COMPARISON_OPERATORS = (
    "equals",
    "notEquals",
    "greater",
    "less",
    "greaterOrEqual",
    "lessOrEqual",
    "contains",
    "startsWith",
    "endsWith",
    "matches",
)

_MISSING = object()


def _numeric_pair(actual: Any, expected: Any):
    a = to_number(actual)
    b = to_number(expected)
    if is_nan(a) or is_nan(b):
        return None
    return a, b


def _matches(actual: Any, pattern: Any) -> bool:
    source = to_js_string(pattern)
    try:
        check_regex_pattern_length(source)
        return re.search(source, to_js_string(actual)) is not None
    except (re.error, LimitExceededError) as error:
        logger.warning(
            "invalid_match_pattern",
            extra={"pattern": source, "error": str(error)},
        )
        return False


def compare_values(actual: Any, expected: Any, operator: str) -> bool:
    """
    Compares ``actual`` against ``expected`` with a condition operator.

    ``equals``/``notEquals`` are strict: primitives compare by type and
    value, containers by identity. Ordering operators coerce both sides
    with ``Number()`` semantics and are false when either side is NaN.
    ``contains``/``startsWith``/``endsWith`` coerce with ``String()``.
    ``matches`` searches ``String(actual)`` with ``expected`` as a regular
    expression; an invalid pattern yields False. Unknown operators yield
    False.
    """
    if operator == "equals":
        return strict_equals(actual, expected)

    if operator == "notEquals":
        return not strict_equals(actual, expected)

    if operator in ("greater", "less", "greaterOrEqual", "lessOrEqual"):
        pair = _numeric_pair(actual, expected)
        if pair is None:
            return False
        a, b = pair
        if operator == "greater":
            return a > b
        if operator == "less":
            return a < b
        if operator == "greaterOrEqual":
            return a >= b
        return a <= b

    if operator == "contains":
        return to_js_string(expected) in to_js_string(actual)

    if operator == "startsWith":
        return to_js_string(actual).startswith(to_js_string(expected))

    if operator == "endsWith":
        return to_js_string(actual).endswith(to_js_string(expected))

    if operator == "matches":
        return _matches(actual, expected)

    logger.debug("unknown_comparison_operator", extra={"operator": operator})
    return False


def split_path(path: str) -> List[str]:
    """Splits a dot path; the empty path has a single empty segment."""
    return path.split(".")


def _step(container: Any, segment: str) -> Any:
    if isinstance(container, Mapping):
        return container.get(segment, _MISSING)
    if is_array(container) and segment.isdecimal() and segment.isascii():
        index = int(segment)
        return container[index] if index < len(container) else _MISSING
    return _MISSING


def get_nested_value(obj: Any, path: str) -> Any:
    """
    Resolves a dot path against a value tree.

    Returns None for missing keys, out-of-range indexes, traversal through
    a scalar, or an empty path.
    """
    current = obj
    for segment in split_path(path):
        current = _step(current, segment)
        if current is _MISSING:
            return None
    return current


def has_nested_property(obj: Any, path: str) -> bool:
    """True when every segment of ``path`` exists, even if its value is None."""
    current = obj
    for segment in split_path(path):
        current = _step(current, segment)
        if current is _MISSING:
            return False
    return True


def set_nested_value(obj: dict, path: str, value: Any) -> dict:
    """
    Returns a copy of ``obj`` with ``value`` written at ``path``.

    Intermediate dicts are copied (never mutated) and created when absent.
    List segments are copied the same way.
    """
    segments = split_path(path)
    if not path:
        raise ValueError("Cannot set a value at an empty path")

    def write(container: Any, index: int) -> Any:
        segment = segments[index]
        last = index == len(segments) - 1
        if is_array(container) and segment.isdecimal() and segment.isascii():
            items = list(container)
            position = int(segment)
            while len(items) <= position:
                items.append(None)
            items[position] = value if last else write(items[position], index + 1)
            return items
        copy = dict(container) if isinstance(container, Mapping) else {}
        copy[segment] = value if last else write(copy.get(segment), index + 1)
        return copy

    return write(obj, 0)


def deep_equals(a: Any, b: Any) -> bool:
    """
    Structural equality for value trees.

    Primitives compare strictly (``1`` is not ``True``); lists compare
    element-wise and dicts key-wise.
    """
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if a.keys() != b.keys():
            return False
        return all(deep_equals(a[key], b[key]) for key in a)
    if is_array(a) and is_array(b):
        if len(a) != len(b):
            return False
        return all(deep_equals(x, y) for x, y in zip(a, b))
    if isinstance(a, (Mapping, list, tuple)) or isinstance(b, (Mapping, list, tuple)):
        return False
    if is_date(a) and is_date(b):
        return a == b
    return strict_equals(a, b)
