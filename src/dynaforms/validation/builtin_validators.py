"""
Built-in validators.

Each check takes the field value and the configured limit and returns a
``FieldError`` or None. Empty values (None, ``""``, empty lists) pass every
check except ``required``, so optional fields are only validated once
filled in.
"""

import re
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Pattern, Union

from dynaforms.expr.coercion import is_nan, to_js_string, to_number

from .validator_types import FieldError

if TYPE_CHECKING:
    from dynaforms.form.field_node import FieldNode

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value == "":
        return True
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return True
    return False


def _length(value: Any) -> Optional[int]:
    if isinstance(value, (str, list, tuple)):
        return len(value)
    return None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    number = to_number(value)
    return None if is_nan(number) else number


def check_required(value: Any, _limit: Any = None) -> Optional[FieldError]:
    # Unchecked checkboxes count as empty
    if is_empty(value) or value is False:
        return FieldError("required")
    return None


def check_email(value: Any, _limit: Any = None) -> Optional[FieldError]:
    if is_empty(value):
        return None
    if not EMAIL_PATTERN.fullmatch(to_js_string(value)):
        return FieldError("email")
    return None


def check_min(value: Any, limit: Any) -> Optional[FieldError]:
    if is_empty(value):
        return None
    number, minimum = _number(value), _number(limit)
    if number is None or minimum is None:
        return None
    if number < minimum:
        return FieldError("min", {"min": limit, "actual": value})
    return None


def check_max(value: Any, limit: Any) -> Optional[FieldError]:
    if is_empty(value):
        return None
    number, maximum = _number(value), _number(limit)
    if number is None or maximum is None:
        return None
    if number > maximum:
        return FieldError("max", {"max": limit, "actual": value})
    return None


def check_min_length(value: Any, limit: Any) -> Optional[FieldError]:
    if is_empty(value):
        return None
    length, required_length = _length(value), _number(limit)
    if length is None or required_length is None:
        return None
    if length < required_length:
        return FieldError(
            "minLength",
            {"minLength": limit, "requiredLength": limit, "actualLength": length},
        )
    return None


def check_max_length(value: Any, limit: Any) -> Optional[FieldError]:
    if is_empty(value):
        return None
    length, allowed_length = _length(value), _number(limit)
    if length is None or allowed_length is None:
        return None
    if length > allowed_length:
        return FieldError(
            "maxLength",
            {"maxLength": limit, "requiredLength": limit, "actualLength": length},
        )
    return None


def compile_pattern(pattern: Union[str, Pattern[str]]) -> Pattern[str]:
    """Compiles a pattern; ``re.error`` propagates for invalid strings."""
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern)


def check_pattern(value: Any, pattern: Any) -> Optional[FieldError]:
    if is_empty(value) or pattern is None:
        return None
    compiled = compile_pattern(pattern)
    if not compiled.fullmatch(to_js_string(value)):
        return FieldError("pattern", {"pattern": compiled, "actualValue": value})
    return None


BUILTIN_CHECKS: Dict[str, Callable[[Any, Any], Optional[FieldError]]] = {
    "required": check_required,
    "email": check_email,
    "min": check_min,
    "max": check_max,
    "minLength": check_min_length,
    "maxLength": check_max_length,
    "pattern": check_pattern,
}


def required_state_errors(field_node: "FieldNode") -> List[FieldError]:
    """The ``required`` error while the field's ``required`` signal is set."""
    if not field_node.required():
        return []
    error = check_required(field_node.value())
    return [error] if error else []
