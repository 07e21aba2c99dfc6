"""
JavaScript-style value coercions.

Form configuration is authored against JavaScript semantics (``Number()``,
``String()``, truthiness, ``==`` and ``===``). These helpers reproduce those
semantics over plain Python values so expressions and condition operators
behave the way configuration authors expect.

Value model:
- None stands for both ``null`` and ``undefined``. ``typeof`` reports it as
  ``"undefined"`` and ``String()`` renders it as ``"null"``.
- bool, int and float are JavaScript booleans and numbers; bool is never
  treated as a number unless explicitly coerced.
- str, list/tuple and dict are strings, arrays and plain objects.
- date and datetime are Date objects.
"""

import math
import re
from datetime import date, datetime, timezone
from typing import Any, Union

Number = Union[int, float]

NAN = float("nan")

# Numeric string grammar accepted by JavaScript's Number(). Python's float()
# also accepts "1_000", "inf" and "nan", which JavaScript rejects.
_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_RADIX_RE = re.compile(r"^0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$")
_INFINITY_RE = re.compile(r"^[+-]?Infinity$")


def is_number(value: Any) -> bool:
    """True for JavaScript numbers (int or float, never bool)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def is_date(value: Any) -> bool:
    return isinstance(value, (date, datetime))


def is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def js_typeof(value: Any) -> str:
    """Result of the ``typeof`` operator."""
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if callable(value):
        return "function"
    return "object"


def date_to_timestamp(value: Union[date, datetime]) -> float:
    """Milliseconds since the epoch; naive values are taken as UTC."""
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp() * 1000


def _string_to_number(text: str) -> Number:
    stripped = text.strip()
    if stripped == "":
        return 0
    if _DECIMAL_RE.match(stripped):
        if _INTEGER_RE.match(stripped):
            return int(stripped)
        return float(stripped)
    radix = _RADIX_RE.match(stripped)
    if radix:
        return int(stripped, 0)
    if _INFINITY_RE.match(stripped):
        return -math.inf if stripped.startswith("-") else math.inf
    return NAN


def to_number(value: Any) -> Number:
    """Coerces a value with ``Number()`` semantics."""
    if value is None:
        return NAN
    if isinstance(value, bool):
        return 1 if value else 0
    if is_number(value):
        return value
    if isinstance(value, str):
        return _string_to_number(value)
    if is_date(value):
        return date_to_timestamp(value)
    if is_array(value):
        if len(value) == 0:
            return 0
        if len(value) == 1:
            return to_number(to_js_string(value[0]) if value[0] is not None else "")
        return NAN
    return NAN


def to_integer(value: Any, default: int = 0) -> Union[int, float]:
    """``ToIntegerOrInfinity``: truncates, maps NaN to ``default``."""
    if value is None:
        return default
    number = to_number(value)
    if is_nan(number):
        return default
    if math.isinf(number):
        return number
    return int(number)


def format_number(value: Number) -> str:
    """Formats a number the way JavaScript's ``String()`` does."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" in text:
        mantissa, exponent = text.split("e")
        sign = "-" if exponent.startswith("-") else "+"
        text = f"{mantissa}e{sign}{exponent.lstrip('+-').lstrip('0') or '0'}"
    return text


def to_js_string(value: Any) -> str:
    """Coerces a value with ``String()`` semantics."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, str):
        return value
    if is_array(value):
        return ",".join("" if item is None else to_js_string(item) for item in value)
    if is_date(value):
        return value.isoformat()
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def is_truthy(value: Any) -> bool:
    """JavaScript truthiness: empty arrays and objects are truthy."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return not (value == 0 or is_nan(value))
    if isinstance(value, str):
        return value != ""
    return True


def strict_equals(a: Any, b: Any) -> bool:
    """``===``: same type and value for primitives, identity for objects."""
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) or is_number(b):
        return is_number(a) and is_number(b) and a == b
    if isinstance(a, str) or isinstance(b, str):
        return isinstance(a, str) and isinstance(b, str) and a == b
    return a is b


def same_value_zero(a: Any, b: Any) -> bool:
    """Equality used by ``Array.prototype.includes`` (NaN equals NaN)."""
    if is_nan(a) and is_nan(b):
        return True
    return strict_equals(a, b)


def _is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (bool, int, float, str))


def loose_equals(a: Any, b: Any) -> bool:
    """``==`` with JavaScript's abstract equality coercions."""
    if a is None or b is None:
        return a is None and b is None
    if _is_primitive(a) and _is_primitive(b):
        if type(a) is type(b) or (is_number(a) and is_number(b)):
            return strict_equals(a, b)
        if isinstance(a, bool):
            return loose_equals(to_number(a), b)
        if isinstance(b, bool):
            return loose_equals(a, to_number(b))
        return to_number(a) == to_number(b)
    if not _is_primitive(a) and not _is_primitive(b):
        return a is b
    # Object against primitive: compare the object's string form
    if _is_primitive(a):
        return loose_equals(a, to_js_string(b))
    return loose_equals(to_js_string(a), b)
