"""
Whitelisted methods callable from expressions.

Security model: only methods listed here can be called, and only on
receivers of the listed type. Each method is pure: it reads its receiver
and arguments and returns a new value. Nothing here reaches Python
attributes of the receiver, so expressions can never touch interpreter
internals through a method call.

Null handling semantics:
- Missing arguments are ``undefined`` (None), as in JavaScript.
- Calling a method on None is an evaluation error.
- Calling a method that is not listed for the receiver's type is a
  SecurityError.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from .coercion import (
    date_to_timestamp,
    format_number,
    is_array,
    is_date,
    is_number,
    same_value_zero,
    strict_equals,
    to_integer,
    to_js_string,
)
from .errors import MethodError
from .limits import DEFAULT_EXPRESSION_LIMITS, ExpressionLimits, check_result_string_length


@dataclass
class MethodContext:
    """Context passed to whitelisted methods."""

    limits: ExpressionLimits = DEFAULT_EXPRESSION_LIMITS
    position: int = 0
    source: str = ""


# Signature of a whitelisted method: (receiver, args, context) -> value
SafeMethod = Callable[[Any, Sequence[Any], MethodContext], Any]

# Property names that are never readable, whatever the receiver
BLOCKED_PROPERTIES = frozenset(
    {
        "constructor",
        "__proto__",
        "prototype",
        "__defineGetter__",
        "__defineSetter__",
        "__lookupGetter__",
        "__lookupSetter__",
    }
)


def is_blocked_property(name: str) -> bool:
    """Blocked names plus any Python dunder name."""
    return name in BLOCKED_PROPERTIES or (name.startswith("__") and name.endswith("__"))


def _arg(args: Sequence[Any], index: int) -> Any:
    return args[index] if index < len(args) else None


def _relative_index(value: Any, length: int, default: int) -> int:
    """Resolves a possibly-negative slice bound against ``length``."""
    if value is None:
        return default
    index = to_integer(value)
    if index < 0:
        return int(max(length + index, 0))
    return int(min(index, length))


def _clamped_index(value: Any, length: int, default: int) -> int:
    if value is None:
        return default
    return int(min(max(to_integer(value), 0), length))


def _error(name: str, message: str, ctx: MethodContext) -> MethodError:
    return MethodError(name, message, ctx.position, ctx.source)


# ============================================================
# String Methods
# ============================================================


def _str_includes(s: str, args: Sequence[Any], ctx: MethodContext) -> bool:
    start = _clamped_index(_arg(args, 1), len(s), 0)
    return to_js_string(_arg(args, 0)) in s[start:]


def _str_starts_with(s: str, args: Sequence[Any], ctx: MethodContext) -> bool:
    start = _clamped_index(_arg(args, 1), len(s), 0)
    return s.startswith(to_js_string(_arg(args, 0)), start)


def _str_ends_with(s: str, args: Sequence[Any], ctx: MethodContext) -> bool:
    end = _clamped_index(_arg(args, 1), len(s), len(s))
    return s[:end].endswith(to_js_string(_arg(args, 0)))


def _str_index_of(s: str, args: Sequence[Any], ctx: MethodContext) -> int:
    start = _clamped_index(_arg(args, 1), len(s), 0)
    return s.find(to_js_string(_arg(args, 0)), start)


def _str_last_index_of(s: str, args: Sequence[Any], ctx: MethodContext) -> int:
    needle = to_js_string(_arg(args, 0))
    end = _clamped_index(_arg(args, 1), len(s), len(s))
    return s.rfind(needle, 0, end + len(needle))


def _str_slice(s: str, args: Sequence[Any], ctx: MethodContext) -> str:
    start = _relative_index(_arg(args, 0), len(s), 0)
    end = _relative_index(_arg(args, 1), len(s), len(s))
    return s[start:end]


def _str_substring(s: str, args: Sequence[Any], ctx: MethodContext) -> str:
    start = _clamped_index(_arg(args, 0), len(s), 0)
    end = _clamped_index(_arg(args, 1), len(s), len(s))
    if start > end:
        start, end = end, start
    return s[start:end]


def _str_split(s: str, args: Sequence[Any], ctx: MethodContext) -> List[str]:
    separator = _arg(args, 0)
    if separator is None:
        parts = [s]
    else:
        separator = to_js_string(separator)
        parts = list(s) if separator == "" else s.split(separator)
    limit = _arg(args, 1)
    if limit is not None:
        parts = parts[: int(min(max(to_integer(limit), 0), len(parts)))]
    return parts


def _str_replace(s: str, args: Sequence[Any], ctx: MethodContext) -> str:
    # Only the first occurrence is replaced, as with a string pattern in JS
    return s.replace(to_js_string(_arg(args, 0)), to_js_string(_arg(args, 1)), 1)


def _str_char_at(s: str, args: Sequence[Any], ctx: MethodContext) -> str:
    index = to_integer(_arg(args, 0))
    return s[int(index)] if 0 <= index < len(s) else ""


def _str_char_code_at(s: str, args: Sequence[Any], ctx: MethodContext) -> Any:
    index = to_integer(_arg(args, 0))
    return ord(s[int(index)]) if 0 <= index < len(s) else math.nan


def _str_concat(s: str, args: Sequence[Any], ctx: MethodContext) -> str:
    result = s + "".join(to_js_string(arg) for arg in args)
    check_result_string_length(len(result), ctx.limits)
    return result


def _pad(s: str, args: Sequence[Any], ctx: MethodContext, at_start: bool) -> str:
    target = to_integer(_arg(args, 0))
    fill = " " if _arg(args, 1) is None else to_js_string(_arg(args, 1))
    if target <= len(s) or fill == "":
        return s
    if math.isinf(target):
        raise _error("padStart" if at_start else "padEnd", "invalid length", ctx)
    check_result_string_length(int(target), ctx.limits)
    needed = int(target) - len(s)
    padding = (fill * (needed // len(fill) + 1))[:needed]
    return padding + s if at_start else s + padding


def _str_pad_start(s: str, args: Sequence[Any], ctx: MethodContext) -> str:
    return _pad(s, args, ctx, at_start=True)


def _str_pad_end(s: str, args: Sequence[Any], ctx: MethodContext) -> str:
    return _pad(s, args, ctx, at_start=False)


def _str_repeat(s: str, args: Sequence[Any], ctx: MethodContext) -> str:
    count = to_integer(_arg(args, 0))
    if count < 0 or math.isinf(count):
        raise _error("repeat", f"invalid count value: {format_number(count)}", ctx)
    check_result_string_length(len(s) * int(count), ctx.limits)
    return s * int(count)


STRING_METHODS: Dict[str, SafeMethod] = {
    "includes": _str_includes,
    "startsWith": _str_starts_with,
    "endsWith": _str_ends_with,
    "indexOf": _str_index_of,
    "lastIndexOf": _str_last_index_of,
    "toLowerCase": lambda s, args, ctx: s.lower(),
    "toUpperCase": lambda s, args, ctx: s.upper(),
    "trim": lambda s, args, ctx: s.strip(),
    "trimStart": lambda s, args, ctx: s.lstrip(),
    "trimEnd": lambda s, args, ctx: s.rstrip(),
    "slice": _str_slice,
    "substring": _str_substring,
    "split": _str_split,
    "replace": _str_replace,
    "charAt": _str_char_at,
    "charCodeAt": _str_char_code_at,
    "concat": _str_concat,
    "padStart": _str_pad_start,
    "padEnd": _str_pad_end,
    "repeat": _str_repeat,
    "toString": lambda s, args, ctx: s,
}


# ============================================================
# Number Methods
# ============================================================


def _num_to_fixed(n: Any, args: Sequence[Any], ctx: MethodContext) -> str:
    digits = to_integer(_arg(args, 0))
    if not 0 <= digits <= 100:
        raise _error("toFixed", "digits argument must be between 0 and 100", ctx)
    if math.isnan(n) or math.isinf(n):
        return format_number(n)
    return f"{n:.{int(digits)}f}"


def _num_to_precision(n: Any, args: Sequence[Any], ctx: MethodContext) -> str:
    if _arg(args, 0) is None or math.isnan(n) or math.isinf(n):
        return format_number(n)
    precision = to_integer(_arg(args, 0))
    if not 1 <= precision <= 100:
        raise _error("toPrecision", "argument must be between 1 and 100", ctx)
    return f"{n:#.{int(precision)}g}".rstrip(".")


def _num_to_string(n: Any, args: Sequence[Any], ctx: MethodContext) -> str:
    radix = 10 if _arg(args, 0) is None else to_integer(_arg(args, 0))
    if not 2 <= radix <= 36:
        raise _error("toString", "radix must be between 2 and 36", ctx)
    if radix == 10 or not float(n).is_integer():
        return format_number(n)
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    value = abs(int(n))
    out = ""
    while True:
        value, remainder = divmod(value, int(radix))
        out = digits[remainder] + out
        if value == 0:
            break
    return "-" + out if n < 0 else out


NUMBER_METHODS: Dict[str, SafeMethod] = {
    "toFixed": _num_to_fixed,
    "toPrecision": _num_to_precision,
    "toString": _num_to_string,
}


# ============================================================
# Array Methods
# ============================================================


def _arr_includes(items: Sequence[Any], args: Sequence[Any], ctx: MethodContext) -> bool:
    needle = _arg(args, 0)
    start = _relative_index(_arg(args, 1), len(items), 0)
    return any(same_value_zero(item, needle) for item in items[start:])


def _arr_index_of(items: Sequence[Any], args: Sequence[Any], ctx: MethodContext) -> int:
    needle = _arg(args, 0)
    start = _relative_index(_arg(args, 1), len(items), 0)
    for index in range(start, len(items)):
        if strict_equals(items[index], needle):
            return index
    return -1


def _arr_last_index_of(
    items: Sequence[Any], args: Sequence[Any], ctx: MethodContext
) -> int:
    needle = _arg(args, 0)
    for index in range(len(items) - 1, -1, -1):
        if strict_equals(items[index], needle):
            return index
    return -1


def _arr_join(items: Sequence[Any], args: Sequence[Any], ctx: MethodContext) -> str:
    separator = "," if _arg(args, 0) is None else to_js_string(_arg(args, 0))
    result = separator.join("" if item is None else to_js_string(item) for item in items)
    check_result_string_length(len(result), ctx.limits)
    return result


def _arr_slice(items: Sequence[Any], args: Sequence[Any], ctx: MethodContext) -> List[Any]:
    start = _relative_index(_arg(args, 0), len(items), 0)
    end = _relative_index(_arg(args, 1), len(items), len(items))
    return list(items[start:end])


def _arr_concat(items: Sequence[Any], args: Sequence[Any], ctx: MethodContext) -> List[Any]:
    result = list(items)
    for arg in args:
        if is_array(arg):
            result.extend(arg)
        else:
            result.append(arg)
    return result


ARRAY_METHODS: Dict[str, SafeMethod] = {
    "includes": _arr_includes,
    "indexOf": _arr_index_of,
    "lastIndexOf": _arr_last_index_of,
    "join": _arr_join,
    "slice": _arr_slice,
    "concat": _arr_concat,
    "toString": lambda items, args, ctx: _arr_join(items, [","], ctx),
}


# ============================================================
# Date Methods
# ============================================================


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


DATE_METHODS: Dict[str, SafeMethod] = {
    "getFullYear": lambda d, args, ctx: d.year,
    "getMonth": lambda d, args, ctx: d.month - 1,
    "getDate": lambda d, args, ctx: d.day,
    "getDay": lambda d, args, ctx: (d.weekday() + 1) % 7,
    "getHours": lambda d, args, ctx: _as_datetime(d).hour,
    "getMinutes": lambda d, args, ctx: _as_datetime(d).minute,
    "getSeconds": lambda d, args, ctx: _as_datetime(d).second,
    "getTime": lambda d, args, ctx: date_to_timestamp(d),
    "toISOString": lambda d, args, ctx: _as_datetime(d).isoformat(),
    "toString": lambda d, args, ctx: to_js_string(d),
}


def get_safe_method(receiver: Any, name: str) -> Optional[SafeMethod]:
    """
    Looks up a whitelisted method for a receiver.

    Returns None when the receiver's type has no method of that name.
    """
    if isinstance(receiver, str):
        return STRING_METHODS.get(name)
    if is_number(receiver):
        return NUMBER_METHODS.get(name)
    if is_array(receiver):
        return ARRAY_METHODS.get(name)
    if is_date(receiver):
        return DATE_METHODS.get(name)
    return None
