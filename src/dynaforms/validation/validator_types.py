"""
Shapes shared by validators and the registry that stores them.

Validators report failures as ``FieldError`` values, or as plain mappings
with a ``kind`` key which are normalized on the way in.
"""

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Union,
)

if TYPE_CHECKING:
    from dynaforms.registry.root_form_registry import FieldContext


@dataclass
class FieldError:
    """A validation failure for one field."""

    kind: str
    params: Dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None

    def with_message(self, message: Optional[str]) -> "FieldError":
        return FieldError(kind=self.kind, params=dict(self.params), message=message)


ValidationResult = Union[None, FieldError, Mapping[str, Any], List[Any]]

# value, params -> result
SimpleValidator = Callable[[Any, Optional[Mapping[str, Any]]], ValidationResult]

# field context, params -> result
ContextValidator = Callable[["FieldContext", Optional[Mapping[str, Any]]], ValidationResult]

# field context (with access to the whole field tree), params -> result
TreeValidator = Callable[["FieldContext", Optional[Mapping[str, Any]]], ValidationResult]


@dataclass
class AsyncValidator:
    """
    An asynchronous validator.

    ``params`` runs synchronously with the field context and the configured
    params; the reactive state it reads (plus the field's own value) decides
    when the validator re-runs, and returning None skips the check. Its
    result is handed to ``load``, which is awaited. Without ``params``,
    ``load`` receives ``{"value": ..., "params": ...}`` with the field value
    and the configured params. ``on_success`` maps the loaded result to
    errors (the result itself is used when absent). ``on_error`` maps a
    failure to errors; without it failures become ``asyncValidationFailed``.
    """

    load: Callable[[Any], Awaitable[Any]]
    params: Optional[Callable[["FieldContext", Optional[Mapping[str, Any]]], Any]] = None
    on_success: Optional[Callable[[Any, "FieldContext"], ValidationResult]] = None
    on_error: Optional[Callable[[BaseException, "FieldContext"], ValidationResult]] = None


@dataclass
class HttpRequest:
    url: str
    method: str = "GET"
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)


HttpTransport = Callable[[HttpRequest], Awaitable[Any]]


@dataclass
class HttpValidator:
    """
    A remote validator.

    ``request`` returns a URL, an ``HttpRequest`` or None to skip the check.
    The request is sent through the engine's transport and ``on_success``
    maps the response to errors; a successful response can still mean the
    value is invalid.
    """

    request: Callable[["FieldContext", Optional[Mapping[str, Any]]], Union[None, str, HttpRequest]]
    on_success: Callable[[Any, "FieldContext"], ValidationResult]
    on_error: Optional[Callable[[BaseException, "FieldContext"], ValidationResult]] = None


def normalize_errors(result: Any) -> List[FieldError]:
    """Converts any validator result to a list of ``FieldError``."""
    if result is None:
        return []
    if isinstance(result, FieldError):
        return [result]
    if isinstance(result, Mapping):
        kind = result.get("kind")
        if not isinstance(kind, str) or not kind:
            raise ValueError(f"Validation error without a kind: {result!r}")
        params = {key: value for key, value in result.items() if key not in ("kind", "message")}
        return [FieldError(kind=kind, params=params, message=result.get("message"))]
    if isinstance(result, (list, tuple)):
        errors: List[FieldError] = []
        for item in result:
            errors.extend(normalize_errors(item))
        return errors
    raise ValueError(f"Unsupported validation result: {result!r}")
