"""
Validation message lookup and ``{{param}}`` interpolation.

Messages are looked up by error kind, first in the field's
``validationMessages``, then in the form's ``defaultValidationMessages``.
A message may already be attached to the error by the validator; that one is
used when no configured message exists.
"""

import logging
import re
from typing import Any, Mapping, Optional, Set, Tuple

from dynaforms.expr.coercion import to_js_string

from .validator_types import FieldError

logger = logging.getLogger("dynaforms.validation.messages")

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def _format_param(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/"
    return to_js_string(value)


def interpolate_params(message: str, error: FieldError) -> str:
    """
    Replaces ``{{name}}`` placeholders with the error's params.

    Unknown placeholders, and ``{{kind}}``, are left as they are.
    """

    def replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name == "kind" or name not in error.params:
            return match.group(0)
        return _format_param(error.params[name])

    return _PLACEHOLDER.sub(replace, message)


class MessageResolver:
    """Resolves error messages for the fields of one form."""

    def __init__(self, default_messages: Optional[Mapping[str, str]] = None):
        self.default_messages = dict(default_messages or {})
        self._warned: Set[Tuple[str, str]] = set()

    def resolve(
        self,
        error: FieldError,
        field_messages: Optional[Mapping[str, str]] = None,
        field_path: str = "",
    ) -> Optional[str]:
        template = None
        if field_messages and error.kind in field_messages:
            template = field_messages[error.kind]
        elif error.kind in self.default_messages:
            template = self.default_messages[error.kind]
        elif error.message:
            template = error.message

        if template is None:
            if (field_path, error.kind) not in self._warned:
                self._warned.add((field_path, error.kind))
                logger.warning(
                    "validation_message_missing",
                    extra={"field_path": field_path, "kind": error.kind},
                )
            return None

        return interpolate_params(template, error)

    def __call__(self, node: Any, error: FieldError) -> Optional[str]:
        return self.resolve(error, node.validation_messages, node.path)
