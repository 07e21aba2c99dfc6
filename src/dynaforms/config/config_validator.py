"""
Validation of raw form configuration.

Raw JSON or YAML is checked in two passes. Structural rules run on the raw
mappings so that keys the models would drop (``hideWhen``, ``template`` ...)
can still be reported with a fix hint. The pydantic models then check types
and required keys. Every problem becomes a ``FormattedValidationError``
with a dot path into the configuration.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from dynaforms.expr.expression_parser import ExpressionParser, default_expression_parser
from dynaforms.models.fields import (
    CONTAINER_TYPES,
    FLATTENING_CONTAINER_TYPES,
    NON_VALUE_TYPES,
)
from dynaforms.models.form_config import FormConfig

from .errors import ConfigurationError, FormattedValidationError

logger = logging.getLogger("dynaforms.config.config_validator")

UI_INTEGRATIONS = ("material", "bootstrap", "primeng", "ionic")

FIX_SUGGESTIONS: Dict[str, str] = {
    "label": "Remove `label` from this container field (page/group/row/array). Use a `text` field inside for headings.",
    "logic": (
        "Containers (group, row, array, page) only support 'hidden' logic. "
        "Apply other logic types (disabled, required, readonly, derivation) to child fields instead."
    ),
    "template": "Use `fields` instead of `template` for the array item definition.",
    "minItems": "Array fields do not support `minItems`. Validate the item count with a custom validator.",
    "maxItems": "Array fields do not support `maxItems`. Validate the item count with a custom validator.",
    "hideWhen": "Use `logic: [{type: 'hidden', condition: {...}}]`; no `hideWhen` shorthand exists.",
    "showWhen": "Use `logic: [{type: 'hidden', condition: {...}}]` with an inverted condition; no `showWhen` shorthand exists.",
    "expressions": "Use `logic: [{type: 'derivation', expression: ...}]` or the `derivation: '...'` shorthand; no `expressions` property exists.",
    "targetField": (
        "Derivations are defined on the target field itself. Use `derivation: '...'` "
        "or `logic: [{type: 'derivation', expression: '...'}]` instead of `targetField`."
    ),
    "value": "Hidden fields require a `value`. Add `value: ...`.",
    "validators": "Hidden fields do not support validators. Remove the `validators` property.",
    "required": "Hidden fields do not support `required`. Remove it.",
    "disabled": "Hidden fields do not support `disabled`. Remove it.",
    "readonly": "Hidden fields do not support `readonly`. Remove it.",
    "hidden": "Hidden fields do not support `hidden`. Remove it (the field is already hidden).",
    "col": "Hidden fields do not support `col`. Remove it (no layout needed).",
    "props": "Hidden fields do not support `props`. Remove it.",
    "functionName": "Give custom validators a `functionName` registered in customFnConfig, or an `expression`.",
}

UNSUPPORTED_SHORTHANDS = ("hideWhen", "showWhen", "expressions", "targetField")
ARRAY_FORBIDDEN_KEYS = ("template", "minItems", "maxItems")
HIDDEN_FIELD_FORBIDDEN_KEYS = ("validators", "required", "disabled", "readonly", "hidden", "col", "props")


def get_fix_suggestion(path: str, message: str) -> Optional[str]:
    """A fix hint for an error, matched on the last path segment, then on the message."""
    last = path.split(".")[-1] if path else ""
    if last in FIX_SUGGESTIONS:
        return FIX_SUGGESTIONS[last]
    lowered = message.lower()
    for key, suggestion in FIX_SUGGESTIONS.items():
        if key.lower() in lowered:
            return suggestion
    return None


@dataclass
class ConfigValidationResult:
    errors: List[FormattedValidationError] = field(default_factory=list)
    config: Optional[FormConfig] = None
    ui_integration: Optional[str] = None

    @property
    def valid(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> FormConfig:
        """Returns the validated config, or raises ``ConfigurationError``."""
        if self.errors or self.config is None:
            raise ConfigurationError(
                f"Invalid form configuration ({len(self.errors)} error(s))", self.errors
            )
        return self.config

    def format_report(self) -> str:
        if self.valid:
            return "Form configuration is valid."
        lines = [f"Form configuration has {len(self.errors)} error(s):"]
        for error in self.errors:
            lines.append(f"- {error.path or '<root>'}: {error.message}")
            if error.fix:
                lines.append(f"  Fix: {error.fix}")
        return "\n".join(lines)


def _join(path: str, key: Any) -> str:
    return f"{path}.{key}" if path else str(key)


class _StructureChecker:
    def __init__(self, parser: ExpressionParser):
        self.parser = parser
        self.errors: List[FormattedValidationError] = []

    def error(self, path: str, message: str) -> None:
        self.errors.append(
            FormattedValidationError(path=path, message=message, fix=get_fix_suggestion(path, message))
        )

    def check_expression(self, path: str, expression: Any) -> None:
        if not isinstance(expression, str):
            return
        problem = self.parser.validate(expression)
        if problem:
            self.error(path, f"Invalid expression: {problem}")

    def check_http_request(self, path: str, request: Any) -> None:
        if not isinstance(request, Mapping):
            return
        for name, expression in (request.get("queryParams") or {}).items():
            self.check_expression(_join(_join(path, "queryParams"), name), expression)
        body = request.get("body")
        if request.get("evaluateBodyExpressions") and isinstance(body, Mapping):
            for key, expression in body.items():
                self.check_expression(_join(_join(path, "body"), key), expression)

    def check_condition(self, path: str, condition: Any, top_level: bool = True) -> None:
        if not isinstance(condition, Mapping):
            return
        condition_type = condition.get("type")
        if condition_type == "javascript":
            self.check_expression(_join(path, "expression"), condition.get("expression"))
        elif condition_type == "http":
            if not top_level:
                self.error(path, "HTTP conditions cannot be nested in 'and' or 'or'")
            self.check_http_request(_join(path, "http"), condition.get("http"))
            self.check_expression(_join(path, "responseExpression"), condition.get("responseExpression"))
        elif condition_type in ("and", "or"):
            for index, child in enumerate(condition.get("conditions") or []):
                self.check_condition(_join(_join(path, "conditions"), index), child, top_level=False)

    def check_logic(self, path: str, logic: Any, container: bool) -> None:
        if not isinstance(logic, Sequence) or isinstance(logic, str):
            return
        for index, entry in enumerate(logic):
            entry_path = _join(path, index)
            if not isinstance(entry, Mapping):
                continue
            logic_type = entry.get("type")
            if container and logic_type != "hidden":
                self.error(entry_path, f"Containers only support 'hidden' logic, got '{logic_type}'")
            if logic_type == "derivation":
                self.check_expression(_join(entry_path, "expression"), entry.get("expression"))
                self.check_http_request(_join(entry_path, "http"), entry.get("http"))
                self.check_expression(_join(entry_path, "responseExpression"), entry.get("responseExpression"))
            self.check_condition(_join(entry_path, "condition"), entry.get("condition"))

    def check_validators(self, path: str, validators: Any) -> None:
        if not isinstance(validators, Sequence) or isinstance(validators, str):
            return
        for index, entry in enumerate(validators):
            entry_path = _join(path, index)
            if not isinstance(entry, Mapping):
                continue
            if entry.get("type") == "custom" and not entry.get("functionName") and not entry.get("expression"):
                self.error(entry_path, "Custom validators need either 'functionName' or 'expression'")
            self.check_expression(_join(entry_path, "expression"), entry.get("expression"))
            for name, expression in (entry.get("errorParams") or {}).items():
                self.check_expression(_join(_join(entry_path, "errorParams"), name), expression)
            self.check_condition(_join(entry_path, "when"), entry.get("when"))

    def check_field(self, path: str, raw: Mapping[str, Any]) -> None:
        field_type = raw.get("type")
        container = field_type in CONTAINER_TYPES

        for key in UNSUPPORTED_SHORTHANDS:
            if key in raw:
                self.error(_join(path, key), f"Unknown property '{key}'")

        if container and "label" in raw:
            self.error(_join(path, "label"), f"'{field_type}' fields do not support 'label'")

        if field_type == "array":
            for key in ARRAY_FORBIDDEN_KEYS:
                if key in raw:
                    self.error(_join(path, key), f"Array fields do not support '{key}'")

        if field_type == "hidden":
            if "value" not in raw:
                self.error(_join(path, "value"), "Hidden fields require a 'value'")
            for key in HIDDEN_FIELD_FORBIDDEN_KEYS:
                if key in raw:
                    self.error(_join(path, key), f"Hidden fields do not support '{key}'")

        self.check_logic(_join(path, "logic"), raw.get("logic"), container)
        self.check_validators(_join(path, "validators"), raw.get("validators"))
        self.check_expression(_join(path, "derivation"), raw.get("derivation"))

        children = raw.get("fields")
        if isinstance(children, Sequence) and not isinstance(children, str):
            self.check_fields(_join(path, "fields"), children)

    def check_fields(self, path: str, fields: Sequence[Any]) -> None:
        for index, raw in enumerate(fields):
            if isinstance(raw, Mapping):
                self.check_field(_join(path, index), raw)

    def check_duplicate_keys(self, fields: Sequence[Any]) -> None:
        seen: Dict[str, int] = {}
        for value_path in _value_paths(fields, ""):
            seen[value_path] = seen.get(value_path, 0) + 1
        duplicates = [value_path for value_path, count in seen.items() if count > 1]
        if duplicates:
            listed = ", ".join(f"'{value_path}'" for value_path in duplicates)
            self.error("fields", f"Duplicate field keys detected: {listed}")


def _value_paths(fields: Sequence[Any], prefix: str) -> Iterator[str]:
    """Paths of every field in the form value; array items are not descended into."""
    for raw in fields:
        if not isinstance(raw, Mapping) or not isinstance(raw.get("key"), str):
            continue
        field_type = raw.get("type")
        children = raw.get("fields") if isinstance(raw.get("fields"), list) else []
        if field_type in FLATTENING_CONTAINER_TYPES:
            yield from _value_paths(children, prefix)
            continue
        if field_type in NON_VALUE_TYPES:
            continue
        path = _join(prefix, raw["key"])
        yield path
        if field_type == "group":
            yield from _value_paths(children, path)


def _pydantic_errors(error: ValidationError) -> List[Tuple[str, str]]:
    problems = []
    for detail in error.errors():
        path = ".".join(str(part) for part in detail.get("loc", ()))
        problems.append((path, detail.get("msg", "Invalid value")))
    return problems


def validate_form_config(
    raw: Any,
    ui_integration: Optional[str] = None,
    expression_parser: ExpressionParser = default_expression_parser,
) -> ConfigValidationResult:
    """
    Validates a raw form configuration.

    Args:
        raw: A mapping (parsed JSON or YAML) or a ``FormConfig``
        ui_integration: The UI library the form is rendered with, if known
        expression_parser: Parser used to check expression syntax

    Returns:
        The errors found and, when there are none, the parsed ``FormConfig``
    """
    if ui_integration is not None and ui_integration not in UI_INTEGRATIONS:
        raise ValueError(
            f"Unknown UI integration '{ui_integration}', expected one of {', '.join(UI_INTEGRATIONS)}"
        )

    result = ConfigValidationResult(ui_integration=ui_integration)

    model = raw if isinstance(raw, FormConfig) else None
    if model is not None:
        # Checked as a mapping; the model itself is returned so explicitly set
        # None values survive
        raw = model.model_dump(by_alias=True, exclude_none=True)

    if not isinstance(raw, Mapping):
        result.errors.append(FormattedValidationError(path="", message="Form configuration must be an object"))
        return result

    checker = _StructureChecker(expression_parser)
    fields = raw.get("fields")
    if isinstance(fields, Sequence) and not isinstance(fields, str):
        checker.check_fields("fields", fields)
        checker.check_duplicate_keys(fields)
    result.errors.extend(checker.errors)

    try:
        config = FormConfig.model_validate(raw)
    except ValidationError as error:
        reported = [e.path for e in result.errors]
        for path, message in _pydantic_errors(error):
            if any(path == known or path.startswith(known + ".") for known in reported):
                continue
            result.errors.append(
                FormattedValidationError(path=path, message=message, fix=get_fix_suggestion(path, message))
            )
    else:
        if not result.errors:
            result.config = model if model is not None else config

    if result.errors:
        logger.debug(
            "form_config_invalid",
            extra={"error_count": len(result.errors), "ui_integration": ui_integration},
        )
    return result
