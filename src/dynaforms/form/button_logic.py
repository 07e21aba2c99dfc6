"""
Disabled and hidden state for buttons and other elements without a value.

Submit and next buttons follow form-level defaults unless they carry their
own ``disabled`` logic:

1. ``disabled: true`` on the field always wins.
2. Field ``disabled`` logic, when present, is used exclusively.
3. Otherwise ``options.submitButton`` / ``options.nextButton`` apply; by
   default buttons are disabled while the form (or page) is invalid and
   while the form is submitting.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, Optional

from dynaforms.core.logic_function import create_logic_function
from dynaforms.models.form_config import FormOptions, NextButtonOptions, SubmitButtonOptions
from dynaforms.reactive import Computed

from .form_state import FormState

if TYPE_CHECKING:
    from dynaforms.registry.root_form_registry import FieldContext


@dataclass
class ButtonLogicContext:
    field_context: "FieldContext"
    form_state: FormState
    form_options: Optional[FormOptions] = None
    field_logic: List[Any] = field(default_factory=list)
    explicit_value: bool = False


def _logic_type(logic: Any) -> Optional[str]:
    if isinstance(logic, dict):
        return logic.get("type")
    return getattr(logic, "type", None)


def _logic_condition(logic: Any) -> Any:
    if isinstance(logic, dict):
        return logic.get("condition", True)
    return getattr(logic, "condition", True)


def has_logic_of_type(field_logic: Optional[List[Any]], logic_type: str) -> bool:
    return any(_logic_type(logic) == logic_type for logic in field_logic or [])


def evaluate_logic_of_type(ctx: ButtonLogicContext, logic_type: str) -> bool:
    """True when any logic entry of ``logic_type`` currently holds."""
    return any(
        create_logic_function(_logic_condition(logic), ctx.field_context)()
        for logic in ctx.field_logic
        if _logic_type(logic) == logic_type
    )


def evaluate_non_field_hidden(ctx: ButtonLogicContext) -> bool:
    if ctx.explicit_value:
        return True
    return evaluate_logic_of_type(ctx, "hidden")


def evaluate_non_field_disabled(ctx: ButtonLogicContext) -> bool:
    if ctx.explicit_value:
        return True
    return evaluate_logic_of_type(ctx, "disabled")


def resolve_submit_button_disabled(ctx: ButtonLogicContext) -> Computed[bool]:
    options = (ctx.form_options.submit_button if ctx.form_options else None) or SubmitButtonOptions()

    def disabled() -> bool:
        if ctx.explicit_value:
            return True
        if has_logic_of_type(ctx.field_logic, "disabled"):
            return evaluate_logic_of_type(ctx, "disabled")
        if options.disable_when_invalid and not ctx.form_state.form_valid():
            return True
        if options.disable_while_submitting and ctx.form_state.submitting():
            return True
        return False

    return Computed(disabled, name=f"{ctx.field_context.field_path}.submit_disabled")


def resolve_next_button_disabled(ctx: ButtonLogicContext) -> Computed[bool]:
    options = (ctx.form_options.next_button if ctx.form_options else None) or NextButtonOptions()
    node = ctx.field_context.node

    def disabled() -> bool:
        if ctx.explicit_value:
            return True
        if has_logic_of_type(ctx.field_logic, "disabled"):
            return evaluate_logic_of_type(ctx, "disabled")
        if options.disable_when_page_invalid and not ctx.form_state.page_valid(node):
            return True
        if options.disable_while_submitting and ctx.form_state.submitting():
            return True
        return False

    return Computed(disabled, name=f"{ctx.field_context.field_path}.next_disabled")
