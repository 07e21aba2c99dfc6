"""
Form-wide state read by form-state conditions (``formInvalid``,
``formSubmitting``, ``pageInvalid``).
"""

from typing import TYPE_CHECKING, Optional

from dynaforms.reactive import Signal

if TYPE_CHECKING:
    from .field_node import FieldNode


class FormState:
    def __init__(self) -> None:
        self.submitting: Signal[bool] = Signal(False, name="form.submitting")
        self._root: Optional["FieldNode"] = None

    def attach(self, root: "FieldNode") -> None:
        self._root = root

    def form_valid(self) -> bool:
        return True if self._root is None else self._root.valid()

    def page_valid(self, node: "FieldNode") -> bool:
        """Validity of the page enclosing ``node``; outside pages there is nothing to be invalid."""
        page = node if node.type == "page" else node.enclosing("page")
        return True if page is None else page.valid()
