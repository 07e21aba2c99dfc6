"""
Reactive field tree.

Every node exposes its state as reactive sources:

- ``value()``: the field value; containers compose their children's values
- ``hidden``, ``readonly``, ``disabled``, ``required``: writable signals
  driven by logic
- ``errors()``: validation errors keyed by kind, first error per kind wins
- ``pending()``: an asynchronous validator is in flight here or below
- ``valid()``: no errors and nothing pending, here and in every visible,
  enabled child

``group`` and ``array`` nodes nest their children's values under their own
key; ``row`` and ``page`` nodes merge them into the parent.

Nodes own the bindings attached to them. ``destroy()`` disposes effects,
cancels timers and tasks, and destroys every child.
"""

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from dynaforms.logic.binding import dispose_resource
from dynaforms.reactive import Computed, Signal, batch, untracked
from dynaforms.validation.builtin_validators import required_state_errors
from dynaforms.validation.validator_types import FieldError

logger = logging.getLogger("dynaforms.form.field_node")

ErrorSource = Callable[[], List[FieldError]]
MessageResolver = Callable[["FieldNode", FieldError], Optional[str]]
ItemFactory = Callable[["ArrayFieldNode", int, Any], "FieldNode"]


class FieldNode:
    """State, validation and lifecycle shared by every node."""

    holds_value = True
    flattens = False

    def __init__(self, key: str, field_type: str, path: str, parent: Optional["FieldNode"] = None):
        self.key = key
        self.type = field_type
        self.path = path
        self.parent = parent

        self.hidden: Signal[bool] = Signal(False, name=f"{path}.hidden")
        self.readonly: Signal[bool] = Signal(False, name=f"{path}.readonly")
        self.disabled: Signal[bool] = Signal(False, name=f"{path}.disabled")
        self.required: Signal[bool] = Signal(False, name=f"{path}.required")

        self.validation_messages: Dict[str, str] = {}
        self.message_resolver: Optional[MessageResolver] = None

        self._error_sources: Signal[Tuple[ErrorSource, ...]] = Signal((), name=f"{path}.validators")
        self._pending_flags: Signal[Tuple[Signal[bool], ...]] = Signal((), name=f"{path}.pending_flags")
        self._disposables: List[Any] = []
        self._destroyed = False
        self._required_check = False

        self.errors: Computed[Dict[str, FieldError]] = Computed(
            self._compute_errors, name=f"{path}.errors"
        )
        self._own_pending: Computed[bool] = Computed(
            lambda: any(flag() for flag in self._pending_flags()), name=f"{path}.own_pending"
        )
        self.pending: Computed[bool] = Computed(self._compute_pending, name=f"{path}.pending")
        self.valid: Computed[bool] = Computed(self._compute_valid, name=f"{path}.valid")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r}, type={self.type!r})"

    # Value

    def value(self) -> Any:
        raise NotImplementedError

    def peek_value(self) -> Any:
        return untracked(self.value)

    def set_value(self, value: Any) -> None:
        raise NotImplementedError

    def contribute(self, target: Dict[str, Any]) -> None:
        """Writes this node's value into its parent's value."""
        target[self.key] = self.value()

    # Tree

    def children(self) -> List["FieldNode"]:
        return []

    def walk(self) -> Iterator["FieldNode"]:
        """This node and every descendant, depth first."""
        yield self
        for child in untracked(self.children):
            yield from child.walk()

    def enclosing(self, field_type: str) -> Optional["FieldNode"]:
        node = self.parent
        while node is not None:
            if node.type == field_type:
                return node
            node = node.parent
        return None

    # Validation

    def add_error_source(self, source: ErrorSource) -> Callable[[], None]:
        """Adds a validator; returns a callable removing it again."""
        self._error_sources.update(lambda sources: sources + (source,))

        def remove() -> None:
            self._error_sources.update(
                lambda sources: tuple(s for s in sources if s is not source)
            )

        return remove

    def add_pending_flag(self, flag: Signal[bool]) -> Callable[[], None]:
        self._pending_flags.update(lambda flags: flags + (flag,))

        def remove() -> None:
            self._pending_flags.update(lambda flags: tuple(f for f in flags if f is not flag))

        return remove

    def enable_required_check(self) -> None:
        """Reports a ``required`` error while the ``required`` signal is set and the value is empty."""
        if self._required_check:
            return
        self._required_check = True
        self.own(self.add_error_source(lambda: required_state_errors(self)))

    def _compute_errors(self) -> Dict[str, FieldError]:
        errors: Dict[str, FieldError] = {}
        for source in self._error_sources():
            for error in source():
                if error.kind in errors:
                    continue
                if self.message_resolver is not None:
                    message = self.message_resolver(self, error)
                    if message is not None:
                        error = error.with_message(message)
                errors[error.kind] = error
        return errors

    def _compute_pending(self) -> bool:
        if self._own_pending():
            return True
        return any(child.pending() for child in self.children())

    def _active_children(self) -> Iterator["FieldNode"]:
        for child in self.children():
            if not child.holds_value:
                continue
            if child.hidden() or child.disabled():
                continue
            yield child

    def _compute_valid(self) -> bool:
        if self.errors() or self._own_pending():
            return False
        return all(child.valid() for child in self._active_children())

    # Lifecycle

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def own(self, resource: Any) -> Any:
        """Ties a binding, timer or task to this node's lifetime."""
        if self._destroyed:
            dispose_resource(resource)
            return resource
        self._disposables.append(resource)
        return resource

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        for child in untracked(self.children):
            child.destroy()
        while self._disposables:
            dispose_resource(self._disposables.pop())
        logger.debug("field_destroyed", extra={"field_path": self.path})


class ValueFieldNode(FieldNode):
    """A leaf holding a single value."""

    def __init__(self, key: str, field_type: str, path: str, parent: Optional[FieldNode] = None, default: Any = None):
        super().__init__(key, field_type, path, parent)
        self.default = default
        self._value: Signal[Any] = Signal(default, name=f"{path}.value")

    def value(self) -> Any:
        return self._value()

    def set_value(self, value: Any) -> None:
        self._value.set(value)

    def reset(self) -> None:
        self._value.set(self.default)


class StaticFieldNode(FieldNode):
    """Buttons and text: logic may hide or disable them, but they hold no value."""

    holds_value = False

    def value(self) -> Any:
        return None

    def set_value(self, value: Any) -> None:
        logger.debug("static_field_value_ignored", extra={"field_path": self.path})

    def contribute(self, target: Dict[str, Any]) -> None:
        return None


class GroupFieldNode(FieldNode):
    """
    A container of named children.

    ``group`` nodes (and array items) nest their value under their key;
    ``row`` and ``page`` nodes flatten it into the parent.
    """

    def __init__(self, key: str, field_type: str, path: str, parent: Optional[FieldNode] = None):
        super().__init__(key, field_type, path, parent)
        self.flattens = field_type in ("row", "page")
        self._children: Signal[Tuple[FieldNode, ...]] = Signal((), name=f"{path}.children")
        self._value: Computed[Dict[str, Any]] = Computed(self._compute_value, name=f"{path}.value")

    def add_child(self, node: FieldNode) -> FieldNode:
        self._children.update(lambda children: children + (node,))
        return node

    def children(self) -> List[FieldNode]:
        return list(self._children())

    def child(self, key: str) -> Optional[FieldNode]:
        for node in self._children.peek():
            if node.key == key:
                return node
        return None

    def _compute_value(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for child in self._children():
            child.contribute(result)
        return result

    def value(self) -> Dict[str, Any]:
        return self._value()

    def contribute(self, target: Dict[str, Any]) -> None:
        if self.flattens:
            target.update(self.value())
        else:
            target[self.key] = self.value()

    def set_value(self, value: Any) -> None:
        values = value if isinstance(value, dict) else {}
        with batch():
            for child in self._children.peek():
                if child.flattens:
                    child.set_value(values)
                elif child.holds_value and child.key in values:
                    child.set_value(values[child.key])


class ArrayFieldNode(FieldNode):
    """
    A dynamic list of items built from a template.

    Item nodes are created by ``item_factory`` (supplied by the engine) with
    paths like ``addresses.0``. Removing an item rebuilds the items after it
    so paths stay contiguous.
    """

    def __init__(self, key: str, field_type: str, path: str, parent: Optional[FieldNode] = None):
        super().__init__(key, field_type, path, parent)
        self.item_factory: Optional[ItemFactory] = None
        self._items: Signal[Tuple[FieldNode, ...]] = Signal((), name=f"{path}.items")
        self._value: Computed[List[Any]] = Computed(
            lambda: [item.value() for item in self._items()], name=f"{path}.value"
        )

    def children(self) -> List[FieldNode]:
        return list(self._items())

    def items(self) -> Tuple[FieldNode, ...]:
        return self._items()

    def value(self) -> List[Any]:
        return self._value()

    def _create_item(self, index: int, value: Any) -> FieldNode:
        if self.item_factory is None:
            raise RuntimeError(f"Array field '{self.path}' has no item template")
        return self.item_factory(self, index, value)

    def add_item(self, value: Any = None) -> FieldNode:
        items = self._items.peek()
        with batch():
            node = self._create_item(len(items), value)
            self._items.set(items + (node,))
        logger.debug("array_item_added", extra={"field_path": node.path})
        return node

    def remove_item(self, index: int) -> None:
        items = list(self._items.peek())
        if not 0 <= index < len(items):
            raise IndexError(f"No item {index} in array field '{self.path}'")
        shifted_values = [item.peek_value() for item in items[index + 1:]]
        with batch():
            for item in items[index:]:
                item.destroy()
            kept = items[:index]
            for offset, value in enumerate(shifted_values):
                kept.append(self._create_item(index + offset, value))
            self._items.set(tuple(kept))
        logger.debug("array_item_removed", extra={"field_path": self.path, "index": index})

    def set_value(self, value: Any) -> None:
        values = list(value) if isinstance(value, (list, tuple)) else []
        items = self._items.peek()
        with batch():
            if len(values) == len(items):
                for item, item_value in zip(items, values):
                    item.set_value(item_value)
                return
            for item in items:
                item.destroy()
            self._items.set(
                tuple(self._create_item(index, item_value) for index, item_value in enumerate(values))
            )
