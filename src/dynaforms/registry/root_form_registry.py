"""
Registry of the live field tree for one form engine.

The registry tracks the root node and every field node by path, plus the
array metadata nested fields need to resolve their item-scoped form value.
``FieldContext`` is the per-field view handed to conditions, expressions and
validators.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional

from dynaforms.core.condition_evaluator import EvaluationContext
from dynaforms.core.value_utils import get_nested_value
from dynaforms.expr.expression_parser import ExpressionParser, default_expression_parser

if TYPE_CHECKING:
    from dynaforms.form.field_node import FieldNode
    from dynaforms.form.form_state import FormState
    from dynaforms.registry.function_registry import FunctionRegistry
    from dynaforms.validation.validator_types import HttpTransport

logger = logging.getLogger("dynaforms.registry.root_form_registry")

_UNSET = object()


@dataclass(frozen=True)
class FieldMetadata:
    """Where a field sits relative to the nearest enclosing array."""

    path: str
    array_path: Optional[str] = None
    array_index: Optional[int] = None
    item_path: Optional[str] = None


class RootFormRegistry:
    """Field nodes of one form, addressable by dot path."""

    def __init__(self) -> None:
        self._root: Optional["FieldNode"] = None
        self._fields: Dict[str, "FieldNode"] = {}
        self._metadata: Dict[str, FieldMetadata] = {}

    @property
    def root(self) -> Optional["FieldNode"]:
        return self._root

    def register_root(self, node: "FieldNode") -> None:
        self._root = node

    def root_value(self) -> Any:
        """The whole form value; tracked when read inside a reactive scope."""
        if self._root is None:
            return {}
        return self._root.value()

    def register_field(self, node: "FieldNode", metadata: Optional[FieldMetadata] = None) -> None:
        if node.path in self._fields and self._fields[node.path] is not node:
            logger.debug("field_replaced", extra={"field_path": node.path})
        self._fields[node.path] = node
        self._metadata[node.path] = metadata or FieldMetadata(path=node.path)

    def unregister_field(self, path: str) -> None:
        self._fields.pop(path, None)
        self._metadata.pop(path, None)

    def unregister_subtree(self, path: str) -> None:
        """Removes ``path`` and every field below it."""
        prefix = path + "."
        for field_path in [p for p in self._fields if p == path or p.startswith(prefix)]:
            self.unregister_field(field_path)

    def get_field(self, path: str) -> Optional["FieldNode"]:
        return self._fields.get(path)

    def get_field_metadata(self, path: str) -> Optional[FieldMetadata]:
        return self._metadata.get(path)

    def paths(self) -> List[str]:
        return list(self._fields)

    def value_of(self, path: str) -> Any:
        """Reads another field's value by path, falling back to the root value."""
        node = self._fields.get(path)
        if node is not None:
            return node.value()
        return get_nested_value(self.root_value(), path)

    def clear(self) -> None:
        self._root = None
        self._fields.clear()
        self._metadata.clear()


class FieldContext:
    """Everything logic and validators may observe about one field."""

    def __init__(
        self,
        node: "FieldNode",
        registry: RootFormRegistry,
        functions: "FunctionRegistry",
        form_state: Optional["FormState"] = None,
        expression_parser: ExpressionParser = default_expression_parser,
        external_data: Optional[Callable[[], Optional[Mapping[str, Any]]]] = None,
        http_transport: Optional["HttpTransport"] = None,
    ):
        self.node = node
        self.registry = registry
        self.functions = functions
        self.form_state = form_state
        self.expression_parser = expression_parser
        self._external_data = external_data
        self.http_transport = http_transport

    @property
    def field_path(self) -> str:
        return self.node.path

    @property
    def metadata(self) -> FieldMetadata:
        return self.registry.get_field_metadata(self.node.path) or FieldMetadata(
            path=self.node.path
        )

    @property
    def tree(self) -> Optional["FieldNode"]:
        """The root field node."""
        return self.registry.root

    def value(self) -> Any:
        return self.node.value()

    def value_of(self, path: str) -> Any:
        return self.registry.value_of(path)

    def root_form_value(self) -> Any:
        return self.registry.root_value()

    def form_value(self) -> Any:
        """The enclosing array item's value inside arrays, else the whole form."""
        item_path = self.metadata.item_path
        if item_path is not None:
            item = self.registry.get_field(item_path)
            if item is not None:
                return item.value()
        return self.registry.root_value()

    def external_data(self) -> Optional[Mapping[str, Any]]:
        return self._external_data() if self._external_data is not None else None

    def evaluation_context(self, field_value: Any = _UNSET) -> EvaluationContext:
        """Builds a fresh evaluation context; reads are tracked."""
        metadata = self.metadata
        in_array = metadata.item_path is not None
        return EvaluationContext(
            field_value=self.value() if field_value is _UNSET else field_value,
            form_value=self.form_value(),
            field_path=self.field_path,
            custom_functions=self.functions.get_custom_functions(),
            root_form_value=self.root_form_value() if in_array else None,
            array_index=metadata.array_index,
            array_path=metadata.array_path,
            external_data=self.external_data(),
            expression_parser=self.expression_parser,
        )
