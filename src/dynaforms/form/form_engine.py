"""
The form engine: one mounted form.

A ``FormEngine`` owns the registries, the field tree and every binding
attached to it. Building happens in passes inside one reactive batch:

1. create field nodes and register their paths;
2. check derivations for cycles;
3. attach static state, validators, logic and schemas;
4. create the initial array items.

``destroy()`` disposes every binding and clears the registries, so one
engine never leaks state into another.
"""

import copy
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

from dynaforms.config.config_validator import validate_form_config
from dynaforms.core.logic_function import LogicFunction, create_logic_function
from dynaforms.expr.coercion import js_typeof
from dynaforms.expr.expression_parser import ExpressionParser, default_expression_parser
from dynaforms.logic.cycle_detector import DerivationEntry, validate_no_cycles
from dynaforms.logic.derivation import derivation_dependencies
from dynaforms.logic.logic_applicator import apply_multiple_logic
from dynaforms.models.fields import FLATTENING_CONTAINER_TYPES, NON_VALUE_TYPES, FieldConfig
from dynaforms.models.form_config import FormConfig
from dynaforms.models.logic import DerivationLogicConfig
from dynaforms.models.schema import SchemaApplicationConfig, SchemaDefinition
from dynaforms.reactive import Effect, Signal, batch, untracked
from dynaforms.registry.function_registry import FunctionRegistry
from dynaforms.registry.root_form_registry import FieldContext, FieldMetadata, RootFormRegistry
from dynaforms.registry.schema_registry import SchemaRegistry
from dynaforms.validation.messages import MessageResolver
from dynaforms.validation.validator_factory import apply_validators
from dynaforms.validation.validator_types import (
    AsyncValidator,
    FieldError,
    HttpTransport,
    HttpValidator,
)

from .button_logic import (
    ButtonLogicContext,
    resolve_next_button_disabled,
    resolve_submit_button_disabled,
)
from .field_node import (
    ArrayFieldNode,
    FieldNode,
    GroupFieldNode,
    StaticFieldNode,
    ValueFieldNode,
)
from .form_state import FormState

logger = logging.getLogger("dynaforms.form.form_engine")

ROOT_TYPE = "form"

# Logic types that make sense on fields without a value
NON_FIELD_LOGIC_TYPES = ("hidden", "disabled")

_Pending = List[Tuple[FieldNode, FieldConfig]]


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _logic_type(entry: Any) -> Optional[str]:
    return entry.get("type") if isinstance(entry, Mapping) else getattr(entry, "type", None)


def _all_of(*gates: Optional[LogicFunction]) -> Optional[LogicFunction]:
    active = [gate for gate in gates if gate is not None]
    if not active:
        return None
    if len(active) == 1:
        return active[0]
    return lambda: all(gate() for gate in active)


class FormEngine:
    """
    Builds and runs one form.

    Args:
        config: A ``FormConfig`` or a raw mapping (validated first)
        external_data: Data exposed to expressions as ``externalData``
        http_transport: Sends requests for ``customHttp`` validators, HTTP
            conditions and HTTP derivations
        expression_parser: Parser for every expression in the form

    Raises:
        ConfigurationError: The raw configuration is invalid, or derivations
            form a cycle
    """

    def __init__(
        self,
        config: Union[FormConfig, Mapping[str, Any]],
        external_data: Optional[Mapping[str, Any]] = None,
        http_transport: Optional[HttpTransport] = None,
        expression_parser: ExpressionParser = default_expression_parser,
    ):
        if not isinstance(config, FormConfig):
            config = validate_form_config(config, expression_parser=expression_parser).raise_for_errors()

        self.config = config
        self.functions = FunctionRegistry()
        self.schemas = SchemaRegistry()
        self.fields = RootFormRegistry()
        self.form_state = FormState()
        self.messages = MessageResolver(config.default_validation_messages)
        self.expression_parser = expression_parser
        self.http_transport = http_transport
        self._external_data: Signal[Optional[Mapping[str, Any]]] = Signal(
            external_data, name="form.external_data"
        )
        self._each_schemas: Dict[str, List[Tuple[SchemaDefinition, Optional[LogicFunction]]]] = {}
        self._destroyed = False

        self._register_functions()
        for schema in config.schemas:
            self.schemas.register_schema(schema)

        self.root = GroupFieldNode("", ROOT_TYPE, "")
        self.fields.register_root(self.root)
        self.form_state.attach(self.root)

        with batch():
            pending: _Pending = []
            arrays: List[Tuple[ArrayFieldNode, FieldConfig]] = []
            for field_config in config.fields:
                self._build(field_config, self.root, "", None, pending, arrays)
            self._check_derivation_cycles(pending)
            for node, field_config in pending:
                self._attach(node, field_config)
            for array_node, field_config in arrays:
                for item_value in field_config.value or []:
                    array_node.add_item(item_value)

        logger.debug("form_engine_created", extra={"field_count": len(self.fields.paths())})

    # Setup

    def _register_functions(self) -> None:
        fn_config = self.config.custom_fn_config
        if fn_config is None:
            return

        def callables(entries: Mapping[str, Any], kind: str, expected: Any = None) -> Dict[str, Any]:
            registered = {}
            for name, value in entries.items():
                valid = isinstance(value, expected) if expected is not None else callable(value)
                if not valid:
                    logger.warning("function_entry_skipped", extra={"function_name": name, "function_kind": kind})
                    continue
                registered[name] = value
            return registered

        self.functions.set_custom_functions(callables(fn_config.custom_functions, "custom"))
        self.functions.set_derivation_functions(callables(fn_config.derivations, "derivation"))
        self.functions.set_async_derivation_functions(callables(fn_config.async_derivations, "async_derivation"))
        self.functions.set_simple_validators(callables(fn_config.validators, "validator"))
        self.functions.set_context_validators(callables(fn_config.context_validators, "context_validator"))
        self.functions.set_tree_validators(callables(fn_config.tree_validators, "tree_validator"))
        self.functions.set_async_validators(callables(fn_config.async_validators, "async_validator", AsyncValidator))
        self.functions.set_http_validators(callables(fn_config.http_validators, "http_validator", HttpValidator))

    def field_context(self, node: FieldNode) -> FieldContext:
        return FieldContext(
            node,
            self.fields,
            self.functions,
            form_state=self.form_state,
            expression_parser=self.expression_parser,
            external_data=self._external_data.get,
            http_transport=self.http_transport,
        )

    def _build(
        self,
        field_config: FieldConfig,
        parent: GroupFieldNode,
        prefix: str,
        scope: Optional[FieldMetadata],
        pending: _Pending,
        arrays: List[Tuple[ArrayFieldNode, FieldConfig]],
    ) -> FieldNode:
        """Creates the node for ``field_config`` and its static children."""
        field_type = field_config.type
        path = _join(prefix, field_config.key)
        node: FieldNode

        if field_type in FLATTENING_CONTAINER_TYPES or field_type == "group":
            node = GroupFieldNode(field_config.key, field_type, path, parent)
        elif field_type == "array":
            node = ArrayFieldNode(field_config.key, field_type, path, parent)
            node.item_factory = self._item_factory(field_config)
            arrays.append((node, field_config))
        elif field_type in NON_VALUE_TYPES:
            node = StaticFieldNode(field_config.key, field_type, path, parent)
        else:
            node = ValueFieldNode(
                field_config.key, field_type, path, parent, default=copy.deepcopy(field_config.value)
            )

        if scope is None:
            metadata = FieldMetadata(path=path)
        else:
            metadata = FieldMetadata(
                path=path,
                array_path=scope.array_path,
                array_index=scope.array_index,
                item_path=scope.item_path,
            )
        self.fields.register_field(node, metadata)
        parent.add_child(node)
        pending.append((node, field_config))

        if isinstance(node, GroupFieldNode):
            child_prefix = prefix if node.flattens else path
            for child in field_config.children:
                self._build(child, node, child_prefix, scope, pending, arrays)
            if field_type == "group" and isinstance(field_config.value, dict):
                node.set_value(field_config.value)

        return node

    def _item_factory(self, field_config: FieldConfig):
        def create_item(array_node: ArrayFieldNode, index: int, value: Any) -> FieldNode:
            item_path = f"{array_node.path}.{index}"
            scope = FieldMetadata(
                path=item_path, array_path=array_node.path, array_index=index, item_path=item_path
            )
            item = GroupFieldNode(str(index), "group", item_path, array_node)
            self.fields.register_field(item, scope)

            pending: _Pending = []
            arrays: List[Tuple[ArrayFieldNode, FieldConfig]] = []
            with batch():
                for child in field_config.children:
                    self._build(child, item, item_path, scope, pending, arrays)
                if value is not None:
                    item.set_value(value)
                for node, child_config in pending:
                    self._attach(node, child_config)
                item_context = self.field_context(item)
                for schema, gate in self._each_schemas.get(array_node.path, []):
                    self._apply_schema_definition(schema, item, item_context, gate, ())
                for nested_array, nested_config in arrays:
                    for nested_value in nested_config.value or []:
                        nested_array.add_item(nested_value)

            item.own(lambda: self.fields.unregister_subtree(item_path))
            return item

        return create_item

    def _check_derivation_cycles(self, pending: _Pending) -> None:
        entries = []
        for node, field_config in pending:
            context = self.field_context(node)
            for entry in self._derivation_entries(field_config):
                entries.append(
                    DerivationEntry(field_key=node.path, depends_on=derivation_dependencies(entry, context))
                )
        validate_no_cycles(entries)

    @staticmethod
    def _derivation_entries(field_config: FieldConfig) -> List[DerivationLogicConfig]:
        entries = [entry for entry in field_config.logic if isinstance(entry, DerivationLogicConfig)]
        if field_config.derivation:
            entries.append(DerivationLogicConfig(type="derivation", expression=field_config.derivation))
        return entries

    # Behaviour

    def _shorthand_validators(self, field_config: FieldConfig) -> List[Dict[str, Any]]:
        shorthands: List[Dict[str, Any]] = []
        if field_config.required:
            shorthands.append({"type": "required"})
        if field_config.email:
            shorthands.append({"type": "email"})
        for validator_type, value in (
            ("min", field_config.min),
            ("max", field_config.max),
            ("minLength", field_config.min_length),
            ("maxLength", field_config.max_length),
            ("pattern", field_config.pattern),
        ):
            if value is not None:
                shorthands.append({"type": validator_type, "value": value})
        return shorthands

    def _attach(self, node: FieldNode, field_config: FieldConfig) -> None:
        """Applies static state, validators, logic and schemas to a node."""
        context = self.field_context(node)
        node.validation_messages = dict(field_config.validation_messages)
        node.message_resolver = self.messages

        untracked(lambda: self._apply_static_state(node, field_config))

        if isinstance(node, StaticFieldNode):
            self._attach_non_field(node, field_config, context)
            return

        apply_validators(
            self._shorthand_validators(field_config) + list(field_config.validators),
            node,
            context,
            http_transport=self.http_transport,
        )
        logic = list(field_config.logic)
        if field_config.derivation:
            logic.append(DerivationLogicConfig(type="derivation", expression=field_config.derivation))
        apply_multiple_logic(logic, node, context)

        for application in field_config.schemas:
            self.apply_schema(application, node, context)

    def _apply_static_state(self, node: FieldNode, field_config: FieldConfig) -> None:
        if field_config.hidden or field_config.type == "hidden":
            node.hidden.set(True)
        if field_config.readonly:
            node.readonly.set(True)
        if field_config.disabled or (self.config.options.disabled and node.holds_value):
            node.disabled.set(True)

    def _attach_non_field(self, node: StaticFieldNode, field_config: FieldConfig, context: FieldContext) -> None:
        logic = [entry for entry in field_config.logic if _logic_type(entry) in NON_FIELD_LOGIC_TYPES]
        if len(logic) != len(field_config.logic):
            logger.debug("non_field_logic_ignored", extra={"field_path": node.path})

        if node.type not in ("submit", "next"):
            apply_multiple_logic(logic, node, context)
            return

        apply_multiple_logic([entry for entry in logic if _logic_type(entry) == "hidden"], node, context)
        button_context = ButtonLogicContext(
            field_context=context,
            form_state=self.form_state,
            form_options=self.config.options,
            field_logic=logic,
            explicit_value=bool(field_config.disabled),
        )
        resolve = resolve_submit_button_disabled if node.type == "submit" else resolve_next_button_disabled
        disabled = resolve(button_context)

        def sync() -> None:
            value = disabled()
            untracked(lambda: node.disabled.set(value))

        node.own(Effect(sync, name=f"{node.path}.button_disabled"))

    # Schemas

    def apply_schema(
        self,
        application: Union[SchemaApplicationConfig, Mapping[str, Any]],
        node: FieldNode,
        context: Optional[FieldContext] = None,
        gate: Optional[LogicFunction] = None,
        _seen: Tuple[str, ...] = (),
    ) -> None:
        """Applies a schema application (``apply``, ``applyWhen``, ``applyWhenValue``, ``applyEach``)."""
        if not isinstance(application, SchemaApplicationConfig):
            application = SchemaApplicationConfig.model_validate(application)
        context = context or self.field_context(node)

        schema = self.schemas.resolve_schema(application.schema_ref)
        if schema is None:
            return

        if application.type == "applyWhen":
            if application.condition is None:
                logger.warning("schema_condition_missing", extra={"field_path": node.path, "schema_name": schema.name})
                return
            gate = _all_of(gate, create_logic_function(application.condition, context))
        elif application.type == "applyWhenValue":
            predicate = application.type_predicate
            if not predicate:
                logger.warning("schema_type_predicate_missing", extra={"field_path": node.path, "schema_name": schema.name})
                return
            gate = _all_of(gate, lambda: js_typeof(node.value()) == predicate)
        elif application.type == "applyEach":
            if not isinstance(node, ArrayFieldNode):
                logger.warning("schema_apply_each_on_non_array", extra={"field_path": node.path, "schema_name": schema.name})
                return
            self._each_schemas.setdefault(node.path, []).append((schema, gate))
            for item in untracked(node.items):
                self._apply_schema_definition(schema, item, self.field_context(item), gate, _seen)
            return

        self._apply_schema_definition(schema, node, context, gate, _seen)

    def _apply_schema_definition(
        self,
        schema: SchemaDefinition,
        node: FieldNode,
        context: FieldContext,
        gate: Optional[LogicFunction],
        seen: Tuple[str, ...],
    ) -> None:
        if schema.name and schema.name in seen:
            logger.warning("schema_recursion_skipped", extra={"field_path": node.path, "schema_name": schema.name})
            return
        seen = seen + ((schema.name,) if schema.name else ())
        apply_validators(schema.validators, node, context, gate, self.http_transport)
        apply_multiple_logic(schema.logic, node, context, gate)
        for sub_schema in schema.sub_schemas:
            self.apply_schema(sub_schema, node, context, gate, seen)

    # Public state

    def value(self) -> Dict[str, Any]:
        return self.root.value()

    def set_value(self, value: Mapping[str, Any]) -> None:
        self.root.set_value(dict(value))

    def get_field(self, path: str) -> Optional[FieldNode]:
        return self.fields.get_field(path)

    def require_field(self, path: str) -> FieldNode:
        node = self.fields.get_field(path)
        if node is None:
            raise KeyError(f"No field at path '{path}'")
        return node

    def set_field_value(self, path: str, value: Any) -> None:
        self.require_field(path).set_value(value)

    def valid(self) -> bool:
        return self.form_state.form_valid()

    def pending(self) -> bool:
        return self.root.pending()

    def submitting(self) -> bool:
        return self.form_state.submitting()

    def page_valid(self, path: str) -> bool:
        return self.form_state.page_valid(self.require_field(path))

    def errors_by_path(self) -> Dict[str, Dict[str, FieldError]]:
        """Current errors of every field that has any."""
        errors: Dict[str, Dict[str, FieldError]] = {}
        for node in self.root.walk():
            node_errors = node.errors()
            if node_errors:
                errors[node.path] = node_errors
        return errors

    def set_external_data(self, data: Optional[Mapping[str, Any]]) -> None:
        self._external_data.set(data)

    def add_array_item(self, path: str, value: Any = None) -> FieldNode:
        node = self.require_field(path)
        if not isinstance(node, ArrayFieldNode):
            raise TypeError(f"Field '{path}' is not an array")
        return node.add_item(value)

    def remove_array_item(self, path: str, index: int) -> None:
        node = self.require_field(path)
        if not isinstance(node, ArrayFieldNode):
            raise TypeError(f"Field '{path}' is not an array")
        node.remove_item(index)

    async def submit(self, handler: Callable[[Dict[str, Any]], Union[Any, Awaitable[Any]]]) -> Any:
        """
        Calls ``handler`` with the form value while ``submitting`` is set.

        Returns the handler's result, or None without calling it when the
        form is invalid or still validating.
        """
        if not self.valid() or self.pending():
            logger.info("submit_blocked", extra={"form_valid": self.valid(), "form_pending": self.pending()})
            return None
        self.form_state.submitting.set(True)
        try:
            result = handler(copy.deepcopy(self.value()))
            if inspect.isawaitable(result):
                result = await result
            return result
        finally:
            self.form_state.submitting.set(False)

    # Lifecycle

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        with batch():
            self.root.destroy()
        self._each_schemas.clear()
        self.functions.clear_all()
        self.schemas.clear()
        self.fields.clear()
        logger.debug("form_engine_destroyed")
