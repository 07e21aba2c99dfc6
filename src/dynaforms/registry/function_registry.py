"""
Per-engine store of named functions and validators.

Each kind of entry lives in its own namespace, so the same name may be
registered as a custom function and as a validator without conflict.
Registration overwrites by name. Lookups of unknown names return None.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar

from dynaforms.core.condition_evaluator import CustomFunction
from dynaforms.validation.validator_types import (
    AsyncValidator,
    ContextValidator,
    HttpValidator,
    SimpleValidator,
    TreeValidator,
)

logger = logging.getLogger("dynaforms.registry.function_registry")

T = TypeVar("T")

# Derivation functions take the evaluation context and return the new value
DerivationFunction = Callable[..., Any]

# Async derivation functions take the evaluation context and resolve to the new value
AsyncDerivationFunction = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class ResolvedValidator:
    """A synchronous validator found by name, with the namespace it came from."""

    name: str
    kind: str  # 'tree', 'context' or 'simple'
    fn: Callable[..., Any]


def _set_if_changed(registry: Dict[str, T], values: Optional[Mapping[str, T]]) -> bool:
    if not values:
        return False
    if not any(registry.get(name) is not value for name, value in values.items()):
        return False
    registry.update(values)
    return True


class FunctionRegistry:
    """Named custom functions and validators for one form engine."""

    def __init__(self) -> None:
        self._custom_functions: Dict[str, CustomFunction] = {}
        self._derivation_functions: Dict[str, DerivationFunction] = {}
        self._async_derivation_functions: Dict[str, AsyncDerivationFunction] = {}
        self._simple_validators: Dict[str, SimpleValidator] = {}
        self._context_validators: Dict[str, ContextValidator] = {}
        self._tree_validators: Dict[str, TreeValidator] = {}
        self._async_validators: Dict[str, AsyncValidator] = {}
        self._http_validators: Dict[str, HttpValidator] = {}

    # Custom functions

    def register_custom_function(self, name: str, fn: CustomFunction) -> None:
        self._custom_functions[name] = fn

    def get_custom_functions(self) -> Dict[str, CustomFunction]:
        """Returns a copy; mutating it does not affect the registry."""
        return dict(self._custom_functions)

    def get_custom_function(self, name: str) -> Optional[CustomFunction]:
        return self._custom_functions.get(name)

    def clear_custom_functions(self) -> None:
        self._custom_functions.clear()

    # Derivation functions

    def register_derivation_function(self, name: str, fn: DerivationFunction) -> None:
        self._derivation_functions[name] = fn

    def get_derivation_function(self, name: str) -> Optional[DerivationFunction]:
        return self._derivation_functions.get(name)

    def clear_derivation_functions(self) -> None:
        self._derivation_functions.clear()

    def register_async_derivation_function(self, name: str, fn: AsyncDerivationFunction) -> None:
        self._async_derivation_functions[name] = fn

    def get_async_derivation_function(self, name: str) -> Optional[AsyncDerivationFunction]:
        return self._async_derivation_functions.get(name)

    def clear_async_derivation_functions(self) -> None:
        self._async_derivation_functions.clear()

    # Synchronous validators

    def register_simple_validator(self, name: str, fn: SimpleValidator) -> None:
        self._simple_validators[name] = fn

    def get_simple_validator(self, name: str) -> Optional[SimpleValidator]:
        return self._simple_validators.get(name)

    def clear_simple_validators(self) -> None:
        self._simple_validators.clear()

    def register_context_validator(self, name: str, fn: ContextValidator) -> None:
        self._context_validators[name] = fn

    def get_context_validator(self, name: str) -> Optional[ContextValidator]:
        return self._context_validators.get(name)

    def clear_context_validators(self) -> None:
        self._context_validators.clear()

    def register_tree_validator(self, name: str, fn: TreeValidator) -> None:
        self._tree_validators[name] = fn

    def get_tree_validator(self, name: str) -> Optional[TreeValidator]:
        return self._tree_validators.get(name)

    def clear_tree_validators(self) -> None:
        self._tree_validators.clear()

    def resolve_validator(self, name: str) -> Optional[ResolvedValidator]:
        """
        Finds a synchronous validator by name.

        The most capable kind wins: tree, then context, then simple.
        """
        fn: Optional[Callable[..., Any]] = self._tree_validators.get(name)
        if fn is not None:
            return ResolvedValidator(name=name, kind="tree", fn=fn)
        fn = self._context_validators.get(name)
        if fn is not None:
            return ResolvedValidator(name=name, kind="context", fn=fn)
        fn = self._simple_validators.get(name)
        if fn is not None:
            return ResolvedValidator(name=name, kind="simple", fn=fn)
        return None

    # Asynchronous validators

    def register_async_validator(self, name: str, validator: AsyncValidator) -> None:
        self._async_validators[name] = validator

    def get_async_validator(self, name: str) -> Optional[AsyncValidator]:
        return self._async_validators.get(name)

    def clear_async_validators(self) -> None:
        self._async_validators.clear()

    def register_http_validator(self, name: str, validator: HttpValidator) -> None:
        self._http_validators[name] = validator

    def get_http_validator(self, name: str) -> Optional[HttpValidator]:
        return self._http_validators.get(name)

    def clear_http_validators(self) -> None:
        self._http_validators.clear()

    # Bulk updates, applied only when some entry actually differs

    def set_custom_functions(self, functions: Optional[Mapping[str, CustomFunction]]) -> None:
        _set_if_changed(self._custom_functions, functions)

    def set_derivation_functions(
        self, functions: Optional[Mapping[str, DerivationFunction]]
    ) -> None:
        _set_if_changed(self._derivation_functions, functions)

    def set_async_derivation_functions(
        self, functions: Optional[Mapping[str, AsyncDerivationFunction]]
    ) -> None:
        _set_if_changed(self._async_derivation_functions, functions)

    def set_simple_validators(self, validators: Optional[Mapping[str, SimpleValidator]]) -> None:
        _set_if_changed(self._simple_validators, validators)

    def set_context_validators(
        self, validators: Optional[Mapping[str, ContextValidator]]
    ) -> None:
        _set_if_changed(self._context_validators, validators)

    def set_tree_validators(self, validators: Optional[Mapping[str, TreeValidator]]) -> None:
        _set_if_changed(self._tree_validators, validators)

    def set_async_validators(self, validators: Optional[Mapping[str, AsyncValidator]]) -> None:
        _set_if_changed(self._async_validators, validators)

    def set_http_validators(self, validators: Optional[Mapping[str, HttpValidator]]) -> None:
        _set_if_changed(self._http_validators, validators)

    def clear_all(self) -> None:
        self.clear_custom_functions()
        self.clear_derivation_functions()
        self.clear_async_derivation_functions()
        self.clear_simple_validators()
        self.clear_context_validators()
        self.clear_tree_validators()
        self.clear_async_validators()
        self.clear_http_validators()
        logger.debug("function_registry_cleared")
