"""
Tests for the function registry.
"""

from dynaforms.registry.function_registry import FunctionRegistry
from dynaforms.validation.validator_types import AsyncValidator, HttpValidator


async def _load(request):
    return None


class TestCustomFunctions:
    """Tests for custom function registration."""

    def test_register_and_lookup(self):
        registry = FunctionRegistry()
        fn = lambda ctx: True  # noqa: E731
        registry.register_custom_function("isAdmin", fn)
        assert registry.get_custom_function("isAdmin") is fn

    def test_unknown_name_is_none(self):
        assert FunctionRegistry().get_custom_function("nope") is None

    def test_get_custom_functions_returns_a_copy(self):
        registry = FunctionRegistry()
        registry.register_custom_function("a", lambda ctx: 1)
        functions = registry.get_custom_functions()
        functions.clear()
        assert registry.get_custom_function("a") is not None

    def test_registration_overwrites(self):
        registry = FunctionRegistry()
        first = lambda ctx: 1  # noqa: E731
        second = lambda ctx: 2  # noqa: E731
        registry.register_custom_function("fn", first)
        registry.register_custom_function("fn", second)
        assert registry.get_custom_function("fn") is second


class TestNamespaces:
    """Tests for namespace separation."""

    def test_same_name_in_different_namespaces(self):
        registry = FunctionRegistry()
        custom = lambda ctx: True  # noqa: E731
        validator = lambda value, params: None  # noqa: E731
        registry.register_custom_function("check", custom)
        registry.register_simple_validator("check", validator)
        assert registry.get_custom_function("check") is custom
        assert registry.get_simple_validator("check") is validator

    def test_async_derivations_have_their_own_namespace(self):
        registry = FunctionRegistry()
        sync = lambda ctx: 1  # noqa: E731
        registry.register_derivation_function("lookup", sync)
        registry.register_async_derivation_function("lookup", _load)
        assert registry.get_derivation_function("lookup") is sync
        assert registry.get_async_derivation_function("lookup") is _load
        registry.clear_async_derivation_functions()
        assert registry.get_async_derivation_function("lookup") is None
        assert registry.get_derivation_function("lookup") is sync

    def test_clearing_one_namespace_keeps_the_others(self):
        registry = FunctionRegistry()
        registry.register_custom_function("a", lambda ctx: 1)
        registry.register_simple_validator("a", lambda value, params: None)
        registry.clear_custom_functions()
        assert registry.get_custom_function("a") is None
        assert registry.get_simple_validator("a") is not None


class TestResolveValidator:
    """Tests for synchronous validator resolution."""

    def test_tree_wins_over_context_and_simple(self):
        registry = FunctionRegistry()
        simple = lambda value, params: None  # noqa: E731
        context = lambda ctx, params: None  # noqa: E731
        tree = lambda ctx, params: None  # noqa: E731
        registry.register_simple_validator("v", simple)
        registry.register_context_validator("v", context)
        assert registry.resolve_validator("v").kind == "context"
        registry.register_tree_validator("v", tree)
        resolved = registry.resolve_validator("v")
        assert resolved.kind == "tree"
        assert resolved.fn is tree

    def test_simple_validator(self):
        registry = FunctionRegistry()
        registry.register_simple_validator("v", lambda value, params: None)
        assert registry.resolve_validator("v").kind == "simple"

    def test_unknown_validator(self):
        assert FunctionRegistry().resolve_validator("v") is None


class TestBulkUpdates:
    """Tests for bulk setters and clear_all."""

    def test_set_merges_entries(self):
        registry = FunctionRegistry()
        registry.register_custom_function("a", lambda ctx: 1)
        registry.set_custom_functions({"b": lambda ctx: 2})
        assert set(registry.get_custom_functions()) == {"a", "b"}

    def test_set_with_none_is_noop(self):
        registry = FunctionRegistry()
        registry.set_simple_validators(None)
        assert registry.get_simple_validator("a") is None

    def test_clear_all(self):
        registry = FunctionRegistry()
        registry.register_custom_function("a", lambda ctx: 1)
        registry.register_derivation_function("a", lambda ctx: 1)
        registry.register_async_derivation_function("a", _load)
        registry.register_async_validator("a", AsyncValidator(load=_load))
        registry.register_http_validator("a", HttpValidator(request=lambda ctx, params: None, on_success=lambda r, ctx: None))
        registry.clear_all()
        assert registry.get_custom_function("a") is None
        assert registry.get_derivation_function("a") is None
        assert registry.get_async_derivation_function("a") is None
        assert registry.get_async_validator("a") is None
        assert registry.get_http_validator("a") is None
