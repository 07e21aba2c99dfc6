"""
Cached parse-and-evaluate front end for form expressions.

Expressions are re-evaluated on every relevant value change, so parsed
ASTs are kept in an LRU cache keyed by the expression string.
"""

from functools import lru_cache
from typing import Any, Mapping, Optional

from .ast import AstNode
from .errors import ExpressionError
from .evaluator import Evaluator, ExpressionScope
from .limits import DEFAULT_EXPRESSION_LIMITS, ExpressionLimits
from .parser import parse

DEFAULT_CACHE_SIZE = 512


class ExpressionParser:
    """Parses and evaluates expression strings against a set of bindings."""

    def __init__(
        self,
        limits: ExpressionLimits = DEFAULT_EXPRESSION_LIMITS,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ):
        self._limits = limits
        self._parse_cached = lru_cache(maxsize=cache_size)(self._parse_uncached)

    @property
    def limits(self) -> ExpressionLimits:
        return self._limits

    def _parse_uncached(self, expression: str) -> AstNode:
        return parse(expression, self._limits)

    def parse(self, expression: str) -> AstNode:
        """
        Parses an expression, reusing a cached AST when available.

        Raises:
            ExpressionError: If the expression cannot be tokenized or parsed
        """
        return self._parse_cached(expression)

    def evaluate(self, expression: str, context: Mapping[str, Any]) -> Any:
        """
        Evaluates an expression with ``context`` as its only visible bindings.

        Raises:
            ExpressionError: On parse, evaluation, security or limit errors
        """
        ast = self.parse(expression)
        scope = ExpressionScope(bindings=context, limits=self._limits, source=expression)
        return Evaluator(scope).evaluate(ast)

    def validate(self, expression: str) -> Optional[str]:
        """Returns the parse error message for an expression, or None if valid."""
        try:
            self.parse(expression)
        except ExpressionError as error:
            return error.message
        return None

    def clear_cache(self) -> None:
        self._parse_cached.cache_clear()

    def cache_info(self):
        return self._parse_cached.cache_info()


default_expression_parser = ExpressionParser()


def evaluate_expression(expression: str, context: Mapping[str, Any]) -> Any:
    """Evaluates an expression with the shared default parser."""
    return default_expression_parser.evaluate(expression, context)
