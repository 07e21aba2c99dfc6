"""
Errors raised while tokenizing, parsing or evaluating an expression.

Everything derives from ``ExpressionError``, which is what callers in the
form engine catch. Errors that know where they happened carry the source
expression and a character offset so ``format_with_context`` can point at
the offending token.
"""

from typing import Optional


class ExpressionError(Exception):
    """Base class for expression errors."""

    def __init__(
        self,
        message: str,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.position = position
        self.expression = expression

    def format_with_context(self) -> str:
        """
        The message, followed by the expression and a caret under
        ``position`` when both are known.
        """
        if self.expression is None or self.position is None:
            return self.message

        pointer = " " * self.position + "^"
        return f"{self.message}\n  {self.expression}\n  {pointer}"


class TokenizerError(ExpressionError):
    """Unterminated string, stray character or malformed number."""


class ParseError(ExpressionError):
    """The token stream is not a valid expression."""


class EvaluationError(ExpressionError):
    """Raised while walking a parsed expression."""


class SecurityError(EvaluationError):
    """
    The expression reached for a blocked property or a method that is not
    whitelisted for the receiver.
    """


class LimitExceededError(ExpressionError):
    """An expression, its AST or one of its results is too large."""

    def __init__(self, limit_name: str, limit: int, actual: int):
        message = f"Limit exceeded: {limit_name} (limit: {limit}, actual: {actual})"
        super().__init__(message)
        self.limit_name = limit_name
        self.limit = limit
        self.actual = actual


class MethodError(EvaluationError):
    """A whitelisted method rejected its arguments."""

    def __init__(
        self,
        method_name: str,
        message: str,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        super().__init__(f"{method_name}: {message}", position, expression)
        self.method_name = method_name


class OperatorError(EvaluationError):
    """
    An operator could not produce a number, e.g. integer arithmetic whose
    result no longer fits in a float.
    """

    def __init__(
        self,
        operator: str,
        message: str,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        super().__init__(f"'{operator}': {message}", position, expression)
        self.operator = operator
