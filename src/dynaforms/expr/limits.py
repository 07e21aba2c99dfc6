"""
Resource limits for expression parsing and evaluation.

Expressions come from form configuration, which may be supplied by
untrusted parties, so parsing and evaluation are bounded.
"""

from dataclasses import dataclass
from typing import Optional

from .errors import LimitExceededError


@dataclass(frozen=True)
class ExpressionLimits:
    """Expression limits configuration."""

    # Maximum expression string length in characters
    max_expression_length: int = 4096

    # Maximum AST depth (nesting level)
    max_ast_depth: int = 32

    # Maximum number of AST nodes
    max_ast_nodes: int = 256

    # Maximum regex pattern length
    max_regex_pattern_length: int = 256

    # Maximum string literal length
    max_string_length: int = 1024

    # Maximum array literal length
    max_array_length: int = 64

    # Maximum method call arguments
    max_function_args: int = 16

    # Maximum member access chain depth
    max_member_access_depth: int = 16

    # Maximum length of a string produced by repeat/padStart/padEnd
    max_result_string_length: int = 10000


DEFAULT_EXPRESSION_LIMITS = ExpressionLimits()


def check_expression_length(
    expression: str, limits: Optional[ExpressionLimits] = None
) -> None:
    """Validates that expression length is within limits."""
    limits = limits or DEFAULT_EXPRESSION_LIMITS
    if len(expression) > limits.max_expression_length:
        raise LimitExceededError(
            "max_expression_length", limits.max_expression_length, len(expression)
        )


def check_string_length(value: str, limits: Optional[ExpressionLimits] = None) -> None:
    """Validates string literal length during tokenization."""
    limits = limits or DEFAULT_EXPRESSION_LIMITS
    if len(value) > limits.max_string_length:
        raise LimitExceededError(
            "max_string_length", limits.max_string_length, len(value)
        )


def check_ast_depth(depth: int, limits: Optional[ExpressionLimits] = None) -> None:
    """Validates AST depth during parsing."""
    limits = limits or DEFAULT_EXPRESSION_LIMITS
    if depth > limits.max_ast_depth:
        raise LimitExceededError("max_ast_depth", limits.max_ast_depth, depth)


def check_ast_node_count(
    count: int, limits: Optional[ExpressionLimits] = None
) -> None:
    """Validates AST node count during parsing."""
    limits = limits or DEFAULT_EXPRESSION_LIMITS
    if count > limits.max_ast_nodes:
        raise LimitExceededError("max_ast_nodes", limits.max_ast_nodes, count)


def check_regex_pattern_length(
    pattern: str, limits: Optional[ExpressionLimits] = None
) -> None:
    """Validates regex pattern length before compilation."""
    limits = limits or DEFAULT_EXPRESSION_LIMITS
    if len(pattern) > limits.max_regex_pattern_length:
        raise LimitExceededError(
            "max_regex_pattern_length", limits.max_regex_pattern_length, len(pattern)
        )


def check_array_length(length: int, limits: Optional[ExpressionLimits] = None) -> None:
    """Validates array literal length during parsing."""
    limits = limits or DEFAULT_EXPRESSION_LIMITS
    if length > limits.max_array_length:
        raise LimitExceededError("max_array_length", limits.max_array_length, length)


def check_function_arg_count(
    count: int, limits: Optional[ExpressionLimits] = None
) -> None:
    """Validates method argument count."""
    limits = limits or DEFAULT_EXPRESSION_LIMITS
    if count > limits.max_function_args:
        raise LimitExceededError("max_function_args", limits.max_function_args, count)


def check_result_string_length(
    length: int, limits: Optional[ExpressionLimits] = None
) -> None:
    """Validates the length of strings built by methods such as repeat."""
    limits = limits or DEFAULT_EXPRESSION_LIMITS
    if length > limits.max_result_string_length:
        raise LimitExceededError(
            "max_result_string_length", limits.max_result_string_length, length
        )
