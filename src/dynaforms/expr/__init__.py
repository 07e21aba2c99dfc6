"""
Safe expression engine for form logic.

Expressions are written in a JavaScript subset and evaluated by a
tokenizer, recursive-descent parser and tree-walking evaluator. Nothing
is ever handed to Python's ``eval``; only declared bindings and
whitelisted methods are reachable.
"""

from .ast import (
    ArrayLiteralNode,
    AstNode,
    AstNodeBase,
    BinaryOperator,
    BinaryOpNode,
    BooleanLiteralNode,
    IdentifierNode,
    IndexAccessNode,
    MemberAccessNode,
    MethodCallNode,
    NullLiteralNode,
    NumberLiteralNode,
    StringLiteralNode,
    TernaryOpNode,
    UnaryOperator,
    UnaryOpNode,
    calculate_ast_depth,
    collect_identifiers,
    count_ast_nodes,
)
from .coercion import (
    is_truthy,
    js_typeof,
    loose_equals,
    same_value_zero,
    strict_equals,
    to_js_string,
    to_number,
)
from .errors import (
    EvaluationError,
    ExpressionError,
    LimitExceededError,
    MethodError,
    OperatorError,
    ParseError,
    SecurityError,
    TokenizerError,
)
from .evaluator import (
    EvaluationResult,
    Evaluator,
    ExpressionScope,
    evaluate,
    evaluate_as_boolean,
)
from .expression_parser import (
    ExpressionParser,
    default_expression_parser,
    evaluate_expression,
)
from .limits import (
    DEFAULT_EXPRESSION_LIMITS,
    ExpressionLimits,
    check_array_length,
    check_ast_depth,
    check_ast_node_count,
    check_expression_length,
    check_function_arg_count,
    check_regex_pattern_length,
)
from .methods import (
    ARRAY_METHODS,
    BLOCKED_PROPERTIES,
    DATE_METHODS,
    NUMBER_METHODS,
    STRING_METHODS,
    MethodContext,
    get_safe_method,
    is_blocked_property,
)
from .parser import Parser, parse
from .tokenizer import KEYWORDS, Token, Tokenizer, TokenType, tokenize

__all__ = [
    # AST
    "AstNode",
    "AstNodeBase",
    "ArrayLiteralNode",
    "BinaryOperator",
    "BinaryOpNode",
    "BooleanLiteralNode",
    "IdentifierNode",
    "IndexAccessNode",
    "MemberAccessNode",
    "MethodCallNode",
    "NullLiteralNode",
    "NumberLiteralNode",
    "StringLiteralNode",
    "TernaryOpNode",
    "UnaryOperator",
    "UnaryOpNode",
    "calculate_ast_depth",
    "collect_identifiers",
    "count_ast_nodes",
    # Coercion
    "is_truthy",
    "js_typeof",
    "loose_equals",
    "same_value_zero",
    "strict_equals",
    "to_js_string",
    "to_number",
    # Errors
    "EvaluationError",
    "ExpressionError",
    "LimitExceededError",
    "MethodError",
    "OperatorError",
    "ParseError",
    "SecurityError",
    "TokenizerError",
    # Evaluator
    "EvaluationResult",
    "Evaluator",
    "ExpressionScope",
    "evaluate",
    "evaluate_as_boolean",
    # Front end
    "ExpressionParser",
    "default_expression_parser",
    "evaluate_expression",
    # Limits
    "DEFAULT_EXPRESSION_LIMITS",
    "ExpressionLimits",
    "check_array_length",
    "check_ast_depth",
    "check_ast_node_count",
    "check_expression_length",
    "check_function_arg_count",
    "check_regex_pattern_length",
    # Methods
    "ARRAY_METHODS",
    "BLOCKED_PROPERTIES",
    "DATE_METHODS",
    "NUMBER_METHODS",
    "STRING_METHODS",
    "MethodContext",
    "get_safe_method",
    "is_blocked_property",
    # Parser
    "Parser",
    "parse",
    # Tokenizer
    "KEYWORDS",
    "Token",
    "Tokenizer",
    "TokenType",
    "tokenize",
]
