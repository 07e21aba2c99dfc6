"""
Expression evaluator.

Evaluates an AST against a set of variable bindings and returns a value.

Operators follow JavaScript semantics over the value model described in
``coercion``:
- ``&&`` and ``||`` short-circuit and return one of their operands.
- ``+`` concatenates when either side is a string, array or object and
  adds numerically otherwise.
- Relational operators compare strings lexicographically and everything
  else numerically; comparisons involving NaN are false.
- Division and modulo by zero evaluate to None.

Null handling semantics:
- Missing identifiers evaluate to None.
- Member and index access on None, or on a value without that member,
  evaluate to None.
- Blocked property names raise SecurityError whatever the receiver.
"""

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, cast

from .ast import (
    ArrayLiteralNode,
    AstNode,
    BinaryOperator,
    BinaryOpNode,
    BooleanLiteralNode,
    IdentifierNode,
    IndexAccessNode,
    MemberAccessNode,
    MethodCallNode,
    NumberLiteralNode,
    StringLiteralNode,
    TernaryOpNode,
    UnaryOperator,
    UnaryOpNode,
)
from .coercion import (
    is_array,
    is_nan,
    is_truthy,
    js_typeof,
    loose_equals,
    strict_equals,
    to_js_string,
    to_number,
)
from .errors import EvaluationError, ExpressionError, MethodError, OperatorError, SecurityError
from .limits import DEFAULT_EXPRESSION_LIMITS, ExpressionLimits
from .methods import MethodContext, get_safe_method, is_blocked_property


@dataclass
class ExpressionScope:
    """Variable bindings and settings for one evaluation."""

    bindings: Mapping[str, Any]
    """Variable bindings available to expressions."""

    limits: Optional[ExpressionLimits] = None
    """Expression limits."""

    source: Optional[str] = None
    """Source expression for error reporting."""


@dataclass
class EvaluationResult:
    """Result of expression evaluation."""

    value: Any
    """The evaluated value."""

    success: bool
    """Whether evaluation succeeded."""

    error: Optional[str] = None
    """Error message if evaluation failed."""


def _read_property(obj: Any, name: str) -> Any:
    """Reads a data property the way a plain JSON value exposes it."""
    if isinstance(obj, dict):
        return obj.get(name)
    if isinstance(obj, str) or is_array(obj):
        if name == "length":
            return len(obj)
        if name.isdecimal() and name.isascii():
            index = int(name)
            return obj[index] if index < len(obj) else None
    # Never fall back to getattr: host attributes are not part of the value model
    return None


class Evaluator:
    """Evaluates an AST node and returns the result."""

    def __init__(self, scope: ExpressionScope):
        self._scope = scope
        self._limits = scope.limits or DEFAULT_EXPRESSION_LIMITS
        self._source = scope.source or ""

    def evaluate(self, node: AstNode) -> Any:
        """Evaluates an AST node and returns the value."""
        node_type = node.type

        if node_type == "StringLiteral":
            return cast(StringLiteralNode, node).value

        if node_type == "NumberLiteral":
            return cast(NumberLiteralNode, node).value

        if node_type == "BooleanLiteral":
            return cast(BooleanLiteralNode, node).value

        if node_type == "NullLiteral":
            return None

        if node_type == "ArrayLiteral":
            return [self.evaluate(e) for e in cast(ArrayLiteralNode, node).elements]

        if node_type == "Identifier":
            return self._scope.bindings.get(cast(IdentifierNode, node).name)

        if node_type == "MemberAccess":
            return self._evaluate_member_access(cast(MemberAccessNode, node))

        if node_type == "IndexAccess":
            return self._evaluate_index_access(cast(IndexAccessNode, node))

        if node_type == "MethodCall":
            return self._evaluate_method_call(cast(MethodCallNode, node))

        if node_type == "UnaryOp":
            n = cast(UnaryOpNode, node)
            return self._evaluate_unary_op(n.operator, n.operand)

        if node_type == "BinaryOp":
            n = cast(BinaryOpNode, node)
            return self._evaluate_binary_op(n.operator, n.left, n.right)

        if node_type == "TernaryOp":
            t = cast(TernaryOpNode, node)
            if is_truthy(self.evaluate(t.condition)):
                return self.evaluate(t.consequent)
            return self.evaluate(t.alternate)

        raise EvaluationError(
            f"Unknown node type: {node_type}", node.position, self._source
        )

    def evaluate_as_boolean(self, node: AstNode) -> bool:
        """Evaluates and applies JavaScript truthiness to the result."""
        return is_truthy(self.evaluate(node))

    def _check_property(self, name: str, position: int) -> None:
        if is_blocked_property(name):
            raise SecurityError(
                f'Property "{name}" is not accessible for security reasons',
                position,
                self._source,
            )

    def _evaluate_member_access(self, node: MemberAccessNode) -> Any:
        """Evaluates member access (obj.property)."""
        self._check_property(node.property, node.position)

        obj = self.evaluate(node.object)
        if obj is None:
            return None

        return _read_property(obj, node.property)

    def _evaluate_index_access(self, node: IndexAccessNode) -> Any:
        """Evaluates index access (obj[index])."""
        obj = self.evaluate(node.object)
        index = self.evaluate(node.index)

        if isinstance(index, int) and not isinstance(index, bool):
            key = str(index)
        elif isinstance(index, float) and index.is_integer():
            key = str(int(index))
        else:
            key = to_js_string(index)

        self._check_property(key, node.position)

        if obj is None:
            return None

        return _read_property(obj, key)

    def _evaluate_method_call(self, node: MethodCallNode) -> Any:
        """Evaluates a whitelisted method call (obj.method(args))."""
        self._check_property(node.method, node.position)

        receiver = self.evaluate(node.object)
        if receiver is None:
            raise EvaluationError(
                f"Cannot call method '{node.method}' on null",
                node.position,
                self._source,
            )

        method = get_safe_method(receiver, node.method)
        if method is None:
            raise SecurityError(
                f'Method "{node.method}" is not allowed for security reasons',
                node.position,
                self._source,
            )

        args = [self.evaluate(arg) for arg in node.args]
        context = MethodContext(
            limits=self._limits, position=node.position, source=self._source
        )
        try:
            return method(receiver, args, context)
        except ExpressionError:
            raise
        except (ValueError, TypeError, OverflowError) as error:
            raise MethodError(node.method, str(error), node.position, self._source)

    def _evaluate_unary_op(self, operator: UnaryOperator, operand: AstNode) -> Any:
        """Evaluates a unary operation."""
        value = self.evaluate(operand)

        if operator == "!":
            return not is_truthy(value)

        if operator == "-":
            return -to_number(value)

        if operator == "+":
            return to_number(value)

        if operator == "typeof":
            return js_typeof(value)

        raise EvaluationError(
            f"Unknown unary operator: {operator}", operand.position, self._source
        )

    def _evaluate_binary_op(
        self,
        operator: BinaryOperator,
        left: AstNode,
        right: AstNode,
    ) -> Any:
        """Evaluates a binary operation."""
        # Short-circuit evaluation for logical operators
        if operator == "&&":
            left_value = self.evaluate(left)
            return self.evaluate(right) if is_truthy(left_value) else left_value

        if operator == "||":
            left_value = self.evaluate(left)
            return left_value if is_truthy(left_value) else self.evaluate(right)

        left_value = self.evaluate(left)
        right_value = self.evaluate(right)

        if operator in ("+", "-", "*", "/", "%"):
            try:
                return _arithmetic(operator, left_value, right_value)
            except (OverflowError, ValueError, ZeroDivisionError) as error:
                raise OperatorError(operator, str(error), left.position, self._source)

        if operator in ("<", "<=", ">", ">="):
            return _compare(operator, left_value, right_value)

        if operator == "==":
            return loose_equals(left_value, right_value)
        if operator == "!=":
            return not loose_equals(left_value, right_value)
        if operator == "===":
            return strict_equals(left_value, right_value)
        if operator == "!==":
            return not strict_equals(left_value, right_value)

        raise EvaluationError(
            f"Unknown binary operator: {operator}", left.position, self._source
        )


def _concatenates(value: Any) -> bool:
    return isinstance(value, (str, dict)) or is_array(value)


def _arithmetic(operator: str, left: Any, right: Any) -> Any:
    if operator == "+":
        if _concatenates(left) or _concatenates(right):
            return to_js_string(left) + to_js_string(right)
        return to_number(left) + to_number(right)

    if operator == "-":
        return to_number(left) - to_number(right)

    if operator == "*":
        return to_number(left) * to_number(right)

    divisor = to_number(right)
    if divisor == 0:
        return None
    dividend = to_number(left)
    if operator == "/":
        return _divide(dividend, divisor)
    return _remainder(dividend, divisor)


def _divide(a: Any, b: Any) -> Any:
    result = a / b
    if isinstance(a, int) and isinstance(b, int) and result.is_integer():
        return int(result)
    return result


def _remainder(a: Any, b: Any) -> Any:
    # JavaScript % truncates toward zero (the sign follows the dividend)
    if math.isinf(a) or is_nan(a) or is_nan(b):
        return math.nan
    if math.isinf(b):
        return a
    result = math.fmod(a, b)
    if isinstance(a, int) and isinstance(b, int):
        return int(result)
    return result


def _compare(operator: str, left: Any, right: Any) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        a: Any = left
        b: Any = right
    else:
        a = to_number(left)
        b = to_number(right)
        if is_nan(a) or is_nan(b):
            return False

    if operator == "<":
        return a < b
    if operator == "<=":
        return a <= b
    if operator == ">":
        return a > b
    return a >= b


def evaluate(ast: AstNode, scope: ExpressionScope) -> EvaluationResult:
    """
    Evaluates an AST against a scope and returns the result.

    Args:
        ast: The AST to evaluate
        scope: The bindings and limits to evaluate with

    Returns:
        The evaluation result with value and success status
    """
    try:
        evaluator = Evaluator(scope)
        value = evaluator.evaluate(ast)
        return EvaluationResult(value=value, success=True)
    except Exception as error:
        message = str(error)
        return EvaluationResult(value=None, success=False, error=message)


def evaluate_as_boolean(
    ast: AstNode, scope: ExpressionScope
) -> Tuple[bool, Optional[str]]:
    """
    Evaluates an AST as a boolean condition.

    Args:
        ast: The AST to evaluate
        scope: The bindings and limits to evaluate with

    Returns:
        Tuple of (value, error_message). Value is False if evaluation fails.
    """
    try:
        evaluator = Evaluator(scope)
        return (evaluator.evaluate_as_boolean(ast), None)
    except Exception as error:
        message = str(error)
        return (False, message)
