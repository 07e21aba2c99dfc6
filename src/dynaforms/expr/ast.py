"""
Abstract Syntax Tree (AST) node types for the form expression language.

The AST is produced by the parser and consumed by the evaluator. Nodes are
immutable so parsed trees can be cached and shared between evaluations.
"""

from abc import ABC
from dataclasses import dataclass
from typing import List, Literal, Sequence, Union

# ============================================================
# Operator Types
# ============================================================

UnaryOperator = Literal["!", "-", "+", "typeof"]

BinaryOperator = Literal[
    "*",
    "/",
    "%",
    "+",
    "-",
    "<",
    "<=",
    ">",
    ">=",
    "==",
    "!=",
    "===",
    "!==",
    "&&",
    "||",
]


# ============================================================
# AST Node Types
# ============================================================


@dataclass(frozen=True)
class AstNodeBase(ABC):
    """Base class for all AST nodes."""

    position: int
    """Position in source expression (for error reporting)."""


@dataclass(frozen=True)
class StringLiteralNode(AstNodeBase):
    value: str

    @property
    def type(self) -> Literal["StringLiteral"]:
        return "StringLiteral"


@dataclass(frozen=True)
class NumberLiteralNode(AstNodeBase):
    value: float

    @property
    def type(self) -> Literal["NumberLiteral"]:
        return "NumberLiteral"


@dataclass(frozen=True)
class BooleanLiteralNode(AstNodeBase):
    value: bool

    @property
    def type(self) -> Literal["BooleanLiteral"]:
        return "BooleanLiteral"


@dataclass(frozen=True)
class NullLiteralNode(AstNodeBase):
    """``null`` and ``undefined`` both evaluate to None."""

    @property
    def type(self) -> Literal["NullLiteral"]:
        return "NullLiteral"


@dataclass(frozen=True)
class ArrayLiteralNode(AstNodeBase):
    elements: Sequence["AstNode"]

    @property
    def type(self) -> Literal["ArrayLiteral"]:
        return "ArrayLiteral"


@dataclass(frozen=True)
class IdentifierNode(AstNodeBase):
    name: str

    @property
    def type(self) -> Literal["Identifier"]:
        return "Identifier"


@dataclass(frozen=True)
class MemberAccessNode(AstNodeBase):
    """Member access node (e.g., formValue.price)."""

    object: "AstNode"
    property: str

    @property
    def type(self) -> Literal["MemberAccess"]:
        return "MemberAccess"


@dataclass(frozen=True)
class IndexAccessNode(AstNodeBase):
    """Index access node (e.g., formValue.items[0])."""

    object: "AstNode"
    index: "AstNode"

    @property
    def type(self) -> Literal["IndexAccess"]:
        return "IndexAccess"


@dataclass(frozen=True)
class MethodCallNode(AstNodeBase):
    """Method call on a receiver (e.g., fieldValue.includes('x'))."""

    object: "AstNode"
    method: str
    args: Sequence["AstNode"]

    @property
    def type(self) -> Literal["MethodCall"]:
        return "MethodCall"


@dataclass(frozen=True)
class UnaryOpNode(AstNodeBase):
    operator: UnaryOperator
    operand: "AstNode"

    @property
    def type(self) -> Literal["UnaryOp"]:
        return "UnaryOp"


@dataclass(frozen=True)
class BinaryOpNode(AstNodeBase):
    operator: BinaryOperator
    left: "AstNode"
    right: "AstNode"

    @property
    def type(self) -> Literal["BinaryOp"]:
        return "BinaryOp"


@dataclass(frozen=True)
class TernaryOpNode(AstNodeBase):
    """Ternary operator node (condition ? consequent : alternate)."""

    condition: "AstNode"
    consequent: "AstNode"
    alternate: "AstNode"

    @property
    def type(self) -> Literal["TernaryOp"]:
        return "TernaryOp"


AstNode = Union[
    StringLiteralNode,
    NumberLiteralNode,
    BooleanLiteralNode,
    NullLiteralNode,
    ArrayLiteralNode,
    IdentifierNode,
    MemberAccessNode,
    IndexAccessNode,
    MethodCallNode,
    UnaryOpNode,
    BinaryOpNode,
    TernaryOpNode,
]


# ============================================================
# AST Utilities
# ============================================================


def child_nodes(node: AstNode) -> List[AstNode]:
    """Returns the direct children of a node in evaluation order."""
    if isinstance(node, ArrayLiteralNode):
        return list(node.elements)
    if isinstance(node, MemberAccessNode):
        return [node.object]
    if isinstance(node, IndexAccessNode):
        return [node.object, node.index]
    if isinstance(node, MethodCallNode):
        return [node.object, *node.args]
    if isinstance(node, UnaryOpNode):
        return [node.operand]
    if isinstance(node, BinaryOpNode):
        return [node.left, node.right]
    if isinstance(node, TernaryOpNode):
        return [node.condition, node.consequent, node.alternate]
    return []


def count_ast_nodes(node: AstNode) -> int:
    """Counts the total number of nodes in an AST."""
    return 1 + sum(count_ast_nodes(child) for child in child_nodes(node))


def calculate_ast_depth(node: AstNode) -> int:
    """Calculates the maximum depth of an AST."""
    children = child_nodes(node)
    if not children:
        return 1
    return 1 + max(calculate_ast_depth(child) for child in children)


def collect_identifiers(node: AstNode) -> List[str]:
    """
    Returns the distinct top-level identifiers referenced by an expression,
    in first-seen order.
    """
    seen: List[str] = []

    def visit(current: AstNode) -> None:
        if isinstance(current, IdentifierNode):
            if current.name not in seen:
                seen.append(current.name)
            return
        for child in child_nodes(current):
            visit(child)

    visit(node)
    return seen

