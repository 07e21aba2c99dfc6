"""
Static dependency extraction for expressions and conditions.

Dependencies are form paths read through ``formValue`` (or ``rootFormValue``
inside array items). ``*`` stands for the whole form and is used whenever
reads cannot be narrowed (bare ``formValue``, ``formValue`` comparisons,
custom functions). HTTP conditions depend on what their request
expressions read.
"""

from typing import Any, List, Optional

from dynaforms.expr.ast import (
    AstNode,
    IdentifierNode,
    IndexAccessNode,
    MemberAccessNode,
    NumberLiteralNode,
    StringLiteralNode,
    child_nodes,
)
from dynaforms.expr.coercion import format_number
from dynaforms.expr.errors import ExpressionError
from dynaforms.expr.expression_parser import ExpressionParser, default_expression_parser

from dynaforms.models.http import HttpRequestConfig

from .condition_evaluator import condition_attr

WHOLE_FORM = "*"

_FORM_VALUE_NAMES = ("formValue", "rootFormValue")


def _form_value_path(node: AstNode) -> Optional[List[str]]:
    """Segments of a ``formValue.a['b'].c`` chain, or None for anything else."""
    if isinstance(node, IdentifierNode):
        return [] if node.name in _FORM_VALUE_NAMES else None

    if isinstance(node, MemberAccessNode):
        base = _form_value_path(node.object)
        return None if base is None else base + [node.property]

    if isinstance(node, IndexAccessNode):
        index = node.index
        if isinstance(index, StringLiteralNode):
            segment = index.value
        elif isinstance(index, NumberLiteralNode):
            segment = format_number(index.value)
        else:
            return None
        base = _form_value_path(node.object)
        return None if base is None else base + [segment]

    return None


def _add(deps: List[str], dependency: str) -> None:
    if dependency not in deps:
        deps.append(dependency)


def _add_path(deps: List[str], path: List[str]) -> None:
    if not path:
        _add(deps, WHOLE_FORM)
        return
    # Root key first, then the precise nested path
    _add(deps, path[0])
    if len(path) > 1:
        _add(deps, ".".join(path))


def ast_dependencies(ast: AstNode) -> List[str]:
    deps: List[str] = []

    def visit(node: AstNode) -> None:
        path = _form_value_path(node)
        if path is not None:
            _add_path(deps, path)
            return
        for child in child_nodes(node):
            visit(child)

    visit(ast)
    return deps


def extract_expression_dependencies(
    expression: str, parser: ExpressionParser = default_expression_parser
) -> List[str]:
    """
    Returns the form paths an expression reads, in first-seen order.

    Unparsable expressions have no dependencies; evaluating them reports
    the error.
    """
    try:
        ast = parser.parse(expression)
    except ExpressionError:
        return []
    return ast_dependencies(ast)


def extract_condition_dependencies(
    condition: Any, parser: ExpressionParser = default_expression_parser
) -> List[str]:
    """Returns the form paths a condition reads."""
    if condition is None or isinstance(condition, (bool, str)):
        return []

    deps: List[str] = []
    condition_type = condition_attr(condition, "type")

    if condition_type == "fieldValue":
        field_path = condition_attr(condition, "fieldPath")
        if isinstance(field_path, str) and field_path:
            _add_path(deps, field_path.split("."))

    elif condition_type in ("formValue", "custom"):
        _add(deps, WHOLE_FORM)

    elif condition_type == "javascript":
        expression = condition_attr(condition, "expression")
        if isinstance(expression, str):
            for dependency in extract_expression_dependencies(expression, parser):
                _add(deps, dependency)

    elif condition_type == "http":
        request = condition_attr(condition, "http")
        if request is not None:
            for dependency in http_request_dependencies(request, parser):
                _add(deps, dependency)

    elif condition_type in ("and", "or"):
        for child in condition_attr(condition, "conditions") or []:
            for dependency in extract_condition_dependencies(child, parser):
                _add(deps, dependency)

    return deps


def http_request_dependencies(
    config: Any, parser: ExpressionParser = default_expression_parser
) -> List[str]:
    """Returns the form paths read by a request's ``queryParams`` and body expressions."""
    if not isinstance(config, HttpRequestConfig):
        try:
            config = HttpRequestConfig.model_validate(config)
        except ValueError:
            return []
    deps: List[str] = []
    for expression in config.expressions().values():
        for dependency in extract_expression_dependencies(expression, parser):
            _add(deps, dependency)
    return deps
