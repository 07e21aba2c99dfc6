"""
Parser for the form expression language.

Parses a stream of tokens into an Abstract Syntax Tree (AST).
Uses recursive descent parsing with operator precedence.

Precedence (lowest to highest):
1. Ternary: ? :
2. Logical OR: ||
3. Logical AND: &&
4. Equality: ==, !=, ===, !==
5. Comparison: <, <=, >, >=
6. Additive: +, -
7. Multiplicative: *, /, %
8. Unary: !, -, +, typeof
9. Postfix: . [] and method calls
10. Primary: literals, identifiers, parentheses, arrays

Only method calls are callable (``value.includes('x')``); calling a bare
identifier is a parse error, so expressions cannot reach functions that
are not on the safe method list.
"""

from typing import Dict, List

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
    NullLiteralNode,
    NumberLiteralNode,
    StringLiteralNode,
    TernaryOpNode,
    UnaryOperator,
    UnaryOpNode,
    calculate_ast_depth,
    count_ast_nodes,
)
from .errors import ParseError
from .limits import (
    DEFAULT_EXPRESSION_LIMITS,
    ExpressionLimits,
    check_array_length,
    check_ast_depth,
    check_ast_node_count,
    check_function_arg_count,
)
from .tokenizer import KEYWORDS, Token, TokenType, tokenize

_EQUALITY_OPERATORS: Dict[TokenType, BinaryOperator] = {
    TokenType.EQ: "==",
    TokenType.NE: "!=",
    TokenType.STRICT_EQ: "===",
    TokenType.STRICT_NE: "!==",
}

_COMPARISON_OPERATORS: Dict[TokenType, BinaryOperator] = {
    TokenType.LT: "<",
    TokenType.LE: "<=",
    TokenType.GT: ">",
    TokenType.GE: ">=",
}

_ADDITIVE_OPERATORS: Dict[TokenType, BinaryOperator] = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
}

_MULTIPLICATIVE_OPERATORS: Dict[TokenType, BinaryOperator] = {
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
}

_UNARY_OPERATORS: Dict[TokenType, UnaryOperator] = {
    TokenType.NOT: "!",
    TokenType.MINUS: "-",
    TokenType.PLUS: "+",
    TokenType.TYPEOF: "typeof",
}


class Parser:
    """Parser for expression strings."""

    def __init__(
        self,
        tokens: List[Token],
        source: str,
        limits: ExpressionLimits = DEFAULT_EXPRESSION_LIMITS,
    ):
        self._tokens = tokens
        self._source = source
        self._limits = limits
        self._current = 0
        self._nesting = 0

    def parse(self) -> AstNode:
        """Parses the token stream into an AST."""
        if self._is_at_end():
            raise ParseError("Empty expression", 0, self._source)

        ast = self._parse_ternary()

        if not self._is_at_end():
            token = self._peek()
            raise ParseError(
                f"Unexpected token: {token.value or token.type.value}",
                token.position,
                self._source,
            )

        check_ast_node_count(count_ast_nodes(ast), self._limits)
        check_ast_depth(calculate_ast_depth(ast), self._limits)

        return ast

    # ============================================================
    # Token Helpers
    # ============================================================

    def _is_at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _peek(self) -> Token:
        return self._tokens[self._current]

    def _previous(self) -> Token:
        return self._tokens[self._current - 1]

    def _advance(self) -> Token:
        if not self._is_at_end():
            self._current += 1
        return self._previous()

    def _check(self, token_type: TokenType) -> bool:
        if self._is_at_end():
            return False
        return self._peek().type == token_type

    def _match(self, *types: TokenType) -> bool:
        for token_type in types:
            if self._check(token_type):
                self._advance()
                return True
        return False

    def _consume(self, token_type: TokenType, message: str) -> Token:
        if self._check(token_type):
            return self._advance()
        token = self._peek()
        raise ParseError(message, token.position, self._source)

    def _enter(self) -> None:
        # Bounds recursion before the AST exists to be measured
        self._nesting += 1
        check_ast_depth(self._nesting, self._limits)

    def _leave(self) -> None:
        self._nesting -= 1

    # ============================================================
    # Expression Parsing (by precedence, lowest to highest)
    # ============================================================

    def _parse_ternary(self) -> AstNode:
        """Parses ternary expressions: condition ? consequent : alternate"""
        self._enter()
        try:
            position = self._peek().position
            node = self._parse_or()

            if self._match(TokenType.QUESTION):
                consequent = self._parse_ternary()
                self._consume(TokenType.COLON, "Expected ':' in ternary expression")
                alternate = self._parse_ternary()
                node = TernaryOpNode(
                    position=position,
                    condition=node,
                    consequent=consequent,
                    alternate=alternate,
                )

            return node
        finally:
            self._leave()

    def _parse_or(self) -> AstNode:
        """Parses logical OR: ||"""
        node = self._parse_and()

        while self._match(TokenType.OR):
            position = self._previous().position
            right = self._parse_and()
            node = BinaryOpNode(position=position, operator="||", left=node, right=right)

        return node

    def _parse_and(self) -> AstNode:
        """Parses logical AND: &&"""
        node = self._parse_equality()

        while self._match(TokenType.AND):
            position = self._previous().position
            right = self._parse_equality()
            node = BinaryOpNode(position=position, operator="&&", left=node, right=right)

        return node

    def _parse_equality(self) -> AstNode:
        """Parses equality: ==, !=, ===, !=="""
        node = self._parse_comparison()

        while self._match(*_EQUALITY_OPERATORS):
            token = self._previous()
            right = self._parse_comparison()
            node = BinaryOpNode(
                position=token.position,
                operator=_EQUALITY_OPERATORS[token.type],
                left=node,
                right=right,
            )

        return node

    def _parse_comparison(self) -> AstNode:
        """Parses comparison: <, <=, >, >="""
        node = self._parse_additive()

        while self._match(*_COMPARISON_OPERATORS):
            token = self._previous()
            right = self._parse_additive()
            node = BinaryOpNode(
                position=token.position,
                operator=_COMPARISON_OPERATORS[token.type],
                left=node,
                right=right,
            )

        return node

    def _parse_additive(self) -> AstNode:
        """Parses additive: +, -"""
        node = self._parse_multiplicative()

        while self._match(*_ADDITIVE_OPERATORS):
            token = self._previous()
            right = self._parse_multiplicative()
            node = BinaryOpNode(
                position=token.position,
                operator=_ADDITIVE_OPERATORS[token.type],
                left=node,
                right=right,
            )

        return node

    def _parse_multiplicative(self) -> AstNode:
        """Parses multiplicative: *, /, %"""
        node = self._parse_unary()

        while self._match(*_MULTIPLICATIVE_OPERATORS):
            token = self._previous()
            right = self._parse_unary()
            node = BinaryOpNode(
                position=token.position,
                operator=_MULTIPLICATIVE_OPERATORS[token.type],
                left=node,
                right=right,
            )

        return node

    def _parse_unary(self) -> AstNode:
        """Parses unary: !, -, +, typeof"""
        if self._match(*_UNARY_OPERATORS):
            token = self._previous()
            self._enter()
            try:
                operand = self._parse_unary()
            finally:
                self._leave()
            return UnaryOpNode(
                position=token.position,
                operator=_UNARY_OPERATORS[token.type],
                operand=operand,
            )

        return self._parse_postfix()

    def _parse_postfix(self) -> AstNode:
        """Parses postfix: . [] and method calls"""
        node = self._parse_primary()
        chain = 0

        while True:
            if self._match(TokenType.DOT):
                position = self._previous().position
                prop_token = self._peek()
                # Keywords are valid property names (obj.null, obj.typeof)
                if (
                    prop_token.type == TokenType.IDENTIFIER
                    or prop_token.type in KEYWORDS.values()
                ):
                    self._advance()
                else:
                    raise ParseError(
                        "Expected property name after '.'",
                        prop_token.position,
                        self._source,
                    )
                node = MemberAccessNode(
                    position=position, object=node, property=prop_token.value
                )
            elif self._match(TokenType.LBRACKET):
                position = self._previous().position
                index = self._parse_ternary()
                self._consume(TokenType.RBRACKET, "Expected ']' after index")
                node = IndexAccessNode(position=position, object=node, index=index)
            elif self._match(TokenType.LPAREN):
                position = self._previous().position
                if not isinstance(node, MemberAccessNode):
                    raise ParseError(
                        "Only method calls are allowed",
                        node.position,
                        self._source,
                    )
                args = self._parse_argument_list()
                check_function_arg_count(len(args), self._limits)
                node = MethodCallNode(
                    position=position,
                    object=node.object,
                    method=node.property,
                    args=tuple(args),
                )
            else:
                break

            chain += 1
            if chain > self._limits.max_member_access_depth:
                raise ParseError(
                    f"Member access chain exceeds limit of "
                    f"{self._limits.max_member_access_depth}",
                    position,
                    self._source,
                )

        return node

    def _parse_argument_list(self) -> List[AstNode]:
        """Parses method argument list (already consumed opening paren)."""
        args: List[AstNode] = []

        if not self._check(TokenType.RPAREN):
            args.append(self._parse_ternary())
            while self._match(TokenType.COMMA):
                args.append(self._parse_ternary())

        self._consume(TokenType.RPAREN, "Expected ')' after method arguments")
        return args

    def _parse_primary(self) -> AstNode:
        """Parses primary expressions: literals, identifiers, parentheses, arrays."""
        token = self._peek()
        position = token.position

        if self._match(TokenType.TRUE):
            return BooleanLiteralNode(position=position, value=True)
        if self._match(TokenType.FALSE):
            return BooleanLiteralNode(position=position, value=False)

        if self._match(TokenType.NULL, TokenType.UNDEFINED):
            return NullLiteralNode(position=position)

        if self._match(TokenType.STRING):
            return StringLiteralNode(position=position, value=self._previous().value)

        if self._match(TokenType.NUMBER):
            text = self._previous().value
            value = float(text)
            if not (-float("inf") < value < float("inf")):
                raise ParseError("Invalid number", position, self._source)
            # Integral literals stay ints so "3 + 4" formats as "7"
            if "." not in text and "e" not in text.lower():
                return NumberLiteralNode(position=position, value=int(text))
            return NumberLiteralNode(position=position, value=value)

        if self._match(TokenType.IDENTIFIER):
            return IdentifierNode(position=position, name=self._previous().value)

        if self._match(TokenType.LPAREN):
            expr = self._parse_ternary()
            self._consume(TokenType.RPAREN, "Expected ')' after expression")
            return expr

        if self._match(TokenType.LBRACKET):
            elements: List[AstNode] = []

            if not self._check(TokenType.RBRACKET):
                elements.append(self._parse_ternary())
                while self._match(TokenType.COMMA):
                    elements.append(self._parse_ternary())

            self._consume(TokenType.RBRACKET, "Expected ']' after array elements")
            check_array_length(len(elements), self._limits)

            return ArrayLiteralNode(position=position, elements=tuple(elements))

        raise ParseError(
            f"Unexpected token: {token.value or token.type.value}",
            position,
            self._source,
        )


def parse(
    source: str, limits: ExpressionLimits = DEFAULT_EXPRESSION_LIMITS
) -> AstNode:
    """
    Parses an expression string into an AST.

    Args:
        source: The expression string to parse
        limits: Optional expression limits

    Returns:
        The parsed AST

    Raises:
        TokenizerError: If tokenization fails
        ParseError: If parsing fails
        LimitExceededError: If the expression exceeds a resource limit
    """
    tokens = tokenize(source, limits)
    return Parser(tokens, source, limits).parse()
