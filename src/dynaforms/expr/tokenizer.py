"""
Tokenizer (lexer) for the form expression language.

Converts expression strings into a stream of tokens for the parser. The
lexical grammar follows the JavaScript subset used in form configuration:
strict and loose equality, ``typeof``, ``undefined`` and ``$`` in
identifiers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .errors import TokenizerError
from .limits import ExpressionLimits, check_expression_length, check_string_length


class TokenType(Enum):
    """Token types produced by the tokenizer."""

    # Literals
    STRING = "STRING"
    NUMBER = "NUMBER"
    TRUE = "TRUE"
    FALSE = "FALSE"
    NULL = "NULL"
    UNDEFINED = "UNDEFINED"

    # Identifiers
    IDENTIFIER = "IDENTIFIER"

    # Operators
    PLUS = "PLUS"
    MINUS = "MINUS"
    STAR = "STAR"
    SLASH = "SLASH"
    PERCENT = "PERCENT"
    LT = "LT"
    LE = "LE"
    GT = "GT"
    GE = "GE"
    EQ = "EQ"
    NE = "NE"
    STRICT_EQ = "STRICT_EQ"
    STRICT_NE = "STRICT_NE"
    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    TYPEOF = "TYPEOF"
    QUESTION = "QUESTION"
    COLON = "COLON"

    # Delimiters
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    LBRACKET = "LBRACKET"
    RBRACKET = "RBRACKET"
    DOT = "DOT"
    COMMA = "COMMA"

    # Special
    EOF = "EOF"


@dataclass
class Token:
    """A token produced by the tokenizer."""

    type: TokenType
    value: str
    position: int


# Keywords are case-sensitive, as in JavaScript
KEYWORDS: Dict[str, TokenType] = {
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
    "undefined": TokenType.UNDEFINED,
    "typeof": TokenType.TYPEOF,
}

_SINGLE_CHAR_TOKENS: Dict[str, TokenType] = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
    "?": TokenType.QUESTION,
    ":": TokenType.COLON,
}

_ESCAPES: Dict[str, str] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "`": "`",
}


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_identifier_start(ch: str) -> bool:
    return ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ch in ("_", "$")


def _is_identifier_part(ch: str) -> bool:
    return _is_identifier_start(ch) or _is_digit(ch)


def _is_whitespace(ch: str) -> bool:
    return ch in (" ", "\t", "\n", "\r")


class Tokenizer:
    """Tokenizer for expression strings."""

    def __init__(self, source: str, limits: Optional[ExpressionLimits] = None):
        self._source = source
        self._limits = limits
        self._position = 0
        self._tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """Tokenizes the source expression and returns all tokens."""
        check_expression_length(self._source, self._limits)

        while not self._is_at_end():
            self._scan_token()

        self._tokens.append(Token(TokenType.EOF, "", self._position))
        return self._tokens

    def _is_at_end(self) -> bool:
        return self._position >= len(self._source)

    def _peek(self) -> str:
        if self._is_at_end():
            return "\0"
        return self._source[self._position]

    def _peek_next(self) -> str:
        if self._position + 1 >= len(self._source):
            return "\0"
        return self._source[self._position + 1]

    def _advance(self) -> str:
        ch = self._source[self._position]
        self._position += 1
        return ch

    def _add_token(self, token_type: TokenType, value: str, position: int) -> None:
        self._tokens.append(Token(token_type, value, position))

    def _scan_token(self) -> None:
        ch = self._advance()
        start_position = self._position - 1

        if _is_whitespace(ch):
            return

        # A leading dot followed by a digit is a number (".5")
        if ch == ".":
            if _is_digit(self._peek()):
                self._scan_number(start_position)
            else:
                self._add_token(TokenType.DOT, ch, start_position)
            return

        if ch in _SINGLE_CHAR_TOKENS:
            self._add_token(_SINGLE_CHAR_TOKENS[ch], ch, start_position)
            return

        if ch == "<":
            if self._peek() == "=":
                self._advance()
                self._add_token(TokenType.LE, "<=", start_position)
            else:
                self._add_token(TokenType.LT, "<", start_position)
            return

        if ch == ">":
            if self._peek() == "=":
                self._advance()
                self._add_token(TokenType.GE, ">=", start_position)
            else:
                self._add_token(TokenType.GT, ">", start_position)
            return

        if ch == "=":
            if self._peek() == "=":
                self._advance()
                if self._peek() == "=":
                    self._advance()
                    self._add_token(TokenType.STRICT_EQ, "===", start_position)
                else:
                    self._add_token(TokenType.EQ, "==", start_position)
                return
            raise TokenizerError(
                "Assignment is not allowed. Did you mean '==='?",
                start_position,
                self._source,
            )

        if ch == "!":
            if self._peek() == "=":
                self._advance()
                if self._peek() == "=":
                    self._advance()
                    self._add_token(TokenType.STRICT_NE, "!==", start_position)
                else:
                    self._add_token(TokenType.NE, "!=", start_position)
            else:
                self._add_token(TokenType.NOT, "!", start_position)
            return

        if ch == "&":
            if self._peek() == "&":
                self._advance()
                self._add_token(TokenType.AND, "&&", start_position)
                return
            raise TokenizerError(
                "Unexpected '&'. Did you mean '&&'?", start_position, self._source
            )

        if ch == "|":
            if self._peek() == "|":
                self._advance()
                self._add_token(TokenType.OR, "||", start_position)
                return
            raise TokenizerError(
                "Unexpected '|'. Did you mean '||'?", start_position, self._source
            )

        if ch in ('"', "'"):
            self._scan_string(ch, start_position)
            return

        if _is_digit(ch):
            self._scan_number(start_position)
            return

        if _is_identifier_start(ch):
            self._scan_identifier(start_position)
            return

        raise TokenizerError(
            f"Unexpected character: '{ch}'", start_position, self._source
        )

    def _scan_string(self, quote: str, start_position: int) -> None:
        chars: List[str] = []

        while not self._is_at_end() and self._peek() != quote:
            ch = self._advance()

            if ch == "\\":
                if self._is_at_end():
                    raise TokenizerError(
                        "Unterminated string", start_position, self._source
                    )
                escaped = self._advance()
                if escaped not in _ESCAPES:
                    raise TokenizerError(
                        f"Invalid escape sequence: \\{escaped}",
                        self._position - 2,
                        self._source,
                    )
                chars.append(_ESCAPES[escaped])
            elif ch in ("\n", "\r"):
                raise TokenizerError(
                    "Unterminated string (newline in string literal)",
                    start_position,
                    self._source,
                )
            else:
                chars.append(ch)

        if self._is_at_end():
            raise TokenizerError("Unterminated string", start_position, self._source)

        # Closing quote
        self._advance()

        value = "".join(chars)
        check_string_length(value, self._limits)
        self._add_token(TokenType.STRING, value, start_position)

    def _scan_number(self, start_position: int) -> None:
        self._position = start_position

        value = ""
        while _is_digit(self._peek()):
            value += self._advance()

        if self._peek() == "." and _is_digit(self._peek_next()):
            value += self._advance()
            while _is_digit(self._peek()):
                value += self._advance()

        if self._peek() in ("e", "E"):
            value += self._advance()
            if self._peek() in ("+", "-"):
                value += self._advance()
            if not _is_digit(self._peek()):
                raise TokenizerError(
                    "Invalid number: expected exponent digits",
                    start_position,
                    self._source,
                )
            while _is_digit(self._peek()):
                value += self._advance()

        if _is_identifier_start(self._peek()):
            raise TokenizerError(
                "Identifier directly after number", self._position, self._source
            )

        self._add_token(TokenType.NUMBER, value, start_position)

    def _scan_identifier(self, start_position: int) -> None:
        self._position = start_position

        value = ""
        while _is_identifier_part(self._peek()):
            value += self._advance()

        keyword_type = KEYWORDS.get(value)
        if keyword_type:
            self._add_token(keyword_type, value, start_position)
        else:
            self._add_token(TokenType.IDENTIFIER, value, start_position)


def tokenize(source: str, limits: Optional[ExpressionLimits] = None) -> List[Token]:
    """
    Tokenizes an expression string into tokens.

    Args:
        source: The expression string to tokenize
        limits: Optional expression limits

    Returns:
        List of tokens

    Raises:
        TokenizerError: If the expression contains invalid tokens
        LimitExceededError: If the expression or a string literal is too long
    """
    return Tokenizer(source, limits).tokenize()
