"""Lexer for formula text."""

import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator

from formulabase.core.logging import get_logger

from .exceptions import FormulaParseError
from .signatures import is_function_name, is_operator

logger = get_logger(__name__)

# Characters that make up operator symbols such as ** or >=
OPERATOR_CHARS = "<>=!+-*/^%"


class TokenType(Enum):
    """Types of tokens in formula text."""
    FUNCTION = auto()
    OPERATOR = auto()
    ATTRIBUTE = auto()
    VALUE = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()

    EOF = auto()

# Tokens that can end an operand, after which AND, OR and NOT are infix
OPERAND_END_TOKENS = frozenset({TokenType.ATTRIBUTE, TokenType.VALUE, TokenType.RPAREN})

@dataclass
class Token:
    """A single token in formula text.

    ``value`` is the literal text, except for attributes where the braces
    are stripped.
    """
    type: TokenType
    value: str
    position: int

@dataclass(frozen=True)
class Diagnostic:
    """Input that was dropped or repaired while reading a formula."""
    message: str
    position: int

    def __str__(self) -> str:
        return f"{self.message} at position {self.position}"

class Lexer:
    """Tokenizes formula strings.

    Never fails on unknown input: anything that is not a recognised token
    is skipped and recorded in ``diagnostics``.
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.current_char = self.text[0] if self.text else None
        self.diagnostics: list[Diagnostic] = []

    def error(self, message: str) -> None:
        """Raise a parse error at the current position."""
        raise FormulaParseError(message, self.pos)

    def skip(self, message: str, position: int) -> None:
        """Record dropped input."""
        self.diagnostics.append(Diagnostic(message, position))
        logger.debug("Dropped formula input", reason=message, position=position)

    def advance(self) -> None:
        """Move one character forward."""
        self.pos += 1
        if self.pos < len(self.text):
            self.current_char = self.text[self.pos]
        else:
            self.current_char = None

    def skip_whitespace(self) -> None:
        """Skip over whitespace characters."""
        while self.current_char is not None and self.current_char.isspace():
            self.advance()

    def _run(self, accept) -> str:
        """Consume a maximal run of characters matching ``accept``."""
        start_pos = self.pos
        while self.current_char is not None and accept(self.current_char):
            self.advance()
        return self.text[start_pos:self.pos]

    def _number(self) -> Token | None:
        """Parse a run of digits and dots."""
        start_pos = self.pos
        literal = self._run(lambda c: c.isdigit() or c == ".")
        try:
            number = float(literal)
        except ValueError:
            self.skip(f"Malformed number '{literal}'", start_pos)
            return None
        if not math.isfinite(number):
            self.skip(f"Number out of range '{literal}'", start_pos)
            return None
        return Token(TokenType.VALUE, literal, start_pos)

    def _attribute(self) -> Token | None:
        """Parse an attribute reference of the form {Name}."""
        start_pos = self.pos
        end = self.text.find("}", start_pos + 1)
        if end == -1:
            self.advance()
            self.skip("Unterminated attribute reference", start_pos)
            return None

        name = self.text[start_pos + 1:end]
        while self.pos <= end:
            self.advance()
        return Token(TokenType.ATTRIBUTE, name, start_pos)

    def _word(self, word: str, start_pos: int) -> Token | None:
        """Classify an identifier or symbol run, functions first."""
        if is_function_name(word):
            return Token(TokenType.FUNCTION, word, start_pos)
        if is_operator(word):
            return Token(TokenType.OPERATOR, word, start_pos)
        self.skip(f"Unrecognized input '{word}'", start_pos)
        return None

    def get_next_token(self) -> Token: # noqa: C901
        """Get the next token from input."""
        while self.current_char is not None:

            if self.current_char.isspace():
                self.skip_whitespace()
                continue

            start_pos = self.pos

            if self.current_char == "(":
                self.advance()
                return Token(TokenType.LPAREN, "(", start_pos)

            if self.current_char == ")":
                self.advance()
                return Token(TokenType.RPAREN, ")", start_pos)

            if self.current_char == ",":
                self.advance()
                return Token(TokenType.COMMA, ",", start_pos)

            if self.current_char == "{":
                token = self._attribute()
                if token is not None:
                    return token
                continue

            if self.current_char.isdigit():
                token = self._number()
                if token is not None:
                    return token
                continue

            if self.current_char.isalpha() or self.current_char == "_":
                word = self._run(lambda c: c.isalnum() or c == "_")
                token = self._word(word, start_pos)
                if token is not None:
                    return token
                continue

            if self.current_char in OPERATOR_CHARS:
                word = self._run(lambda c: c in OPERATOR_CHARS)
                token = self._word(word, start_pos)
                if token is not None:
                    return token
                continue

            self.advance()
            self.skip(f"Unexpected character '{self.text[start_pos]}'", start_pos)

        return Token(TokenType.EOF, "", self.pos)

    def tokenize(self) -> Iterator[Token]:
        """Generator that yields all tokens, ending with EOF."""
        while True:
            last_pos = self.pos
            token = self.get_next_token()
            yield token
            if token.type == TokenType.EOF:
                break
            if self.pos == last_pos:
                self.error("Lexer made no progress")


@dataclass(frozen=True)
class FunctionSpan:
    """Location of one function call in formula text.

    Attributes:
        name: Function name.
        start: Offset of the first character of the name.
        open_paren: Offset of the opening parenthesis.
        close_paren: Offset of the matching closing parenthesis.
        depth: Number of function calls enclosing this one.
    """
    name: str
    start: int
    open_paren: int
    close_paren: int
    depth: int


def function_spans(text: str) -> list[FunctionSpan]:
    """Find every closed function call in a formula, ordered by start offset.

    Plain parentheses are tracked so they never close a function call.
    Calls left open at end of input are not reported.
    """
    tokens = [token for token in Lexer(text).tokenize() if token.type != TokenType.EOF]
    spans: list[FunctionSpan] = []
    # One entry per open parenthesis: (function token, paren offset, depth) or None for a plain group
    stack: list[tuple[Token, int, int] | None] = []
    depth = 0

    for index, token in enumerate(tokens):
        if token.type == TokenType.LPAREN:
            previous = tokens[index - 1] if index > 0 else None
            before = tokens[index - 2] if index > 1 else None
            infix = (
                previous is not None
                and is_operator(previous.value)
                and before is not None
                and before.type in OPERAND_END_TOKENS
            )
            if previous is not None and previous.type == TokenType.FUNCTION and not infix:
                stack.append((previous, token.position, depth))
                depth += 1
            else:
                stack.append(None)
        elif token.type == TokenType.RPAREN and stack:
            entry = stack.pop()
            if entry is not None:
                function_token, open_paren, call_depth = entry
                depth -= 1
                spans.append(
                    FunctionSpan(
                        name=function_token.value,
                        start=function_token.position,
                        open_paren=open_paren,
                        close_paren=token.position,
                        depth=call_depth,
                    )
                )

    return sorted(spans, key=lambda span: span.start)
