"""Parser for formula text.

Builds a flat node store from the token stream. The grammar is read left to
right with no operator precedence; nested function arguments and
parenthesized groups are parsed by recursing over the tokens between the
matching parentheses.

The parser is lenient: stray tokens, unknown attributes and unbalanced
parentheses are recorded as diagnostics and left for validation to report.
"""

from dataclasses import dataclass, field

from formulabase.core.config import get_settings
from formulabase.core.logging import get_logger

from .catalog import AttributeCatalog
from .exceptions import FormulaParseError
from .lexer import Diagnostic, Lexer, Token, TokenType
from .nodes import Node, NodeStore
from .signatures import is_operator

logger = get_logger(__name__)


@dataclass
class ParseResult:
    """Outcome of parsing formula text.

    Attributes:
        store: The parsed node store.
        diagnostics: Input that was dropped or repaired while parsing.
    """

    store: NodeStore
    diagnostics: list[Diagnostic] = field(default_factory=list)


def to_number(literal: str) -> int | float:
    """Convert a numeric literal, keeping integers as int."""
    if "." in literal:
        return float(literal)
    return int(literal)


class Parser:
    """Recursive descent parser for formula expressions."""

    def __init__(self, lexer: Lexer, catalog: AttributeCatalog, max_depth: int | None = None):
        self.lexer = lexer
        self.catalog = catalog
        self.max_depth = max_depth if max_depth is not None else get_settings().max_nesting_depth
        self.tokens: list[Token] = []
        self.nodes: list[Node] = []
        self.diagnostics: list[Diagnostic] = []

    def note(self, message: str, position: int) -> None:
        """Record dropped or repaired input."""
        self.diagnostics.append(Diagnostic(message, position))

    def parse(self) -> ParseResult:
        """Parse the entire formula."""
        self.tokens = [token for token in self.lexer.tokenize() if token.type != TokenType.EOF]
        self.nodes = []
        self.diagnostics = []
        self.sequence(self.tokens, parent_id=None, depth=0)

        diagnostics = self.lexer.diagnostics + self.diagnostics
        diagnostics.sort(key=lambda d: d.position)
        logger.debug(
            "Parsed formula",
            tokens=len(self.tokens),
            nodes=len(self.nodes),
            diagnostics=len(diagnostics),
        )
        return ParseResult(NodeStore(self.nodes), diagnostics)

    def sequence(self, tokens: list[Token], parent_id: str | None, depth: int) -> None: # noqa: C901
        """Parse a token slice into sibling nodes under ``parent_id``."""
        start = len(self.nodes)
        i = 0
        while i < len(tokens):
            token = tokens[i]
            next_token = tokens[i + 1] if i + 1 < len(tokens) else None
            opens_call = next_token is not None and next_token.type == TokenType.LPAREN

            if token.type == TokenType.FUNCTION:
                if opens_call and is_operator(token.value) and self._follows_operand(parent_id, start):
                    # Infix AND, OR or NOT in front of a parenthesized group
                    self.nodes.append(Node.new_operator(token.value, parent_id))
                    i += 1
                    continue
                if opens_call:
                    i = self._function_call(tokens, i, parent_id, depth)
                    continue
                if is_operator(token.value):
                    # AND, OR and NOT written infix
                    self.nodes.append(Node.new_operator(token.value, parent_id))
                else:
                    self.note(f"Function '{token.value}' is missing its argument list", token.position)
                    self.nodes.append(Node.new_function(token.value, parent_id))
                i += 1
                continue

            if token.type == TokenType.OPERATOR:
                self.nodes.append(Node.new_operator(token.value, parent_id))
            elif token.type == TokenType.ATTRIBUTE:
                attribute = self.catalog.find_by_name(token.value)
                if attribute is not None:
                    self.nodes.append(Node.new_attribute(attribute.id, parent_id))
                else:
                    self.note(f"Unknown attribute '{token.value}'", token.position)
            elif token.type == TokenType.VALUE:
                self.nodes.append(Node.new_value(to_number(token.value), parent_id))
            elif token.type == TokenType.LPAREN:
                i = self._group(tokens, i, parent_id, depth)
                continue
            elif token.type == TokenType.RPAREN:
                self.note("Unmatched ')'", token.position)
            elif token.type == TokenType.COMMA:
                self.note("Unexpected ',' outside a function call", token.position)
            i += 1

    def _follows_operand(self, parent_id: str | None, start: int) -> bool:
        """Check whether the last sibling parsed since ``start`` is an operand."""
        for node in reversed(self.nodes[start:]):
            if node.parent_id == parent_id:
                return node.is_operand
        return False

    def _enter(self, depth: int, token: Token) -> int:
        """Check the nesting limit before descending one level."""
        if depth + 1 > self.max_depth:
            raise FormulaParseError(
                f"Formula nesting exceeds the maximum depth of {self.max_depth}",
                token.position,
            )
        return depth + 1

    def _scan(self, tokens: list[Token], open_index: int) -> tuple[int | None, list[int]]:
        """Find the parenthesis matching ``tokens[open_index]``.

        Returns:
            Index of the matching ')' (None when input ends first) and the
            indexes of commas at the top level of the region.
        """
        depth = 1
        commas: list[int] = []
        for j in range(open_index + 1, len(tokens)):
            token = tokens[j]
            if token.type == TokenType.LPAREN:
                depth += 1
            elif token.type == TokenType.RPAREN:
                depth -= 1
                if depth == 0:
                    return j, commas
            elif token.type == TokenType.COMMA and depth == 1:
                commas.append(j)
        return None, commas

    def _function_call(self, tokens: list[Token], i: int, parent_id: str | None, depth: int) -> int:
        """Parse ``NAME ( arg, arg, ... )`` starting at ``tokens[i]``."""
        name_token = tokens[i]
        open_index = i + 1
        close_index, commas = self._scan(tokens, open_index)
        if close_index is None:
            self.note(f"Missing ')' for function '{name_token.value}'", tokens[open_index].position)
            end = len(tokens)
        else:
            end = close_index

        function = Node.new_function(name_token.value, parent_id)
        self.nodes.append(function)
        inner_depth = self._enter(depth, name_token)

        bounds = [open_index] + commas + [end]
        for argument_index in range(len(bounds) - 1):
            segment = tokens[bounds[argument_index] + 1:bounds[argument_index + 1]]
            if not segment and not commas:
                # name() has no arguments at all
                continue
            group = Node.new_group(function.id, argument_index)
            self.nodes.append(group)
            self.sequence(segment, group.id, inner_depth)

        return end + 1

    def _group(self, tokens: list[Token], i: int, parent_id: str | None, depth: int) -> int:
        """Parse a parenthesized sub-expression starting at ``tokens[i]``."""
        close_index, _ = self._scan(tokens, i)
        if close_index is None:
            self.note("Missing ')'", tokens[i].position)
            end = len(tokens)
        else:
            end = close_index

        group = Node.new_group(parent_id)
        self.nodes.append(group)
        self.sequence(tokens[i + 1:end], group.id, self._enter(depth, tokens[i]))
        return end + 1
