"""Tests for the formula lexer."""

import pytest

from formulabase.core.formula.lexer import Lexer, TokenType, function_spans


def tokens_of(text: str):
    return [token for token in Lexer(text).tokenize() if token.type != TokenType.EOF]


class TestLexerBasics:
    """Test basic lexer functionality."""

    def test_empty_string(self):
        """Test lexing empty string."""
        lexer = Lexer("")
        token = lexer.get_next_token()
        assert token.type == TokenType.EOF

    def test_whitespace_only(self):
        """Test lexing whitespace."""
        lexer = Lexer("   \t\n  ")
        token = lexer.get_next_token()
        assert token.type == TokenType.EOF
        assert lexer.diagnostics == []

    def test_tokenize_ends_with_eof(self):
        """Test that tokenize yields EOF last."""
        tokens = list(Lexer("1").tokenize())
        assert [t.type for t in tokens] == [TokenType.VALUE, TokenType.EOF]


class TestLexerOperands:
    """Test lexing attributes and values."""

    def test_attribute_braces_stripped(self):
        """Test that attribute tokens carry the bare name."""
        token = Lexer("{Unit Price}").get_next_token()
        assert token.type == TokenType.ATTRIBUTE
        assert token.value == "Unit Price"
        assert token.position == 0

    def test_integer_value(self):
        """Test lexing an integer literal."""
        token = Lexer("42").get_next_token()
        assert token.type == TokenType.VALUE
        assert token.value == "42"

    def test_decimal_value(self):
        """Test lexing a decimal literal."""
        token = Lexer("3.14").get_next_token()
        assert token.type == TokenType.VALUE
        assert token.value == "3.14"

    def test_leading_minus_is_operator(self):
        """Test that a sign is never part of a number."""
        tokens = tokens_of("-5")
        assert [(t.type, t.value) for t in tokens] == [
            (TokenType.OPERATOR, "-"),
            (TokenType.VALUE, "5"),
        ]

    def test_malformed_number_dropped(self):
        """Test that a run like 1.2.3 is dropped with a diagnostic."""
        lexer = Lexer("1.2.3")
        assert lexer.get_next_token().type == TokenType.EOF
        assert len(lexer.diagnostics) == 1
        assert "Malformed number" in lexer.diagnostics[0].message


class TestLexerOperators:
    """Test lexing operator symbols and keywords."""

    @pytest.mark.parametrize("symbol", ["+", "-", "*", "/", "**", "%", "==", "!=", ">", "<", ">=", "<="])
    def test_symbol_operators(self, symbol):
        """Test every symbolic operator lexes to a single token."""
        token = Lexer(symbol).get_next_token()
        assert token.type == TokenType.OPERATOR
        assert token.value == symbol

    def test_keyword_prefers_function(self):
        """Test that names in both sets are lexed as functions."""
        token = Lexer("AND").get_next_token()
        assert token.type == TokenType.FUNCTION
        assert token.value == "AND"

    def test_unknown_symbol_run_dropped(self):
        """Test that an unrecognised operator run is skipped."""
        lexer = Lexer("+-")
        assert lexer.get_next_token().type == TokenType.EOF
        assert "Unrecognized input '+-'" in lexer.diagnostics[0].message


class TestLexerExpressions:
    """Test lexing complete expressions."""

    def test_simple_product(self):
        """Test lexing a product of two attributes."""
        tokens = tokens_of("{Price} * {Quantity}")

        assert [t.type for t in tokens] == [
            TokenType.ATTRIBUTE,
            TokenType.OPERATOR,
            TokenType.ATTRIBUTE,
        ]
        assert [t.position for t in tokens] == [0, 8, 10]
        assert tokens[2].value == "Quantity"

    def test_function_call(self):
        """Test lexing a function call with two arguments."""
        tokens = tokens_of("atan2(1, 2)")

        assert [t.type for t in tokens] == [
            TokenType.FUNCTION,
            TokenType.LPAREN,
            TokenType.VALUE,
            TokenType.COMMA,
            TokenType.VALUE,
            TokenType.RPAREN,
        ]
        assert tokens[0].value == "atan2"

    def test_unknown_name_dropped(self):
        """Test that unknown identifiers are skipped, not raised."""
        lexer = Lexer("foo + 1")
        tokens = [t for t in lexer.tokenize() if t.type != TokenType.EOF]

        assert [t.value for t in tokens] == ["+", "1"]
        assert len(lexer.diagnostics) == 1
        assert "foo" in lexer.diagnostics[0].message
        assert lexer.diagnostics[0].position == 0


class TestLexerLeniency:
    """Test that the lexer never fails on odd input."""

    def test_unterminated_attribute(self):
        """Test that an unclosed brace is skipped along with the name after it."""
        lexer = Lexer("{Price")
        tokens = list(lexer.tokenize())

        assert [t.type for t in tokens] == [TokenType.EOF]
        assert lexer.diagnostics[0].message == "Unterminated attribute reference"

    def test_unexpected_characters(self):
        """Test that stray characters are skipped one at a time."""
        lexer = Lexer("@#1")
        tokens = tokens_of("@#1")

        assert [t.value for t in tokens] == ["1"]
        list(lexer.tokenize())
        assert [d.position for d in lexer.diagnostics] == [0, 1]

    def test_diagnostic_str(self):
        """Test diagnostic string formatting."""
        lexer = Lexer("$")
        list(lexer.tokenize())
        assert str(lexer.diagnostics[0]) == "Unexpected character '$' at position 0"


class TestFunctionSpans:
    """Test locating function calls in formula text."""

    def test_nested_calls(self):
        """Test spans and depths of nested calls."""
        spans = function_spans("IF({VIP}, sqrt({Price}), 0)")

        assert [(s.name, s.start, s.open_paren, s.close_paren, s.depth) for s in spans] == [
            ("IF", 0, 2, 26, 0),
            ("sqrt", 10, 14, 22, 1),
        ]

    def test_plain_parentheses_do_not_close_calls(self):
        """Test that an inner plain group leaves the call open."""
        spans = function_spans("abs((1 + 2))")

        assert len(spans) == 1
        assert spans[0].close_paren == 11

    def test_infix_keyword_before_group(self):
        """Test that AND between an operand and a parenthesis is not a call."""
        assert function_spans("{VIP} AND ({VIP} OR {VIP})") == []

    def test_keyword_call_at_start(self):
        """Test that AND at the start of a formula is a call."""
        spans = function_spans("AND({VIP}, {VIP})")
        assert [span.name for span in spans] == ["AND"]

    def test_unclosed_call_not_reported(self):
        """Test that a call left open is ignored."""
        assert function_spans("sqrt(1") == []
