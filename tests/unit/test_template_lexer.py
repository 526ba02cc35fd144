"""
TEST DOC: Template Lexer

WHAT: Tests for template tokenization
WHY: Positions and whitespace trimming are decided here and nowhere else
HOW: Tokenize small templates and inspect the token stream

CASES:
- Text and code blocks
- Operators, strings and numbers
- Whitespace control markers

EDGE CASES:
- Unclosed tags
- Unterminated strings
- Characters that start no token
"""

import pytest

from unified_ai.errors import TemplateSyntaxError
from unified_ai.template.lexer import TokenType, position, tokenize


def kinds(source: str) -> list[TokenType]:
    return [token.type for token in tokenize(source)]


def texts(source: str) -> list[str]:
    return [token.value for token in tokenize(source) if token.type is TokenType.TEXT]


class TestTokenize:
    """Tests for the token stream."""

    def test_plain_text(self):
        """Text without tags is a single TEXT token."""
        tokens = tokenize("Hello world")
        assert [t.type for t in tokens] == [TokenType.TEXT, TokenType.EOF]
        assert tokens[0].value == "Hello world"

    def test_empty_source(self):
        """Empty source only produces EOF."""
        assert kinds("") == [TokenType.EOF]

    def test_interpolation(self):
        """A code block is framed by CODE_START and CODE_END."""
        assert kinds("Hi {{ name }}!") == [
            TokenType.TEXT,
            TokenType.CODE_START,
            TokenType.IDENT,
            TokenType.CODE_END,
            TokenType.TEXT,
            TokenType.EOF,
        ]

    def test_operators_longest_first(self):
        """Two-character operators are not split."""
        tokens = tokenize("{{ a == b && c <= d }}")
        operators = [t.value for t in tokens if t.type is TokenType.OPERATOR]
        assert operators == ["==", "&&", "<="]

    def test_member_access(self):
        """Dots are separate operator tokens."""
        tokens = tokenize("{{ user.name }}")
        values = [t.value for t in tokens if t.type in (TokenType.IDENT, TokenType.OPERATOR)]
        assert values == ["user", ".", "name"]

    def test_numbers(self):
        """Integers and decimals are NUMBER tokens."""
        tokens = tokenize("{{ 3 + 4.25 }}")
        numbers = [t.value for t in tokens if t.type is TokenType.NUMBER]
        assert numbers == ["3", "4.25"]

    def test_strings_with_escapes(self):
        """Both quote styles work and escapes are decoded."""
        tokens = tokenize("{{ 'it\\'s' + \"a\\tb\" }}")
        strings = [t.value for t in tokens if t.type is TokenType.STRING]
        assert strings == ["it's", "a\tb"]

    def test_braces_inside_strings(self):
        """A closing brace pair inside a string does not end the block."""
        tokens = tokenize("{{ '}}' }}")
        strings = [t.value for t in tokens if t.type is TokenType.STRING]
        assert strings == ["}}"]


class TestPositions:
    """Tests for line and column tracking."""

    def test_position_helper(self):
        """Offsets map to 1-based line and column."""
        assert position("ab\ncd", 0) == (1, 1)
        assert position("ab\ncd", 3) == (2, 1)
        assert position("ab\ncd", 4) == (2, 2)

    def test_token_on_second_line(self):
        """Tokens report where they start."""
        tokens = tokenize("line one\n{{ x }}")
        ident = next(t for t in tokens if t.type is TokenType.IDENT)
        assert (ident.line, ident.column) == (2, 4)


class TestWhitespaceControl:
    """Tests for - and ~ trim markers."""

    def test_dash_trims_everything(self):
        """{{- and -}} remove all whitespace including newlines."""
        assert texts("a \n {{- x -}} \n b") == ["a", "b"]

    def test_tilde_trims_spaces_only_before(self):
        """{{~ keeps the preceding newline."""
        assert texts("a\n   {{~ x }}") == ["a\n"]

    def test_tilde_eats_one_newline_after(self):
        """~}} removes trailing spaces and one newline."""
        assert texts("{{ x ~}}  \n\nb") == ["\nb"]

    def test_no_markers_keep_whitespace(self):
        """Without markers whitespace is preserved."""
        assert texts("a {{ x }} b") == ["a ", " b"]


class TestLexerErrors:
    """Tests for syntax errors raised by the lexer."""

    def test_unclosed_tag(self):
        """A missing }} reports the opening tag position."""
        with pytest.raises(TemplateSyntaxError) as excinfo:
            tokenize("Hi {{ name")
        assert "Unclosed" in str(excinfo.value)
        assert (excinfo.value.line, excinfo.value.column) == (1, 4)

    def test_unterminated_string(self):
        """A string without its closing quote is an error."""
        with pytest.raises(TemplateSyntaxError, match="Unterminated string"):
            tokenize("{{ 'abc }}")

    def test_unexpected_character(self):
        """Characters outside the grammar are rejected."""
        with pytest.raises(TemplateSyntaxError, match="Unexpected character"):
            tokenize("{{ a @ b }}")
