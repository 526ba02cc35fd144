"""
lexer.py

PURPOSE: Tokenize prompt template source.
DEPENDENCIES: None (pure Python)

ARCHITECTURE NOTES:
Template source is literal text interleaved with code blocks delimited by
{{ and }}. The lexer produces one flat token stream:

    TEXT  CODE_START  <expression tokens>  CODE_END  TEXT ...

Whitespace control is resolved here, so the parser never sees it:
- {{- / -}} remove all whitespace (including newlines) on that side
- {{~ / ~}} remove spaces and tabs on that side; ~}} also eats one newline
"""

import re
from dataclasses import dataclass
from enum import Enum, auto

from unified_ai.errors import TemplateSyntaxError


class TokenType(Enum):
    """Types of tokens produced by the lexer."""

    TEXT = auto()  # Literal text outside code blocks
    CODE_START = auto()  # {{
    CODE_END = auto()  # }}
    IDENT = auto()  # Names and keywords
    STRING = auto()
    NUMBER = auto()
    OPERATOR = auto()
    EOF = auto()


@dataclass(frozen=True)
class Token:
    """A single token with its position in the template source."""

    type: TokenType
    value: str
    line: int
    column: int


# Longest operators first so "==" wins over "="
OPERATORS = (
    "==", "!=", "<=", ">=", "&&", "||",
    "<", ">", "!", "+", "-", "*", "/", "%", "|", ".", ",", "(", ")", "[", "]",
)  # fmt: skip

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"'}

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_LEADING_LINE_SPACE = re.compile(r"^[ \t]*(?:\r?\n)?")


def position(source: str, offset: int) -> tuple[int, int]:
    """Return the 1-based (line, column) of an offset in the source."""
    line = source.count("\n", 0, offset) + 1
    column = offset - source.rfind("\n", 0, offset)
    return line, column


class _Lexer:
    def __init__(self, source: str):
        self._source = source
        self._pos = 0
        self._tokens: list[Token] = []
        # How the next text segment's leading whitespace is trimmed
        self._trim_next: str | None = None

    def run(self) -> list[Token]:
        source = self._source
        while self._pos < len(source):
            start = source.find("{{", self._pos)
            if start == -1:
                self._emit_text(source[self._pos :], self._pos, None)
                self._pos = len(source)
                break

            marker = source[start + 2 : start + 3]
            trim_before = marker if marker in ("-", "~") else None
            self._emit_text(source[self._pos : start], self._pos, trim_before)
            self._add(TokenType.CODE_START, "{{", start)
            self._pos = start + 2 + (1 if trim_before else 0)
            self._lex_code(start)

        line, column = position(source, len(source))
        self._tokens.append(Token(TokenType.EOF, "", line, column))
        return self._tokens

    def _emit_text(self, text: str, offset: int, trim_before: str | None) -> None:
        if self._trim_next == "-":
            stripped = text.lstrip()
        elif self._trim_next == "~":
            stripped = _LEADING_LINE_SPACE.sub("", text, count=1)
        else:
            stripped = text
        offset += len(text) - len(stripped)
        self._trim_next = None

        if trim_before == "-":
            stripped = stripped.rstrip()
        elif trim_before == "~":
            stripped = stripped.rstrip(" \t")

        if stripped:
            self._add(TokenType.TEXT, stripped, offset)

    def _lex_code(self, block_start: int) -> None:
        source = self._source
        while self._pos < len(source):
            char = source[self._pos]

            if char in " \t\r\n":
                self._pos += 1
                continue

            if source.startswith("}}", self._pos):
                self._close(self._pos, None)
                return

            if char in "-~" and source.startswith("}}", self._pos + 1):
                self._close(self._pos, char)
                return

            if char in "'\"":
                self._lex_string(char)
                continue

            match = _NUMBER.match(source, self._pos)
            if match:
                self._add(TokenType.NUMBER, match.group(), self._pos)
                self._pos = match.end()
                continue

            match = _IDENT.match(source, self._pos)
            if match:
                self._add(TokenType.IDENT, match.group(), self._pos)
                self._pos = match.end()
                continue

            for operator in OPERATORS:
                if source.startswith(operator, self._pos):
                    self._add(TokenType.OPERATOR, operator, self._pos)
                    self._pos += len(operator)
                    break
            else:
                line, column = position(source, self._pos)
                raise TemplateSyntaxError(f"Unexpected character {char!r}", line, column)

        line, column = position(source, block_start)
        raise TemplateSyntaxError("Unclosed '{{' tag", line, column)

    def _close(self, offset: int, trim_after: str | None) -> None:
        end_offset = offset + (1 if trim_after else 0)
        self._add(TokenType.CODE_END, "}}", end_offset)
        self._pos = end_offset + 2
        self._trim_next = trim_after

    def _lex_string(self, quote: str) -> None:
        source = self._source
        start = self._pos
        self._pos += 1
        chars: list[str] = []
        while self._pos < len(source):
            char = source[self._pos]
            if char == quote:
                self._pos += 1
                self._add(TokenType.STRING, "".join(chars), start)
                return
            if char == "\\" and self._pos + 1 < len(source):
                escaped = source[self._pos + 1]
                chars.append(ESCAPES.get(escaped, escaped))
                self._pos += 2
                continue
            chars.append(char)
            self._pos += 1

        line, column = position(source, start)
        raise TemplateSyntaxError("Unterminated string literal", line, column)

    def _add(self, token_type: TokenType, value: str, offset: int) -> None:
        line, column = position(self._source, offset)
        self._tokens.append(Token(token_type, value, line, column))


def tokenize(source: str) -> list[Token]:
    """
    Convert template source into a list of tokens ending with EOF.

    Args:
        source: Template text

    Returns:
        List of Token objects

    Raises:
        TemplateSyntaxError: On an unclosed tag, unterminated string or
            a character that cannot start a token
    """
    return _Lexer(source).run()
