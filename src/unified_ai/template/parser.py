"""
parser.py

PURPOSE: Parse template tokens into an AST.
DEPENDENCIES: lexer, filters

ARCHITECTURE NOTES:
Statements (one per code block):
    {{ expr }}                         -> Output
    {{ if expr }} ... {{ else if expr }} ... {{ else }} ... {{ end }}
    {{ for name in expr }} ... {{ end }}

Expression grammar, lowest precedence first:
    pipe       := or ( "|" FILTER arg* )*
    or         := and ( ("||" | "or") and )*
    and        := comparison ( ("&&" | "and") comparison )*
    comparison := additive ( ("==" | "!=" | "<" | ">" | "<=" | ">=") additive )*
    additive   := term ( ("+" | "-") term )*
    term       := unary ( ("*" | "/" | "%") unary )*
    unary      := ("!" | "not" | "-") unary | postfix
    postfix    := primary ( "." NAME | "[" pipe "]" )*
    primary    := NUMBER | STRING | true | false | null | NAME | "(" pipe ")"

All structural problems (unknown filters, unmatched end/else, unclosed
blocks) are reported as TemplateSyntaxError while parsing, so a bad
template never reaches rendering.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Union

from unified_ai.errors import TemplateSyntaxError
from unified_ai.template.filters import resolve_filter
from unified_ai.template.lexer import Token, TokenType, tokenize

KEYWORDS = frozenset(
    {"if", "else", "end", "for", "in", "and", "or", "not", "true", "false", "null"}
)

COMPARISON_OPERATORS = frozenset({"==", "!=", "<", ">", "<=", ">="})


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class Member:
    target: "Expression"
    name: str


@dataclass(frozen=True)
class Index:
    target: "Expression"
    index: "Expression"


@dataclass(frozen=True)
class Unary:
    operator: str
    operand: "Expression"


@dataclass(frozen=True)
class Binary:
    operator: str
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class Pipe:
    target: "Expression"
    filter_name: str
    arguments: tuple["Expression", ...]


Expression = Union[Literal, Variable, Member, Index, Unary, Binary, Pipe]


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Output:
    expression: Expression
    line: int
    column: int


@dataclass(frozen=True)
class IfBlock:
    """Conditional; branches are tried in order, else_body runs if none match."""

    branches: tuple[tuple[Expression, tuple["Node", ...]], ...]
    else_body: tuple["Node", ...]
    line: int
    column: int


@dataclass(frozen=True)
class ForBlock:
    variable: str
    iterable: Expression
    body: tuple["Node", ...]
    line: int
    column: int


Node = Union[Text, Output, IfBlock, ForBlock]


@dataclass(frozen=True)
class TemplateAst:
    """Root of a parsed template."""

    body: tuple[Node, ...]


class _Parser:
    def __init__(self, tokens: list[Token]):
        self._tokens = tokens
        self._pos = 0

    # -- token helpers ------------------------------------------------------

    def _peek(self, ahead: int = 0) -> Token:
        index = min(self._pos + ahead, len(self._tokens) - 1)
        return self._tokens[index]

    def _next(self) -> Token:
        token = self._peek()
        if token.type is not TokenType.EOF:
            self._pos += 1
        return token

    def _is_operator(self, *values: str) -> bool:
        token = self._peek()
        return token.type is TokenType.OPERATOR and token.value in values

    def _is_keyword(self, *values: str) -> bool:
        token = self._peek()
        return token.type is TokenType.IDENT and token.value in values

    def _expect_code_end(self) -> None:
        token = self._next()
        if token.type is not TokenType.CODE_END:
            raise TemplateSyntaxError(
                f"Expected '}}}}' but found {token.value or token.type.name!r}",
                token.line,
                token.column,
            )

    def _expect_name(self) -> Token:
        token = self._next()
        if token.type is not TokenType.IDENT or token.value in KEYWORDS:
            raise TemplateSyntaxError(
                f"Expected a name but found {token.value or token.type.name!r}",
                token.line,
                token.column,
            )
        return token

    # -- statements ---------------------------------------------------------

    def parse(self) -> TemplateAst:
        body, _ = self._parse_body(frozenset(), None)
        return TemplateAst(tuple(body))

    def _parse_body(
        self, stop: frozenset[str], opener: Token | None
    ) -> tuple[list[Node], Token | None]:
        """
        Parse statements until one of the stop keywords starts a code block.

        The stop keyword token is left unconsumed for the caller.
        """
        nodes: list[Node] = []
        while True:
            token = self._next()
            if token.type is TokenType.EOF:
                if opener is not None:
                    raise TemplateSyntaxError(
                        f"'{opener.value}' block is never closed with 'end'",
                        opener.line,
                        opener.column,
                    )
                return nodes, None

            if token.type is TokenType.TEXT:
                nodes.append(Text(token.value))
                continue

            # CODE_START
            head = self._peek()
            if head.type is TokenType.CODE_END:
                self._next()
                continue

            if head.type is TokenType.IDENT and head.value in ("else", "end"):
                if head.value not in stop:
                    raise TemplateSyntaxError(
                        f"Unexpected '{head.value}'", head.line, head.column
                    )
                return nodes, head

            if self._is_keyword("if"):
                nodes.append(self._parse_if())
            elif self._is_keyword("for") and not (
                self._peek(1).type is TokenType.OPERATOR and self._peek(1).value == "."
            ):
                nodes.append(self._parse_for())
            else:
                expression = self._parse_expression()
                self._expect_code_end()
                nodes.append(Output(expression, head.line, head.column))

    def _parse_if(self) -> IfBlock:
        keyword = self._next()
        condition = self._parse_expression()
        self._expect_code_end()

        branches: list[tuple[Expression, tuple[Node, ...]]] = []
        while True:
            body, closer = self._parse_body(frozenset({"else", "end"}), keyword)
            branches.append((condition, tuple(body)))
            self._next()
            assert closer is not None

            if closer.value == "end":
                self._expect_code_end()
                return IfBlock(tuple(branches), (), keyword.line, keyword.column)

            if self._is_keyword("if"):
                self._next()
                condition = self._parse_expression()
                self._expect_code_end()
                continue

            self._expect_code_end()
            else_body, _ = self._parse_body(frozenset({"end"}), keyword)
            self._next()
            self._expect_code_end()
            return IfBlock(tuple(branches), tuple(else_body), keyword.line, keyword.column)

    def _parse_for(self) -> ForBlock:
        keyword = self._next()
        variable = self._expect_name()
        if not self._is_keyword("in"):
            token = self._peek()
            raise TemplateSyntaxError("Expected 'in' after loop variable", token.line, token.column)
        self._next()
        iterable = self._parse_expression()
        self._expect_code_end()

        body, _ = self._parse_body(frozenset({"end"}), keyword)
        self._next()
        self._expect_code_end()
        return ForBlock(variable.value, iterable, tuple(body), keyword.line, keyword.column)

    # -- expressions --------------------------------------------------------

    def _parse_expression(self) -> Expression:
        token = self._peek()
        if token.type in (TokenType.CODE_END, TokenType.EOF):
            raise TemplateSyntaxError("Expected an expression", token.line, token.column)

        expression = self._parse_or()
        while self._is_operator("|"):
            self._next()
            expression = self._parse_filter(expression)
        return expression

    def _parse_filter(self, target: Expression) -> Pipe:
        start = self._expect_name()
        name = start.value
        while self._is_operator(".") and self._peek(1).type is TokenType.IDENT:
            self._next()
            name += "." + self._next().value

        if resolve_filter(name) is None:
            raise TemplateSyntaxError(f"Unknown filter '{name}'", start.line, start.column)

        # Arguments are space separated primaries: {{ tags | join ", " }}
        arguments: list[Expression] = []
        while self._peek().type in (TokenType.IDENT, TokenType.STRING, TokenType.NUMBER) or (
            self._is_operator("(")
        ):
            if self._is_keyword("and", "or"):
                break
            arguments.append(self._parse_postfix())
        return Pipe(target, name, tuple(arguments))

    def _parse_binary(self, operand, operators: frozenset[str], keywords: dict[str, str]):
        left = operand()
        while True:
            token = self._peek()
            if token.type is TokenType.OPERATOR and token.value in operators:
                operator = token.value
            elif token.type is TokenType.IDENT and token.value in keywords:
                operator = keywords[token.value]
            else:
                return left
            self._next()
            left = Binary(operator, left, operand())

    def _parse_or(self) -> Expression:
        return self._parse_binary(self._parse_and, frozenset({"||"}), {"or": "||"})

    def _parse_and(self) -> Expression:
        return self._parse_binary(self._parse_comparison, frozenset({"&&"}), {"and": "&&"})

    def _parse_comparison(self) -> Expression:
        return self._parse_binary(self._parse_additive, COMPARISON_OPERATORS, {})

    def _parse_additive(self) -> Expression:
        return self._parse_binary(self._parse_term, frozenset({"+", "-"}), {})

    def _parse_term(self) -> Expression:
        return self._parse_binary(self._parse_unary, frozenset({"*", "/", "%"}), {})

    def _parse_unary(self) -> Expression:
        if self._is_operator("!", "-") or self._is_keyword("not"):
            operator = self._next().value
            return Unary("!" if operator == "not" else operator, self._parse_unary())
        return self._parse_postfix()

    def _parse_postfix(self) -> Expression:
        expression = self._parse_primary()
        while True:
            if self._is_operator("."):
                self._next()
                name = self._next()
                if name.type is not TokenType.IDENT:
                    raise TemplateSyntaxError(
                        "Expected a member name after '.'", name.line, name.column
                    )
                expression = Member(expression, name.value)
            elif self._is_operator("["):
                self._next()
                index = self._parse_expression()
                closing = self._next()
                if closing.type is not TokenType.OPERATOR or closing.value != "]":
                    raise TemplateSyntaxError("Expected ']'", closing.line, closing.column)
                expression = Index(expression, index)
            else:
                return expression

    def _parse_primary(self) -> Expression:
        token = self._next()

        if token.type is TokenType.NUMBER:
            return Literal(Decimal(token.value) if "." in token.value else int(token.value))
        if token.type is TokenType.STRING:
            return Literal(token.value)

        if token.type is TokenType.IDENT:
            if token.value == "true":
                return Literal(True)
            if token.value == "false":
                return Literal(False)
            if token.value == "null":
                return Literal(None)
            if token.value in KEYWORDS and token.value != "for":
                raise TemplateSyntaxError(
                    f"Unexpected keyword '{token.value}'", token.line, token.column
                )
            return Variable(token.value)

        if token.type is TokenType.OPERATOR and token.value == "(":
            expression = self._parse_expression()
            closing = self._next()
            if closing.type is not TokenType.OPERATOR or closing.value != ")":
                raise TemplateSyntaxError("Expected ')'", closing.line, closing.column)
            return expression

        raise TemplateSyntaxError(
            f"Unexpected {token.value or token.type.name!r}", token.line, token.column
        )


def parse(source: str) -> TemplateAst:
    """
    Parse template source into an AST.

    Args:
        source: Template text

    Returns:
        TemplateAst ready for rendering

    Raises:
        TemplateSyntaxError: If the template is malformed
    """
    return _Parser(tokenize(source)).parse()
