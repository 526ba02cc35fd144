"""
renderer.py

PURPOSE: Render parsed templates and bind prompt objects to them.
DEPENDENCIES: parser, values, filters

ARCHITECTURE NOTES:
Rendering is a tree walk over the AST with a stack of loop scopes on top
of the bound variables. Name resolution is forgiving: unknown names
(including control fields, which are never bound) resolve to null and
render as nothing. Evaluation errors that cannot be forgiven, such as
iterating a number, raise TemplateRenderError with the position of the
offending tag.

Parsed templates are cached per source string; prompt templates are class
constants, so each is parsed once per process.
"""

import logging
import types
import typing
from collections.abc import Iterable, Mapping, Sequence, Set
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, get_args, get_origin

from pydantic import BaseModel

from unified_ai.errors import TemplateRenderError
from unified_ai.naming import to_snake_case
from unified_ai.template.filters import resolve_filter
from unified_ai.template.parser import (
    Binary,
    Expression,
    ForBlock,
    IfBlock,
    Index,
    Literal,
    Member,
    Node,
    Output,
    Pipe,
    TemplateAst,
    Text,
    Unary,
    Variable,
    parse,
)
from unified_ai.template.values import get_member, lookup, public_fields, stringify, truthy

logger = logging.getLogger(__name__)

# Prompt members that steer the request and are never visible to templates
CONTROL_FIELDS = frozenset(
    {"tools", "tool_choice", "user_name", "files", "model_type", "response_type"}
)

# Attribute holding the template source itself
TEMPLATE_FIELD = "prompt"

LOOP_VARIABLE = "for"

_NUMBERS = (int, float, Decimal)


class Template:
    """A parsed template that can be rendered any number of times."""

    def __init__(self, source: str):
        self.source = source
        self._ast: TemplateAst = parse(source)

    def render(self, variables: Mapping[str, Any] | None = None) -> str:
        """
        Render the template.

        Args:
            variables: Values visible to the template; keys are matched
                case-insensitively after snake_case normalisation

        Returns:
            The rendered text

        Raises:
            TemplateRenderError: If an expression cannot be evaluated
        """
        bound = {to_snake_case(key): value for key, value in (variables or {}).items()}
        output: list[str] = []
        _Renderer(bound).render(self._ast.body, output)
        return "".join(output)


class _Renderer:
    def __init__(self, variables: dict[str, Any]):
        self._globals = variables
        self._scopes: list[dict[str, Any]] = []

    def render(self, nodes: Sequence[Node], output: list[str]) -> None:
        for node in nodes:
            if isinstance(node, Text):
                output.append(node.value)
            elif isinstance(node, Output):
                output.append(stringify(self._evaluate_at(node.expression, node)))
            elif isinstance(node, IfBlock):
                self._render_if(node, output)
            elif isinstance(node, ForBlock):
                self._render_for(node, output)

    def _render_if(self, node: IfBlock, output: list[str]) -> None:
        for condition, body in node.branches:
            if truthy(self._evaluate_at(condition, node)):
                self.render(body, output)
                return
        self.render(node.else_body, output)

    def _render_for(self, node: ForBlock, output: list[str]) -> None:
        items = self._iteration_items(self._evaluate_at(node.iterable, node), node)
        count = len(items)
        for index, item in enumerate(items):
            loop = {
                "index": index,
                "index1": index + 1,
                "rindex": count - index - 1,
                "first": index == 0,
                "last": index == count - 1,
                "even": index % 2 == 0,
                "odd": index % 2 == 1,
                "count": count,
                "length": count,
            }
            self._scopes.append({to_snake_case(node.variable): item, LOOP_VARIABLE: loop})
            try:
                self.render(node.body, output)
            finally:
                self._scopes.pop()

    def _iteration_items(self, value: Any, node: ForBlock) -> list[Any]:
        if value is None:
            return []
        if isinstance(value, Mapping):
            return [{"key": key, "value": item} for key, item in value.items()]
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise TemplateRenderError(
                f"Cannot iterate over a value of type {type(value).__name__} "
                f"(line {node.line}, column {node.column})"
            )
        return list(value)

    # -- expressions --------------------------------------------------------

    def _evaluate_at(self, expression: Expression, node: Output | IfBlock | ForBlock) -> Any:
        try:
            return self._evaluate(expression)
        except TemplateRenderError as e:
            raise TemplateRenderError(f"{e} (line {node.line}, column {node.column})") from e

    def _evaluate(self, expression: Expression) -> Any:
        if isinstance(expression, Literal):
            return expression.value
        if isinstance(expression, Variable):
            return self._resolve(expression.name)
        if isinstance(expression, Member):
            return get_member(self._evaluate(expression.target), expression.name)
        if isinstance(expression, Index):
            return self._index(self._evaluate(expression.target), self._evaluate(expression.index))
        if isinstance(expression, Unary):
            return self._unary(expression.operator, self._evaluate(expression.operand))
        if isinstance(expression, Binary):
            return self._binary(expression)
        if isinstance(expression, Pipe):
            return self._pipe(expression)
        raise TemplateRenderError(f"Unknown expression {expression!r}")

    def _resolve(self, name: str) -> Any:
        for scope in reversed(self._scopes):
            found, value = lookup(scope, name)
            if found:
                return value
        if name == LOOP_VARIABLE:
            return None
        _, value = lookup(self._globals, name)
        return value

    def _index(self, target: Any, index: Any) -> Any:
        if target is None:
            return None
        if isinstance(target, Mapping):
            _, value = lookup(target, stringify(index))
            return value
        if isinstance(target, (list, tuple, str)):
            if not isinstance(index, int) or isinstance(index, bool):
                raise TemplateRenderError(
                    f"List index must be an integer, got {stringify(index)!r}"
                )
            if -len(target) <= index < len(target):
                return target[index]
            return None
        return get_member(target, stringify(index))

    def _unary(self, operator: str, operand: Any) -> Any:
        if operator == "!":
            return not truthy(operand)
        if isinstance(operand, _NUMBERS) and not isinstance(operand, bool):
            return -operand
        raise TemplateRenderError(f"Cannot negate a value of type {type(operand).__name__}")

    def _binary(self, expression: Binary) -> Any:
        operator = expression.operator
        left = self._evaluate(expression.left)

        # Short-circuit
        if operator == "&&":
            return truthy(left) and truthy(self._evaluate(expression.right))
        if operator == "||":
            return truthy(left) or truthy(self._evaluate(expression.right))

        right = self._evaluate(expression.right)
        if operator == "==":
            return _equals(left, right)
        if operator == "!=":
            return not _equals(left, right)
        if operator in ("<", ">", "<=", ">="):
            return _compare(operator, left, right)
        return _arithmetic(operator, left, right)

    def _pipe(self, expression: Pipe) -> Any:
        function = resolve_filter(expression.filter_name)
        if function is None:
            raise TemplateRenderError(f"Unknown filter '{expression.filter_name}'")
        value = self._evaluate(expression.target)
        arguments = [self._evaluate(argument) for argument in expression.arguments]
        try:
            return function(value, *arguments)
        except TypeError as e:
            raise TemplateRenderError(f"Filter '{expression.filter_name}': {e}") from e


def _enum_matches(member: Enum, text: str) -> bool:
    wanted = text.lower()
    if (member.name or "").lower() == wanted:
        return True
    return isinstance(member.value, str) and member.value.lower() == wanted


def _equals(left: Any, right: Any) -> bool:
    if isinstance(left, Enum) and isinstance(right, str):
        return _enum_matches(left, right)
    if isinstance(right, Enum) and isinstance(left, str):
        return _enum_matches(right, left)
    return bool(left == right)


def _compare(operator: str, left: Any, right: Any) -> bool:
    # Null never orders against anything
    if left is None or right is None:
        return False
    try:
        if operator == "<":
            return bool(left < right)
        if operator == ">":
            return bool(left > right)
        if operator == "<=":
            return bool(left <= right)
        return bool(left >= right)
    except TypeError as e:
        raise TemplateRenderError(
            f"Cannot compare {type(left).__name__} with {type(right).__name__}"
        ) from e


def _coerce_numbers(left: Any, right: Any) -> tuple[Any, Any]:
    if isinstance(left, Decimal) and isinstance(right, float):
        return left, Decimal(str(right))
    if isinstance(right, Decimal) and isinstance(left, float):
        return Decimal(str(left)), right
    return left, right


def _arithmetic(operator: str, left: Any, right: Any) -> Any:
    if operator == "+":
        if isinstance(left, str) or isinstance(right, str):
            return stringify(left) + stringify(right)
        if isinstance(left, list) and isinstance(right, list):
            return left + right

    numeric = all(
        isinstance(value, _NUMBERS) and not isinstance(value, bool) for value in (left, right)
    )
    if not numeric:
        raise TemplateRenderError(
            f"Operator '{operator}' is not supported between "
            f"{type(left).__name__} and {type(right).__name__}"
        )

    left, right = _coerce_numbers(left, right)
    if operator in ("/", "%") and right == 0:
        raise TemplateRenderError("Division by zero")
    if operator == "+":
        return left + right
    if operator == "-":
        return left - right
    if operator == "*":
        return left * right
    if operator == "/":
        return left / right
    return left % right


@lru_cache(maxsize=256)
def compile_template(source: str) -> Template:
    """Parse a template once and reuse it; raises TemplateSyntaxError."""
    return Template(source)


def render_template(source: str, variables: Mapping[str, Any] | None = None) -> str:
    """
    Render template source against a mapping of variables.

    Args:
        source: Template text
        variables: Values visible to the template

    Returns:
        The rendered text

    Raises:
        TemplateSyntaxError: If the template is malformed
        TemplateRenderError: If an expression cannot be evaluated
    """
    return compile_template(source).render(variables)


def _field_annotations(cls: type) -> dict[str, Any]:
    if issubclass(cls, BaseModel):
        return {name: field.annotation for name, field in cls.model_fields.items()}
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        logger.debug(f"Could not resolve annotations of {cls.__name__}")
        return {}


def _is_collection_annotation(annotation: Any) -> bool:
    origin = get_origin(annotation)
    if origin is typing.Annotated:
        return _is_collection_annotation(get_args(annotation)[0])
    if origin is typing.Union or origin is types.UnionType:
        return any(
            _is_collection_annotation(arg) for arg in get_args(annotation) if arg is not type(None)
        )

    container = origin or annotation
    if not isinstance(container, type) or issubclass(container, (str, bytes, Mapping)):
        return False
    return issubclass(container, (Sequence, Set))


def bind_variables(prompt: Any) -> dict[str, Any]:
    """
    Collect the template variables of a prompt object.

    Every public field is bound under its snake_case name, except the
    control fields and the template itself. A None collection field is
    bound as an empty list; any other None field is left unbound.

    Args:
        prompt: A PromptBase, dataclass or plain object

    Returns:
        Mapping of variable name to value
    """
    annotations = _field_annotations(type(prompt))
    variables: dict[str, Any] = {}
    for name, value in public_fields(prompt).items():
        key = to_snake_case(name)
        if key in CONTROL_FIELDS or key == TEMPLATE_FIELD:
            continue
        if value is None:
            if _is_collection_annotation(annotations.get(name)):
                variables[key] = []
            continue
        variables[key] = value
    return variables


def build_prompt(prompt: Any) -> str:
    """
    Render a prompt object's template against its own fields.

    Args:
        prompt: Object with a ``prompt`` template string and data fields

    Returns:
        The literal prompt text to send to a model

    Raises:
        TemplateSyntaxError: If the template is malformed
        TemplateRenderError: If the object has no template or an expression fails
    """
    source = getattr(prompt, TEMPLATE_FIELD, None)
    if not isinstance(source, str):
        raise TemplateRenderError(f"{type(prompt).__name__} has no '{TEMPLATE_FIELD}' template")
    text = render_template(source, bind_variables(prompt))
    logger.debug(f"Rendered {type(prompt).__name__}: {len(text)} characters")
    return text
