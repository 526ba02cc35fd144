"""
filters.py

PURPOSE: Built-in pipe filters for templates ({{ name | upcase }}).
DEPENDENCIES: None (pure Python)

ARCHITECTURE NOTES:
Filters receive the piped value first, then any literal arguments.
Names may carry a "string." or "array." namespace prefix; the parser
validates names against FILTERS so an unknown filter fails at parse time.
"""

from collections.abc import Callable, Mapping, Sized
from typing import Any

from unified_ai.errors import TemplateRenderError
from unified_ai.template.values import stringify


def _size(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, Sized):
        return len(value)
    raise TemplateRenderError(f"size: value of type {type(value).__name__} has no size")


def _join(value: Any, separator: Any = ", ") -> str:
    if value is None:
        return ""
    if isinstance(value, (str, Mapping)) or not hasattr(value, "__iter__"):
        raise TemplateRenderError("join: value is not a list")
    return stringify(separator).join(stringify(item) for item in value)


def _first(value: Any) -> Any:
    if not value:
        return None
    return list(value)[0]


def _last(value: Any) -> Any:
    if not value:
        return None
    return list(value)[-1]


FILTERS: dict[str, Callable[..., Any]] = {
    "upcase": lambda value: stringify(value).upper(),
    "downcase": lambda value: stringify(value).lower(),
    "capitalize": lambda value: stringify(value)[:1].upper() + stringify(value)[1:],
    "strip": lambda value: stringify(value).strip(),
    "size": _size,
    "join": _join,
    "first": _first,
    "last": _last,
    "default": lambda value, fallback="": fallback if value is None or value == "" else value,
}


def resolve_filter(name: str) -> Callable[..., Any] | None:
    """Look up a filter by name, ignoring a string./array. namespace."""
    namespace, _, short = name.rpartition(".")
    if namespace and namespace not in ("string", "array", "object"):
        return None
    return FILTERS.get(short.lower())
