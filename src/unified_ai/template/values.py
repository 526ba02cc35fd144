"""
values.py

PURPOSE: How Python values look and behave inside a template.
DEPENDENCIES: pydantic

ARCHITECTURE NOTES:
- stringify(): the text a value renders as
- public_fields(): the members a template may see on an object
- lookup(): case- and convention-insensitive member access
All three are shared by the renderer, the filters and the prompt binder.
"""

import dataclasses
import inspect
import json
from collections.abc import Mapping, Set
from decimal import Decimal
from enum import Enum, Flag
from typing import Any

from pydantic import BaseModel

from unified_ai.naming import match_key, to_snake_case

# Pseudo-members available on any sized value
SIZE_MEMBERS = frozenset({"size", "count", "length"})


def stringify(value: Any) -> str:
    """
    Render a value as template output.

    - None renders as nothing
    - Booleans render as true/false
    - Enums render as their member name; combined flags as "A, B"
    - Lists render as [a, b]
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Flag):
        names = [member.name or "" for member in type(value) if member and member in value]
        return ", ".join(names) if names else (value.name or "")
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (list, tuple, Set)):
        return "[" + ", ".join(stringify(item) for item in value) + "]"
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    if isinstance(value, Mapping):
        return json.dumps(dict(value), default=str)
    return str(value)


def public_fields(obj: Any) -> dict[str, Any]:
    """
    Return the data members a template may read from an object.

    Pydantic models expose their declared fields, dataclasses their fields,
    mappings their items, and anything else its public instance attributes
    plus public properties. Methods are never exposed.
    """
    if isinstance(obj, BaseModel):
        return {name: getattr(obj, name) for name in type(obj).model_fields}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {field.name: getattr(obj, field.name) for field in dataclasses.fields(obj)}
    if isinstance(obj, Mapping):
        return {str(key): value for key, value in obj.items()}

    members: dict[str, Any] = {}
    for name, value in getattr(obj, "__dict__", {}).items():
        if not name.startswith("_") and not callable(value):
            members[name] = value
    for name, attribute in inspect.getmembers(type(obj)):
        if isinstance(attribute, property) and not name.startswith("_"):
            members[name] = getattr(obj, name)
    return members


def lookup(members: Mapping[str, Any], name: str) -> tuple[bool, Any]:
    """
    Find a member by name, tolerating naming conventions.

    Tries the exact name, then its snake_case form, then a comparison that
    ignores case and separators entirely.

    Returns:
        (found, value)
    """
    if name in members:
        return True, members[name]
    snake = to_snake_case(name)
    if snake in members:
        return True, members[snake]
    loose = match_key(name)
    for key, value in members.items():
        if match_key(key) == loose:
            return True, value
    return False, None


def get_member(target: Any, name: str) -> Any:
    """Read target.name the way a template sees it; missing members are None."""
    if target is None or isinstance(target, (str, int, float, Decimal, bool, Enum)):
        if name in SIZE_MEMBERS and isinstance(target, str):
            return len(target)
        return None

    found, value = lookup(public_fields(target), name)
    if found:
        return value
    if name in SIZE_MEMBERS and hasattr(target, "__len__"):
        return len(target)
    return None


def truthy(value: Any) -> bool:
    """Template truthiness; None, false, zero and empty values are false."""
    if isinstance(value, Flag):
        return bool(value.value)
    if isinstance(value, Enum):
        return True
    return bool(value)
