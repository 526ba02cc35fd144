"""
naming.py

PURPOSE: Name normalisation shared by the template binder and the response parser.
DEPENDENCIES: None (pure Python)
"""

import re

_FIRST_CAP = re.compile(r"(.)([A-Z][a-z]+)")
_ALL_CAP = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[\s\-]+")


def to_snake_case(name: str) -> str:
    """
    Convert a field name to lower snake_case.

    ``MainObjects``, ``mainObjects`` and ``main_objects`` all become
    ``main_objects``; ``HTTPStatus`` becomes ``http_status``.
    """
    name = _SEPARATORS.sub("_", name.strip())
    name = _FIRST_CAP.sub(r"\1_\2", name)
    name = _ALL_CAP.sub(r"\1_\2", name)
    return name.lower()


def match_key(name: str) -> str:
    """Loose key used for case- and separator-insensitive lookups."""
    return re.sub(r"[_\-\s]", "", name).lower()
