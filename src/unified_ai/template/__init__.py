"""
template/__init__.py

PURPOSE: Prompt template language (lexer -> parser -> renderer).
DEPENDENCIES: None beyond pydantic

ARCHITECTURE NOTES:
The language is a small Scriban-compatible subset: interpolation,
if/else if/else, for loops with loop metadata, pipes to filters and
whitespace-trimming tag markers. Syntax errors surface at parse time,
before any request is built.
"""

from unified_ai.template.renderer import (
    CONTROL_FIELDS,
    Template,
    bind_variables,
    build_prompt,
    compile_template,
    render_template,
)

__all__ = [
    "CONTROL_FIELDS",
    "Template",
    "bind_variables",
    "build_prompt",
    "compile_template",
    "render_template",
]
