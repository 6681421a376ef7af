"""
Jinja2 template loader for generated Python source.

Loads .jinja2 templates from the templates directory and renders them
with provided context variables.
"""

import re
from functools import lru_cache
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .templates import Template

TEMPLATES_DIR = Path(__file__).parent / "templates"


def _validate_templates():
    """Validate all template constants have corresponding files. Fails fast at import."""
    for name in dir(Template):
        if not name.startswith("_"):
            template_name = getattr(Template, name)
            path = TEMPLATES_DIR / f"{template_name}.jinja2"
            if not path.exists():
                raise FileNotFoundError(f"Template missing: {path}")


_validate_templates()


def python_literal(value: Any) -> str:
    """Python source for a JSON-like value (strings, numbers, lists, dicts...)."""
    return repr(value)


def comment_text(value: Any) -> str:
    """Collapses whitespace so a value fits on one comment line."""
    return re.sub(r"\s+", " ", str(value)).strip()


def docstring_text(value: Any) -> str:
    """One-line text safe inside a triple-quoted literal."""
    return comment_text(value).replace("\\", "\\\\").replace('"', '\\"')


@lru_cache(maxsize=1)
def _get_environment() -> Environment:
    """Create and cache the Jinja2 environment."""
    env = Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
    env.filters["pyrepr"] = python_literal
    env.filters["comment"] = comment_text
    env.filters["docstring"] = docstring_text
    return env


def render(template_name: str, **context) -> str:
    """
    Load and render a Jinja2 template.

    Args:
        template_name: Name of the template file (without .jinja2 extension)
        **context: Variables to pass to the template

    Returns:
        Rendered template string
    """
    env = _get_environment()
    template = env.get_template(f"{template_name}.jinja2")
    return template.render(**context)
