"""
Variable Interpolation

Substitutes `{{name}}` placeholders in tile parameters. Unknown names are left
in place, byte for byte, so an unresolved placeholder stays visible in whatever
the provider receives or reports.
"""

import json
import re
from typing import Any, List, Mapping

PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}", re.ASCII)


def stringify(value: Any) -> str:
    """Textual form of a JSON-like value."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def interpolate(template: str, variables: Mapping[str, Any]) -> str:
    """Replaces each `{{name}}` with `stringify(variables[name])` when present."""

    def _substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        return stringify(variables[name])

    return PLACEHOLDER.sub(_substitute, template)


def find_placeholders(template: str) -> List[str]:
    """Names referenced by `{{name}}` placeholders, in order of appearance."""
    return PLACEHOLDER.findall(template)
