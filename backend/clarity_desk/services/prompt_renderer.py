from __future__ import annotations

import re
from collections.abc import Mapping

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")


class PromptTemplateError(Exception):
    pass


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Substitute ``{{name}}`` placeholders; unknown names are an error."""
    missing: set[str] = set()

    def _substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in values:
            missing.add(key)
            return match.group(0)
        return str(values[key])

    rendered = _PLACEHOLDER.sub(_substitute, template)
    if missing:
        raise PromptTemplateError(f"Unresolved template placeholders: {', '.join(sorted(missing))}")
    return rendered
