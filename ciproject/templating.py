from __future__ import annotations

import re
from typing import Callable, List

# `$name` or `$dotted.name`; `$$` is a literal dollar sign.
_TOKEN_RE = re.compile(
    r"\$(?:(?P<escaped>\$)|(?P<name>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*))"
)


def parameter_references(template: str) -> List[str]:
    """Return referenced parameter names in first-seen order, without duplicates."""
    out: List[str] = []
    for m in _TOKEN_RE.finditer(template or ""):
        name = m.group("name")
        if name and name not in out:
            out.append(name)
    return out


def render_template(template: str, resolve: Callable[[str], str]) -> str:
    """Substitute every `$name` token in `template` with `resolve(name)`.

    A `$` that does not start an identifier is kept verbatim. Errors raised by
    `resolve` propagate unchanged.
    """

    def _sub(m: "re.Match[str]") -> str:
        if m.group("escaped"):
            return "$"
        return resolve(m.group("name"))

    return _TOKEN_RE.sub(_sub, template or "")
