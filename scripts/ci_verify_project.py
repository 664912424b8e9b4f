#!/usr/bin/env python3
"""CI guard: every shipped project declaration loads and renders.

Checks the embedded declaration and each config/*.yml file. PROMPT parameters
are provisioned with a placeholder so the rest of the declaration is still checked.
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from ciproject.config import load_declaration_file
from ciproject.errors import DescriptorError
from ciproject.host import RecordingHost, register_project
from ciproject.loader import load, render_command_line


def _die(msg: str) -> None:
    print(f"[CI_VERIFY][FAIL] {msg}", file=sys.stderr)
    raise SystemExit(2)


def _ok(msg: str) -> None:
    print(f"[CI_VERIFY][OK] {msg}")


def _prompt_placeholders(declaration: Mapping[str, Any]) -> Dict[str, str]:
    params = (declaration.get("project") or {}).get("params") or {}
    return {
        name: f"<{name}>"
        for name, raw in params.items()
        if isinstance(raw, dict) and str(raw.get("display") or "").upper() == "PROMPT"
    }


def _verify(label: str, declaration: Optional[Mapping[str, Any]] = None) -> None:
    provisioned = _prompt_placeholders(declaration) if declaration is not None else {}
    try:
        d = load(declaration, provisioned=provisioned)
        register_project(d, RecordingHost())
    except DescriptorError as e:
        _die(f"{label}: {e}")
    for bc in d.build_configurations:
        for step in bc.steps:
            _ok(f"{label} {bc.id}: {render_command_line(step, d.parameters)}")


def main() -> int:
    _verify("embedded")
    for p in sorted((_REPO_ROOT / "config").glob("*.yml")):
        try:
            data = load_declaration_file(p)
        except DescriptorError as e:
            _die(str(e))
        _verify(p.name, data)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
