from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

from .fs import atomic_write_bytes


def read_yaml(path: Path) -> Dict[str, Any]:
    """Read a YAML mapping. An empty file reads as an empty mapping."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping at top level: {path}")
    return data


def write_yaml(path: Path, data: Dict[str, Any]) -> None:
    text = yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)
    atomic_write_bytes(Path(path), text.encode("utf-8"))
