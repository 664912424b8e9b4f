from __future__ import annotations

import os
import re
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ValidationError
from .models import PARAMETER_DISPLAY_VALUES, ParameterSet, ParameterSpec

PARAMETER_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*$")

ENV_PARAM_PREFIX = "CIPROJECT_PARAM_"

OS_ALIASES: Dict[str, str] = {
    "linux": "linux",
    "macos": "macos",
    "mac": "macos",
    "darwin": "macos",
    "osx": "macos",
    "windows": "windows",
    "win": "windows",
    "win32": "windows",
}

# Fallback install locations when no JDK_<N>_HOME / JAVA<N>_HOME variable is set.
RUNTIME_HOME_DEFAULTS: Dict[str, str] = {
    "linux": "/usr/lib/jvm/java-{v}-openjdk-amd64",
    "macos": "/Library/Java/JavaVirtualMachines/jdk-{v}.jdk/Contents/Home",
    "windows": "C:\\Program Files\\Java\\jdk-{v}",
}


def validate_parameter_name(name: str) -> None:
    if not PARAMETER_NAME_RE.match(name or ""):
        raise ValidationError(f"Invalid parameter name: {name!r} (expected identifier, dots allowed between segments)")


def normalize_os(os_name: str) -> str:
    key = str(os_name or "").strip().lower()
    if key not in OS_ALIASES:
        raise ValidationError(f"Unknown operating system: {os_name!r} (allowed: {sorted(set(OS_ALIASES.values()))})")
    return OS_ALIASES[key]


def runtime_home_parameter(
    os_name: str,
    java_version: str = "8",
    env: Optional[Mapping[str, str]] = None,
) -> Tuple[str, str]:
    """Compute the `java<N>Home` parameter for one platform.

    Lookup order:
      1) JDK_<N>_HOME
      2) JAVA<N>_HOME
      3) per-OS default install path
    """
    target = normalize_os(os_name)
    v = str(java_version or "").strip()
    if not v.isdigit():
        raise ValidationError(f"Invalid java_version: {java_version!r} (expected digits)")

    env_map = env if env is not None else os.environ
    name = f"java{v}Home"
    for key in (f"JDK_{v}_HOME", f"JAVA{v}_HOME"):
        value = str(env_map.get(key, "") or "").strip()
        if value:
            return name, value
    return name, RUNTIME_HOME_DEFAULTS[target].format(v=v)


def provisioned_from_env(env: Optional[Mapping[str, str]] = None, prefix: str = ENV_PARAM_PREFIX) -> Dict[str, str]:
    """Collect `CIPROJECT_PARAM_<name>=value` variables as provisioned parameter values."""
    env_map = env if env is not None else os.environ
    out: Dict[str, str] = {}
    for k in sorted(env_map.keys()):
        if not k.startswith(prefix):
            continue
        name = k[len(prefix):]
        if not name:
            continue
        out[name] = str(env_map[k])
    return out


def _declared_spec(name: str, raw: Any, path: str) -> ParameterSpec:
    if isinstance(raw, (str, int, float)) and not isinstance(raw, bool):
        return ParameterSpec(name=name, value=str(raw))
    if not isinstance(raw, dict):
        raise ValidationError(f"Invalid {path}: expected string or mapping")

    display = str(raw.get("display") or "NORMAL").strip().upper()
    if display not in PARAMETER_DISPLAY_VALUES:
        raise ValidationError(f"Invalid {path}.display: {display!r} (allowed: {list(PARAMETER_DISPLAY_VALUES)})")
    value = raw.get("value")
    return ParameterSpec(
        name=name,
        value="" if value is None else str(value),
        label=str(raw.get("label") or ""),
        description=str(raw.get("description") or ""),
        display=display,  # type: ignore[arg-type]
    )


def build_parameter_set(
    declared: Optional[Mapping[str, Any]] = None,
    *,
    derived: Optional[Mapping[str, str]] = None,
    provisioned: Optional[Mapping[str, str]] = None,
) -> ParameterSet:
    """Merge derived, declared and provisioned parameters into one ParameterSet.

    - `derived` values (per-OS runtime homes) come first; a declared parameter
      with the same name is a conflict.
    - `provisioned` values override the value of any parameter and may add new ones.
    - derived and provisioned values are literal: `$` in them is not a reference.
    - PROMPT parameters must end up with a non-empty value.
    """
    specs: Dict[str, ParameterSpec] = {}

    for name, value in (derived or {}).items():
        validate_parameter_name(name)
        specs[name] = ParameterSpec(name=name, value=str(value), display="HIDDEN", literal=True)

    for name, raw in (declared or {}).items():
        validate_parameter_name(name)
        if name in specs:
            raise ValidationError(f"Duplicate parameter: {name!r} is both derived and declared")
        specs[name] = _declared_spec(name, raw, f"params.{name}")

    for name, value in (provisioned or {}).items():
        validate_parameter_name(name)
        if name in specs:
            s = specs[name]
            specs[name] = ParameterSpec(
                name=name,
                value=str(value),
                label=s.label,
                description=s.description,
                display=s.display,
                literal=True,
            )
        else:
            specs[name] = ParameterSpec(name=name, value=str(value), literal=True)

    missing = sorted(k for k, s in specs.items() if s.display == "PROMPT" and not s.value.strip())
    if missing:
        raise ValidationError(f"Prompt parameters require a provisioned value: {', '.join(missing)}")

    return ParameterSet(specs)
