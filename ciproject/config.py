from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import jsonschema

from .errors import ValidationError
from .models import FAILURE_ACTION_VALUES, PARAMETER_DISPLAY_VALUES, TRIGGER_KIND_VALUES
from .params import OS_ALIASES
from .utils.yamlio import read_yaml

SETTINGS_ENV_VAR = "CIPROJECT_SETTINGS"
DEFAULT_SETTINGS_REL_PATH = Path("config/project.yml")


def resolve_settings_path(repo_root: Path, cli_path: Optional[str] = None) -> Path:
    """Resolve the project declaration YAML path.

    Precedence:
      1) CLI flag --settings
      2) CIPROJECT_SETTINGS
      3) <repo_root>/config/project.yml
    """
    if cli_path and str(cli_path).strip():
        return Path(str(cli_path).strip()).expanduser().resolve()

    env_path = str(os.environ.get(SETTINGS_ENV_VAR, "") or "").strip()
    if env_path:
        return Path(env_path).expanduser().resolve()

    return (Path(repo_root) / DEFAULT_SETTINGS_REL_PATH).resolve()


def _param_schema() -> Dict[str, Any]:
    return {
        "oneOf": [
            {"type": ["string", "number"]},
            {
                "type": "object",
                "properties": {
                    "value": {"type": ["string", "number", "null"]},
                    "label": {"type": "string"},
                    "description": {"type": "string"},
                    "display": {"type": "string", "enum": list(PARAMETER_DISPLAY_VALUES)},
                },
                "additionalProperties": False,
            },
        ]
    }


def _step_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "required": ["tasks"],
        "properties": {
            "name": {"type": "string"},
            "tool": {"type": "string", "minLength": 1},
            "tasks": {"type": "string"},
            "build_file": {"type": "string"},
            "extra_arguments": {"type": "string"},
            "failure_action": {"type": "string", "enum": list(FAILURE_ACTION_VALUES)},
        },
        "additionalProperties": False,
    }


def _trigger_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "required": ["kind"],
        "properties": {
            "kind": {"type": "string", "enum": list(TRIGGER_KIND_VALUES)},
            "branch_filter": {"type": "string"},
            "schedule": {"type": "string"},
        },
        "additionalProperties": False,
    }


def declaration_schema() -> Dict[str, Any]:
    """JSON schema for a project declaration.

    Shape:
      version: "2021.1"
      project:
        name: _Root
        description: ...
        runtime_homes: [{os: linux, java_version: "8"}]
        params: {buildCacheSetup: "--build-cache"}
        build_configurations:
          - name: Quick Feedback
            steps: [{tasks: clean build, extra_arguments: -s $buildCacheSetup}]

    An empty `steps` list passes the schema; the loader reports it with the
    configuration name.
    """
    build_configuration = {
        "type": "object",
        "required": ["name", "steps"],
        "properties": {
            "id": {"type": "string", "pattern": "^[A-Za-z][A-Za-z0-9_]*$"},
            "name": {"type": "string", "minLength": 1},
            "steps": {"type": "array", "items": _step_schema()},
            "triggers": {"type": "array", "items": _trigger_schema()},
        },
        "additionalProperties": False,
    }

    project = {
        "type": "object",
        "required": ["build_configurations"],
        "properties": {
            "name": {"type": "string", "minLength": 1},
            "description": {"type": "string"},
            "runtime_homes": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["os"],
                    "properties": {
                        "os": {"type": "string", "enum": sorted(OS_ALIASES.keys())},
                        "java_version": {"type": ["string", "integer"]},
                    },
                    "additionalProperties": False,
                },
            },
            "params": {"type": "object", "additionalProperties": _param_schema()},
            "build_configurations": {"type": "array", "items": build_configuration},
        },
        "additionalProperties": False,
    }

    return {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "type": "object",
        "required": ["project"],
        "properties": {
            "version": {"type": "string"},
            "project": project,
        },
        "additionalProperties": False,
    }


def _error_path(err: jsonschema.ValidationError) -> str:
    parts = []
    for p in err.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(f".{p}" if parts else str(p))
    return "".join(parts) or "<root>"


def validate_declaration(data: Mapping[str, Any]) -> None:
    """Validate a declaration mapping against the schema.

    Raises:
        ValidationError: with the path of the first (deterministically chosen) violation.
    """
    if not isinstance(data, Mapping):
        raise ValidationError("project declaration must be a mapping")
    validator = jsonschema.Draft202012Validator(declaration_schema())
    errors = sorted(validator.iter_errors(dict(data)), key=lambda e: (list(map(str, e.absolute_path)), e.message))
    if errors:
        first = errors[0]
        raise ValidationError(f"project declaration schema validation failed at {_error_path(first)}: {first.message}")


def load_declaration_file(path: Path) -> Dict[str, Any]:
    """Read and schema-validate a YAML declaration file."""
    p = Path(path)
    if not p.exists():
        raise ValidationError(f"project declaration not found: {p}")
    try:
        data = read_yaml(p)
    except Exception as e:
        raise ValidationError(f"project declaration YAML parse error: {p}: {e}") from e
    validate_declaration(data)
    return data
