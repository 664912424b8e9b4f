"""The embedded project declaration.

This is the declaration `ciproject.loader.load()` materialises when no other
declaration is supplied. Its shape is the same one accepted from YAML files
(see `ciproject.config`).
"""
from __future__ import annotations

import copy
from typing import Any, Dict

SETTINGS_VERSION = "2021.1"

_DECLARATION: Dict[str, Any] = {
    "version": SETTINGS_VERSION,
    "project": {
        "description": "Build Cache use case for the Gradle Enterprise trial navigator",
        "runtime_homes": [
            {"os": "linux", "java_version": "8"},
        ],
        "params": {
            "buildCacheSetup": {
                "value": "--build-cache",
                "label": "Build cache setup",
                "description": "Gradle arguments enabling the build cache for this trial.",
            },
        },
        "build_configurations": [
            {
                "name": "Quick Feedback",
                "steps": [
                    {
                        "tool": "gradle",
                        "tasks": "clean build",
                        "build_file": "",
                        "extra_arguments": "-s $buildCacheSetup",
                    },
                ],
            },
        ],
    },
}


def default_declaration() -> Dict[str, Any]:
    """Return a private copy of the embedded declaration."""
    return copy.deepcopy(_DECLARATION)
