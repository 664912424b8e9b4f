"""Project descriptor loader for a CI build definition.

Loads one declared project (metadata, parameters, build configurations),
validates it eagerly and renders each build step's command line for the host.
"""
from __future__ import annotations

from .errors import DescriptorError, HostError, UnknownParameterError, ValidationError
from .host import HostRegistry, LocalHost, RecordingHost, register_project
from .loader import load, render_command_line, render_invocation, resolve_parameter
from .models import BuildConfiguration, BuildStep, ParameterSet, ProjectDescriptor, Trigger

__all__ = [
    "__version__",
    "DescriptorError",
    "HostError",
    "UnknownParameterError",
    "ValidationError",
    "HostRegistry",
    "LocalHost",
    "RecordingHost",
    "register_project",
    "load",
    "render_command_line",
    "render_invocation",
    "resolve_parameter",
    "BuildConfiguration",
    "BuildStep",
    "ParameterSet",
    "ProjectDescriptor",
    "Trigger",
]
__version__ = "0.1.0"
