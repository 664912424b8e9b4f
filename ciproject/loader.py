from __future__ import annotations

import re
import shlex
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from .config import validate_declaration
from .declaration import default_declaration
from .errors import UnknownParameterError, ValidationError
from .models import (
    DEFAULT_PROJECT_NAME,
    DEFAULT_TOOL,
    BuildConfiguration,
    BuildStep,
    ParameterSet,
    ProjectDescriptor,
    Trigger,
)
from .params import build_parameter_set, runtime_home_parameter
from .templating import render_template


def _derive_configuration_id(name: str) -> str:
    """'Quick Feedback' -> 'QuickFeedback'."""
    words = [w for w in re.split(r"[^A-Za-z0-9]+", name) if w]
    out = "".join(w[:1].upper() + w[1:] for w in words)
    if not out or not out[0].isalpha():
        out = "Build" + out
    return out


def _expand(parameters: Mapping[str, str], name: str, stack: Tuple[str, ...], where: str) -> str:
    if name in stack:
        cycle = " -> ".join(stack + (name,))
        raise ValidationError(f"Parameter reference cycle: {cycle}")
    if name not in parameters:
        raise UnknownParameterError(name, where)
    raw = parameters[name]
    if isinstance(parameters, ParameterSet) and parameters.is_literal(name):
        return raw
    return render_template(raw, lambda ref: _expand(parameters, ref, stack + (name,), f"params.{name}"))


def resolve_parameter(parameters: Mapping[str, str], name: str) -> str:
    """Return the value of `name`, with `$refs` inside the value expanded.

    Raises:
        UnknownParameterError: if `name` (or a parameter it references) is undefined.
        ValidationError: if parameter values reference each other in a cycle.
    """
    return _expand(parameters, name, (), "")


def _substitute(template: str, parameters: Mapping[str, str], where: str) -> str:
    def _resolve(ref: str) -> str:
        if ref not in parameters:
            raise UnknownParameterError(ref, where)
        return resolve_parameter(parameters, ref)

    return render_template(template, _resolve)


def render_invocation(step: BuildStep, parameters: Mapping[str, str], where: str = "") -> str:
    """Render the argument part of a step: `<tasks> [-b <build_file>] <extra_arguments>`.

    `$name` tokens in `extra_arguments` are substituted; empty pieces are omitted.
    """
    pieces: List[str] = []
    tasks = step.tasks.strip()
    if tasks:
        pieces.append(tasks)
    build_file = step.build_file.strip()
    if build_file:
        pieces.append(f"-b {build_file}")
    extra = _substitute(step.extra_arguments, parameters, where or "extra_arguments").strip()
    if extra:
        pieces.append(extra)
    return " ".join(pieces)


def render_command_line(step: BuildStep, parameters: Mapping[str, str]) -> str:
    """Full command line `<tool> <tasks> [-b <build_file>] <extra_arguments>`."""
    invocation = render_invocation(step, parameters)
    return f"{step.tool} {invocation}".rstrip()


def render_argv(step: BuildStep, parameters: Mapping[str, str], where: str = "") -> List[str]:
    """Split the rendered command line with POSIX shell rules.

    Raises:
        ValidationError: if the command line has unbalanced quotes or a dangling escape.
    """
    line = render_command_line(step, parameters)
    try:
        return shlex.split(line)
    except ValueError as e:
        raise ValidationError(f"Cannot split command line at {where or 'extra_arguments'}: {e}: {line!r}") from e


def _build_step(raw: Mapping[str, Any], path: str) -> BuildStep:
    tasks = str(raw.get("tasks") or "").strip()
    if not tasks:
        raise ValidationError(f"Invalid {path}.tasks: empty task list")
    return BuildStep(
        tasks=tasks,
        extra_arguments=str(raw.get("extra_arguments") or ""),
        build_file=str(raw.get("build_file") or ""),
        name=str(raw.get("name") or ""),
        tool=str(raw.get("tool") or DEFAULT_TOOL).strip(),
        failure_action=str(raw.get("failure_action") or "STOP"),  # type: ignore[arg-type]
    )


def _build_trigger(raw: Mapping[str, Any], path: str) -> Trigger:
    kind = str(raw.get("kind") or "")
    schedule = str(raw.get("schedule") or "").strip()
    if kind == "schedule" and not schedule:
        raise ValidationError(f"Invalid {path}: schedule trigger requires 'schedule'")
    return Trigger(kind=kind, branch_filter=str(raw.get("branch_filter") or ""), schedule=schedule)  # type: ignore[arg-type]


def _build_configurations(raw_list: List[Any]) -> Tuple[BuildConfiguration, ...]:
    out: List[BuildConfiguration] = []
    seen: Set[str] = set()
    for i, raw in enumerate(raw_list):
        path = f"build_configurations[{i}]"
        name = str(raw.get("name") or "").strip()
        bc_id = str(raw.get("id") or "").strip() or _derive_configuration_id(name)
        if bc_id in seen:
            raise ValidationError(f"Duplicate build configuration id: {bc_id!r} at {path}")
        seen.add(bc_id)

        raw_steps = raw.get("steps") or []
        if not raw_steps:
            raise ValidationError(f"Build configuration {name!r} at {path} declares no steps")
        steps = tuple(_build_step(s, f"{path}.steps[{j}]") for j, s in enumerate(raw_steps))
        triggers = tuple(_build_trigger(t, f"{path}.triggers[{j}]") for j, t in enumerate(raw.get("triggers") or []))
        out.append(BuildConfiguration(id=bc_id, name=name, steps=steps, triggers=triggers))
    return tuple(out)


def validate_descriptor(descriptor: ProjectDescriptor) -> None:
    """Eagerly resolve every parameter, render every step and split its argv.

    Raises the first UnknownParameterError / ValidationError found, in declaration order.
    """
    params = descriptor.parameters
    for name in params:
        resolve_parameter(params, name)
    for i, bc in enumerate(descriptor.build_configurations):
        if not bc.steps:
            raise ValidationError(f"Build configuration {bc.name!r} at build_configurations[{i}] declares no steps")
        for j, step in enumerate(bc.steps):
            where = f"build_configurations[{i}].steps[{j}].extra_arguments"
            render_invocation(step, params, where=where)
            render_argv(step, params, where=where)


def load(
    declaration: Optional[Mapping[str, Any]] = None,
    provisioned: Optional[Mapping[str, str]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ProjectDescriptor:
    """Build and validate the project descriptor.

    Args:
        declaration: declaration mapping; the embedded declaration when omitted.
        provisioned: host-supplied parameter values, overriding declared ones.
        env: environment used for runtime-home lookups; os.environ when omitted.

    Raises:
        ValidationError: malformed declaration, empty step list, reference cycle.
        UnknownParameterError: a `$name` reference does not resolve.
    """
    data = default_declaration() if declaration is None else declaration
    validate_declaration(data)

    project = data["project"]

    derived: Dict[str, str] = {}
    for i, rh in enumerate(project.get("runtime_homes") or []):
        name, value = runtime_home_parameter(rh["os"], str(rh.get("java_version") or "8"), env=env)
        if name in derived:
            raise ValidationError(f"Duplicate runtime home {name!r} at runtime_homes[{i}]")
        derived[name] = value

    parameters: ParameterSet = build_parameter_set(
        project.get("params") or {},
        derived=derived,
        provisioned=provisioned,
    )

    descriptor = ProjectDescriptor(
        name=str(project.get("name") or DEFAULT_PROJECT_NAME),
        description=str(project.get("description") or ""),
        parameters=parameters,
        build_configurations=_build_configurations(project.get("build_configurations") or []),
        version=str(data.get("version") or ""),
    )
    validate_descriptor(descriptor)
    return descriptor
