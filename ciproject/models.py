from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Literal, Mapping, Optional, Tuple

from .errors import ValidationError
from .templating import parameter_references

# Allowed enum values. These are the single source of truth for the schema in config.py.
ParameterDisplay = Literal["NORMAL", "HIDDEN", "PROMPT"]
PARAMETER_DISPLAY_VALUES: Tuple[str, ...] = ("NORMAL", "HIDDEN", "PROMPT")

FailureAction = Literal["STOP", "CONTINUE"]
FAILURE_ACTION_VALUES: Tuple[str, ...] = ("STOP", "CONTINUE")

TriggerKind = Literal["vcs", "schedule"]
TRIGGER_KIND_VALUES: Tuple[str, ...] = ("vcs", "schedule")

DEFAULT_PROJECT_NAME = "_Root"
DEFAULT_TOOL = "gradle"


@dataclass(frozen=True)
class ParameterSpec:
    """Declared metadata for a single parameter."""

    name: str
    value: str = ""
    label: str = ""
    description: str = ""
    display: ParameterDisplay = "NORMAL"
    # Host- or platform-provisioned values are used verbatim, never template-expanded.
    literal: bool = False


class ParameterSet(Mapping[str, str]):
    """Read-only mapping of parameter name to raw (unsubstituted) value.

    Values may contain `$name` references to other entries; those are expanded
    by `ciproject.loader.resolve_parameter`, not here. Literal entries are never expanded.
    """

    __slots__ = ("_values", "_specs")

    def __init__(self, specs: Optional[Mapping[str, ParameterSpec]] = None) -> None:
        self._specs: Dict[str, ParameterSpec] = dict(specs or {})
        self._values: Dict[str, str] = {k: s.value for k, s in self._specs.items()}

    @classmethod
    def from_values(cls, values: Mapping[str, str]) -> "ParameterSet":
        return cls({k: ParameterSpec(name=k, value=str(v)) for k, v in values.items()})

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ParameterSet):
            return self._specs == other._specs
        return super().__eq__(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ParameterSet({self._values!r})"

    def spec(self, name: str) -> ParameterSpec:
        return self._specs[name]

    def is_literal(self, name: str) -> bool:
        return self._specs[name].literal

    def specs(self) -> List[ParameterSpec]:
        return [self._specs[k] for k in sorted(self._specs)]

    def to_dict(self) -> Dict[str, str]:
        return {k: self._values[k] for k in sorted(self._values)}


@dataclass(frozen=True)
class BuildStep:
    """One invocation of the build tool.

    `build_file` empty means the tool discovers its build file itself.
    `extra_arguments` may embed `$name` parameter references.
    """

    tasks: str
    extra_arguments: str = ""
    build_file: str = ""
    name: str = ""
    tool: str = DEFAULT_TOOL
    failure_action: FailureAction = "STOP"


@dataclass(frozen=True)
class Trigger:
    """Declared trigger. The host owns its semantics; the loader only carries it."""

    kind: TriggerKind
    branch_filter: str = ""
    schedule: str = ""


@dataclass(frozen=True)
class BuildConfiguration:
    id: str
    name: str
    steps: Tuple[BuildStep, ...]
    triggers: Tuple[Trigger, ...] = ()


@dataclass(frozen=True)
class ProjectDescriptor:
    """Root of the descriptor tree handed to the host."""

    name: str
    description: str
    parameters: ParameterSet
    build_configurations: Tuple[BuildConfiguration, ...] = ()
    version: str = ""

    def configuration(self, key: str) -> BuildConfiguration:
        """Look up a build configuration by id, falling back to its display name."""
        for bc in self.build_configurations:
            if bc.id == key:
                return bc
        for bc in self.build_configurations:
            if bc.name == key:
                return bc
        known = [bc.id for bc in self.build_configurations]
        raise ValidationError(f"Unknown build configuration: {key!r} (known: {known})")

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "parameters": self.parameters.to_dict(),
            "parameter_specs": [
                {
                    "name": s.name,
                    "label": s.label,
                    "description": s.description,
                    "display": s.display,
                    "literal": s.literal,
                }
                for s in self.parameters.specs()
            ],
            "build_configurations": [
                {
                    "id": bc.id,
                    "name": bc.name,
                    "steps": [
                        {
                            "name": st.name,
                            "tool": st.tool,
                            "tasks": st.tasks,
                            "build_file": st.build_file,
                            "extra_arguments": st.extra_arguments,
                            "failure_action": st.failure_action,
                            "references": parameter_references(st.extra_arguments),
                        }
                        for st in bc.steps
                    ],
                    "triggers": [
                        {"kind": t.kind, "branch_filter": t.branch_filter, "schedule": t.schedule}
                        for t in bc.triggers
                    ],
                }
                for bc in self.build_configurations
            ],
        }
