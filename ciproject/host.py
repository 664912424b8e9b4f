from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Protocol

from .errors import HostError
from .loader import render_argv, validate_descriptor
from .models import BuildConfiguration, ProjectDescriptor

STEP_COMPLETED = "COMPLETED"
STEP_FAILED = "FAILED"
STEP_SKIPPED = "SKIPPED"
STEP_DRY_RUN = "DRY_RUN"


class HostRegistry(Protocol):
    """Outbound interface to the CI host. The host owns scheduling and execution."""

    def register(self, descriptor: ProjectDescriptor) -> None:
        raise NotImplementedError


def register_project(descriptor: ProjectDescriptor, host: HostRegistry) -> None:
    """Hand a descriptor to the host, all or nothing.

    Every parameter is resolved and every step rendered and split before the host sees
    anything; a failure leaves the host untouched.
    """
    validate_descriptor(descriptor)
    host.register(descriptor)


class RecordingHost(HostRegistry):
    """In-memory host that keeps what was registered."""

    def __init__(self) -> None:
        self.registered: List[ProjectDescriptor] = []

    def register(self, descriptor: ProjectDescriptor) -> None:
        self.registered.append(descriptor)


@dataclass(frozen=True)
class StepRunResult:
    step_index: int
    step_name: str
    argv: List[str]
    status: str
    exit_code: Optional[int] = None


@dataclass(frozen=True)
class BuildRunResult:
    configuration_id: str
    status: str
    steps: List[StepRunResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == STEP_COMPLETED or self.status == STEP_DRY_RUN


Runner = Callable[..., "subprocess.CompletedProcess[bytes]"]


class LocalHost(HostRegistry):
    """Development host: runs a configuration's steps in order with subprocess.

    A non-zero exit stops the sequence unless the step declares
    failure_action=CONTINUE. The build result is FAILED if any step failed.
    """

    def __init__(
        self,
        *,
        work_dir: Path,
        env: Optional[Mapping[str, str]] = None,
        executables: Optional[Mapping[str, str]] = None,
        dry_run: bool = False,
        runner: Optional[Runner] = None,
    ):
        self.work_dir = Path(work_dir)
        self.env = dict(env) if env is not None else None
        self.executables: Dict[str, str] = dict(executables or {})
        self.dry_run = dry_run
        self.runner: Runner = runner if runner is not None else subprocess.run
        self.descriptor: Optional[ProjectDescriptor] = None

    def register(self, descriptor: ProjectDescriptor) -> None:
        if self.descriptor is not None:
            raise HostError(f"LocalHost already has a registered project: {self.descriptor.name!r}")
        self.descriptor = descriptor

    def _argv(self, argv: List[str]) -> List[str]:
        if argv and argv[0] in self.executables:
            return [self.executables[argv[0]]] + argv[1:]
        return argv

    def _process_env(self) -> Optional[Dict[str, str]]:
        if self.env is None:
            return None
        merged = dict(os.environ)
        merged.update(self.env)
        return merged

    def run(self, configuration: str) -> BuildRunResult:
        if self.descriptor is None:
            raise HostError("No project registered with LocalHost")
        bc: BuildConfiguration = self.descriptor.configuration(configuration)
        params = self.descriptor.parameters

        results: List[StepRunResult] = []
        failed = False
        stopped = False
        for i, step in enumerate(bc.steps):
            label = step.name or f"step {i + 1}"
            argv = self._argv(render_argv(step, params, where=f"{bc.id}.steps[{i}].extra_arguments"))

            if stopped:
                results.append(StepRunResult(step_index=i, step_name=label, argv=argv, status=STEP_SKIPPED))
                continue

            if self.dry_run:
                print(f"[ciproject] {bc.id} {label} (dry-run): {' '.join(argv)}")
                results.append(StepRunResult(step_index=i, step_name=label, argv=argv, status=STEP_DRY_RUN))
                continue

            print(f"[ciproject] {bc.id} {label}: {' '.join(argv)}")
            try:
                proc = self.runner(argv, cwd=str(self.work_dir), env=self._process_env(), check=False)
            except FileNotFoundError as e:
                raise HostError(f"Build tool not found for {bc.id} {label}: {argv[0]!r}") from e

            rc = int(proc.returncode)
            if rc == 0:
                results.append(StepRunResult(step_index=i, step_name=label, argv=argv, status=STEP_COMPLETED, exit_code=rc))
                continue

            failed = True
            print(f"[ciproject][WARN] {bc.id} {label} exited with code {rc}")
            results.append(StepRunResult(step_index=i, step_name=label, argv=argv, status=STEP_FAILED, exit_code=rc))
            if step.failure_action != "CONTINUE":
                stopped = True

        if self.dry_run:
            status = STEP_DRY_RUN
        else:
            status = STEP_FAILED if failed else STEP_COMPLETED
        print(f"[ciproject] {bc.id} finished: {status}")
        return BuildRunResult(configuration_id=bc.id, status=status, steps=results)
