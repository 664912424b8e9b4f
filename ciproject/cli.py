from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .config import DEFAULT_SETTINGS_REL_PATH, SETTINGS_ENV_VAR, load_declaration_file, resolve_settings_path
from .declaration import default_declaration
from .errors import DescriptorError, ValidationError
from .host import LocalHost, register_project
from .loader import load, render_command_line
from .models import ProjectDescriptor
from .params import provisioned_from_env
from .utils.yamlio import write_yaml


def _repo_root() -> Path:
    # Assume this file is at repo_root/ciproject/cli.py
    return Path(__file__).resolve().parents[1]


def _die(msg: str) -> int:
    print(f"[ciproject][FAIL] {msg}", file=sys.stderr)
    return 2


def _parse_params(items: List[str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for it in items or []:
        if "=" not in it:
            raise ValidationError(f"Invalid --param {it!r} (expected NAME=VALUE)")
        name, value = it.split("=", 1)
        out[name.strip()] = value
    return out


def _declaration(args: argparse.Namespace) -> Optional[Mapping[str, Any]]:
    # An explicitly named file must exist; the default path is optional.
    explicit = bool(args.settings) or bool(os.environ.get(SETTINGS_ENV_VAR, "").strip())
    path = resolve_settings_path(_repo_root(), args.settings)
    if explicit or path.exists():
        return load_declaration_file(path)
    return None


def _load(args: argparse.Namespace) -> ProjectDescriptor:
    provisioned = provisioned_from_env()
    provisioned.update(_parse_params(args.param))
    return load(_declaration(args), provisioned=provisioned)


def cmd_validate(args: argparse.Namespace) -> int:
    d = _load(args)
    steps = sum(len(bc.steps) for bc in d.build_configurations)
    print(f"[ciproject][OK] project={d.name} configurations={len(d.build_configurations)} steps={steps}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    d = _load(args)
    print(json.dumps(d.describe(), indent=2, sort_keys=True))
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    d = _load(args)
    configs = [d.configuration(args.configuration)] if args.configuration else list(d.build_configurations)
    for bc in configs:
        for step in bc.steps:
            print(f"{bc.id}\t{render_command_line(step, d.parameters)}")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    d = _load(args)
    work_dir = Path(args.work_dir).resolve()
    executables: Dict[str, str] = {}
    if args.gradle_wrapper:
        executables["gradle"] = str(work_dir / "gradlew")
    host = LocalHost(work_dir=work_dir, executables=executables, dry_run=bool(args.dry_run))
    register_project(d, host)
    result = host.run(args.configuration)
    return 0 if result.succeeded else 1


def cmd_export(args: argparse.Namespace) -> int:
    out = Path(args.out).resolve()
    write_yaml(out, default_declaration())
    print(f"[ciproject] wrote embedded declaration to {out}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ciproject")
    p.add_argument("--settings", default=None, help="Project declaration YAML (default: embedded declaration)")
    p.add_argument("--param", action="append", default=[], metavar="NAME=VALUE", help="Provision a parameter value")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("validate", help="Load and validate the project declaration")
    sp.set_defaults(func=cmd_validate)

    sp = sub.add_parser("show", help="Print the descriptor tree as JSON")
    sp.set_defaults(func=cmd_show)

    sp = sub.add_parser("render", help="Print the rendered command line of every step")
    sp.add_argument("--configuration", default=None)
    sp.set_defaults(func=cmd_render)

    sp = sub.add_parser("run", help="Run one build configuration locally")
    sp.add_argument("configuration")
    sp.add_argument("--work-dir", default=".")
    sp.add_argument("--gradle-wrapper", action="store_true", help="Use <work-dir>/gradlew for gradle steps")
    sp.add_argument("--dry-run", action="store_true")
    sp.set_defaults(func=cmd_run)

    sp = sub.add_parser("export", help="Write the embedded declaration as YAML")
    sp.add_argument("--out", default=str(DEFAULT_SETTINGS_REL_PATH))
    sp.set_defaults(func=cmd_export)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args) or 0)
    except DescriptorError as e:
        return _die(str(e))


if __name__ == "__main__":
    raise SystemExit(main())
