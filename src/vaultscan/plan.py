"""Declarative scan plans read from JSON, YAML or TOML."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

try:
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]

from .checks.factory import CheckSpec, load_checks
from .checks.model import Severity
from .contracts.validate import validate
from .core.context import ScanContext
from .core.errors import ConfigurationError
from .core.logging import log_event
from .core.yaml_utils import load_yaml
from .driver import ForcedRoot, ScanOptions, ScanResult, run_scan

PLAN_SCHEMA = "vaultscan.plan.v1"
_URL_PREFIXES = ("http://", "https://", "file://", "ftp://")


def _resolve(source: str, base_dir: Path | None) -> str:
    if source.startswith(_URL_PREFIXES) or base_dir is None or Path(source).is_absolute():
        return source
    return str(base_dir / source)


@dataclass(frozen=True)
class ScanPlan:
    checks: tuple[CheckSpec, ...] = ()
    packages: tuple[str, ...] = ()
    options: ScanOptions = field(default_factory=ScanOptions)
    fail_on: Severity = Severity.MAJOR

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], *, base_dir: Path | None = None) -> ScanPlan:
        validate(PLAN_SCHEMA, dict(raw))
        return cls(
            checks=tuple(CheckSpec.from_mapping(item) for item in raw.get("checks", [])),
            packages=tuple(_resolve(str(item), base_dir) for item in raw.get("packages", [])),
            options=ScanOptions(
                pre_install_packages=tuple(_resolve(str(item), base_dir) for item in raw.get("preInstallPackages", [])),
                forced_roots=tuple(ForcedRoot.from_mapping(item) for item in raw.get("forcedRoots", [])),
                repo_init_scripts=tuple(str(item) for item in raw.get("repoInitScripts", [])),
                run_modes=tuple(str(item) for item in raw.get("runModes", [])),
            ),
            fail_on=Severity.parse(raw.get("failOnSeverity", Severity.MAJOR.value)),
        )

    @classmethod
    def load(cls, path: str | Path) -> ScanPlan:
        """Load a JSON, YAML or TOML plan; relative package paths resolve against the plan's directory."""
        plan_path = Path(path)
        if not plan_path.is_file():
            raise ConfigurationError(f"scan plan not found: {plan_path}")
        if plan_path.suffix.lower() in {".yaml", ".yml"}:
            payload = load_yaml(plan_path)
        elif plan_path.suffix.lower() == ".toml":
            try:
                payload = tomllib.loads(plan_path.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as exc:
                raise ConfigurationError(f"{plan_path}: invalid TOML: {exc}") from exc
        else:
            try:
                payload = json.loads(plan_path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                raise ConfigurationError(f"{plan_path}: invalid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigurationError(f"{plan_path}: plan root must be a mapping")
        return cls.from_mapping(payload, base_dir=plan_path.resolve().parent)

    def run(self, ctx: ScanContext | None = None) -> ScanResult:
        run_ctx = ctx or ScanContext.from_env()
        checks = load_checks(self.checks)
        log_event(run_ctx, "debug", "plan", "checks.loaded", names=",".join(check.check_name for check in checks))
        return run_scan(self.packages, checks, self.options, run_ctx)


__all__ = ["PLAN_SCHEMA", "ScanPlan"]
