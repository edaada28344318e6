"""Top-level scan API: bootstrap a fresh repository, run the engine, collect reports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from .archive import Source
from .checks.api import ProgressCheck
from .checks.facades import CheckAliasFacade
from .checks.model import CheckReport, Severity, Violation, worst_severity
from .core.context import ScanContext
from .core.errors import AbortedScanError, ConfigurationError, RepositoryError
from .core.exit_codes import ERR_VIOLATIONS, OK
from .core.logging import log_event
from .engine.scan import ABORT_ERRORS, ScanEngine
from .engine.sling import SlingSimulator
from .package import PackageId
from .repository import paths as repo_paths
from .repository.repoinit import apply_scripts
from .repository.session import Repository, Session


@dataclass(frozen=True)
class ForcedRoot:
    path: str
    primary_type: str = "nt:folder"
    mixin_types: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "path", repo_paths.normalize(self.path))
        except RepositoryError as exc:
            raise ConfigurationError(f"invalid forced root: {exc}") from exc
        object.__setattr__(self, "mixin_types", tuple(self.mixin_types))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ForcedRoot:
        return cls(
            path=str(raw["path"]),
            primary_type=str(raw.get("primaryType") or "nt:folder"),
            mixin_types=tuple(str(item) for item in raw.get("mixinTypes", [])),
        )


@dataclass(frozen=True)
class ScanOptions:
    pre_install_packages: tuple[Source, ...] = ()
    forced_roots: tuple[ForcedRoot, ...] = ()
    repo_init_scripts: tuple[str, ...] = ()
    run_modes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "pre_install_packages", tuple(self.pre_install_packages))
        object.__setattr__(self, "forced_roots", tuple(self.forced_roots))
        object.__setattr__(self, "repo_init_scripts", tuple(self.repo_init_scripts))
        object.__setattr__(self, "run_modes", tuple(self.run_modes))


@dataclass(frozen=True)
class ScanResult:
    reports: tuple[CheckReport, ...]
    scanned: tuple[PackageId, ...] = ()

    @property
    def violations(self) -> tuple[Violation, ...]:
        return tuple(violation for report in self.reports for violation in report.violations)

    @property
    def worst_severity(self) -> Severity:
        return worst_severity(self.violations)

    def report_for(self, check_name: str) -> CheckReport | None:
        for report in self.reports:
            if report.check_name == check_name:
                return report
        return None

    def for_package(self, package_id: PackageId) -> tuple[CheckReport, ...]:
        """Per-check reports narrowed to violations naming ``package_id``."""
        return tuple(CheckReport(report.check_name, report.for_package(package_id)) for report in self.reports)

    def failed(self, fail_on: Severity | str = Severity.MAJOR) -> bool:
        minimum = Severity.parse(fail_on)
        return any(violation.severity.meets_minimum(minimum) for violation in self.violations)


def collect_reports(checks: Iterable[ProgressCheck]) -> tuple[CheckReport, ...]:
    return tuple(CheckReport(check.check_name, tuple(check.reported_violations)) for check in checks)


def stable_exit_code(result: ScanResult, fail_on: Severity | str = Severity.MAJOR) -> int:
    return ERR_VIOLATIONS if result.failed(fail_on) else OK


def bootstrap(session: Session, options: ScanOptions) -> None:
    for root in options.forced_roots:
        node = session.create_path(root.path, root.primary_type)
        for mixin in root.mixin_types:
            node.add_mixin(mixin)
    apply_scripts(session, options.repo_init_scripts)
    session.save()


def _prepare(checks: Sequence[ProgressCheck]) -> list[ProgressCheck]:
    return [check if isinstance(check, CheckAliasFacade) else CheckAliasFacade(check) for check in checks]


def run_scan(
    packages: Iterable[Source],
    checks: Sequence[ProgressCheck],
    options: ScanOptions | None = None,
    ctx: ScanContext | None = None,
) -> ScanResult:
    """Scan ``packages`` in order against a fresh repository.

    Checks are dispatched in the given order. On abort the violations
    collected so far are attached to the raised ``AbortedScanError``.
    """
    opts = options or ScanOptions()
    run_ctx = ctx or ScanContext.from_env()
    prepared = _prepare(checks)
    sources = tuple(packages)
    repository = Repository()
    log_event(run_ctx, "info", "driver", "scan.start", packages=len(sources), checks=len(prepared))
    try:
        session = repository.login()
        bootstrap(session, opts)
        engine = ScanEngine(session, prepared, ctx=run_ctx, sling=SlingSimulator(opts.run_modes))
        engine.started_scan()
        if opts.pre_install_packages:
            engine.set_silenced(True)
            try:
                engine.scan_packages(opts.pre_install_packages)
            finally:
                engine.set_silenced(False)
        scanned = engine.scan_packages(sources)
        engine.finished_scan()
    except AbortedScanError as exc:
        exc.reports = collect_reports(prepared)
        log_event(run_ctx, "error", "driver", "scan.aborted", failed=exc.failed_package or "", error=exc.message)
        raise
    except ABORT_ERRORS as exc:
        aborted = AbortedScanError.wrap(exc)
        aborted.reports = collect_reports(prepared)
        log_event(run_ctx, "error", "driver", "scan.aborted", failed="", error=aborted.message)
        raise aborted from exc
    finally:
        repository.shutdown()
    result = ScanResult(reports=collect_reports(prepared), scanned=tuple(scanned))
    log_event(
        run_ctx,
        "info",
        "driver",
        "scan.finish",
        violations=len(result.violations),
        worst=result.worst_severity.value,
    )
    return result


__all__ = [
    "ForcedRoot",
    "ScanOptions",
    "ScanResult",
    "bootstrap",
    "collect_reports",
    "run_scan",
    "stable_exit_code",
]
