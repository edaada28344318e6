from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Protocol, runtime_checkable

from .model import Severity, Violation

if TYPE_CHECKING:
    from ..engine.installables import Installable
    from ..package import Manifest, MetaInf, PackageId, PackageProperties, PathAction

LIFECYCLE_HOOKS: tuple[str, ...] = (
    "started_scan",
    "identify_package",
    "read_manifest",
    "before_extract",
    "imported_path",
    "deleted_path",
    "after_extract",
    "identify_subpackage",
    "before_sling_install",
    "identify_embedded_package",
    "applied_repo_init_scripts",
    "after_scan_package",
    "finished_scan",
)


class ProgressCheck:
    """Observer of scan lifecycle events.

    Every hook is a no-op so a check overrides only what it needs. Repository
    objects handed to hooks are read-only facades. Any exception raised by a
    hook aborts the whole scan.
    """

    @property
    def check_name(self) -> str:
        return type(self).__name__

    @property
    def reported_violations(self) -> tuple[Violation, ...]:
        return ()

    def started_scan(self) -> None:
        pass

    def identify_package(self, package_id: PackageId, location: str | None) -> None:
        pass

    def read_manifest(self, package_id: PackageId, manifest: Manifest) -> None:
        pass

    def before_extract(
        self,
        package_id: PackageId,
        session: Any,
        properties: PackageProperties,
        meta_inf: MetaInf,
        subpackages: tuple[PackageId, ...],
    ) -> None:
        pass

    def imported_path(self, package_id: PackageId, path: str, node: Any, action: PathAction) -> None:
        pass

    def deleted_path(self, package_id: PackageId, path: str, session: Any) -> None:
        pass

    def after_extract(self, package_id: PackageId, session: Any) -> None:
        pass

    def identify_subpackage(self, package_id: PackageId, parent_id: PackageId) -> None:
        pass

    def before_sling_install(self, scan_package_id: PackageId, installable: Installable, session: Any) -> None:
        pass

    def identify_embedded_package(self, package_id: PackageId, parent_id: PackageId, installable: Installable) -> None:
        pass

    def applied_repo_init_scripts(
        self, scan_package_id: PackageId, scripts: tuple[str, ...], installable: Installable, session: Any
    ) -> None:
        pass

    def after_scan_package(self, scan_package_id: PackageId, session: Any) -> None:
        pass

    def finished_scan(self) -> None:
        pass


@runtime_checkable
class SilenceableCheck(Protocol):
    def set_silenced(self, silenced: bool) -> None: ...


class SimpleProgressCheck(ProgressCheck):
    """Check keeping its own ordered, equality-unique violation collection.

    Subclasses overriding ``started_scan`` must call ``super().started_scan()``.
    """

    def __init__(self) -> None:
        self._violations: dict[Violation, None] = {}
        self._silenced = False

    @property
    def silenced(self) -> bool:
        return self._silenced

    def set_silenced(self, silenced: bool) -> None:
        self._silenced = bool(silenced)

    @property
    def reported_violations(self) -> tuple[Violation, ...]:
        return tuple(self._violations)

    def report(self, violation: Violation) -> None:
        if not self._silenced:
            self._violations.setdefault(violation, None)

    def reporting(
        self,
        severity: Severity | str,
        description: str,
        *arguments: object,
        packages: Iterable[PackageId] = (),
        paths: Iterable[str] = (),
    ) -> Violation:
        violation = Violation(
            severity=Severity.parse(severity),
            description=description,
            arguments=tuple(arguments),
            packages=tuple(packages),
            paths=tuple(paths),
        )
        self.report(violation)
        return violation

    def started_scan(self) -> None:
        self._violations.clear()


__all__ = ["LIFECYCLE_HOOKS", "ProgressCheck", "SilenceableCheck", "SimpleProgressCheck"]
