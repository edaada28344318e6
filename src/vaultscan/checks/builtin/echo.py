from __future__ import annotations

from typing import Any, Mapping

from ...core.context import ScanContext
from ...core.logging import log_event
from ...package import Manifest, MetaInf, PackageId, PackageProperties, PathAction
from ..api import ProgressCheck


class EchoCheck(ProgressCheck):
    """Logs every lifecycle event; reports nothing."""

    def __init__(self, ctx: ScanContext) -> None:
        self._ctx = ctx

    @property
    def check_name(self) -> str:
        return "echo"

    def _echo(self, action: str, **fields: object) -> None:
        log_event(self._ctx, "info", "echo", action, **fields)

    def started_scan(self) -> None:
        self._echo("started_scan")

    def identify_package(self, package_id: PackageId, location: str | None) -> None:
        self._echo("identify_package", package=str(package_id), location=location or "")

    def read_manifest(self, package_id: PackageId, manifest: Manifest) -> None:
        self._echo("read_manifest", package=str(package_id), attributes=len(manifest.attributes))

    def before_extract(
        self,
        package_id: PackageId,
        session: Any,
        properties: PackageProperties,
        meta_inf: MetaInf,
        subpackages: tuple[PackageId, ...],
    ) -> None:
        self._echo("before_extract", package=str(package_id), subpackages=",".join(str(item) for item in subpackages))

    def imported_path(self, package_id: PackageId, path: str, node: Any, action: PathAction) -> None:
        self._echo("imported_path", package=str(package_id), path=path, path_action=action.value)

    def deleted_path(self, package_id: PackageId, path: str, session: Any) -> None:
        self._echo("deleted_path", package=str(package_id), path=path)

    def after_extract(self, package_id: PackageId, session: Any) -> None:
        self._echo("after_extract", package=str(package_id))

    def identify_subpackage(self, package_id: PackageId, parent_id: PackageId) -> None:
        self._echo("identify_subpackage", package=str(package_id), parent=str(parent_id))

    def before_sling_install(self, scan_package_id: PackageId, installable: Any, session: Any) -> None:
        self._echo("before_sling_install", package=str(scan_package_id), installable=installable.path)

    def identify_embedded_package(self, package_id: PackageId, parent_id: PackageId, installable: Any) -> None:
        self._echo("identify_embedded_package", package=str(package_id), parent=str(parent_id))

    def applied_repo_init_scripts(
        self, scan_package_id: PackageId, scripts: tuple[str, ...], installable: Any, session: Any
    ) -> None:
        self._echo("applied_repo_init_scripts", package=str(scan_package_id), scripts=len(scripts))

    def after_scan_package(self, scan_package_id: PackageId, session: Any) -> None:
        self._echo("after_scan_package", package=str(scan_package_id))

    def finished_scan(self) -> None:
        self._echo("finished_scan")


class EchoFactory:
    config_schema = "vaultscan.check.echo.v1"

    def __init__(self, ctx: ScanContext | None = None) -> None:
        self._ctx = ctx

    def new_instance(self, config: Mapping[str, Any]) -> EchoCheck:
        return EchoCheck(self._ctx or ScanContext.from_env())


__all__ = ["EchoCheck", "EchoFactory"]
