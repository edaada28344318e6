"""Decorators applied to configured checks: silencing and aliasing."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .api import ProgressCheck, SilenceableCheck
from .model import Violation

if TYPE_CHECKING:
    from ..engine.installables import Installable
    from ..package import Manifest, MetaInf, PackageId, PackageProperties, PathAction


class CheckFacade(ProgressCheck):
    """Forwards every lifecycle hook to a wrapped check through ``_forward``."""

    def __init__(self, wrapped: ProgressCheck) -> None:
        self.__wrapped = wrapped

    def _forward(self, hook: str, *args: Any) -> None:
        getattr(self.__wrapped, hook)(*args)

    def _wrapped_violations(self) -> tuple[Violation, ...]:
        return tuple(self.__wrapped.reported_violations)

    def _wrapped_name(self) -> str:
        return self.__wrapped.check_name

    def _silence_wrapped(self, silenced: bool) -> None:
        target = self.__wrapped
        if not isinstance(target, SilenceableCheck):
            raise TypeError(f"{target.check_name} cannot be silenced")
        target.set_silenced(silenced)

    @property
    def check_name(self) -> str:
        return self._wrapped_name()

    @property
    def reported_violations(self) -> tuple[Violation, ...]:
        return self._wrapped_violations()

    def started_scan(self) -> None:
        self._forward("started_scan")

    def identify_package(self, package_id: PackageId, location: str | None) -> None:
        self._forward("identify_package", package_id, location)

    def read_manifest(self, package_id: PackageId, manifest: Manifest) -> None:
        self._forward("read_manifest", package_id, manifest)

    def before_extract(
        self,
        package_id: PackageId,
        session: Any,
        properties: PackageProperties,
        meta_inf: MetaInf,
        subpackages: tuple[PackageId, ...],
    ) -> None:
        self._forward("before_extract", package_id, session, properties, meta_inf, subpackages)

    def imported_path(self, package_id: PackageId, path: str, node: Any, action: PathAction) -> None:
        self._forward("imported_path", package_id, path, node, action)

    def deleted_path(self, package_id: PackageId, path: str, session: Any) -> None:
        self._forward("deleted_path", package_id, path, session)

    def after_extract(self, package_id: PackageId, session: Any) -> None:
        self._forward("after_extract", package_id, session)

    def identify_subpackage(self, package_id: PackageId, parent_id: PackageId) -> None:
        self._forward("identify_subpackage", package_id, parent_id)

    def before_sling_install(self, scan_package_id: PackageId, installable: Installable, session: Any) -> None:
        self._forward("before_sling_install", scan_package_id, installable, session)

    def identify_embedded_package(self, package_id: PackageId, parent_id: PackageId, installable: Installable) -> None:
        self._forward("identify_embedded_package", package_id, parent_id, installable)

    def applied_repo_init_scripts(
        self, scan_package_id: PackageId, scripts: tuple[str, ...], installable: Installable, session: Any
    ) -> None:
        self._forward("applied_repo_init_scripts", scan_package_id, scripts, installable, session)

    def after_scan_package(self, scan_package_id: PackageId, session: Any) -> None:
        self._forward("after_scan_package", scan_package_id, session)

    def finished_scan(self) -> None:
        self._forward("finished_scan")


class SilencingCheckFacade(CheckFacade):
    """Makes any check silenceable by filtering what it reports after each hook.

    Violations that appear while silenced are dropped and never stored here.
    """

    def __init__(self, wrapped: ProgressCheck) -> None:
        super().__init__(wrapped)
        self._silenced = False
        self._accepted: dict[Violation, None] = {}

    def set_silenced(self, silenced: bool) -> None:
        self._silenced = bool(silenced)

    @property
    def silenced(self) -> bool:
        return self._silenced

    def _forward(self, hook: str, *args: Any) -> None:
        if hook == "started_scan":
            self._accepted.clear()
        seen = len(self._wrapped_violations())
        super()._forward(hook, *args)
        if self._silenced:
            return
        current = self._wrapped_violations()
        if len(current) < seen:
            # the wrapped check reset its own list during this hook
            seen = 0
        for violation in current[seen:]:
            self._accepted.setdefault(violation, None)

    @property
    def reported_violations(self) -> tuple[Violation, ...]:
        return tuple(self._accepted)


class CheckAliasFacade(CheckFacade):
    """Gives a check its configured name; upgrades it to silenceable when needed."""

    def __init__(self, wrapped: ProgressCheck, alias: str | None = None) -> None:
        if not isinstance(wrapped, SilenceableCheck):
            wrapped = SilencingCheckFacade(wrapped)
        super().__init__(wrapped)
        self._alias = str(alias).strip() if alias else ""
        # resolved once so the name cannot drift during a scan
        self._name = self._alias or self._wrapped_name()

    @property
    def check_name(self) -> str:
        return self._name

    def set_silenced(self, silenced: bool) -> None:
        self._silence_wrapped(silenced)

    def __setattr__(self, name: str, value: object) -> None:
        if name in {"_alias", "_name"} and name in self.__dict__:
            raise AttributeError(f"`{name}` is fixed once the check is configured")
        super().__setattr__(name, value)

    def __repr__(self) -> str:
        return f"CheckAliasFacade({self._name!r})"


__all__ = ["CheckAliasFacade", "CheckFacade", "SilencingCheckFacade"]
