from __future__ import annotations

from typing import Any, Mapping

from ...package import MetaInf, PackageId, PackageProperties, PathAction, WorkspaceFilter
from ..api import SimpleProgressCheck
from ..model import Severity


class OverlapsCheck(SimpleProgressCheck):
    """Reports packages whose imports or deletions land inside another scanned package's filter.

    Each pair of packages is reported at most once per scan. Deletions are
    major; imports are minor unless ``report_all_is_major``.
    """

    def __init__(self, report_all_is_major: bool = False) -> None:
        super().__init__()
        self.report_all_is_major = report_all_is_major
        self._filters: dict[PackageId, WorkspaceFilter] = {}
        self._reported: set[frozenset[PackageId]] = set()

    @property
    def check_name(self) -> str:
        return "overlaps"

    def started_scan(self) -> None:
        super().started_scan()
        self._filters.clear()
        self._reported.clear()

    def before_extract(
        self,
        package_id: PackageId,
        session: Any,
        properties: PackageProperties,
        meta_inf: MetaInf,
        subpackages: tuple[PackageId, ...],
    ) -> None:
        self._filters[package_id] = meta_inf.filter

    def _newly_overlapped(self, package_id: PackageId, affected: list[PackageId]) -> list[PackageId]:
        fresh = [other for other in affected if frozenset((package_id, other)) not in self._reported]
        for other in fresh:
            self._reported.add(frozenset((package_id, other)))
        return fresh

    def imported_path(self, package_id: PackageId, path: str, node: Any, action: PathAction) -> None:
        if action is PathAction.NOOP:
            return
        affected = [
            other for other, ws_filter in self._filters.items() if other != package_id and ws_filter.contains(path)
        ]
        fresh = self._newly_overlapped(package_id, affected)
        if fresh:
            self.reporting(
                Severity.MAJOR if self.report_all_is_major else Severity.MINOR,
                "affected package {0} imports path {1}, which overlaps with {2}",
                package_id,
                path,
                ", ".join(str(item) for item in fresh),
                packages=(package_id, *fresh),
                paths=(path,),
            )

    def deleted_path(self, package_id: PackageId, path: str, session: Any) -> None:
        affected = [
            other
            for other, ws_filter in self._filters.items()
            if other != package_id and (ws_filter.contains(path) or ws_filter.roots_under(path))
        ]
        fresh = self._newly_overlapped(package_id, affected)
        if fresh:
            self.reporting(
                Severity.MAJOR,
                "affected package {0} deletes path {1}, which overlaps with {2}",
                package_id,
                path,
                ", ".join(str(item) for item in fresh),
                packages=(package_id, *fresh),
                paths=(path,),
            )


class OverlapsFactory:
    config_schema = "vaultscan.check.overlaps.v1"

    def new_instance(self, config: Mapping[str, Any]) -> OverlapsCheck:
        return OverlapsCheck(report_all_is_major=bool(config.get("reportAllIsMajor", False)))


__all__ = ["OverlapsCheck", "OverlapsFactory"]
