from __future__ import annotations

from typing import Any, Iterable, Mapping

from ...package import PackageId, PathAction
from ..api import SimpleProgressCheck
from ..model import Severity
from .rules import Rule, is_allowed, parse_rules


class PathsCheck(SimpleProgressCheck):
    def __init__(self, rules: Iterable[Rule] = (), deny_all_deletes: bool = False, severity: Severity = Severity.MAJOR) -> None:
        super().__init__()
        self.rules = tuple(rules)
        self.deny_all_deletes = deny_all_deletes
        self.severity = severity

    @property
    def check_name(self) -> str:
        return "paths"

    def imported_path(self, package_id: PackageId, path: str, node: Any, action: PathAction) -> None:
        if action is PathAction.NOOP or is_allowed(self.rules, path):
            return
        self.reporting(self.severity, "imported path {0} is denied", path, packages=(package_id,), paths=(path,))

    def deleted_path(self, package_id: PackageId, path: str, session: Any) -> None:
        if self.deny_all_deletes:
            self.reporting(
                self.severity, "deleted path {0}. All deletions are denied.", path, packages=(package_id,), paths=(path,)
            )
        elif not is_allowed(self.rules, path):
            self.reporting(self.severity, "deleted path {0} is denied", path, packages=(package_id,), paths=(path,))


class PathsFactory:
    config_schema = "vaultscan.check.paths.v1"

    def new_instance(self, config: Mapping[str, Any]) -> PathsCheck:
        return PathsCheck(
            rules=parse_rules(config.get("rules", [])),
            deny_all_deletes=bool(config.get("denyAllDeletes", False)),
            severity=Severity.parse(config.get("severity", Severity.MAJOR.value)),
        )


__all__ = ["PathsCheck", "PathsFactory"]
