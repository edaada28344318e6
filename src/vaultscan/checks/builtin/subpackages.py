from __future__ import annotations

from typing import Any, Iterable, Mapping

from ...package import PackageId
from ..api import SimpleProgressCheck
from ..model import Severity
from .rules import Rule, is_allowed, parse_rules


class SubpackagesCheck(SimpleProgressCheck):
    """Reports nested packages that the rules (matched against ``group:name:version``) deny."""

    def __init__(self, rules: Iterable[Rule] = (), deny_all: bool = False) -> None:
        super().__init__()
        self.rules = tuple(rules)
        self.deny_all = deny_all

    @property
    def check_name(self) -> str:
        return "subpackages"

    def _inspect(self, kind: str, package_id: PackageId, parent_id: PackageId) -> None:
        if self.deny_all:
            self.reporting(
                Severity.MAJOR,
                "{0} {1} included by {2}. No nested packages are allowed.",
                kind,
                package_id,
                parent_id,
                packages=(package_id, parent_id),
            )
        elif not is_allowed(self.rules, str(package_id)):
            self.reporting(
                Severity.MAJOR,
                "{0} {1} included by {2} is denied",
                kind,
                package_id,
                parent_id,
                packages=(package_id, parent_id),
            )

    def identify_subpackage(self, package_id: PackageId, parent_id: PackageId) -> None:
        self._inspect("subpackage", package_id, parent_id)

    def identify_embedded_package(self, package_id: PackageId, parent_id: PackageId, installable: Any) -> None:
        self._inspect("embedded package", package_id, parent_id)


class SubpackagesFactory:
    config_schema = "vaultscan.check.subpackages.v1"

    def new_instance(self, config: Mapping[str, Any]) -> SubpackagesCheck:
        return SubpackagesCheck(rules=parse_rules(config.get("rules", [])), deny_all=bool(config.get("denyAll", False)))


__all__ = ["SubpackagesCheck", "SubpackagesFactory"]
