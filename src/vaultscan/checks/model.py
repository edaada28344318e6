from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from ..package import PackageId

_PLACEHOLDER_RE = re.compile(r"\{(\d+)\}")
_RANKS = {"none": 0, "minor": 1, "major": 2, "severe": 3}


class Severity(str, Enum):
    NONE = "none"
    MINOR = "minor"
    MAJOR = "major"
    SEVERE = "severe"

    @property
    def rank(self) -> int:
        return _RANKS[self.value]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    def meets_minimum(self, minimum: Severity) -> bool:
        return self.rank >= minimum.rank

    @classmethod
    def parse(cls, value: str | Severity) -> Severity:
        if isinstance(value, Severity):
            return value
        raw = str(value).strip().lower()
        try:
            return cls(raw)
        except ValueError as exc:
            raise ValueError(f"unknown severity `{value}`: expected one of {[item.value for item in cls]}") from exc


@dataclass(frozen=True)
class Violation:
    severity: Severity
    description: str
    arguments: tuple[object, ...] = ()
    packages: tuple[PackageId, ...] = ()
    paths: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        severity = Severity.parse(self.severity)
        if severity is Severity.NONE:
            raise ValueError("a violation needs a severity above `none`")
        object.__setattr__(self, "severity", severity)
        object.__setattr__(self, "arguments", tuple(self.arguments))
        object.__setattr__(self, "packages", tuple(dict.fromkeys(self.packages)))
        object.__setattr__(self, "paths", tuple(dict.fromkeys(self.paths)))

    def render(self) -> str:
        def _sub(match: re.Match[str]) -> str:
            index = int(match.group(1))
            return str(self.arguments[index]) if index < len(self.arguments) else match.group(0)

        return _PLACEHOLDER_RE.sub(_sub, self.description)

    def to_dict(self) -> dict[str, object]:
        return {
            "severity": self.severity.value,
            "description": self.description,
            "arguments": [str(item) for item in self.arguments],
            "packages": [str(item) for item in self.packages],
            "paths": list(self.paths),
        }


@dataclass(frozen=True)
class CheckReport:
    check_name: str
    violations: tuple[Violation, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "violations", tuple(dict.fromkeys(self.violations)))

    @property
    def worst_severity(self) -> Severity:
        return worst_severity(self.violations)

    def for_package(self, package_id: PackageId) -> tuple[Violation, ...]:
        return tuple(item for item in self.violations if package_id in item.packages)


def worst_severity(violations: Iterable[Violation]) -> Severity:
    worst = Severity.NONE
    for violation in violations:
        if violation.severity > worst:
            worst = violation.severity
    return worst


def merge_reports(reports: Iterable[CheckReport]) -> tuple[CheckReport, ...]:
    """Merge reports sharing a check name; duplicates within one check collapse, across checks they stay."""
    merged: dict[str, list[Violation]] = {}
    for report in reports:
        merged.setdefault(report.check_name, []).extend(report.violations)
    return tuple(CheckReport(name, tuple(items)) for name, items in merged.items())


def group_by_severity(violations: Iterable[Violation]) -> dict[Severity, tuple[Violation, ...]]:
    groups: dict[Severity, list[Violation]] = {}
    for violation in violations:
        groups.setdefault(violation.severity, []).append(violation)
    return {severity: tuple(groups[severity]) for severity in sorted(groups, reverse=True)}


__all__ = ["CheckReport", "Severity", "Violation", "group_by_severity", "merge_reports", "worst_severity"]
