"""Ordered allow/deny pattern rules shared by the path and subpackage checks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping


@dataclass(frozen=True)
class Rule:
    allow: bool
    pattern: str

    def __post_init__(self) -> None:
        try:
            re.compile(self.pattern)
        except re.error as exc:
            raise ValueError(f"invalid rule pattern `{self.pattern}`: {exc}") from exc

    def matches(self, value: str) -> bool:
        return re.fullmatch(self.pattern, value) is not None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Rule:
        return cls(allow=str(raw["type"]).strip().lower() == "allow", pattern=str(raw["pattern"]))


def parse_rules(raw: Iterable[Mapping[str, Any]]) -> tuple[Rule, ...]:
    return tuple(Rule.from_mapping(item) for item in raw)


def is_allowed(rules: Iterable[Rule], value: str, default: bool = True) -> bool:
    """The last matching rule decides; ``default`` applies when none match."""
    decision = default
    for rule in rules:
        if rule.matches(value):
            decision = rule.allow
    return decision


__all__ = ["Rule", "is_allowed", "parse_rules"]
