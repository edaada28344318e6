from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from .core.errors import ArchiveError, RepositoryError
from .repository import paths as repo_paths

_ID_SEGMENT_RE = re.compile(r"^[^:\s]*$")


@dataclass(frozen=True, order=True)
class PackageId:
    group: str
    name: str
    version: str = ""

    def __post_init__(self) -> None:
        group = str(self.group or "").strip().strip("/")
        name = str(self.name or "").strip()
        version = str(self.version or "").strip()
        if not name:
            raise ValueError("package name cannot be empty")
        for label, value in (("group", group), ("name", name), ("version", version)):
            if not _ID_SEGMENT_RE.fullmatch(value):
                raise ValueError(f"invalid package {label} `{value}`")
        object.__setattr__(self, "group", group)
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "version", version)

    @classmethod
    def parse(cls, value: str) -> PackageId:
        parts = str(value).strip().split(":")
        if len(parts) == 1:
            return cls("", parts[0])
        if len(parts) == 2:
            return cls(parts[0], parts[1])
        if len(parts) == 3:
            return cls(parts[0], parts[1], parts[2])
        raise ValueError(f"invalid package id `{value}`: expected group:name[:version]")

    @property
    def download_name(self) -> str:
        return f"{self.name}-{self.version}.zip" if self.version else f"{self.name}.zip"

    @property
    def installation_path(self) -> str:
        base = f"/etc/packages/{self.group}" if self.group else "/etc/packages"
        return f"{base}/{self.download_name}"

    def __str__(self) -> str:
        return f"{self.group}:{self.name}:{self.version}"


class PathAction(str, Enum):
    ADD = "add"
    MODIFY = "modify"
    DELETE = "delete"
    NOOP = "noop"


class ACHandling(str, Enum):
    IGNORE = "ignore"
    OVERWRITE = "overwrite"
    MERGE = "merge"
    MERGE_PRESERVE = "merge_preserve"
    CLEAR = "clear"

    @classmethod
    def parse(cls, value: str | None) -> ACHandling | None:
        raw = str(value or "").strip().lower()
        if not raw:
            return None
        try:
            return cls(raw)
        except ValueError as exc:
            raise ArchiveError(f"unknown acHandling mode `{value}`") from exc


class ImportMode(str, Enum):
    REPLACE = "replace"
    MERGE = "merge"
    UPDATE = "update"


@dataclass(frozen=True)
class PackageProperties:
    package_id: PackageId
    ac_handling: ACHandling | None = None
    requires_root: bool = False
    description: str = ""
    dependencies: tuple[PackageId, ...] = ()
    raw: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, str]) -> PackageProperties:
        name = str(raw.get("name", "")).strip()
        if not name:
            raise ArchiveError("package properties must declare a `name`")
        try:
            package_id = PackageId(raw.get("group", ""), name, raw.get("version", ""))
            dependencies = tuple(
                PackageId.parse(item) for item in str(raw.get("dependencies", "")).split(",") if item.strip()
            )
        except ValueError as exc:
            raise ArchiveError(f"invalid package properties: {exc}") from exc
        return cls(
            package_id=package_id,
            ac_handling=ACHandling.parse(raw.get("acHandling")),
            requires_root=str(raw.get("requiresRoot", "")).strip().lower() == "true",
            description=str(raw.get("description", "")).strip(),
            dependencies=dependencies,
            raw=dict(raw),
        )

    @classmethod
    def from_xml(cls, text: str | bytes) -> PackageProperties:
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise ArchiveError(f"malformed properties.xml: {exc}") from exc
        raw: dict[str, str] = {}
        for entry in root.iter("entry"):
            key = str(entry.get("key", "")).strip()
            if key:
                raw[key] = (entry.text or "").strip()
        return cls.from_mapping(raw)


@dataclass(frozen=True)
class Manifest:
    attributes: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, text: str | bytes) -> Manifest:
        body = text.decode("utf-8") if isinstance(text, bytes) else str(text)
        attributes: dict[str, str] = {}
        last_key = ""
        for line in body.splitlines():
            if not line.strip():
                # main section ends at the first blank line
                break
            if line.startswith(" ") and last_key:
                attributes[last_key] += line[1:]
                continue
            key, sep, value = line.partition(":")
            if not sep:
                raise ArchiveError(f"malformed manifest line: `{line}`")
            last_key = key.strip()
            attributes[last_key] = value.strip()
        return cls(attributes=attributes)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.attributes.get(key, default)

    def __bool__(self) -> bool:
        return bool(self.attributes)


@dataclass(frozen=True)
class FilterRule:
    include: bool
    pattern: str

    def __post_init__(self) -> None:
        try:
            re.compile(self.pattern)
        except re.error as exc:
            raise ArchiveError(f"invalid filter pattern `{self.pattern}`: {exc}") from exc

    def matches(self, path: str) -> bool:
        return re.fullmatch(self.pattern, path) is not None


@dataclass(frozen=True)
class PathFilterSet:
    root: str
    mode: ImportMode = ImportMode.REPLACE
    rules: tuple[FilterRule, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", repo_paths.normalize(self.root))
        if not isinstance(self.mode, ImportMode):
            object.__setattr__(self, "mode", ImportMode(str(self.mode).strip().lower()))

    def covers(self, path: str) -> bool:
        return repo_paths.is_ancestor_or_self(self.root, path)

    def contains(self, path: str) -> bool:
        if not self.covers(path):
            return False
        if not self.rules:
            return True
        result = not self.rules[0].include
        for rule in self.rules:
            if rule.matches(repo_paths.normalize(path)):
                result = rule.include
        return result


@dataclass(frozen=True)
class WorkspaceFilter:
    filter_sets: tuple[PathFilterSet, ...] = ()

    @property
    def roots(self) -> tuple[str, ...]:
        return tuple(item.root for item in self.filter_sets)

    def covering_set(self, path: str) -> PathFilterSet | None:
        for item in self.filter_sets:
            if item.covers(path):
                return item
        return None

    def covers(self, path: str) -> bool:
        return self.covering_set(path) is not None

    def contains(self, path: str) -> bool:
        return any(item.contains(path) for item in self.filter_sets)

    def roots_under(self, path: str) -> tuple[str, ...]:
        return tuple(root for root in self.roots if repo_paths.is_ancestor_or_self(path, root))

    def is_ancestor(self, path: str) -> bool:
        return any(repo_paths.is_descendant(root, path) for root in self.roots)

    @classmethod
    def from_xml(cls, text: str | bytes) -> WorkspaceFilter:
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise ArchiveError(f"malformed filter.xml: {exc}") from exc
        sets: list[PathFilterSet] = []
        for node in root.iter("filter"):
            rules = tuple(
                FilterRule(include=child.tag == "include", pattern=str(child.get("pattern", "")))
                for child in node
                if child.tag in {"include", "exclude"}
            )
            try:
                sets.append(
                    PathFilterSet(
                        root=str(node.get("root", "")),
                        mode=ImportMode(str(node.get("mode", "replace")).strip().lower()),
                        rules=rules,
                    )
                )
            except (ValueError, RepositoryError) as exc:
                raise ArchiveError(f"invalid filter definition: {exc}") from exc
        return cls(filter_sets=tuple(sets))


@dataclass(frozen=True)
class MetaInf:
    properties: PackageProperties
    manifest: Manifest
    filter: WorkspaceFilter


__all__ = [
    "ACHandling",
    "FilterRule",
    "ImportMode",
    "Manifest",
    "MetaInf",
    "PackageId",
    "PackageProperties",
    "PathAction",
    "PathFilterSet",
    "WorkspaceFilter",
]
