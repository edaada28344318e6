from __future__ import annotations

import io
import json
import zipfile
from pathlib import Path
from typing import Any, Iterable, Mapping, Union
from xml.sax.saxutils import escape, quoteattr

from vaultscan.checks.api import LIFECYCLE_HOOKS, ProgressCheck
from vaultscan.package import PackageId

ROOT = Path(__file__).resolve().parents[1]

FilterSpec = Union[str, tuple[str, str], tuple[str, str, Iterable[tuple[str, str]]]]
Content = Union[bytes, str, Mapping[str, Any]]


def properties_xml(name: str, group: str, version: str, extra: Mapping[str, str] | None = None) -> str:
    entries = {"name": name, "group": group, "version": version, **(extra or {})}
    rows = "".join(f"<entry key={quoteattr(key)}>{escape(value)}</entry>" for key, value in entries.items())
    return f'<?xml version="1.0" encoding="utf-8" standalone="no"?><properties>{rows}</properties>'


def filter_xml(filters: Iterable[FilterSpec]) -> str:
    parts = []
    for spec in filters:
        if isinstance(spec, str):
            root, mode, rules = spec, "replace", ()
        elif len(spec) == 2:
            root, mode, rules = spec[0], spec[1], ()
        else:
            root, mode, rules = spec  # type: ignore[misc]
        body = "".join(f"<{kind} pattern={quoteattr(pattern)}/>" for kind, pattern in rules)
        parts.append(f"<filter root={quoteattr(root)} mode={quoteattr(mode)}>{body}</filter>")
    return f'<?xml version="1.0" encoding="UTF-8"?><workspaceFilter version="1.0">{"".join(parts)}</workspaceFilter>'


def package_bytes(
    name: str,
    *,
    group: str = "my_packages",
    version: str = "1.0",
    filters: Iterable[FilterSpec] = (),
    content: Mapping[str, Content] | None = None,
    ac_handling: str | None = None,
    manifest: str | None = None,
    extra_properties: Mapping[str, str] | None = None,
) -> bytes:
    """Build a package zip in memory; ``content`` keys are paths below ``jcr_root/``."""
    extra = dict(extra_properties or {})
    if ac_handling is not None:
        extra["acHandling"] = ac_handling
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("META-INF/vault/properties.xml", properties_xml(name, group, version, extra))
        zf.writestr("META-INF/vault/filter.xml", filter_xml(filters))
        if manifest is not None:
            zf.writestr("META-INF/MANIFEST.MF", manifest)
        for rel, value in sorted((content or {}).items()):
            if isinstance(value, Mapping):
                data: bytes = json.dumps(value).encode("utf-8")
            elif isinstance(value, str):
                data = value.encode("utf-8")
            else:
                data = value
            zf.writestr(f"jcr_root/{rel}", data)
    return buffer.getvalue()


def write_package(tmp_path: Path, name: str, **kwargs: Any) -> Path:
    target = tmp_path / f"{name}.zip"
    target.write_bytes(package_bytes(name, **kwargs))
    return target


def pid(name: str, group: str = "my_packages", version: str = "1.0") -> PackageId:
    return PackageId(group, name, version)


def folder(primary_type: str = "nt:folder", **props: Any) -> dict[str, Any]:
    return {"jcr:primaryType": primary_type, **props}


def _label(value: object) -> str:
    if isinstance(value, PackageId):
        return value.name
    if isinstance(value, str):
        return value
    path = getattr(value, "path", None)
    return str(path) if path is not None else ""


class RecordingCheck(ProgressCheck):
    """Appends ``(check, hook, package, detail)`` for every lifecycle event to a shared log."""

    def __init__(self, name: str = "recorder", log: list[tuple[str, ...]] | None = None) -> None:
        self._name = name
        self.events: list[tuple[str, ...]] = log if log is not None else []

    @property
    def check_name(self) -> str:
        return self._name

    def hooks(self) -> list[tuple[str, ...]]:
        return [event[1:] for event in self.events if event[0] == self._name]


_DETAIL_INDEX = {
    "imported_path": 1,
    "deleted_path": 1,
    "identify_subpackage": 1,
    "identify_embedded_package": 1,
    "before_sling_install": 1,
    "applied_repo_init_scripts": 2,
}


def _recorder(hook: str):  # type: ignore[no-untyped-def]
    def _record(self: RecordingCheck, *args: object) -> None:
        package = _label(args[0]) if args else ""
        index = _DETAIL_INDEX.get(hook)
        detail = _label(args[index]) if index is not None else ""
        self.events.append((self._name, hook, package, detail))

    return _record


for _hook in LIFECYCLE_HOOKS:
    setattr(RecordingCheck, _hook, _recorder(_hook))
