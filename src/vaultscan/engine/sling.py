"""Simulation of the Sling OSGi installer's handling of install and config folders."""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, Mapping

from ..archive import ArchiveEntry, PackageArchive
from ..core.errors import ArchiveError
from ..package import PackageId
from .installables import EmbeddedPackageInstallable, Installable, OsgiConfigInstallable, RepoInitInstallable

REPOINIT_FACTORY_PID = "org.apache.sling.jcr.repoinit.RepositoryInitializer"
CONFIG_SUFFIXES = (".config.json", ".cfg.json")

_INSTALL_PATH_RE = re.compile(
    r"^/(?:apps|libs)/(?:.+/)?(?P<folder>install|config)(?:\.(?P<modes>[^/]+))?/(?P<name>[^/]+)$"
)


class SlingSimulator:
    def __init__(self, run_modes: Iterable[str] = ()) -> None:
        self.run_modes = frozenset(str(mode).strip() for mode in run_modes if str(mode).strip())
        self._configs: dict[str, OsgiConfigInstallable] = {}

    def modes_active(self, modes: str | None) -> bool:
        if not modes:
            return True
        return all(mode in self.run_modes for mode in modes.split("."))

    @property
    def configurations(self) -> Mapping[str, OsgiConfigInstallable]:
        return dict(self._configs)

    def identify(self, parent_id: PackageId, entry: ArchiveEntry) -> Installable | None:
        """Return the installable an imported file represents, if any."""
        if not entry.is_file or entry.data is None:
            return None
        match = _INSTALL_PATH_RE.fullmatch(entry.path)
        if match is None or not self.modes_active(match.group("modes")):
            return None
        name = match.group("name")
        if match.group("folder") == "install" and name.endswith(".zip"):
            with PackageArchive.open(entry.data) as nested:
                package_id = nested.package_id
            return EmbeddedPackageInstallable(parent_id, entry.path, package_id=package_id, data=entry.data)
        for suffix in CONFIG_SUFFIXES:
            if name.endswith(suffix):
                return OsgiConfigInstallable(
                    parent_id,
                    entry.path,
                    pid=name[: -len(suffix)],
                    properties=self._parse_config(entry),
                )
        return None

    @staticmethod
    def _parse_config(entry: ArchiveEntry) -> dict[str, Any]:
        try:
            payload = json.loads((entry.data or b"").decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ArchiveError(f"{entry.path}: invalid OSGi configuration: {exc}") from exc
        if not isinstance(payload, dict):
            raise ArchiveError(f"{entry.path}: OSGi configuration must be a JSON object")
        return payload

    def materialize(self, installable: OsgiConfigInstallable) -> Installable | None:
        """Record a configuration; a repo-init configuration yields its scripts as a new installable."""
        self._configs[installable.pid] = installable
        if installable.factory_pid != REPOINIT_FACTORY_PID:
            return None
        raw = installable.properties.get("scripts", ())
        scripts = (raw,) if isinstance(raw, str) else tuple(str(item) for item in raw)
        if not scripts:
            return None
        return RepoInitInstallable(installable.parent_id, installable.path, scripts=scripts)


__all__ = ["CONFIG_SUFFIXES", "REPOINIT_FACTORY_PID", "SlingSimulator"]
