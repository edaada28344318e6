"""Installation state machine driving checks through every package of a scan."""

from __future__ import annotations

import os
from typing import Any, Iterable, Sequence

from ..archive import ArchiveEntry, PackageArchive, Source
from ..checks.api import ProgressCheck, SilenceableCheck
from ..core.context import ScanContext
from ..core.errors import AbortedScanError, ArchiveError, ReadOnlyViolation, RepositoryError
from ..core.logging import log_event
from ..facade import read_only
from ..package import ACHandling, ImportMode, MetaInf, PackageId, PathAction, PathFilterSet, WorkspaceFilter
from ..repository import paths as repo_paths
from ..repository.access import AccessControlEntry
from ..repository.nodes import Node
from ..repository.repoinit import RepoInitProcessor
from ..repository.session import Session
from .installables import (
    EmbeddedPackageInstallable,
    Installable,
    InstallableQueue,
    OsgiConfigInstallable,
    RepoInitInstallable,
    SubpackageInstallable,
)
from .sling import SlingSimulator

ABORT_ERRORS = (RepositoryError, ArchiveError, ReadOnlyViolation)
SUBPACKAGE_ROOT = "/etc/packages"
_URL_PREFIXES = ("http://", "https://", "file://", "ftp://")


def source_location(source: Source) -> tuple[str | None, str | None]:
    """Return ``(file, url)`` for a package source when it has one."""
    if isinstance(source, (str, os.PathLike)):
        text = os.fspath(source)
        if isinstance(text, str) and text.startswith(_URL_PREFIXES):
            return None, text
        return str(text), None
    return None, None


def is_subpackage_entry(entry: ArchiveEntry) -> bool:
    return (
        entry.is_file
        and entry.path.endswith(".zip")
        and repo_paths.is_descendant(entry.path, SUBPACKAGE_ROOT)
        and entry.data is not None
    )


class ScanEngine:
    """Extracts packages into a writable session and fires lifecycle hooks on checks.

    Checks only ever receive read-only facades over repository objects. Hooks
    are dispatched to checks in the order they were given.
    """

    def __init__(
        self,
        session: Session,
        checks: Sequence[ProgressCheck],
        *,
        ctx: ScanContext,
        sling: SlingSimulator | None = None,
    ) -> None:
        self._session = session
        self._view = read_only(session)
        self._checks = tuple(checks)
        self._ctx = ctx
        self._sling = sling or SlingSimulator()
        self._repoinit = RepoInitProcessor(session)

    @property
    def checks(self) -> tuple[ProgressCheck, ...]:
        return self._checks

    @property
    def sling(self) -> SlingSimulator:
        return self._sling

    def _dispatch(self, hook: str, *args: Any) -> None:
        for check in self._checks:
            getattr(check, hook)(*args)

    def started_scan(self) -> None:
        self._dispatch("started_scan")

    def finished_scan(self) -> None:
        self._dispatch("finished_scan")

    def set_silenced(self, silenced: bool) -> None:
        for check in self._checks:
            if isinstance(check, SilenceableCheck):
                check.set_silenced(silenced)

    def scan_package(self, source: Source) -> PackageId:
        package_file, package_url = source_location(source)
        try:
            archive = PackageArchive.open(source)
        except ABORT_ERRORS as exc:
            raise AbortedScanError.wrap(exc, package_file=package_file, package_url=package_url) from exc
        try:
            return self._process(archive, installable=None)
        finally:
            archive.close()

    def scan_packages(self, sources: Iterable[Source]) -> list[PackageId]:
        return [self.scan_package(source) for source in sources]

    def _process(self, archive: PackageArchive, *, installable: Installable | None) -> PackageId:
        package_id: PackageId | None = None
        try:
            meta = archive.meta_inf
            package_id = meta.properties.package_id
            self._run_package(package_id, archive, meta, installable)
            return package_id
        except AbortedScanError:
            raise
        except ABORT_ERRORS as exc:
            log_event(
                self._ctx,
                "error",
                "engine",
                "package.abort",
                package=str(package_id) if package_id else "",
                error=type(exc).__name__,
            )
            raise AbortedScanError.wrap(
                exc,
                package_node=installable.path if installable is not None else None,
                package_file=archive.file,
                package_url=archive.url,
                package_id=str(package_id) if package_id else None,
            ) from exc

    def _run_package(
        self, package_id: PackageId, archive: PackageArchive, meta: MetaInf, installable: Installable | None
    ) -> None:
        log_event(self._ctx, "debug", "engine", "package.begin", package=str(package_id))
        if isinstance(installable, SubpackageInstallable):
            self._dispatch("identify_subpackage", package_id, installable.parent_id)
        elif isinstance(installable, EmbeddedPackageInstallable):
            self._dispatch("identify_embedded_package", package_id, installable.parent_id, installable)
        self._dispatch("identify_package", package_id, archive.location)
        self._dispatch("read_manifest", package_id, meta.manifest)

        entries = archive.entries()
        subpackages = self._find_subpackages(package_id, entries, meta.filter)
        self._dispatch(
            "before_extract",
            package_id,
            self._view,
            meta.properties,
            meta,
            tuple(item.package_id for item in subpackages.values() if item.package_id is not None),
        )

        queue = InstallableQueue()
        self._extract(package_id, meta, entries, subpackages, queue)
        self._session.save()
        self._dispatch("after_extract", package_id, self._view)

        drained = queue.drain(lambda item: self._install(item, queue))
        self._session.save()
        self._dispatch("after_scan_package", package_id, self._view)
        log_event(self._ctx, "debug", "engine", "package.end", package=str(package_id), installables=drained)

    def _find_subpackages(
        self, package_id: PackageId, entries: Iterable[ArchiveEntry], ws_filter: WorkspaceFilter
    ) -> dict[str, SubpackageInstallable]:
        found: dict[str, SubpackageInstallable] = {}
        for entry in entries:
            if not is_subpackage_entry(entry) or not ws_filter.contains(entry.path):
                continue
            data = entry.data or b""
            with PackageArchive.open(data) as nested:
                nested_id = nested.package_id
            found[entry.path] = SubpackageInstallable(package_id, entry.path, package_id=nested_id, data=data)
        return found

    def _extract(
        self,
        package_id: PackageId,
        meta: MetaInf,
        entries: Sequence[ArchiveEntry],
        subpackages: dict[str, SubpackageInstallable],
        queue: InstallableQueue,
    ) -> None:
        ws_filter = meta.filter
        ac_handling = meta.properties.ac_handling or ACHandling.IGNORE
        imported: set[str] = set()
        for entry in entries:
            filter_set = ws_filter.covering_set(entry.path)
            if filter_set is None or not ws_filter.contains(entry.path):
                continue
            action, node = self._import_entry(entry, filter_set.mode)
            imported.add(entry.path)
            if entry.acl is not None:
                self._apply_acl(node.path, entry.acl, ac_handling)
            self._dispatch("imported_path", package_id, entry.path, read_only(node), action)
            discovered = subpackages.get(entry.path) or self._sling.identify(package_id, entry)
            if discovered is not None:
                log_event(self._ctx, "debug", "engine", "installable.offer", path=entry.path, kind=type(discovered).__name__)
                queue.offer(discovered)
        for filter_set in ws_filter.filter_sets:
            if filter_set.mode is ImportMode.REPLACE:
                self._remove_stale(package_id, filter_set, imported)

    def _import_entry(self, entry: ArchiveEntry, mode: ImportMode) -> tuple[PathAction, Node]:
        parent_path = repo_paths.parent_of(entry.path) or repo_paths.ROOT
        parent = self._session.create_path(parent_path, "nt:folder")
        name = repo_paths.name_of(entry.path)
        if parent.has_node(name):
            node = parent.get_node(name)
            if mode is ImportMode.MERGE:
                return PathAction.NOOP, node
            changed = self._apply_definition(node, entry, replace=mode is ImportMode.REPLACE)
            return (PathAction.MODIFY if changed else PathAction.NOOP), node
        node = parent.add_node(name, entry.primary_type)
        self._apply_definition(node, entry, replace=False)
        return PathAction.ADD, node

    @staticmethod
    def _apply_definition(node: Node, entry: ArchiveEntry, *, replace: bool) -> bool:
        changed = False
        if node.primary_type != entry.primary_type:
            node.set_primary_type(entry.primary_type)
            changed = True
        for mixin in entry.mixin_types:
            if mixin not in node.mixin_types:
                node.add_mixin(mixin)
                changed = True
        for name, value in entry.properties.items():
            if not node.has_property(name) or node.get_property(name).value != value:
                node.set_property(name, value)
                changed = True
        if replace:
            for mixin in [item for item in node.mixin_types if item not in entry.mixin_types]:
                node.remove_mixin(mixin)
                changed = True
            for prop in node.get_properties():
                if prop.name in {"jcr:primaryType", "jcr:mixinTypes"} or prop.name in entry.properties:
                    continue
                node.remove_property(prop.name)
                changed = True
        return changed

    def _apply_acl(self, path: str, entries: tuple[AccessControlEntry, ...], mode: ACHandling) -> None:
        if mode is ACHandling.IGNORE:
            return
        acm = self._session.access_control_manager
        existing = acm.get_policies(path)
        if mode is ACHandling.CLEAR:
            if existing:
                acm.remove_policy(path)
            return
        if mode is ACHandling.OVERWRITE:
            acm.set_policy(path, entries)
            return
        incoming = {entry.principal for entry in entries}
        present = {entry.principal for entry in existing}
        if mode is ACHandling.MERGE:
            merged = tuple(entry for entry in existing if entry.principal not in incoming) + entries
        else:
            merged = existing + tuple(entry for entry in entries if entry.principal not in present)
        acm.set_policy(path, merged)

    def _remove_stale(self, package_id: PackageId, filter_set: PathFilterSet, imported: set[str]) -> None:
        """Remove covered nodes the package does not carry, one ``deleted_path`` per removed subtree."""
        if not self._session.node_exists(filter_set.root):
            return
        pending = [self._session.get_node(filter_set.root)]
        while pending:
            node = pending.pop(0)
            path = node.path
            keeps_descendant = any(repo_paths.is_descendant(item, path) for item in imported)
            if path not in imported and not keeps_descendant and filter_set.contains(path):
                node.remove()
                self._dispatch("deleted_path", package_id, path, self._view)
                continue
            pending.extend(sorted(node.get_nodes(), key=lambda child: child.name))

    def _install(self, item: Installable, queue: InstallableQueue) -> None:
        log_event(self._ctx, "debug", "engine", "installable.drain", path=item.path, kind=type(item).__name__)
        self._dispatch("before_sling_install", item.parent_id, item, self._view)
        if isinstance(item, (SubpackageInstallable, EmbeddedPackageInstallable)):
            try:
                nested = PackageArchive.open(item.data)
            except ABORT_ERRORS as exc:
                raise AbortedScanError.wrap(exc, package_node=item.path) from exc
            try:
                self._process(nested, installable=item)
            finally:
                nested.close()
        elif isinstance(item, OsgiConfigInstallable):
            follow_up = self._sling.materialize(item)
            if follow_up is not None:
                queue.offer(follow_up)
        elif isinstance(item, RepoInitInstallable):
            self._repoinit.apply_all(item.scripts)
            self._session.save()
            self._dispatch("applied_repo_init_scripts", item.parent_id, item.scripts, item, self._view)


__all__ = ["ABORT_ERRORS", "ScanEngine", "is_subpackage_entry", "source_location"]
