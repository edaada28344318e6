"""Deferred install work discovered while a package is extracted."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping

from ..package import PackageId


@dataclass(frozen=True)
class Installable:
    parent_id: PackageId
    path: str


@dataclass(frozen=True)
class SubpackageInstallable(Installable):
    """A vault subpackage stored under ``/etc/packages``."""

    package_id: PackageId | None = None
    data: bytes = field(default=b"", repr=False, compare=False)


@dataclass(frozen=True)
class EmbeddedPackageInstallable(Installable):
    """A package dropped into a Sling ``install`` folder."""

    package_id: PackageId | None = None
    data: bytes = field(default=b"", repr=False, compare=False)


@dataclass(frozen=True)
class OsgiConfigInstallable(Installable):
    pid: str = ""
    properties: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def factory_pid(self) -> str:
        return self.pid.split("~", 1)[0]


@dataclass(frozen=True)
class RepoInitInstallable(Installable):
    scripts: tuple[str, ...] = ()


class InstallableQueue:
    """Strict FIFO of installables; each item is handed out exactly once."""

    def __init__(self) -> None:
        self._items: deque[Installable] = deque()
        self._consumed = 0

    def offer(self, installable: Installable) -> None:
        self._items.append(installable)

    def poll(self) -> Installable | None:
        if not self._items:
            return None
        self._consumed += 1
        return self._items.popleft()

    @property
    def consumed(self) -> int:
        return self._consumed

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Installable]:
        return iter(tuple(self._items))

    def drain(self, handler: Callable[[Installable], None]) -> int:
        """Hand every item to ``handler`` until the queue stays empty.

        Items offered by ``handler`` are appended and handled in the same
        drain. There is no cycle limit.
        """
        handled = 0
        item = self.poll()
        while item is not None:
            handler(item)
            handled += 1
            item = self.poll()
        return handled


__all__ = [
    "EmbeddedPackageInstallable",
    "Installable",
    "InstallableQueue",
    "OsgiConfigInstallable",
    "RepoInitInstallable",
    "SubpackageInstallable",
]
