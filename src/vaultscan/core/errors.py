from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .exit_codes import ERR_ABORTED, ERR_ARCHIVE, ERR_CONFIG, ERR_INTERNAL, ERR_READ_ONLY, ERR_REPOSITORY


@dataclass
class ScanError(Exception):
    message: str
    code: int = ERR_INTERNAL
    kind: str = "generic_error"

    def __str__(self) -> str:
        return self.message


@dataclass
class ConfigurationError(ScanError):
    code: int = ERR_CONFIG
    kind: str = "configuration_error"


@dataclass
class ReadOnlyViolation(ScanError):
    """Raised when a mutation is attempted through a read-only facade."""

    message: str = "mutation is not permitted through a read-only repository handle"
    code: int = ERR_READ_ONLY
    kind: str = "read_only_violation"


@dataclass
class RepositoryError(ScanError):
    code: int = ERR_REPOSITORY
    kind: str = "repository_error"


@dataclass
class RepoInitError(RepositoryError):
    kind: str = "repoinit_error"
    line: int = 0


@dataclass
class ArchiveError(ScanError):
    code: int = ERR_ARCHIVE
    kind: str = "archive_error"


@dataclass
class AbortedScanError(ScanError):
    """A scan stopped early; identifies the package that was in flight."""

    code: int = ERR_ABORTED
    kind: str = "aborted_scan"
    cause: BaseException | None = None
    package_node: str | None = None
    package_file: str | None = None
    package_url: str | None = None
    package_id: str | None = None
    reports: tuple[Any, ...] = field(default_factory=tuple)

    @classmethod
    def wrap(
        cls,
        cause: BaseException,
        *,
        package_node: str | None = None,
        package_file: str | None = None,
        package_url: str | None = None,
        package_id: str | None = None,
    ) -> AbortedScanError:
        err = cls(
            message=str(cause),
            cause=cause,
            package_node=package_node,
            package_file=package_file,
            package_url=package_url,
            package_id=package_id,
        )
        err.__cause__ = cause
        return err

    @property
    def failed_package(self) -> str | None:
        for location in (self.package_node, self.package_file, self.package_url, self.package_id):
            if location:
                return location
        return None

    @property
    def failed_package_message(self) -> str:
        location = self.failed_package
        return f"(Failed package: {location}) " if location else ""

    def __str__(self) -> str:
        return f"{self.failed_package_message}{self.message}"


__all__ = [
    "AbortedScanError",
    "ArchiveError",
    "ConfigurationError",
    "ReadOnlyViolation",
    "RepoInitError",
    "RepositoryError",
    "ScanError",
]
