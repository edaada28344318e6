"""vaultscan core: errors, exit codes, run context and structured logging."""
from .context import ScanContext
from .errors import (
    AbortedScanError,
    ArchiveError,
    ConfigurationError,
    ReadOnlyViolation,
    RepoInitError,
    RepositoryError,
    ScanError,
)
from .logging import log_event, utc_now_iso

__all__ = [
    "AbortedScanError",
    "ArchiveError",
    "ConfigurationError",
    "ReadOnlyViolation",
    "RepoInitError",
    "RepositoryError",
    "ScanContext",
    "ScanError",
    "log_event",
    "utc_now_iso",
]
