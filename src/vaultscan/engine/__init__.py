"""Scan engine: installation state machine, installable queue and installer simulation."""
from .installables import (
    EmbeddedPackageInstallable,
    Installable,
    InstallableQueue,
    OsgiConfigInstallable,
    RepoInitInstallable,
    SubpackageInstallable,
)
from .scan import ScanEngine
from .sling import SlingSimulator

__all__ = [
    "EmbeddedPackageInstallable",
    "Installable",
    "InstallableQueue",
    "OsgiConfigInstallable",
    "RepoInitInstallable",
    "ScanEngine",
    "SlingSimulator",
    "SubpackageInstallable",
]
