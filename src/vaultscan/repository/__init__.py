"""Ephemeral in-memory hierarchical repository used as the install target of a scan."""
from .access import AccessControlEntry, AccessControlManager
from .locks import Lock, LockManager
from .nodes import Node, Property
from .repoinit import RepoInitProcessor, apply_scripts
from .session import Repository, Session

__all__ = [
    "AccessControlEntry",
    "AccessControlManager",
    "Lock",
    "LockManager",
    "Node",
    "Property",
    "RepoInitProcessor",
    "Repository",
    "Session",
    "apply_scripts",
]
