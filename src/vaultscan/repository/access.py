from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from ..core.errors import RepositoryError
from . import paths as repo_paths

if TYPE_CHECKING:
    from .session import Session

JCR_ALL = "jcr:all"
PRIVILEGES = frozenset(
    {
        JCR_ALL,
        "jcr:read",
        "jcr:write",
        "jcr:modifyProperties",
        "jcr:addChildNodes",
        "jcr:removeNode",
        "jcr:removeChildNodes",
        "jcr:readAccessControl",
        "jcr:modifyAccessControl",
        "jcr:lockManagement",
        "jcr:versionManagement",
        "jcr:nodeTypeManagement",
        "rep:write",
    }
)


@dataclass(frozen=True)
class AccessControlEntry:
    principal: str
    allow: bool
    privileges: tuple[str, ...]

    def __post_init__(self) -> None:
        principal = str(self.principal).strip()
        if not principal:
            raise RepositoryError("access control entry requires a principal")
        privileges = tuple(str(item).strip() for item in self.privileges if str(item).strip())
        unknown = sorted(set(privileges) - PRIVILEGES)
        if unknown:
            raise RepositoryError(f"unknown privileges: {unknown}")
        if not privileges:
            raise RepositoryError(f"access control entry for `{principal}` declares no privileges")
        object.__setattr__(self, "principal", principal)
        object.__setattr__(self, "allow", bool(self.allow))
        object.__setattr__(self, "privileges", privileges)

    def grants(self, privilege: str) -> bool:
        return JCR_ALL in self.privileges or privilege in self.privileges


class AccessControlManager:
    def __init__(self, session: Session, policies: dict[str, tuple[AccessControlEntry, ...]]) -> None:
        self._session = session
        self._policies = policies

    def _node_path(self, path: str) -> str:
        normalized = repo_paths.normalize(path)
        if not self._session.node_exists(normalized):
            raise RepositoryError(f"no node at {normalized}")
        return normalized

    def get_policies(self, path: str) -> tuple[AccessControlEntry, ...]:
        return self._policies.get(self._node_path(path), ())

    def get_effective_policies(self, path: str) -> list[tuple[str, tuple[AccessControlEntry, ...]]]:
        target = self._node_path(path)
        out: list[tuple[str, tuple[AccessControlEntry, ...]]] = []
        for candidate in [*repo_paths.ancestors(target), target]:
            entries = self._policies.get(candidate)
            if entries:
                out.append((candidate, entries))
        return out

    def has_privileges(self, path: str, principals: Iterable[str], privileges: Iterable[str]) -> bool:
        effective = list(reversed(self.get_effective_policies(path)))
        names = set(principals)
        for privilege in privileges:
            decision = False
            for _, entries in effective:
                matching = [entry for entry in entries if entry.principal in names and entry.grants(privilege)]
                if matching:
                    decision = matching[-1].allow
                    break
            if not decision:
                return False
        return True

    def get_privileges(self, path: str, principals: Iterable[str]) -> frozenset[str]:
        names = tuple(principals)
        return frozenset(
            privilege
            for privilege in PRIVILEGES
            if privilege != JCR_ALL and self.has_privileges(path, names, (privilege,))
        )

    def set_policy(self, path: str, entries: Iterable[AccessControlEntry]) -> None:
        target = self._node_path(path)
        self._policies[target] = tuple(entries)
        self._session.repository._touch()

    def remove_policy(self, path: str) -> None:
        target = self._node_path(path)
        if target not in self._policies:
            raise RepositoryError(f"no access control policy at {target}")
        del self._policies[target]
        self._session.repository._touch()


__all__ = ["AccessControlEntry", "AccessControlManager", "JCR_ALL", "PRIVILEGES"]
