from __future__ import annotations

from ..core.errors import RepositoryError
from . import paths as repo_paths
from .access import AccessControlEntry, AccessControlManager
from .locks import Lock, LockManager
from .nodes import Node, Property

DEFAULT_NAMESPACES: dict[str, str] = {
    "jcr": "http://www.jcp.org/jcr/1.0",
    "nt": "http://www.jcp.org/jcr/nt/1.0",
    "mix": "http://www.jcp.org/jcr/mix/1.0",
    "rep": "internal",
    "sling": "http://sling.apache.org/jcr/sling/1.0",
    "vlt": "http://www.day.com/jcr/vault/1.0",
}

USERS_PATH = "/home/users"
SYSTEM_USERS_PATH = "/home/users/system"
GROUPS_PATH = "/home/groups"


class Repository:
    def __init__(self) -> None:
        self._root = Node(self, "", "rep:root")
        self._policies: dict[str, tuple[AccessControlEntry, ...]] = {}
        self._locks: dict[str, Lock] = {}
        self._namespaces: dict[str, str] = dict(DEFAULT_NAMESPACES)
        self._sessions: list[Session] = []
        self._revision = 0
        self._shutdown = False
        home = self._root.add_node("home", "rep:AuthorizableFolder")
        home.add_node("users", "rep:AuthorizableFolder").add_node("system", "rep:AuthorizableFolder")
        home.add_node("groups", "rep:AuthorizableFolder")

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def _touch(self) -> None:
        self._revision += 1

    def _forget(self, path: str) -> None:
        for key in [key for key in self._policies if repo_paths.is_ancestor_or_self(path, key)]:
            del self._policies[key]
        for key in [key for key in self._locks if repo_paths.is_ancestor_or_self(path, key)]:
            self._locks.pop(key)._release()
        self._touch()

    def login(self, user_id: str = "admin") -> Session:
        if self._shutdown:
            raise RepositoryError("repository has been shut down")
        session = Session(self, user_id)
        self._sessions.append(session)
        return session

    def shutdown(self) -> None:
        for session in self._sessions:
            if session.is_live():
                session.logout()
        self._shutdown = True


class Session:
    def __init__(self, repository: Repository, user_id: str) -> None:
        self._repository = repository
        self._user_id = user_id
        self._live = True
        self._saved_revision = repository.revision

    def _ensure_live(self) -> None:
        if not self._live:
            raise RepositoryError("session is closed")

    @property
    def repository(self) -> Repository:
        return self._repository

    @property
    def user_id(self) -> str:
        return self._user_id

    def is_live(self) -> bool:
        return self._live

    @property
    def root_node(self) -> Node:
        self._ensure_live()
        return self._repository._root

    def _lookup(self, path: str) -> Node | None:
        self._ensure_live()
        node = self._repository._root
        for seg in repo_paths.segments(path):
            node = node._child(seg)
            if node is None:
                return None
        return node

    def get_node(self, path: str) -> Node:
        node = self._lookup(path)
        if node is None:
            raise RepositoryError(f"no node at {repo_paths.normalize(path)}")
        return node

    def node_exists(self, path: str) -> bool:
        return self._lookup(path) is not None

    def property_exists(self, path: str) -> bool:
        parent = repo_paths.parent_of(path)
        if parent is None:
            return False
        node = self._lookup(parent)
        return node is not None and node.has_property(repo_paths.name_of(path))

    def item_exists(self, path: str) -> bool:
        return self.node_exists(path) or self.property_exists(path)

    def get_property(self, path: str) -> Property:
        parent = repo_paths.parent_of(path)
        if parent is None:
            raise RepositoryError("the root path is not a property")
        return self.get_node(parent).get_property(repo_paths.name_of(path))

    def create_path(self, path: str, primary_type: str = "nt:folder", intermediate_type: str | None = None) -> Node:
        """Return the node at ``path``, creating it and any missing ancestors."""
        self._ensure_live()
        node = self._repository._root
        segs = repo_paths.segments(path)
        for index, seg in enumerate(segs):
            child = node._child(seg)
            if child is None:
                last = index == len(segs) - 1
                child = node.add_node(seg, primary_type if last else (intermediate_type or primary_type))
            node = child
        return node

    def remove_item(self, path: str) -> None:
        if self.node_exists(path):
            self.get_node(path).remove()
            return
        if self.property_exists(path):
            self.get_node(repo_paths.parent_of(path) or "/").remove_property(repo_paths.name_of(path))
            return
        raise RepositoryError(f"no item at {repo_paths.normalize(path)}")

    def move(self, src_path: str, dest_path: str) -> None:
        node = self.get_node(src_path)
        dest = repo_paths.normalize(dest_path)
        if self.node_exists(dest):
            raise RepositoryError(f"item exists: {dest}")
        if repo_paths.is_ancestor_or_self(node.path, dest):
            raise RepositoryError(f"cannot move {node.path} below itself")
        new_parent = self.get_node(repo_paths.parent_of(dest) or "/")
        old_path = node.path
        old_parent = node.parent
        if old_parent is None:
            raise RepositoryError("cannot move the root node")
        del old_parent._children[node.name]
        node._reparent(new_parent, repo_paths.name_of(dest))
        new_parent._children[node.name] = node
        self._repository._forget(old_path)

    def copy(self, src_path: str, dest_path: str) -> Node:
        node = self.get_node(src_path)
        dest = repo_paths.normalize(dest_path)
        if self.node_exists(dest):
            raise RepositoryError(f"item exists: {dest}")
        new_parent = self.get_node(repo_paths.parent_of(dest) or "/")
        copy = node._clone_into(new_parent, repo_paths.name_of(dest))
        new_parent._children[copy.name] = copy
        self._repository._touch()
        return copy

    def has_pending_changes(self) -> bool:
        self._ensure_live()
        return self._repository.revision != self._saved_revision

    def save(self) -> None:
        self._ensure_live()
        self._saved_revision = self._repository.revision

    def logout(self) -> None:
        self._live = False

    @property
    def access_control_manager(self) -> AccessControlManager:
        self._ensure_live()
        return AccessControlManager(self, self._repository._policies)

    @property
    def lock_manager(self) -> LockManager:
        self._ensure_live()
        return LockManager(self, self._repository._locks)

    @property
    def namespace_prefixes(self) -> tuple[str, ...]:
        self._ensure_live()
        return tuple(sorted(self._repository._namespaces))

    def get_namespace_uri(self, prefix: str) -> str:
        self._ensure_live()
        uri = self._repository._namespaces.get(prefix)
        if uri is None:
            raise RepositoryError(f"unknown namespace prefix `{prefix}`")
        return uri

    def register_namespace(self, prefix: str, uri: str) -> None:
        self._ensure_live()
        existing = self._repository._namespaces.get(prefix)
        if existing is not None and existing != uri:
            raise RepositoryError(f"namespace prefix `{prefix}` already mapped to {existing}")
        self._repository._namespaces[prefix] = uri
        self._repository._touch()


__all__ = ["GROUPS_PATH", "Repository", "SYSTEM_USERS_PATH", "Session", "USERS_PATH"]
