from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from ..core.errors import RepositoryError
from . import paths as repo_paths

if TYPE_CHECKING:
    from .nodes import Node
    from .session import Session


class Lock:
    def __init__(self, session: Session, path: str, *, owner: str, deep: bool, session_scoped: bool) -> None:
        self._session = session
        self._path = path
        self._owner = owner
        self._deep = deep
        self._session_scoped = session_scoped
        self._token = f"lock-{uuid.uuid4().hex}"
        self._refreshes = 0
        self._live = True

    @property
    def path(self) -> str:
        return self._path

    @property
    def lock_owner(self) -> str:
        return self._owner

    @property
    def lock_token(self) -> str:
        return self._token

    @property
    def refresh_count(self) -> int:
        return self._refreshes

    def is_deep(self) -> bool:
        return self._deep

    def is_live(self) -> bool:
        return self._live

    def is_session_scoped(self) -> bool:
        return self._session_scoped

    def is_lock_owning_session(self) -> bool:
        return self._session.user_id == self._owner

    @property
    def node(self) -> Node:
        return self._session.get_node(self._path)

    def refresh(self) -> None:
        if not self._live:
            raise RepositoryError(f"lock on {self._path} is no longer live")
        self._refreshes += 1

    def _release(self) -> None:
        self._live = False


class LockManager:
    def __init__(self, session: Session, locks: dict[str, Lock]) -> None:
        self._session = session
        self._locks = locks

    def _holding_lock(self, path: str) -> Lock | None:
        target = repo_paths.normalize(path)
        lock = self._locks.get(target)
        if lock is not None:
            return lock
        for ancestor in reversed(repo_paths.ancestors(target)):
            candidate = self._locks.get(ancestor)
            if candidate is not None and candidate.is_deep():
                return candidate
        return None

    def lock(self, path: str, *, deep: bool = False, session_scoped: bool = True) -> Lock:
        node = self._session.get_node(path)
        if self._holding_lock(node.path) is not None:
            raise RepositoryError(f"node is already locked: {node.path}")
        lock = Lock(self._session, node.path, owner=self._session.user_id, deep=deep, session_scoped=session_scoped)
        self._locks[node.path] = lock
        return lock

    def get_lock(self, path: str) -> Lock:
        self._session.get_node(path)
        lock = self._holding_lock(path)
        if lock is None:
            raise RepositoryError(f"node is not locked: {path}")
        return lock

    def is_locked(self, path: str) -> bool:
        self._session.get_node(path)
        return self._holding_lock(path) is not None

    def holds_lock(self, path: str) -> bool:
        return repo_paths.normalize(path) in self._locks

    def unlock(self, path: str) -> None:
        node = self._session.get_node(path)
        lock = self._locks.pop(node.path, None)
        if lock is None:
            raise RepositoryError(f"node does not hold a lock: {node.path}")
        lock._release()

    @property
    def lock_tokens(self) -> tuple[str, ...]:
        return tuple(lock.lock_token for lock in self._locks.values() if lock.is_lock_owning_session())


__all__ = ["Lock", "LockManager"]
