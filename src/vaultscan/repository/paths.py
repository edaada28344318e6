"""Absolute repository path helpers. Paths are ``/``-separated and never end in ``/`` except the root."""

from __future__ import annotations

import re

from ..core.errors import RepositoryError

ROOT = "/"
_NAME_RE = re.compile(r"^[^/\[\]|*]+$")


def normalize(path: str) -> str:
    raw = str(path).strip()
    if not raw.startswith("/"):
        raise RepositoryError(f"not an absolute path: `{raw}`")
    segments = [seg for seg in raw.split("/") if seg]
    for seg in segments:
        if seg in {".", ".."}:
            raise RepositoryError(f"relative segment `{seg}` not allowed in `{raw}`")
        if not _NAME_RE.fullmatch(seg):
            raise RepositoryError(f"invalid name `{seg}` in `{raw}`")
    return "/" + "/".join(segments)


def segments(path: str) -> tuple[str, ...]:
    return tuple(seg for seg in normalize(path).split("/") if seg)


def join(parent: str, relative: str) -> str:
    rel = str(relative).strip().strip("/")
    if not rel:
        return normalize(parent)
    base = normalize(parent)
    return normalize(f"{base.rstrip('/')}/{rel}")


def parent_of(path: str) -> str | None:
    segs = segments(path)
    if not segs:
        return None
    return "/" + "/".join(segs[:-1])


def name_of(path: str) -> str:
    segs = segments(path)
    return segs[-1] if segs else ""


def is_ancestor_or_self(ancestor: str, path: str) -> bool:
    a = segments(ancestor)
    p = segments(path)
    return p[: len(a)] == a


def is_descendant(path: str, ancestor: str) -> bool:
    return is_ancestor_or_self(ancestor, path) and normalize(path) != normalize(ancestor)


def ancestors(path: str) -> list[str]:
    """Proper ancestors of ``path`` from the root down."""
    segs = segments(path)
    return ["/" + "/".join(segs[:i]) for i in range(len(segs))]


__all__ = [
    "ROOT",
    "ancestors",
    "is_ancestor_or_self",
    "is_descendant",
    "join",
    "name_of",
    "normalize",
    "parent_of",
    "segments",
]
