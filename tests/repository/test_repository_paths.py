from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from vaultscan.core.errors import RepositoryError
from vaultscan.repository import paths

_NAMES = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789_:-", min_size=1, max_size=8).filter(
    lambda name: name not in {".", ".."}
)


def test_normalize_collapses_slashes() -> None:
    assert paths.normalize("//apps///foo/") == "/apps/foo"
    assert paths.normalize("/") == "/"


@pytest.mark.parametrize("raw", ["apps/foo", "/apps/../etc", "/apps/./foo", "/apps/fo[1]"])
def test_normalize_rejects_invalid_paths(raw: str) -> None:
    with pytest.raises(RepositoryError):
        paths.normalize(raw)


def test_ancestry_helpers() -> None:
    assert paths.is_ancestor_or_self("/apps", "/apps/foo")
    assert paths.is_ancestor_or_self("/apps", "/apps")
    assert not paths.is_ancestor_or_self("/apps/foo", "/apps/foobar")
    assert paths.is_descendant("/apps/foo", "/apps")
    assert not paths.is_descendant("/apps", "/apps")
    assert paths.ancestors("/apps/foo/bar") == ["/", "/apps", "/apps/foo"]
    assert paths.parent_of("/") is None
    assert paths.name_of("/apps/foo") == "foo"


@given(st.lists(_NAMES, min_size=1, max_size=6))
def test_parent_and_name_rebuild_the_path(names: list[str]) -> None:
    path = "/" + "/".join(names)
    parent = paths.parent_of(path)
    assert parent is not None
    assert paths.join(parent, paths.name_of(path)) == path
    assert paths.is_descendant(path, parent)
    assert len(paths.ancestors(path)) == len(names)
