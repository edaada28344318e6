from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from vaultscan.engine.installables import Installable, InstallableQueue, OsgiConfigInstallable, RepoInitInstallable

from tests.helpers import pid


def _item(index: int) -> Installable:
    return Installable(pid("parent"), f"/apps/install/item-{index}")


@given(st.lists(st.integers(min_value=0, max_value=50), max_size=30))
def test_poll_is_fifo_and_hands_out_each_item_once(indexes: list[int]) -> None:
    queue = InstallableQueue()
    for index in indexes:
        queue.offer(_item(index))
    polled = []
    item = queue.poll()
    while item is not None:
        polled.append(item)
        item = queue.poll()
    assert polled == [_item(index) for index in indexes]
    assert queue.consumed == len(indexes)
    assert queue.poll() is None


def test_drain_reaches_a_fixed_point() -> None:
    queue = InstallableQueue()
    queue.offer(_item(0))
    seen: list[str] = []

    def handler(item: Installable) -> None:
        seen.append(item.path)
        depth = int(item.path.rsplit("-", 1)[1])
        if depth < 3:
            queue.offer(_item(depth + 1))

    assert queue.drain(handler) == 4
    assert seen == [f"/apps/install/item-{depth}" for depth in range(4)]
    assert len(queue) == 0
    assert queue.drain(handler) == 0


def test_installable_variants() -> None:
    config = OsgiConfigInstallable(pid("p"), "/apps/x/config/a~b.config.json", pid="a~b", properties={"k": 1})
    assert config.factory_pid == "a"
    assert OsgiConfigInstallable(pid("p"), "/x", pid="plain").factory_pid == "plain"
    queue = InstallableQueue()
    queue.offer(config)
    queue.offer(RepoInitInstallable(pid("p"), "/x", scripts=("create path /a",)))
    assert [type(item).__name__ for item in queue] == ["OsgiConfigInstallable", "RepoInitInstallable"]
    assert len(queue) == 2
