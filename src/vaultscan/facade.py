"""Read-only capability wrapper handed to checks in place of live repository objects."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Iterator

from .core.errors import ReadOnlyViolation
from .repository.access import AccessControlManager
from .repository.locks import Lock, LockManager
from .repository.nodes import Node
from .repository.session import Repository, Session


class Access(str, Enum):
    READ = "read"
    MUTATE = "mutate"


MUTATING_NAMES = frozenset(
    {
        "add_mixin",
        "add_node",
        "copy",
        "create_path",
        "lock",
        "login",
        "logout",
        "move",
        "refresh",
        "register_namespace",
        "remove",
        "remove_item",
        "remove_mixin",
        "remove_policy",
        "remove_property",
        "save",
        "set_policy",
        "set_primary_type",
        "set_property",
        "shutdown",
        "unlock",
    }
)
MUTATING_PREFIXES = ("add_", "remove_", "set_", "delete_", "create_", "import_", "register_")

WRAPPED_TYPES: tuple[type, ...] = (AccessControlManager, Lock, LockManager, Node, Repository, Session)


def classify(name: str) -> Access:
    if name in MUTATING_NAMES or name.startswith(MUTATING_PREFIXES):
        return Access.MUTATE
    return Access.READ


def _violation(owner: object, name: str) -> ReadOnlyViolation:
    return ReadOnlyViolation(f"`{name}` is not permitted on a read-only {type(owner).__name__}")


def _is_private(name: str) -> bool:
    return name.startswith("_") and not (name.startswith("__") and name.endswith("__"))


def read_only(value: Any) -> Any:
    """Wrap repository objects (also inside lists, tuples and iterators) in a ReadOnlyFacade."""
    if isinstance(value, (ReadOnlyFacade, _ReadMethod)):
        return value
    if isinstance(value, WRAPPED_TYPES):
        return ReadOnlyFacade(value)
    if isinstance(value, list):
        return [read_only(item) for item in value]
    if isinstance(value, tuple):
        return tuple(read_only(item) for item in value)
    if isinstance(value, Iterator):
        # materialized so no suspended frame keeps the raw items reachable
        return iter([read_only(item) for item in value])
    return value


class _ReadMethod:
    """Bound reader of a wrapped object; its result is passed back through read_only."""

    __slots__ = ("_method",)

    def __init__(self, method: Callable[..., Any]) -> None:
        object.__setattr__(self, "_method", method)

    def __getattribute__(self, name: str) -> Any:
        if _is_private(name):
            raise AttributeError(name)
        return object.__getattribute__(self, name)

    def __setattr__(self, name: str, value: object) -> None:
        raise ReadOnlyViolation(f"cannot set {name} on a read-only method")

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return read_only(object.__getattribute__(self, "_method")(*args, **kwargs))

    def __reduce_ex__(self, protocol: object) -> Any:
        raise TypeError("read-only methods cannot be copied or pickled")

    def __repr__(self) -> str:
        return f"<read-only method {getattr(object.__getattribute__(self, '_method'), '__name__', '?')}>"


class _BlockedMethod:
    __slots__ = ("_message",)

    def __init__(self, message: str) -> None:
        object.__setattr__(self, "_message", message)

    def __call__(self, *args: object, **kwargs: object) -> Any:
        raise ReadOnlyViolation(object.__getattribute__(self, "_message"))


class ReadOnlyFacade:
    """Forwards reads to the wrapped object and refuses every mutation.

    Private names, the wrapped object included, are not reachable through normal
    attribute lookup; internals read the slot with ``object.__getattribute__``.
    """

    __slots__ = ("_delegate",)

    def __init__(self, delegate: object) -> None:
        if isinstance(delegate, ReadOnlyFacade):
            delegate = object.__getattribute__(delegate, "_delegate")
        object.__setattr__(self, "_delegate", delegate)

    def __getattribute__(self, name: str) -> Any:
        if _is_private(name):
            raise AttributeError(name)
        return object.__getattribute__(self, name)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        delegate = object.__getattribute__(self, "_delegate")
        if classify(name) is Access.MUTATE:
            if not hasattr(delegate, name):
                raise AttributeError(name)
            return _BlockedMethod(str(_violation(delegate, name)))
        value = getattr(delegate, name)
        if callable(value) and not isinstance(value, WRAPPED_TYPES):
            return _ReadMethod(value)
        return read_only(value)

    def __setattr__(self, name: str, value: object) -> None:
        raise _violation(object.__getattribute__(self, "_delegate"), f"set {name}")

    def __delattr__(self, name: str) -> None:
        raise _violation(object.__getattribute__(self, "_delegate"), f"delete {name}")

    def __reduce_ex__(self, protocol: object) -> Any:
        raise TypeError("read-only facades cannot be copied or pickled")

    def __getstate__(self) -> Any:
        raise TypeError("read-only facades cannot be copied or pickled")

    def __iter__(self) -> Iterator[Any]:
        return read_only(iter(object.__getattribute__(self, "_delegate")))  # type: ignore[call-overload]

    def __len__(self) -> int:
        return len(object.__getattribute__(self, "_delegate"))  # type: ignore[arg-type]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ReadOnlyFacade):
            other = object.__getattribute__(other, "_delegate")
        return object.__getattribute__(self, "_delegate") == other

    def __hash__(self) -> int:
        return hash(object.__getattribute__(self, "_delegate"))

    def __repr__(self) -> str:
        return f"ReadOnly({object.__getattribute__(self, '_delegate')!r})"


def is_read_only(value: object) -> bool:
    return isinstance(value, ReadOnlyFacade)


__all__ = ["Access", "MUTATING_NAMES", "ReadOnlyFacade", "classify", "is_read_only", "read_only"]
