from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Union

from ..core.errors import RepositoryError
from . import paths as repo_paths

if TYPE_CHECKING:
    from .session import Repository

Scalar = Union[str, int, float, bool, bytes]
PropertyValue = Union[Scalar, tuple[Scalar, ...]]

PRIMARY_TYPE = "jcr:primaryType"
MIXIN_TYPES = "jcr:mixinTypes"

_SUPERTYPES: dict[str, tuple[str, ...]] = {
    "rep:root": ("nt:unstructured",),
    "nt:folder": ("nt:hierarchyNode",),
    "nt:file": ("nt:hierarchyNode",),
    "nt:resource": ("mix:lastModified", "mix:mimeType"),
    "sling:Folder": ("nt:folder", "nt:hierarchyNode"),
    "sling:OrderedFolder": ("sling:Folder", "nt:folder", "nt:hierarchyNode"),
    "rep:AuthorizableFolder": (),
    "rep:User": ("rep:Authorizable",),
    "rep:SystemUser": ("rep:User", "rep:Authorizable"),
    "rep:Group": ("rep:Authorizable",),
}


def supertypes(node_type: str) -> tuple[str, ...]:
    return _SUPERTYPES.get(node_type, ()) + ("nt:base",)


def _normalize_value(value: object) -> PropertyValue:
    if isinstance(value, (list, tuple)):
        return tuple(_normalize_value(item) for item in value)  # type: ignore[misc]
    if isinstance(value, (str, int, float, bool, bytes)):
        return value
    raise RepositoryError(f"unsupported property value type: {type(value).__name__}")


@dataclass(frozen=True)
class Property:
    name: str
    value: PropertyValue

    @property
    def multiple(self) -> bool:
        return isinstance(self.value, tuple)

    @property
    def values(self) -> tuple[Scalar, ...]:
        return self.value if isinstance(self.value, tuple) else (self.value,)


class Node:
    def __init__(self, repository: Repository, name: str, primary_type: str, parent: Node | None = None) -> None:
        self._repository = repository
        self._name = name
        self._primary_type = primary_type
        self._parent = parent
        self._mixins: list[str] = []
        self._properties: dict[str, Property] = {}
        self._children: dict[str, Node] = {}
        self._removed = False

    def _ensure_valid(self) -> None:
        if self._removed:
            raise RepositoryError(f"item has been removed: {self.path}")

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> str:
        if self._parent is None:
            return repo_paths.ROOT
        parent_path = self._parent.path
        return f"{parent_path.rstrip('/')}/{self._name}"

    @property
    def depth(self) -> int:
        return len(repo_paths.segments(self.path))

    @property
    def parent(self) -> Node | None:
        return self._parent

    @property
    def primary_type(self) -> str:
        return self._primary_type

    @property
    def mixin_types(self) -> tuple[str, ...]:
        return tuple(self._mixins)

    def is_node_type(self, node_type: str) -> bool:
        if node_type == self._primary_type or node_type in supertypes(self._primary_type):
            return True
        return any(node_type == mixin or node_type in supertypes(mixin) for mixin in self._mixins)

    def is_same(self, other: object) -> bool:
        return getattr(other, "path", None) == self.path and not self._removed

    def _child(self, name: str) -> Node | None:
        return self._children.get(name)

    def _resolve(self, relative: str) -> Node | None:
        current: Node | None = self
        for seg in [seg for seg in str(relative).split("/") if seg]:
            if current is None:
                return None
            if seg == "..":
                current = current._parent
            elif seg != ".":
                current = current._child(seg)
        return current

    def has_node(self, relative: str) -> bool:
        self._ensure_valid()
        return self._resolve(relative) is not None

    def get_node(self, relative: str) -> Node:
        self._ensure_valid()
        found = self._resolve(relative)
        if found is None:
            raise RepositoryError(f"no node `{relative}` below {self.path}")
        return found

    def get_nodes(self) -> list[Node]:
        self._ensure_valid()
        return list(self._children.values())

    def has_nodes(self) -> bool:
        return bool(self._children)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.get_nodes())

    def has_property(self, name: str) -> bool:
        self._ensure_valid()
        if name == PRIMARY_TYPE:
            return True
        if name == MIXIN_TYPES:
            return bool(self._mixins)
        return name in self._properties

    def get_property(self, name: str) -> Property:
        self._ensure_valid()
        if name == PRIMARY_TYPE:
            return Property(PRIMARY_TYPE, self._primary_type)
        if name == MIXIN_TYPES and self._mixins:
            return Property(MIXIN_TYPES, tuple(self._mixins))
        prop = self._properties.get(name)
        if prop is None:
            raise RepositoryError(f"no property `{name}` on {self.path}")
        return prop

    def get_properties(self) -> list[Property]:
        self._ensure_valid()
        props = [self.get_property(PRIMARY_TYPE)]
        if self._mixins:
            props.append(self.get_property(MIXIN_TYPES))
        props.extend(self._properties.values())
        return props

    @property
    def property_names(self) -> tuple[str, ...]:
        return tuple(prop.name for prop in self.get_properties())

    def add_node(self, name: str, primary_type: str = "nt:unstructured") -> Node:
        self._ensure_valid()
        raw = str(name).strip()
        if not raw or "/" in raw:
            raise RepositoryError(f"add_node expects a single name, got `{name}`")
        child_name = repo_paths.name_of(repo_paths.join(self.path, raw))
        if child_name in self._children:
            raise RepositoryError(f"item exists: {repo_paths.join(self.path, child_name)}")
        child = Node(self._repository, child_name, primary_type, parent=self)
        self._children[child_name] = child
        self._repository._touch()
        return child

    def set_property(self, name: str, value: object) -> Property:
        self._ensure_valid()
        if name in {PRIMARY_TYPE, MIXIN_TYPES}:
            raise RepositoryError(f"`{name}` is protected; use set_primary_type or add_mixin")
        prop = Property(str(name), _normalize_value(value))
        self._properties[prop.name] = prop
        self._repository._touch()
        return prop

    def remove_property(self, name: str) -> None:
        self._ensure_valid()
        if name not in self._properties:
            raise RepositoryError(f"no property `{name}` on {self.path}")
        del self._properties[name]
        self._repository._touch()

    def set_primary_type(self, node_type: str) -> None:
        self._ensure_valid()
        self._primary_type = str(node_type)
        self._repository._touch()

    def add_mixin(self, mixin: str) -> None:
        self._ensure_valid()
        if mixin not in self._mixins:
            self._mixins.append(str(mixin))
            self._repository._touch()

    def remove_mixin(self, mixin: str) -> None:
        self._ensure_valid()
        if mixin not in self._mixins:
            raise RepositoryError(f"mixin `{mixin}` not present on {self.path}")
        self._mixins.remove(mixin)
        self._repository._touch()

    def remove(self) -> None:
        self._ensure_valid()
        if self._parent is None:
            raise RepositoryError("cannot remove the root node")
        path = self.path
        del self._parent._children[self._name]
        self._mark_removed()
        self._repository._forget(path)

    def _mark_removed(self) -> None:
        self._removed = True
        for child in self._children.values():
            child._mark_removed()

    def _reparent(self, parent: Node, name: str) -> None:
        self._parent = parent
        self._name = name

    def _clone_into(self, parent: Node, name: str) -> Node:
        copy = Node(self._repository, name, self._primary_type, parent=parent)
        copy._mixins = list(self._mixins)
        copy._properties = dict(self._properties)
        for child_name, child in self._children.items():
            copy._children[child_name] = child._clone_into(copy, child_name)
        return copy

    def __repr__(self) -> str:
        return f"Node({self.path!r}, {self._primary_type!r})"


__all__ = ["MIXIN_TYPES", "Node", "PRIMARY_TYPE", "Property", "PropertyValue", "supertypes"]
