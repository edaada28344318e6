"""Content package archive reader.

A package is a zip file laid out as::

    META-INF/vault/properties.xml   package id and install options
    META-INF/vault/filter.xml       workspace filter
    META-INF/MANIFEST.MF            optional manifest
    jcr_root/...                    content tree
"""

from __future__ import annotations

import io
import json
import mimetypes
import os
import re
import urllib.error
import urllib.parse
import urllib.request
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Mapping, Union

from .core.errors import ArchiveError, RepositoryError
from .package import Manifest, MetaInf, PackageId, PackageProperties, WorkspaceFilter
from .repository import paths as repo_paths
from .repository.access import AccessControlEntry
from .repository.nodes import MIXIN_TYPES, PRIMARY_TYPE, PropertyValue

PROPERTIES_XML = "META-INF/vault/properties.xml"
FILTER_XML = "META-INF/vault/filter.xml"
MANIFEST_MF = "META-INF/MANIFEST.MF"
CONTENT_ROOT = "jcr_root/"
CONTENT_JSON = ".content.json"
POLICY_JSON = "_rep_policy.json"

_NS_NAME_RE = re.compile(r"^_(?P<ns>[A-Za-z][A-Za-z0-9]*)_(?P<name>.+)$")
_URL_SCHEMES = ("http://", "https://", "file://", "ftp://")

Source = Union[str, os.PathLike, bytes, IO[bytes]]


def decode_name(fs_name: str) -> str:
    name = urllib.parse.unquote(fs_name)
    match = _NS_NAME_RE.fullmatch(name)
    if match:
        return f"{match.group('ns')}:{match.group('name')}"
    return name


@dataclass(frozen=True)
class ArchiveEntry:
    path: str
    primary_type: str
    mixin_types: tuple[str, ...] = ()
    properties: Mapping[str, PropertyValue] = field(default_factory=dict)
    acl: tuple[AccessControlEntry, ...] | None = None
    member: str = ""
    data: bytes | None = None

    @property
    def is_file(self) -> bool:
        return self.primary_type == "nt:file"


class _Draft:
    __slots__ = ("primary_type", "mixin_types", "properties", "acl", "member", "children", "data")

    def __init__(self, primary_type: str, member: str = "") -> None:
        self.primary_type = primary_type
        self.mixin_types: tuple[str, ...] = ()
        self.properties: dict[str, PropertyValue] = {}
        self.acl: tuple[AccessControlEntry, ...] | None = None
        self.member = member
        self.children: set[str] = set()
        self.data: bytes | None = None


def _scalar_or_list(key: str, value: Any, member: str) -> PropertyValue:
    if isinstance(value, list):
        if any(isinstance(item, (list, dict)) or item is None for item in value):
            raise ArchiveError(f"{member}: property `{key}` must be a list of scalars")
        return tuple(value)
    if value is None:
        raise ArchiveError(f"{member}: property `{key}` cannot be null")
    return value  # type: ignore[no-any-return]


class PackageArchive:
    def __init__(self, archive: zipfile.ZipFile, *, file: str | None = None, url: str | None = None) -> None:
        self._zip = archive
        self.file = file
        self.url = url
        self._meta_inf: MetaInf | None = None
        self._entries: tuple[ArchiveEntry, ...] | None = None
        self._closed = False

    @classmethod
    def open(cls, source: Source) -> PackageArchive:
        file: str | None = None
        url: str | None = None
        try:
            if isinstance(source, (bytes, bytearray)):
                stream: Any = io.BytesIO(bytes(source))
            elif isinstance(source, (str, os.PathLike)):
                text = os.fspath(source)
                if isinstance(text, str) and text.startswith(_URL_SCHEMES):
                    url = text
                    with urllib.request.urlopen(text) as response:  # noqa: S310
                        stream = io.BytesIO(response.read())
                else:
                    file = str(Path(text))
                    stream = file
            else:
                stream = source
            return cls(zipfile.ZipFile(stream), file=file, url=url)
        except (zipfile.BadZipFile, OSError, urllib.error.URLError, ValueError) as exc:
            location = url or file or "<stream>"
            raise ArchiveError(f"cannot open package archive {location}: {exc}") from exc

    @property
    def location(self) -> str | None:
        return self.file or self.url

    def __enter__(self) -> PackageArchive:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._zip.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _read(self, member: str) -> bytes | None:
        if self._closed:
            raise ArchiveError("package archive is closed")
        try:
            return self._zip.read(member)
        except KeyError:
            return None
        except (zipfile.BadZipFile, OSError) as exc:
            raise ArchiveError(f"cannot read {member}: {exc}") from exc

    @property
    def meta_inf(self) -> MetaInf:
        if self._meta_inf is None:
            raw_props = self._read(PROPERTIES_XML)
            if raw_props is None:
                raise ArchiveError(f"package archive has no {PROPERTIES_XML}")
            raw_filter = self._read(FILTER_XML)
            raw_manifest = self._read(MANIFEST_MF)
            self._meta_inf = MetaInf(
                properties=PackageProperties.from_xml(raw_props),
                manifest=Manifest.parse(raw_manifest) if raw_manifest is not None else Manifest(),
                filter=WorkspaceFilter.from_xml(raw_filter) if raw_filter is not None else WorkspaceFilter(),
            )
        return self._meta_inf

    @property
    def package_id(self) -> PackageId:
        return self.meta_inf.properties.package_id

    def entries(self) -> tuple[ArchiveEntry, ...]:
        """Node definitions in traversal order: parents before children, siblings sorted by name."""
        if self._entries is None:
            self._entries = self._build_entries()
        return self._entries

    def _build_entries(self) -> tuple[ArchiveEntry, ...]:
        drafts: dict[str, _Draft] = {"/": _Draft("rep:root")}

        def ensure_dir(path: str, member: str) -> _Draft:
            draft = drafts.get(path)
            if draft is None:
                parent = repo_paths.parent_of(path) or "/"
                ensure_dir(parent, "").children.add(path)
                draft = drafts[path] = _Draft("nt:folder", member)
            elif member and not draft.member:
                draft.member = member
            return draft

        try:
            members = sorted(name for name in self._zip.namelist() if name.startswith(CONTENT_ROOT))
            for member in members:
                rel = member[len(CONTENT_ROOT) :]
                segs = [decode_name(seg) for seg in rel.split("/") if seg]
                if member.endswith("/"):
                    ensure_dir("/" + "/".join(segs), member)
                    continue
                if not segs:
                    continue
                dir_path = "/" + "/".join(segs[:-1])
                leaf = rel.rsplit("/", 1)[-1]
                if leaf == CONTENT_JSON:
                    self._apply_content(ensure_dir(dir_path, ""), dir_path, member, drafts)
                elif leaf == POLICY_JSON:
                    ensure_dir(dir_path, "").acl = self._read_policy(member)
                else:
                    self._add_file(ensure_dir(dir_path, ""), repo_paths.join(dir_path, segs[-1]), member, drafts)
        except RepositoryError as exc:
            raise ArchiveError(f"invalid content path in archive: {exc}") from exc

        out: list[ArchiveEntry] = []

        def emit(path: str) -> None:
            draft = drafts[path]
            if path != "/":
                out.append(
                    ArchiveEntry(
                        path=path,
                        primary_type=draft.primary_type,
                        mixin_types=draft.mixin_types,
                        properties=dict(draft.properties),
                        acl=draft.acl,
                        member=draft.member,
                        data=draft.data,
                    )
                )
            for child in sorted(draft.children, key=repo_paths.name_of):
                emit(child)

        emit("/")
        return tuple(out)

    def _load_json(self, member: str) -> Any:
        raw = self._read(member) or b""
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ArchiveError(f"{member}: invalid JSON: {exc}") from exc

    def _apply_content(self, draft: _Draft, path: str, member: str, drafts: dict[str, _Draft]) -> None:
        payload = self._load_json(member)
        if not isinstance(payload, dict):
            raise ArchiveError(f"{member}: expected a JSON object")
        self._apply_node(draft, path, payload, member, drafts)

    def _apply_node(self, draft: _Draft, path: str, payload: dict[str, Any], member: str, drafts: dict[str, _Draft]) -> None:
        for key, value in payload.items():
            if key == PRIMARY_TYPE:
                draft.primary_type = str(value)
            elif key == MIXIN_TYPES:
                draft.mixin_types = tuple(str(item) for item in (value if isinstance(value, list) else [value]))
            elif isinstance(value, dict):
                child_path = repo_paths.join(path, decode_name(key))
                child = drafts.get(child_path)
                if child is None:
                    child = drafts[child_path] = _Draft("nt:unstructured", member)
                    draft.children.add(child_path)
                self._apply_node(child, child_path, value, member, drafts)
            else:
                draft.properties[key] = _scalar_or_list(key, value, member)

    def _read_policy(self, member: str) -> tuple[AccessControlEntry, ...]:
        payload = self._load_json(member)
        entries = payload.get("entries") if isinstance(payload, dict) else None
        if not isinstance(entries, list):
            raise ArchiveError(f"{member}: expected an `entries` list")
        try:
            return tuple(
                AccessControlEntry(
                    principal=str(item.get("principal", "")),
                    allow=bool(item.get("allow", True)),
                    privileges=tuple(item.get("privileges", ())),
                )
                for item in entries
            )
        except (AttributeError, TypeError, RepositoryError) as exc:
            raise ArchiveError(f"{member}: invalid access control entry: {exc}") from exc

    def _add_file(self, parent: _Draft, path: str, member: str, drafts: dict[str, _Draft]) -> None:
        data = self._read(member) or b""
        parent.children.add(path)
        drafts[path] = _Draft("nt:file", member)
        drafts[path].data = data
        content_path = repo_paths.join(path, "jcr:content")
        content = drafts[content_path] = _Draft("nt:resource", member)
        content.properties["jcr:data"] = data
        content.properties["jcr:mimeType"] = mimetypes.guess_type(path)[0] or "application/octet-stream"
        drafts[path].children.add(content_path)

    def __repr__(self) -> str:
        return f"PackageArchive({self.location or '<stream>'!r})"


__all__ = ["ArchiveEntry", "PackageArchive", "decode_name"]
