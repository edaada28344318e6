"""Interpreter for the subset of the Sling repo-init language used by content packages.

Supported statements::

    create path (sling:Folder) /apps/site(nt:folder)/config
    create service user svc-a, svc-b with path system/app
    delete service user svc-a
    create group editors with path app
    delete group editors
    create user alice with path app
    register namespace (ex) http://example.com/ns
    set ACL for svc-a
        allow jcr:read on /content, /apps
    end
    set ACL on /content
        deny jcr:write for editors
    end
    set properties on /content/site
        set sling:resourceType{String} to site/page
        default enabled{Boolean} to true
    end
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Union

from ..core.errors import RepoInitError, RepositoryError
from . import paths as repo_paths
from .access import AccessControlEntry
from .nodes import Node, PropertyValue
from .session import GROUPS_PATH, SYSTEM_USERS_PATH, USERS_PATH, Session

DEFAULT_PATH_TYPE = "sling:Folder"
AUTHORIZABLE_FOLDER = "rep:AuthorizableFolder"

_COMMENT_RE = re.compile(r"^\s*(#|//)")
_CREATE_PATH_RE = re.compile(r"^create path\s+(?:\(\s*(?P<default>[^)\s]+)\s*\)\s*)?(?P<path>/\S*)$")
_SEGMENT_RE = re.compile(r"^(?P<name>[^()]+)(?:\(\s*(?P<type>[^)\s]+)\s*\))?$")
_AUTHORIZABLE_RE = re.compile(
    r"^(?P<verb>create|delete) (?P<kind>service user|group|user)\s+(?P<names>.+?)(?:\s+with path\s+(?P<path>\S+))?$"
)
_PASSWORD_RE = re.compile(r"\s+with\s+(?:encoded\s+)?password\s+.*$")
_NAMESPACE_RE = re.compile(r"^register namespace\s+\(\s*(?P<prefix>[^)\s]+)\s*\)\s+(?P<uri>\S+)$")
_ACL_FOR_RE = re.compile(r"^set ACL for\s+(?P<principals>.+)$")
_ACL_ON_RE = re.compile(r"^set ACL on\s+(?P<paths>.+)$")
_ACL_FOR_LINE_RE = re.compile(r"^(?P<action>allow|deny)\s+(?P<privileges>.+?)\s+on\s+(?P<paths>.+)$")
_ACL_ON_LINE_RE = re.compile(r"^(?P<action>allow|deny)\s+(?P<privileges>.+?)\s+for\s+(?P<principals>.+)$")
_PROPS_ON_RE = re.compile(r"^set properties on\s+(?P<paths>.+)$")
_PROPS_LINE_RE = re.compile(
    r"^(?P<op>set|default)\s+(?P<name>[^\s{]+)(?:\{(?P<type>\w+)\})?\s+to\s+(?P<values>.+)$"
)
_VALUE_RE = re.compile(r'"((?:[^"\\]|\\.)*)"|([^,]+)')


@dataclass(frozen=True)
class CreatePath:
    line: int
    segments: tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class AuthorizableOp:
    line: int
    verb: str
    kind: str
    names: tuple[str, ...]
    path: str = ""


@dataclass(frozen=True)
class RegisterNamespace:
    line: int
    prefix: str
    uri: str


@dataclass(frozen=True)
class AclLine:
    allow: bool
    privileges: tuple[str, ...]
    principals: tuple[str, ...]
    paths: tuple[str, ...]


@dataclass(frozen=True)
class SetAcl:
    line: int
    lines: tuple[AclLine, ...]


@dataclass(frozen=True)
class PropertyLine:
    name: str
    value: PropertyValue
    default: bool


@dataclass(frozen=True)
class SetProperties:
    line: int
    paths: tuple[str, ...]
    lines: tuple[PropertyLine, ...]


Operation = Union[CreatePath, AuthorizableOp, RegisterNamespace, SetAcl, SetProperties]


def _split_list(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _convert(raw: str, type_name: str, line: int) -> PropertyValue:
    kind = (type_name or "String").lower()
    if kind == "string":
        return raw
    if kind == "boolean":
        if raw.lower() not in {"true", "false"}:
            raise RepoInitError(f"not a boolean: `{raw}`", line=line)
        return raw.lower() == "true"
    try:
        if kind == "long":
            return int(raw)
        if kind == "double":
            return float(raw)
    except ValueError as exc:
        raise RepoInitError(f"not a {type_name}: `{raw}`", line=line) from exc
    raise RepoInitError(f"unsupported property type `{type_name}`", line=line)


def _parse_values(raw: str, type_name: str, line: int) -> PropertyValue:
    values: list[str] = []
    for quoted, bare in _VALUE_RE.findall(raw):
        if quoted:
            values.append(quoted.replace('\\"', '"'))
        elif bare.strip():
            values.append(bare.strip())
    if not values:
        raise RepoInitError("property statement has no values", line=line)
    converted = tuple(_convert(value, type_name, line) for value in values)
    return converted[0] if len(converted) == 1 else converted  # type: ignore[return-value]


def _parse_create_path(match: re.Match[str], line: int) -> CreatePath:
    default = match.group("default") or DEFAULT_PATH_TYPE
    segments: list[tuple[str, str]] = []
    for raw in [seg for seg in match.group("path").split("/") if seg]:
        seg = _SEGMENT_RE.fullmatch(raw)
        if seg is None:
            raise RepoInitError(f"invalid path segment `{raw}`", line=line)
        segments.append((seg.group("name").strip(), seg.group("type") or default))
    if not segments:
        raise RepoInitError("create path requires at least one segment", line=line)
    return CreatePath(line=line, segments=tuple(segments))


def _parse_block(lines: list[tuple[int, str]], start: int, header_line: int) -> tuple[list[tuple[int, str]], int]:
    body: list[tuple[int, str]] = []
    index = start
    while index < len(lines):
        number, text = lines[index]
        index += 1
        if text == "end":
            return body, index
        body.append((number, text))
    raise RepoInitError("block is missing its `end`", line=header_line)


def parse(script: str) -> tuple[Operation, ...]:
    lines = [
        (number, raw.strip())
        for number, raw in enumerate(str(script).splitlines(), start=1)
        if raw.strip() and not _COMMENT_RE.match(raw)
    ]
    ops: list[Operation] = []
    index = 0
    while index < len(lines):
        number, text = lines[index]
        index += 1
        match = _CREATE_PATH_RE.fullmatch(text)
        if match:
            ops.append(_parse_create_path(match, number))
            continue
        match = _AUTHORIZABLE_RE.fullmatch(_PASSWORD_RE.sub("", text))
        if match:
            ops.append(
                AuthorizableOp(
                    line=number,
                    verb=match.group("verb"),
                    kind=match.group("kind"),
                    names=_split_list(match.group("names")),
                    path=(match.group("path") or "").strip("/"),
                )
            )
            continue
        match = _NAMESPACE_RE.fullmatch(text)
        if match:
            ops.append(RegisterNamespace(line=number, prefix=match.group("prefix"), uri=match.group("uri")))
            continue
        match = _ACL_FOR_RE.fullmatch(text)
        if match:
            principals = _split_list(match.group("principals"))
            body, index = _parse_block(lines, index, number)
            acl_lines = []
            for body_number, body_text in body:
                entry = _ACL_FOR_LINE_RE.fullmatch(body_text)
                if entry is None:
                    raise RepoInitError(f"invalid ACL line `{body_text}`", line=body_number)
                acl_lines.append(
                    AclLine(
                        allow=entry.group("action") == "allow",
                        privileges=_split_list(entry.group("privileges")),
                        principals=principals,
                        paths=_split_list(entry.group("paths")),
                    )
                )
            ops.append(SetAcl(line=number, lines=tuple(acl_lines)))
            continue
        match = _ACL_ON_RE.fullmatch(text)
        if match:
            paths = _split_list(match.group("paths"))
            body, index = _parse_block(lines, index, number)
            acl_lines = []
            for body_number, body_text in body:
                entry = _ACL_ON_LINE_RE.fullmatch(body_text)
                if entry is None:
                    raise RepoInitError(f"invalid ACL line `{body_text}`", line=body_number)
                acl_lines.append(
                    AclLine(
                        allow=entry.group("action") == "allow",
                        privileges=_split_list(entry.group("privileges")),
                        principals=_split_list(entry.group("principals")),
                        paths=paths,
                    )
                )
            ops.append(SetAcl(line=number, lines=tuple(acl_lines)))
            continue
        match = _PROPS_ON_RE.fullmatch(text)
        if match:
            paths = _split_list(match.group("paths"))
            body, index = _parse_block(lines, index, number)
            prop_lines = []
            for body_number, body_text in body:
                entry = _PROPS_LINE_RE.fullmatch(body_text)
                if entry is None:
                    raise RepoInitError(f"invalid property line `{body_text}`", line=body_number)
                prop_lines.append(
                    PropertyLine(
                        name=entry.group("name"),
                        value=_parse_values(entry.group("values"), entry.group("type") or "", body_number),
                        default=entry.group("op") == "default",
                    )
                )
            ops.append(SetProperties(line=number, paths=paths, lines=tuple(prop_lines)))
            continue
        raise RepoInitError(f"unsupported repo-init statement `{text}`", line=number)
    return tuple(ops)


class RepoInitProcessor:
    """Applies parsed repo-init operations through a writable session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def apply(self, script: str) -> tuple[Operation, ...]:
        ops = parse(script)
        for op in ops:
            try:
                self._apply(op)
            except RepoInitError:
                raise
            except RepositoryError as exc:
                raise RepoInitError(str(exc), line=op.line) from exc
        return ops

    def apply_all(self, scripts: Iterable[str]) -> None:
        for script in scripts:
            self.apply(script)

    def _apply(self, op: Operation) -> None:
        if isinstance(op, CreatePath):
            self._create_path(op)
        elif isinstance(op, AuthorizableOp):
            if op.verb == "create":
                self._create_authorizables(op)
            else:
                self._delete_authorizables(op)
        elif isinstance(op, RegisterNamespace):
            self._session.register_namespace(op.prefix, op.uri)
        elif isinstance(op, SetAcl):
            self._set_acl(op)
        else:
            self._set_properties(op)

    def _create_path(self, op: CreatePath) -> None:
        node = self._session.root_node
        for name, node_type in op.segments:
            node = node.get_node(name) if node.has_node(name) else node.add_node(name, node_type)

    def _find_authorizable(self, authorizable_id: str) -> Node | None:
        pending = [self._session.get_node("/home")]
        while pending:
            node = pending.pop(0)
            if node.has_property("rep:authorizableId") and node.get_property("rep:authorizableId").value == authorizable_id:
                return node
            pending.extend(node.get_nodes())
        return None

    def _create_authorizables(self, op: AuthorizableOp) -> None:
        if op.kind == "service user":
            base, node_type = SYSTEM_USERS_PATH, "rep:SystemUser"
        elif op.kind == "group":
            base, node_type = GROUPS_PATH, "rep:Group"
        else:
            base, node_type = USERS_PATH, "rep:User"
        # relative paths resolve below /home/users or /home/groups
        folder = repo_paths.join(GROUPS_PATH if op.kind == "group" else USERS_PATH, op.path) if op.path else base
        for name in op.names:
            existing = self._find_authorizable(name)
            if existing is not None:
                if not existing.is_node_type(node_type):
                    raise RepoInitError(f"authorizable `{name}` exists as {existing.primary_type}", line=op.line)
                continue
            parent = self._session.create_path(folder, AUTHORIZABLE_FOLDER)
            node = parent.add_node(name, node_type)
            node.set_property("rep:authorizableId", name)
            node.set_property("rep:principalName", name)

    def _delete_authorizables(self, op: AuthorizableOp) -> None:
        node_type = {"service user": "rep:SystemUser", "group": "rep:Group", "user": "rep:User"}[op.kind]
        for name in op.names:
            node = self._find_authorizable(name)
            if node is None:
                continue
            if not node.is_node_type(node_type):
                raise RepoInitError(f"authorizable `{name}` is not a {op.kind}", line=op.line)
            node.remove()

    def _set_acl(self, op: SetAcl) -> None:
        acm = self._session.access_control_manager
        for acl_line in op.lines:
            for principal in acl_line.principals:
                if principal != "everyone" and self._find_authorizable(principal) is None:
                    raise RepoInitError(f"unknown principal `{principal}`", line=op.line)
            entries = tuple(
                AccessControlEntry(principal=principal, allow=acl_line.allow, privileges=acl_line.privileges)
                for principal in acl_line.principals
            )
            for path in acl_line.paths:
                acm.set_policy(path, acm.get_policies(path) + entries)

    def _set_properties(self, op: SetProperties) -> None:
        for path in op.paths:
            node = self._session.get_node(path)
            for prop in op.lines:
                if prop.default and node.has_property(prop.name):
                    continue
                node.set_property(prop.name, prop.value)


def apply_scripts(session: Session, scripts: Iterable[str]) -> None:
    RepoInitProcessor(session).apply_all(scripts)


__all__ = [
    "AclLine",
    "AuthorizableOp",
    "CreatePath",
    "Operation",
    "PropertyLine",
    "RegisterNamespace",
    "RepoInitProcessor",
    "SetAcl",
    "SetProperties",
    "apply_scripts",
    "parse",
]
