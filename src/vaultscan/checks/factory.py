from __future__ import annotations

import importlib
import inspect
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Protocol, runtime_checkable

from ..contracts.validate import validate, validate_against
from ..core.errors import ConfigurationError, ScanError
from .api import ProgressCheck
from .facades import CheckAliasFacade


@runtime_checkable
class CheckFactory(Protocol):
    def new_instance(self, config: Mapping[str, Any]) -> ProgressCheck: ...


@dataclass(frozen=True)
class CheckSpec:
    impl: str
    name: str = ""
    config: Mapping[str, Any] = field(default_factory=dict)
    skip: bool = False

    def __post_init__(self) -> None:
        impl = str(self.impl or "").strip()
        if not impl:
            raise ConfigurationError("check spec requires `impl`")
        object.__setattr__(self, "impl", impl)
        object.__setattr__(self, "name", str(self.name or "").strip())
        object.__setattr__(self, "config", dict(self.config or {}))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> CheckSpec:
        return cls(
            impl=str(raw.get("impl", "")),
            name=str(raw.get("name", "")),
            config=dict(raw.get("config") or {}),
            skip=bool(raw.get("skip", False)),
        )


class _ClassFactory:
    """Adapts a zero-argument ProgressCheck subclass that takes no configuration."""

    def __init__(self, check_type: type[ProgressCheck]) -> None:
        self._check_type = check_type

    def new_instance(self, config: Mapping[str, Any]) -> ProgressCheck:
        if config:
            raise ConfigurationError(f"{self._check_type.__name__} accepts no configuration, got {sorted(config)}")
        return self._check_type()


def _import_target(impl: str) -> object:
    module_name, _, attr = impl.partition(":")
    try:
        target: object = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"cannot import check module `{module_name}`: {exc}") from exc
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ConfigurationError(f"check implementation `{impl}` not found") from exc
    return target


def resolve_factory(impl: str) -> CheckFactory:
    """Resolve a built-in check name or a ``module:attribute`` reference to a factory."""
    from .builtin import BUILTIN_FACTORIES

    builtin = BUILTIN_FACTORIES.get(impl) or BUILTIN_FACTORIES.get(impl.lower())
    if builtin is not None:
        return builtin
    if ":" not in impl:
        raise ConfigurationError(
            f"unknown check `{impl}`: expected one of {sorted(BUILTIN_FACTORIES)} or `module:attribute`"
        )
    target = _import_target(impl)
    if inspect.isclass(target):
        if issubclass(target, ProgressCheck):
            return _ClassFactory(target)
        target = target()
    if isinstance(target, CheckFactory):
        return target
    raise ConfigurationError(f"`{impl}` is neither a check factory nor a ProgressCheck subclass")


def _validate_config(factory: CheckFactory, spec: CheckSpec) -> None:
    schema = getattr(factory, "config_schema", None)
    if schema is None:
        return
    if isinstance(schema, str):
        validate(schema, dict(spec.config))
    else:
        validate_against(schema, dict(spec.config), label=f"check `{spec.impl}`")


def load_check(spec: CheckSpec) -> CheckAliasFacade:
    factory = resolve_factory(spec.impl)
    _validate_config(factory, spec)
    try:
        instance = factory.new_instance(spec.config)
    except ScanError:
        raise
    except (TypeError, ValueError, KeyError) as exc:
        raise ConfigurationError(f"invalid configuration for check `{spec.impl}`: {exc}") from exc
    if not isinstance(instance, ProgressCheck):
        raise ConfigurationError(f"factory for `{spec.impl}` returned {type(instance).__name__}, not a ProgressCheck")
    return CheckAliasFacade(instance, spec.name or None)


def load_checks(specs: Iterable[CheckSpec | Mapping[str, Any]]) -> list[CheckAliasFacade]:
    """Build alias-wrapped checks in configured order, skipping specs marked ``skip``."""
    checks: list[CheckAliasFacade] = []
    for raw in specs:
        spec = raw if isinstance(raw, CheckSpec) else CheckSpec.from_mapping(raw)
        if spec.skip:
            continue
        checks.append(load_check(spec))
    return checks


__all__ = ["CheckFactory", "CheckSpec", "load_check", "load_checks", "resolve_factory"]
