from __future__ import annotations

from typing import Any, Mapping

import pytest

from vaultscan.checks.api import ProgressCheck
from vaultscan.checks.builtin import AcHandlingCheck, EchoCheck, OverlapsCheck, PathsCheck, SubpackagesCheck
from vaultscan.checks.facades import CheckAliasFacade
from vaultscan.checks.factory import CheckSpec, load_check, load_checks, resolve_factory
from vaultscan.checks.model import Severity
from vaultscan.core.errors import ConfigurationError
from vaultscan.package import ACHandling


class PlainCheck(ProgressCheck):
    pass


class NamedFactory:
    def new_instance(self, config: Mapping[str, Any]) -> ProgressCheck:
        if "boom" in config:
            raise KeyError("boom")
        return PlainCheck()


class NotACheckFactory:
    def new_instance(self, config: Mapping[str, Any]) -> object:
        return object()


def _inner(check: CheckAliasFacade) -> ProgressCheck:
    return check._CheckFacade__wrapped  # type: ignore[attr-defined,no-any-return]


def test_builtin_names_resolve() -> None:
    assert isinstance(resolve_factory("acHandling").new_instance({}), AcHandlingCheck)
    assert isinstance(resolve_factory("ACHANDLING").new_instance({}), AcHandlingCheck)
    assert isinstance(resolve_factory("overlaps").new_instance({}), OverlapsCheck)
    assert isinstance(resolve_factory("paths").new_instance({}), PathsCheck)
    assert isinstance(resolve_factory("subpackages").new_instance({}), SubpackagesCheck)
    assert isinstance(resolve_factory("echo").new_instance({}), EchoCheck)


def test_builtin_configuration() -> None:
    check = _inner(load_check(CheckSpec("acHandling", config={"levelSet": "only_ignore"})))
    assert isinstance(check, AcHandlingCheck)
    assert check.allowed_modes == (ACHandling.IGNORE,)
    check = _inner(load_check(CheckSpec("acHandling", config={"allowedModes": ["Merge"]})))
    assert check.allowed_modes == (ACHandling.MERGE,)  # type: ignore[attr-defined]
    paths = _inner(load_check(CheckSpec("paths", config={"rules": [{"type": "deny", "pattern": "/etc(/.*)?"}], "severity": "severe"})))
    assert isinstance(paths, PathsCheck)
    assert paths.severity is Severity.SEVERE
    assert not paths.rules[0].allow


def test_external_references() -> None:
    loaded = load_check(CheckSpec(f"{__name__}:PlainCheck", name="plain"))
    assert loaded.check_name == "plain"
    assert isinstance(_inner(loaded), ProgressCheck)
    assert load_check(CheckSpec(f"{__name__}:NamedFactory")).check_name == "PlainCheck"


@pytest.mark.parametrize(
    "spec",
    [
        CheckSpec("nope"),
        CheckSpec("no.such.module:Thing"),
        CheckSpec(f"{__name__}:Missing"),
        CheckSpec(f"{__name__}:NotACheckFactory"),
        CheckSpec(f"{__name__}:PlainCheck", config={"x": 1}),
        CheckSpec(f"{__name__}:NamedFactory", config={"boom": True}),
        CheckSpec("acHandling", config={"levelSet": "everything"}),
        CheckSpec("paths", config={"rules": [{"type": "maybe", "pattern": "/x"}]}),
        CheckSpec("subpackages", config={"unknown": True}),
    ],
)
def test_bad_specs_raise_configuration_errors(spec: CheckSpec) -> None:
    with pytest.raises(ConfigurationError):
        load_check(spec)


def test_load_checks_keeps_order_and_skips() -> None:
    checks = load_checks(
        [
            {"impl": "paths", "name": "first"},
            {"impl": "overlaps", "skip": True},
            CheckSpec("subpackages", name="second"),
        ]
    )
    assert [check.check_name for check in checks] == ["first", "second"]
    with pytest.raises(ConfigurationError):
        CheckSpec("")
