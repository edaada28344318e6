from __future__ import annotations

import pytest

from vaultscan.checks.builtin import AcHandlingCheck, EchoCheck, OverlapsCheck, PathsCheck, SubpackagesCheck
from vaultscan.checks.builtin.ac_handling import LEVEL_SETS, AcHandlingFactory
from vaultscan.checks.builtin.rules import Rule, is_allowed, parse_rules
from vaultscan.checks.model import Severity
from vaultscan.core.context import ScanContext
from vaultscan.package import ACHandling, Manifest, MetaInf, PackageId, PackageProperties, PathAction, WorkspaceFilter

from tests.helpers import filter_xml, pid


def _meta(package_id: PackageId, roots: list[str], ac_handling: str | None = None) -> MetaInf:
    raw = {"group": package_id.group, "name": package_id.name, "version": package_id.version}
    if ac_handling:
        raw["acHandling"] = ac_handling
    return MetaInf(
        properties=PackageProperties.from_mapping(raw),
        manifest=Manifest(),
        filter=WorkspaceFilter.from_xml(filter_xml(roots)),
    )


def _extract(check, package_id: PackageId, meta: MetaInf) -> None:  # type: ignore[no-untyped-def]
    check.before_extract(package_id, None, meta.properties, meta, ())


def test_rules_last_match_wins() -> None:
    rules = parse_rules(
        [{"type": "deny", "pattern": "/etc(/.*)?"}, {"type": "Allow", "pattern": "/etc/clientlibs(/.*)?"}]
    )
    assert not is_allowed(rules, "/etc/tags")
    assert is_allowed(rules, "/etc/clientlibs/site")
    assert is_allowed(rules, "/content")
    assert not is_allowed((), "/content", default=False)
    with pytest.raises(ValueError):
        Rule(True, "(")


@pytest.mark.parametrize(
    ("declared", "level_set", "expected"),
    [
        (None, "no_unsafe", 0),
        ("merge_preserve", "no_unsafe", 0),
        ("overwrite", "no_unsafe", 1),
        ("clear", "no_clear", 1),
        ("overwrite", "no_clear", 0),
        ("ignore", "only_add", 0),
        ("merge_preserve", "only_add", 0),
        ("merge", "only_add", 1),
        ("overwrite", "only_add", 1),
        ("merge", "only_ignore", 1),
    ],
)
def test_ac_handling_level_sets(declared: str | None, level_set: str, expected: int) -> None:
    check = AcHandlingCheck(LEVEL_SETS[level_set], level_set=level_set)
    package_id = pid("acl")
    _extract(check, package_id, _meta(package_id, ["/apps/acl"], declared))
    assert len(check.reported_violations) == expected
    if expected:
        violation = check.reported_violations[0]
        assert violation.severity is Severity.MAJOR
        assert violation.packages == (package_id,)
        assert (declared or "ignore") in violation.render()
        assert f"levelSet:{level_set}" in violation.render()


def test_ac_handling_empty_allowed_modes_forbids_everything() -> None:
    check = AcHandlingFactory().new_instance({"allowedModes": [], "levelSet": "no_clear"})
    assert check.allowed_modes == ()
    assert check.level_set is None
    for index, declared in enumerate((None, "ignore", "merge_preserve")):
        package_id = pid(f"acl-{index}")
        _extract(check, package_id, _meta(package_id, ["/apps/acl"], declared))
    assert len(check.reported_violations) == 3
    assert all("in allowedModes are" in violation.render() for violation in check.reported_violations)


def test_ac_handling_level_set_from_config_names_the_set() -> None:
    check = AcHandlingFactory().new_instance({"levelSet": "Only_Add"})
    assert check.allowed_modes == (ACHandling.MERGE_PRESERVE, ACHandling.IGNORE)
    package_id = pid("acl")
    _extract(check, package_id, _meta(package_id, ["/apps/acl"], "merge"))
    _extract(check, pid("plain"), _meta(pid("plain"), ["/apps/plain"]))
    (violation,) = check.reported_violations
    assert violation.render().startswith(
        "acHandling mode merge is forbidden. allowed acHandling values in levelSet:only_add are merge_preserve, ignore"
    )


def test_overlaps_reports_each_pair_once() -> None:
    check = OverlapsCheck()
    check.started_scan()
    first, second = pid("first"), pid("second")
    _extract(check, first, _meta(first, ["/apps/shared"]))
    check.imported_path(first, "/apps/shared/a", None, PathAction.ADD)
    _extract(check, second, _meta(second, ["/apps/shared/a"]))
    check.imported_path(second, "/apps/shared/a", None, PathAction.NOOP)
    check.imported_path(second, "/apps/shared/a/b", None, PathAction.MODIFY)
    check.imported_path(second, "/apps/shared/a/c", None, PathAction.ADD)
    assert len(check.reported_violations) == 1
    violation = check.reported_violations[0]
    assert violation.severity is Severity.MINOR
    assert violation.packages == (second, first)
    assert violation.paths == ("/apps/shared/a/b",)


def test_overlaps_deletions_are_major_and_see_nested_roots() -> None:
    check = OverlapsCheck()
    check.started_scan()
    wide, narrow = pid("wide"), pid("narrow")
    _extract(check, narrow, _meta(narrow, ["/apps/site/components"]))
    _extract(check, wide, _meta(wide, ["/apps/site"]))
    check.deleted_path(wide, "/apps/site", None)
    assert [v.severity for v in check.reported_violations] == [Severity.MAJOR]
    assert check.reported_violations[0].packages == (wide, narrow)


def test_overlaps_report_all_is_major() -> None:
    check = OverlapsCheck(report_all_is_major=True)
    a, b = pid("a"), pid("b")
    _extract(check, a, _meta(a, ["/content"]))
    _extract(check, b, _meta(b, ["/content"]))
    check.imported_path(b, "/content/x", None, PathAction.ADD)
    assert check.reported_violations[0].severity is Severity.MAJOR


def test_paths_check() -> None:
    check = PathsCheck(parse_rules([{"type": "deny", "pattern": "/libs(/.*)?"}]))
    check.imported_path(pid("p"), "/libs/x", None, PathAction.ADD)
    check.imported_path(pid("p"), "/libs/y", None, PathAction.NOOP)
    check.imported_path(pid("p"), "/apps/x", None, PathAction.ADD)
    check.deleted_path(pid("p"), "/libs/z", None)
    check.deleted_path(pid("p"), "/apps/z", None)
    assert [v.paths for v in check.reported_violations] == [("/libs/x",), ("/libs/z",)]

    strict = PathsCheck(deny_all_deletes=True, severity=Severity.SEVERE)
    strict.deleted_path(pid("p"), "/apps/z", None)
    assert strict.reported_violations[0].severity is Severity.SEVERE
    assert "All deletions are denied" in strict.reported_violations[0].render()


def test_subpackages_check() -> None:
    check = SubpackagesCheck(parse_rules([{"type": "deny", "pattern": "acme:.*"}]))
    check.identify_subpackage(PackageId("acme", "inner", "1"), pid("outer"))
    check.identify_subpackage(PackageId("other", "inner", "1"), pid("outer"))
    check.identify_embedded_package(PackageId("acme", "emb", "1"), pid("outer"), None)
    assert [v.packages[0].name for v in check.reported_violations] == ["inner", "emb"]

    deny_all = SubpackagesCheck(deny_all=True)
    deny_all.identify_subpackage(PackageId("other", "inner", "1"), pid("outer"))
    assert deny_all.reported_violations[0].packages == (PackageId("other", "inner", "1"), pid("outer"))


def test_echo_check_logs_and_reports_nothing(capsys: pytest.CaptureFixture[str]) -> None:
    check = EchoCheck(ScanContext(run_id="echo-test"))
    check.started_scan()
    check.identify_package(pid("echoed"), "/tmp/echoed.zip")
    check.finished_scan()
    err = capsys.readouterr().err
    assert "component=echo action=identify_package" in err
    assert "location=/tmp/echoed.zip" in err
    assert err.count("run_id=echo-test") == 3
    assert check.reported_violations == ()
    assert check.check_name == "echo"
    assert ACHandling.IGNORE in LEVEL_SETS["only_ignore"]
