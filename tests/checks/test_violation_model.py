from __future__ import annotations

import pytest

from vaultscan.checks.model import CheckReport, Severity, Violation, group_by_severity, merge_reports, worst_severity

from tests.helpers import pid


def test_severity_ordering_and_parse() -> None:
    assert Severity.NONE < Severity.MINOR < Severity.MAJOR < Severity.SEVERE
    assert Severity.MAJOR.meets_minimum(Severity.MINOR)
    assert not Severity.MINOR.meets_minimum(Severity.MAJOR)
    assert Severity.parse(" Severe ") is Severity.SEVERE
    with pytest.raises(ValueError):
        Severity.parse("critical")


def test_violation_normalizes_and_renders() -> None:
    violation = Violation("major", "path {0} collides with {1}; {2} stays", ("/a", "/b"), (pid("x"), pid("x")), ("/a", "/a"))
    assert violation.severity is Severity.MAJOR
    assert violation.packages == (pid("x"),)
    assert violation.paths == ("/a",)
    assert violation.render() == "path /a collides with /b; {2} stays"
    assert violation.to_dict()["packages"] == ["my_packages:x:1.0"]
    with pytest.raises(ValueError):
        Violation(Severity.NONE, "nothing")


def test_reports_are_unique_and_ordered() -> None:
    first = Violation(Severity.MINOR, "one", packages=(pid("a"),))
    second = Violation(Severity.SEVERE, "two", packages=(pid("b"),))
    report = CheckReport("demo", (first, second, Violation(Severity.MINOR, "one", packages=(pid("a"),))))
    assert report.violations == (first, second)
    assert report.worst_severity is Severity.SEVERE
    assert report.for_package(pid("a")) == (first,)
    assert CheckReport("empty").worst_severity is Severity.NONE
    assert worst_severity([]) is Severity.NONE


def test_merge_and_group() -> None:
    first = Violation(Severity.MINOR, "one")
    second = Violation(Severity.MAJOR, "two")
    merged = merge_reports([CheckReport("a", (first,)), CheckReport("b", (first,)), CheckReport("a", (first, second))])
    assert [(report.check_name, report.violations) for report in merged] == [("a", (first, second)), ("b", (first,))]
    groups = group_by_severity([first, second, first])
    assert list(groups) == [Severity.MAJOR, Severity.MINOR]
    assert groups[Severity.MINOR] == (first, first)
