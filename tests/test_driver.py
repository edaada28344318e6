from __future__ import annotations

from typing import Any

import pytest

from vaultscan.checks.api import ProgressCheck, SimpleProgressCheck
from vaultscan.checks.factory import load_checks
from vaultscan.checks.model import Severity
from vaultscan.core.errors import AbortedScanError, ConfigurationError
from vaultscan.core.exit_codes import ERR_VIOLATIONS, OK
from vaultscan.driver import ForcedRoot, ScanOptions, run_scan, stable_exit_code
from vaultscan.package import PackageId

from tests.helpers import RecordingCheck, folder, package_bytes, pid

_POLICY = {"entries": [{"principal": "everyone", "privileges": ["jcr:read"]}]}


def _acl_package(name: str, mode: str) -> bytes:
    return package_bytes(name, filters=[f"/apps/{name}"], ac_handling=mode, content={f"apps/{name}/_rep_policy.json": _POLICY})


def test_pre_install_packages_are_scanned_silently() -> None:
    recorder = RecordingCheck()
    checks = [*load_checks([{"impl": "acHandling"}]), recorder]
    result = run_scan(
        [_acl_package("real", "overwrite")],
        checks,
        ScanOptions(pre_install_packages=[_acl_package("base", "overwrite")]),
    )
    assert [v.packages for v in result.violations] == [(pid("real"),)]
    assert [event[1] for event in recorder.hooks() if event[0] == "identify_package"] == ["base", "real"]
    assert result.scanned == (pid("real"),)


class _SessionFacts(ProgressCheck):
    def __init__(self) -> None:
        self.facts: dict[str, Any] = {}
        self.session: Any = None

    def started_scan(self) -> None:
        self.facts.clear()

    def before_extract(self, package_id, session, properties, meta_inf, subpackages) -> None:  # type: ignore[no-untyped-def]
        self.session = session
        node = session.get_node("/apps/forced")
        self.facts["forced"] = (node.primary_type, node.mixin_types)
        self.facts["booted"] = session.node_exists("/var/booted")
        self.facts["live"] = session.is_live()


def test_bootstrap_forced_roots_and_repo_init() -> None:
    observer = _SessionFacts()
    run_scan(
        [package_bytes("plain", filters=["/apps/plain"])],
        [observer],
        ScanOptions(
            forced_roots=[ForcedRoot("/apps/forced", "sling:Folder", ("mix:lockable",))],
            repo_init_scripts=["create path /var/booted"],
        ),
    )
    assert observer.facts == {"forced": ("sling:Folder", ("mix:lockable",)), "booted": True, "live": True}
    assert not observer.session.is_live()


class _Existence(ProgressCheck):
    def __init__(self) -> None:
        self.seen: list[bool] = []

    def before_extract(self, package_id, session, properties, meta_inf, subpackages) -> None:  # type: ignore[no-untyped-def]
        self.seen.append(session.node_exists("/apps/solo"))


def test_each_run_gets_a_fresh_repository() -> None:
    package = package_bytes("solo", filters=["/apps/solo"], content={"apps/solo/.content.json": folder()})
    check = _Existence()
    run_scan([package, package], [check])
    run_scan([package], [check])
    assert check.seen == [False, True, False]


def test_forced_root_validation() -> None:
    with pytest.raises(ConfigurationError):
        ForcedRoot("relative/root")
    assert ForcedRoot.from_mapping({"path": "/apps/x/", "mixinTypes": ["mix:a"]}) == ForcedRoot("/apps/x", "nt:folder", ("mix:a",))


class _Grader(SimpleProgressCheck):
    def identify_package(self, package_id: PackageId, location: str | None) -> None:
        severity = {"minor": Severity.MINOR, "major": Severity.MAJOR}.get(package_id.name)
        if severity is not None:
            self.reporting(severity, "graded {0}", package_id, packages=(package_id,))


def test_result_queries_and_exit_codes() -> None:
    result = run_scan([package_bytes("minor"), package_bytes("major"), package_bytes("clean")], [_Grader()])
    report = result.report_for("_Grader")
    assert report is not None and len(report.violations) == 2
    assert result.report_for("missing") is None
    assert result.worst_severity is Severity.MAJOR
    assert [len(item.violations) for item in result.for_package(pid("minor"))] == [1]
    assert result.for_package(pid("clean"))[0].violations == ()
    assert result.failed()
    assert not result.failed("severe")
    assert stable_exit_code(result) == ERR_VIOLATIONS
    assert stable_exit_code(result, Severity.SEVERE) == OK
    assert result.scanned == (pid("minor"), pid("major"), pid("clean"))


class _Crash(ProgressCheck):
    def after_extract(self, package_id: PackageId, session: Any) -> None:
        if package_id.name == "second":
            session.remove_item("/apps")


def test_abort_keeps_violations_collected_so_far() -> None:
    checks = [_Grader(), _Crash()]
    with pytest.raises(AbortedScanError) as err:
        run_scan([package_bytes("major"), package_bytes("second"), package_bytes("minor")], checks)
    reports = err.value.reports
    assert [report.check_name for report in reports] == ["_Grader", "_Crash"]
    assert [v.packages for v in reports[0].violations] == [(pid("major"),)]
    assert reports[1].violations == ()
