"""Check plugin protocol, violation model and built-in checks."""
from .api import LIFECYCLE_HOOKS, ProgressCheck, SilenceableCheck, SimpleProgressCheck
from .facades import CheckAliasFacade, CheckFacade, SilencingCheckFacade
from .factory import CheckFactory, CheckSpec, load_check, load_checks, resolve_factory
from .model import CheckReport, Severity, Violation, group_by_severity, merge_reports, worst_severity

__all__ = [
    "CheckAliasFacade",
    "CheckFacade",
    "CheckFactory",
    "CheckReport",
    "CheckSpec",
    "LIFECYCLE_HOOKS",
    "ProgressCheck",
    "Severity",
    "SilenceableCheck",
    "SilencingCheckFacade",
    "SimpleProgressCheck",
    "Violation",
    "group_by_severity",
    "load_check",
    "load_checks",
    "merge_reports",
    "resolve_factory",
    "worst_severity",
]
