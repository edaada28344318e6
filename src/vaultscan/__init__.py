"""vaultscan: validate content packages by simulating their installation against pluggable checks."""
from .checks import CheckReport, CheckSpec, ProgressCheck, Severity, SimpleProgressCheck, Violation, load_checks
from .core import AbortedScanError, ConfigurationError, ReadOnlyViolation, ScanContext
from .driver import ForcedRoot, ScanOptions, ScanResult, run_scan, stable_exit_code
from .package import PackageId
from .plan import ScanPlan

__version__ = "0.1.0"

__all__ = [
    "AbortedScanError",
    "CheckReport",
    "CheckSpec",
    "ConfigurationError",
    "ForcedRoot",
    "PackageId",
    "ProgressCheck",
    "ReadOnlyViolation",
    "ScanContext",
    "ScanOptions",
    "ScanPlan",
    "ScanResult",
    "Severity",
    "SimpleProgressCheck",
    "Violation",
    "__version__",
    "load_checks",
    "run_scan",
    "stable_exit_code",
]
