"""Built-in checks, addressable by name from a check spec's ``impl``."""
from __future__ import annotations

from ..factory import CheckFactory
from .ac_handling import AcHandlingCheck, AcHandlingFactory
from .echo import EchoCheck, EchoFactory
from .overlaps import OverlapsCheck, OverlapsFactory
from .paths import PathsCheck, PathsFactory
from .subpackages import SubpackagesCheck, SubpackagesFactory

BUILTIN_FACTORIES: dict[str, CheckFactory] = {
    "acHandling": AcHandlingFactory(),
    "achandling": AcHandlingFactory(),
    "echo": EchoFactory(),
    "overlaps": OverlapsFactory(),
    "paths": PathsFactory(),
    "subpackages": SubpackagesFactory(),
}

__all__ = [
    "AcHandlingCheck",
    "BUILTIN_FACTORIES",
    "EchoCheck",
    "OverlapsCheck",
    "PathsCheck",
    "SubpackagesCheck",
]
