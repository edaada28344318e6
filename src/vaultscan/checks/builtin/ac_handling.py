from __future__ import annotations

from typing import Any, Iterable, Mapping

from ...package import ACHandling, MetaInf, PackageId, PackageProperties
from ..api import SimpleProgressCheck
from ..model import Severity

LEVEL_SETS: dict[str, tuple[ACHandling, ...]] = {
    "no_clear": (ACHandling.OVERWRITE, ACHandling.MERGE, ACHandling.MERGE_PRESERVE, ACHandling.IGNORE),
    "no_unsafe": (ACHandling.MERGE, ACHandling.MERGE_PRESERVE, ACHandling.IGNORE),
    "only_add": (ACHandling.MERGE_PRESERVE, ACHandling.IGNORE),
    "only_ignore": (ACHandling.IGNORE,),
}
DEFAULT_LEVEL_SET = "no_unsafe"


class AcHandlingCheck(SimpleProgressCheck):
    """Reports packages whose declared acHandling mode is not allowed.

    ``level_set`` names the level set the modes came from; ``None`` means the
    modes were listed explicitly.
    """

    def __init__(self, allowed_modes: Iterable[ACHandling], level_set: str | None = None) -> None:
        super().__init__()
        self.allowed_modes = tuple(allowed_modes)
        self.level_set = level_set

    @property
    def check_name(self) -> str:
        return "acHandling"

    def before_extract(
        self,
        package_id: PackageId,
        session: Any,
        properties: PackageProperties,
        meta_inf: MetaInf,
        subpackages: tuple[PackageId, ...],
    ) -> None:
        mode = properties.ac_handling or ACHandling.IGNORE
        if mode in self.allowed_modes:
            return
        allowed = ", ".join(item.value for item in self.allowed_modes)
        if self.level_set is None:
            self.reporting(
                Severity.MAJOR,
                "acHandling mode {0} is forbidden. acHandling values in allowedModes are {1}",
                mode.value,
                allowed,
                packages=(package_id,),
            )
            return
        self.reporting(
            Severity.MAJOR,
            "acHandling mode {0} is forbidden. allowed acHandling values in levelSet:{1} are {2}",
            mode.value,
            self.level_set,
            allowed,
            packages=(package_id,),
        )


class AcHandlingFactory:
    config_schema = "vaultscan.check.ac-handling.v1"

    def new_instance(self, config: Mapping[str, Any]) -> AcHandlingCheck:
        # an explicit list, even an empty one, wins over levelSet
        if config.get("allowedModes") is not None:
            return AcHandlingCheck(ACHandling(str(item).strip().lower()) for item in config["allowedModes"])
        level_set = str(config.get("levelSet", DEFAULT_LEVEL_SET)).strip().lower()
        return AcHandlingCheck(LEVEL_SETS[level_set], level_set=level_set)


__all__ = ["AcHandlingCheck", "AcHandlingFactory", "DEFAULT_LEVEL_SET", "LEVEL_SETS"]
