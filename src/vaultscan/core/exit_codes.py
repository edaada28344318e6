from __future__ import annotations

import json
from pathlib import Path

ERROR_REGISTRY = Path(__file__).resolve().parent / "error_registry.json"


def _load_registry() -> dict[str, int]:
    payload = json.loads(ERROR_REGISTRY.read_text(encoding="utf-8"))
    mapping: dict[str, int] = {}
    for row in payload.get("codes", []):
        mapping[str(row["name"])] = int(row["code"])
    return mapping


_REG = _load_registry()

OK = _REG["SCAN_OK"]
ERR_VIOLATIONS = _REG["SCAN_ERR_VIOLATIONS"]
ERR_CONFIG = _REG["SCAN_ERR_CONFIG"]
ERR_VALIDATION = _REG["SCAN_ERR_VALIDATION"]
ERR_READ_ONLY = _REG["SCAN_ERR_READ_ONLY"]
ERR_REPOSITORY = _REG["SCAN_ERR_REPOSITORY"]
ERR_ARCHIVE = _REG["SCAN_ERR_ARCHIVE"]
ERR_ABORTED = _REG["SCAN_ERR_ABORTED"]
ERR_INTERNAL = _REG["SCAN_ERR_INTERNAL"]

__all__ = [
    "ERR_ABORTED",
    "ERR_ARCHIVE",
    "ERR_CONFIG",
    "ERR_INTERNAL",
    "ERR_READ_ONLY",
    "ERR_REPOSITORY",
    "ERR_VALIDATION",
    "ERR_VIOLATIONS",
    "OK",
]
