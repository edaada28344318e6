"""Centralized environment variable helpers."""

from __future__ import annotations

import os

ENV_PREFIX = "VAULTSCAN_"


def getenv(name: str, default: str | None = None) -> str | None:
    return os.environ.get(f"{ENV_PREFIX}{name}", default)


def getenv_flag(name: str, default: bool = False) -> bool:
    raw = getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}
