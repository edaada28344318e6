from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from .env import getenv, getenv_flag


@dataclass(frozen=True)
class ScanContext:
    run_id: str
    log_json: bool = False
    verbose: bool = False
    quiet: bool = False

    @classmethod
    def from_env(
        cls,
        run_id: str | None = None,
        *,
        log_json: bool | None = None,
        verbose: bool | None = None,
        quiet: bool | None = None,
    ) -> "ScanContext":
        default_run = f"scan-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}"
        return cls(
            run_id=run_id or getenv("RUN_ID", default_run) or default_run,
            log_json=getenv_flag("LOG_JSON") if log_json is None else log_json,
            verbose=getenv_flag("VERBOSE") if verbose is None else verbose,
            quiet=getenv_flag("QUIET") if quiet is None else quiet,
        )
