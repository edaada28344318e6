from __future__ import annotations

import inspect
import json
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .context import ScanContext

_LEVELS = ("debug", "info", "warn", "error")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_event(ctx: ScanContext, level: str, component: str, action: str, **fields: object) -> None:
    if level not in _LEVELS:
        raise ValueError(f"unknown log level `{level}`: expected one of {list(_LEVELS)}")
    if level == "debug" and not ctx.verbose:
        return
    if ctx.quiet and level in {"debug", "info"}:
        return
    caller = inspect.stack(context=0)[1]
    payload = {
        "ts": utc_now_iso(),
        "level": level,
        "run_id": ctx.run_id,
        "component": component,
        "action": action,
        "file": caller.filename,
        "line": caller.lineno,
        **fields,
    }
    if ctx.log_json:
        sys.stderr.write(json.dumps(payload, sort_keys=True, default=str) + "\n")
        return
    core = f"ts={payload['ts']} level={level} run_id={ctx.run_id} component={component} action={action}"
    extras = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
    sys.stderr.write((core if not extras else f"{core} {extras}") + "\n")


__all__ = ["log_event", "utc_now_iso"]
