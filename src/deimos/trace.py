"""Optional tracing hook for parse and render decisions.

The core never writes to a console. Each stage takes ``trace=None`` and
reports decisions through :func:`emit`; installing :func:`logging_hook`
routes them to the standard ``logging`` module.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

TraceHook = Callable[[str, Mapping[str, Any]], None]

logger = logging.getLogger("deimos")


def emit(hook: TraceHook | None, event: str, **fields: Any) -> None:
    """Report a trace event if a hook is installed."""
    if hook is not None:
        hook(event, fields)


def logging_hook(log: logging.Logger | None = None, level: int = logging.DEBUG) -> TraceHook:
    """Return a hook that writes each event as one log record."""
    target = log if log is not None else logger

    def _hook(event: str, fields: Mapping[str, Any]) -> None:
        if not target.isEnabledFor(level):
            return
        detail = " ".join(f"{key}={value!r}" for key, value in fields.items())
        target.log(level, "%s %s", event, detail, extra={"trace_event": event})

    return _hook
