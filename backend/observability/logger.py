"""
Structured event logger.

Rules:
- One event per line
- JSON objects (JSONL) by default; a compact key=value form for local runs
- Output to stdout, no buffering, no batching
- No side effects beyond logging
"""

from __future__ import annotations

import json
import sys
from typing import Any, Mapping, Callable


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_json_lines: bool = True


def configure(*, json_lines: bool = True) -> None:
    """
    Select the line format.

    Called once at app startup from AppConfig.enable_json_logs.
    """
    global _json_lines  # pylint: disable=global-statement
    _json_lines = json_lines


def _format_plain(event: Mapping[str, Any]) -> str:
    head = f"{event.get('ts_ms')} {event.get('event_type', '-')}"
    rest = " ".join(
        f"{key}={json.dumps(value, ensure_ascii=False, default=str)}"
        for key, value in event.items()
        if key not in ("ts_ms", "event_type") and value is not None
    )
    return f"{head} {rest}" if rest else head


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single event line to stdout.

    The caller is responsible for:
    - Supplying a fully-formed event dict
    - Including ts_ms, session_id, state, etc.

    This function:
    - Serializes the event
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    try:
        if _json_lines:
            line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
        else:
            line = _format_plain(event)
    except (TypeError, ValueError) as e:
        # Last-resort fallback; logging must never crash the runtime
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
