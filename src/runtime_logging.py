"""JSON-lines runtime events for the cashflow dashboard.

The projection engine never logs. The dashboard records projection and
scenario failures, skipped transaction rows, and PDF export outcomes here, and
the sidebar reads the tail back as a table.
"""

from __future__ import annotations

import json
import os
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Sequence

import pandas as pd
from streamlit.runtime.scriptrunner import get_script_run_ctx

from src.defaults import DEFAULT_STORAGE_DIR, STORAGE_ENV_VAR


EVENTS_FILE_NAME = "runtime_events.jsonl"
EVENT_COLUMNS = ["timestamp_utc", "level", "event", "message"]
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

LOG_DIR = Path(DEFAULT_STORAGE_DIR)
RUNTIME_EVENTS_LOG_FILE = LOG_DIR / EVENTS_FILE_NAME

_EXCEPTION_HOOK_INSTALLED = False


def configure_log_root(path_value: str | Path | None) -> Path:
    """Point the event log at ``path_value`` (``~`` and env vars expanded); blank means the default."""
    global LOG_DIR, RUNTIME_EVENTS_LOG_FILE
    text = str(path_value or "").strip()
    LOG_DIR = Path(os.path.expandvars(os.path.expanduser(text))) if text else Path(DEFAULT_STORAGE_DIR)
    RUNTIME_EVENTS_LOG_FILE = LOG_DIR / EVENTS_FILE_NAME
    return LOG_DIR


def runtime_log_path() -> str:
    return str(RUNTIME_EVENTS_LOG_FILE.resolve())


def _normalize_level(level: str) -> str:
    text = str(level).upper()
    return text if text in LEVELS else "INFO"


def _event_record(
    level: str,
    event: str,
    message: str,
    context: dict[str, Any] | None,
    exc: BaseException | None,
) -> dict[str, Any]:
    record: dict[str, Any] = {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "level": _normalize_level(level),
        "event": str(event),
        "message": str(message),
        "context": context or {},
    }
    if exc is not None:
        record["exception_type"] = type(exc).__name__
        record["exception_message"] = str(exc)
        if exc.__traceback__ is not None:
            record["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return record


def append_runtime_event(
    level: str,
    event: str,
    message: str,
    context: dict[str, Any] | None = None,
    exc: BaseException | None = None,
) -> None:
    """Append one structured event as a JSON line."""
    record = _event_record(level, event, message, context, exc)
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        with RUNTIME_EVENTS_LOG_FILE.open("a", encoding="utf-8") as f:
            # Decimals, dates and tuples from projection context are written as text/lists.
            f.write(json.dumps(record, default=lambda v: list(v) if isinstance(v, (set, tuple)) else str(v)) + "\n")
    except OSError:
        # Diagnostics must not take the dashboard down.
        pass


def log_failure(stage: str, exc: BaseException, context: dict[str, Any] | None = None) -> None:
    """Record a failed dashboard stage such as ``projection``, ``scenario_run`` or ``pdf_export``."""
    append_runtime_event(
        level="ERROR",
        event=f"{stage}_failed",
        message=str(exc),
        context={"error_class": type(exc).__name__, **(context or {})},
        exc=exc,
    )


def log_skipped_records(warnings: Sequence[str]) -> None:
    if not warnings:
        return
    append_runtime_event(
        level="WARNING",
        event="transaction_rows_skipped",
        message=f"{len(warnings)} transaction rows skipped.",
        context={"warnings": list(warnings)},
    )


def pdf_event_logger() -> Callable[..., None]:
    """Callback with the ``log_event`` signature the PDF builder accepts."""

    def _log(level: str, event: str, message: str, context: dict | None = None, exc: BaseException | None = None) -> None:
        append_runtime_event(level=level, event=event, message=message, context=context, exc=exc)

    return _log


def read_runtime_events(limit: int = 200, min_level: str | None = None) -> list[dict[str, Any]]:
    """Return the newest ``limit`` events, oldest first; unreadable lines become ``log_parse_error`` events."""
    if limit <= 0 or not RUNTIME_EVENTS_LOG_FILE.exists():
        return []
    try:
        lines = RUNTIME_EVENTS_LOG_FILE.read_text(encoding="utf-8").splitlines()
    except OSError:
        return []

    floor = LEVELS.index(_normalize_level(min_level)) if min_level else 0
    out: list[dict[str, Any]] = []
    for line in (ln for ln in lines if ln.strip()):
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            record = _event_record("ERROR", "log_parse_error", "Malformed log line encountered.", {"line": line}, None)
        if LEVELS.index(_normalize_level(record.get("level", "INFO"))) >= floor:
            out.append(record)
    return out[-int(limit) :]


def runtime_events_frame(limit: int = 20, min_level: str | None = None) -> pd.DataFrame:
    events = read_runtime_events(limit=limit, min_level=min_level)
    return pd.DataFrame([{col: e.get(col, "") for col in EVENT_COLUMNS} for e in events], columns=EVENT_COLUMNS)


def install_global_exception_logging() -> None:
    """Record uncaught exceptions raised while a Streamlit script is running."""
    global _EXCEPTION_HOOK_INSTALLED
    if _EXCEPTION_HOOK_INSTALLED:
        return
    previous_hook = sys.excepthook

    def _hook(exc_type, exc, exc_tb):
        if get_script_run_ctx() is not None:
            append_runtime_event(level="ERROR", event="uncaught_exception", message=str(exc), exc=exc)
        previous_hook(exc_type, exc, exc_tb)

    sys.excepthook = _hook
    _EXCEPTION_HOOK_INSTALLED = True


configure_log_root(os.getenv(STORAGE_ENV_VAR, ""))
