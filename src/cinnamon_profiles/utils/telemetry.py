"""Command telemetry appended to ``<profiles-root>/logs/telemetry.jsonl``.

Each CLI command writes a ``start`` record and one closing record
(``success``, ``error`` or ``cancelled``). Closing records of switch, restore
and update carry the automatic backup status, and every closing record counts
the warnings printed to the user. ``summarize`` aggregates both.
"""

from __future__ import annotations

import json
import os
import time
from collections import Counter
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

import jsonschema

from cinnamon_profiles.resources import load_schema
from cinnamon_profiles.settings import RuntimeSettings

TELEMETRY_ENV = "CINNAMON_PROFILES_TELEMETRY"
LOG_FILENAME = "telemetry.jsonl"
LEVELS = ("info", "warn", "error")

_DISABLE_VALUES = {"0", "false", "no", "off"}
_TELEMETRY_VALIDATOR = None


def telemetry_enabled(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get(TELEMETRY_ENV, "1").strip().lower() not in _DISABLE_VALUES


def log_path(settings: RuntimeSettings) -> Path:
    return settings.log_dir / LOG_FILENAME


def record_command_event(
    settings: RuntimeSettings,
    command: str,
    *,
    status: str,
    level: str = "info",
    duration_ms: float | None = None,
    backup_status: str | None = None,
    warning_count: int | None = None,
    payload: Mapping[str, Any] | None = None,
) -> None:
    """Validate one record and append it; ``OSError`` from the write propagates."""

    if not telemetry_enabled():
        return
    record: dict[str, Any] = {
        "ts": time.time(),
        "event": command,
        "status": status,
        "level": level,
        "payload": dict(payload or {}),
    }
    if duration_ms is not None:
        record["durationMs"] = round(duration_ms, 3)
    if backup_status is not None:
        record["backupStatus"] = backup_status
    if warning_count is not None:
        record["warningCount"] = warning_count
    _check_record(record)
    path = log_path(settings)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")


def iter_events(settings: RuntimeSettings, command: str | None = None) -> Iterator[dict[str, Any]]:
    path = log_path(settings)
    if not path.exists():
        return iter(())
    events = _read_events(path)
    if command is None:
        return events
    return (evt for evt in events if evt.get("event") == command)


def _read_events(path: Path) -> Iterator[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                evt = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(evt, dict):
                yield evt


def summarize(events: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    by_event: Counter[str] = Counter()
    by_status: Counter[str] = Counter()
    by_backup_status: Counter[str] = Counter()
    warnings = 0
    total = 0
    for evt in events:
        total += 1
        by_event[evt.get("event", "unknown")] += 1
        by_status[evt.get("status", "unknown")] += 1
        if "backupStatus" in evt:
            by_backup_status[evt["backupStatus"]] += 1
        warnings += int(evt.get("warningCount", 0))
    return {
        "total": total,
        "by_event": dict(by_event),
        "by_status": dict(by_status),
        "by_backup_status": dict(by_backup_status),
        "warnings": warnings,
    }


def clear(settings: RuntimeSettings) -> bool:
    path = log_path(settings)
    if not path.exists():
        return False
    path.unlink()
    return True


def _check_record(record: dict[str, Any]) -> None:
    if not isinstance(record.get("event"), str) or not record["event"].strip():
        raise ValueError("Telemetry record needs a non-empty command name")
    if record.get("level") not in LEVELS:
        raise ValueError(f"Telemetry level '{record.get('level')}' is not supported")
    _telemetry_validator().validate(record)


def _telemetry_validator() -> jsonschema.Draft202012Validator:
    global _TELEMETRY_VALIDATOR
    if _TELEMETRY_VALIDATOR is None:
        _TELEMETRY_VALIDATOR = jsonschema.Draft202012Validator(load_schema("telemetry"))
    return _TELEMETRY_VALIDATOR


__all__ = [
    "LOG_FILENAME",
    "TELEMETRY_ENV",
    "clear",
    "iter_events",
    "log_path",
    "record_command_event",
    "summarize",
    "telemetry_enabled",
]
