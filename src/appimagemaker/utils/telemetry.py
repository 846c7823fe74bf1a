"""Structured build events written to a local JSONL log.

Every `make` writes a start event, an optional chmod event and a final
success/error event. All of them share the build's correlation id.
"""

from __future__ import annotations

import json
import os
import time
import uuid
from typing import Any, Iterable, Iterator

from appimagemaker.resources import schema_validator
from appimagemaker.settings import RuntimeSettings

LEVELS = {"info", "warn", "error"}
TELEMETRY_ENV = "APPIMAGEMAKER_TELEMETRY"

_DISABLE_VALUES = {"0", "false", "no", "off"}
_SCHEMA = "telemetry.schema.json"


def telemetry_enabled() -> bool:
    value = os.getenv(TELEMETRY_ENV, "1").lower()
    return value not in _DISABLE_VALUES


def new_build_id() -> str:
    return uuid.uuid4().hex


def record_structured_event(
    settings: RuntimeSettings,
    event: str,
    *,
    payload: dict[str, Any] | None = None,
    level: str = "info",
    status: str | None = None,
    component: str | None = None,
    correlation_id: str | None = None,
    duration_ms: float | None = None,
) -> None:
    if not telemetry_enabled():
        return
    record: dict[str, Any] = {
        "ts": time.time(),
        "event": event,
        "payload": payload or {},
        "level": level,
    }
    if status:
        record["status"] = status
    if component:
        record["component"] = component
    if correlation_id:
        record["correlationId"] = correlation_id
    if duration_ms is not None:
        record["durationMs"] = duration_ms
    _validate_record(record)
    schema_validator(_SCHEMA).validate(record)
    log_path = settings.telemetry_log
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")


def iter_events(settings: RuntimeSettings) -> Iterator[dict[str, Any]]:
    log_path = settings.telemetry_log
    if not log_path.exists():
        return
    with log_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue


def summarize(events: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Count events by name and status, and builds by their final outcome."""

    total = 0
    by_event: dict[str, int] = {}
    by_status: dict[str, int] = {}
    builds: dict[str, str] = {}
    for evt in events:
        name = evt.get("event", "unknown")
        by_event[name] = by_event.get(name, 0) + 1
        status = evt.get("status", "unknown")
        by_status[status] = by_status.get(status, 0) + 1
        build_id = evt.get("correlationId")
        if build_id and name == "appimage.make":
            builds[build_id] = status
        total += 1
    outcomes: dict[str, int] = {}
    for status in builds.values():
        outcomes[status] = outcomes.get(status, 0) + 1
    return {"total": total, "by_event": by_event, "by_status": by_status, "builds": outcomes}


def clear(settings: RuntimeSettings) -> None:
    log_path = settings.telemetry_log
    if log_path.exists():
        log_path.unlink()


def _validate_record(record: dict[str, Any]) -> None:
    if not isinstance(record.get("event"), str) or not record["event"].strip():
        raise ValueError("Telemetry event must have non-empty string 'event'")
    if not isinstance(record.get("payload"), dict):
        raise ValueError("Telemetry payload must be a dict")
    level = record.get("level", "info")
    if level not in LEVELS:
        raise ValueError(f"Telemetry level '{level}' is not supported")
    if "durationMs" in record and record["durationMs"] is not None:
        if not isinstance(record["durationMs"], (int, float)) or record["durationMs"] < 0:
            raise ValueError("Telemetry durationMs must be a non-negative number")
    record["ts"] = float(record.get("ts", time.time()))
