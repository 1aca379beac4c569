"""Timestamp helpers shared by the client and the wire envelope."""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow_iso() -> str:
    """Return the current UTC time as ISO-8601 text with millisecond precision."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def epoch_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


__all__ = ["epoch_ms", "utcnow_iso"]
