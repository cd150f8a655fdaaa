"""Clock helpers. Upstream timestamps are unix seconds."""
from __future__ import annotations

import time
from datetime import datetime, timezone


def now_ts() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


def ts_to_iso(ts: float) -> str:
    """Unix seconds as an ISO 8601 UTC string (millisecond precision).

    Out-of-range values (e.g. millisecond timestamps) degrade to the epoch.
    """
    try:
        dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        dt = datetime.fromtimestamp(0, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: object) -> datetime | None:
    """Parse an ISO 8601 string (``Z`` suffix allowed); None if unparseable."""
    if not isinstance(value, str) or not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
