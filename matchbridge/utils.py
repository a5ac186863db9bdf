from __future__ import annotations

import time
from datetime import date, datetime, timezone
from typing import Any, Optional


def parse_dt(value: Any) -> Optional[datetime]:
    """
    Parse provider timestamps into aware UTC datetimes. Naive values are
    taken to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_unix(value: Any) -> int:
    """
    Convert a provider date (ISO-8601 string, datetime, or epoch number) to
    whole Unix seconds. Raises ValueError when the value cannot be parsed.
    """
    dt = parse_dt(value)
    if dt is None:
        raise ValueError(f"Unparseable date: {value!r}")
    return int(dt.timestamp())


def now_unix() -> int:
    return int(time.time())


def safe_int(val) -> Optional[int]:
    if val is None or isinstance(val, bool):
        return None
    try:
        return int(val)
    except (TypeError, ValueError):
        try:
            return int(float(val))
        except (TypeError, ValueError):
            return None


def sleep_ms(ms: int) -> None:
    if ms > 0:
        time.sleep(ms / 1000.0)
