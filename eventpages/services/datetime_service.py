"""Datetime parsing: lax input -> timezone-aware output."""

from __future__ import annotations

from datetime import datetime, timezone

import pendulum


def parse_datetime(value: str | datetime, default_tz: str = "UTC") -> datetime:
    """Parse a lax timestamp from the remote store into an aware datetime.

    Accepts what page servers tend to send for ``modified``:
    - 2026-02-02T22:21:29.975Z (JavaScript ``Date.toISOString``)
    - 2026-02-02 22:21:29+00:00
    - 2026-02-02

    Missing timezone defaults to default_tz.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            tz = pendulum.timezone(default_tz)
            value = value.replace(tzinfo=tz)  # type: ignore[arg-type]
        return value

    parsed = pendulum.parse(value.strip(), tz=default_tz, strict=False)
    if not isinstance(parsed, pendulum.DateTime):
        # pendulum.parse returns Date for date-only strings
        parsed = pendulum.datetime(
            parsed.year, parsed.month, parsed.day, tz=default_tz  # type: ignore[union-attr]
        )
    return parsed  # type: ignore[return-value]


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def timestamp_millis(dt: datetime | None = None) -> int:
    """Milliseconds since the epoch, used to make local page ids unique."""
    if dt is None:
        dt = now_utc()
    return int(dt.timestamp() * 1000)


def format_iso(dt: datetime) -> str:
    """Format datetime as ISO 8601 for JSON serialization."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()
