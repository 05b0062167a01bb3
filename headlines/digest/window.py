"""Publication window: which calendar range a digest run covers.

Runs close at midnight UTC. Saturday runs stretch through Monday, Sunday runs
widen both ways, and Monday runs reach back over the weekend so that the
Monday-to-Saturday schedule never drops an item.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from typing import Union

from dateutil import tz
from dateutil.parser import isoparse

from headlines.storage.models import DigestInvariantError, PublicationWindow

PRIMARY_TZ = tz.gettz("Asia/Tokyo")

_SATURDAY = 5
_SUNDAY = 6
_MONDAY = 0


def parse_execution_time(value: Union[str, datetime]) -> datetime:
    """Parse an ISO 8601 trigger time. Naive values are taken as UTC."""
    dt = value if isinstance(value, datetime) else isoparse(str(value))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    """UTC ISO timestamp with millisecond precision and a ``Z`` suffix."""
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _format_primary(dt: datetime) -> str:
    local = dt.astimezone(PRIMARY_TZ)
    return f"{local.year}/{local.month}/{local.day} {local.hour}:{local.minute:02d}:{local.second:02d}"


def _format_secondary(dt: datetime) -> str:
    utc = dt.astimezone(timezone.utc)
    hour = utc.hour % 12 or 12
    meridiem = "AM" if utc.hour < 12 else "PM"
    return f"{utc.month}/{utc.day}/{utc.year}, {hour}:{utc.minute:02d}:{utc.second:02d} {meridiem}"


def format_window(oldest: datetime, latest: datetime, primary: bool) -> str:
    if primary:
        return f"{_format_primary(oldest)} ~ {_format_primary(latest)} (JST)"
    return f"{_format_secondary(oldest)} ~ {_format_secondary(latest)} (UTC)"


def compute_window(execution_time: Union[str, datetime], primary: bool = True) -> PublicationWindow:
    """Compute the ``(oldest, latest]`` window for a run at *execution_time*.

    Parameters
    ----------
    execution_time:
        Trigger timestamp, any time of day.
    primary:
        Format the display text for the primary locale (JST) rather than UTC.
    """
    executed = parse_execution_time(execution_time)

    latest = datetime.combine(executed.date(), time.min, tzinfo=timezone.utc)
    if latest != executed:
        latest += timedelta(days=1)
    oldest = latest - timedelta(days=1)

    weekday = latest.weekday()
    if weekday == _SATURDAY:
        latest += timedelta(days=2)
    elif weekday == _SUNDAY:
        latest += timedelta(days=1)
        oldest -= timedelta(days=1)
    elif weekday == _MONDAY:
        oldest -= timedelta(days=2)

    if not oldest < latest:
        raise DigestInvariantError(f"window start {oldest} is not before end {latest}")

    return PublicationWindow(
        oldest=oldest,
        latest=latest,
        display_text=format_window(oldest, latest, primary),
    )
