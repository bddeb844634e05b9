"""Calendar-day keys and the injectable time source."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def date_key(moment: datetime) -> str:
    """Return the UTC calendar day of *moment* as ``YYYY-MM-DD``."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date().isoformat()


def shift_key(key: str, days: int) -> str:
    return (date.fromisoformat(key) + timedelta(days=days)).isoformat()


def date_label(key: str) -> str:
    """Short display label for a day key, e.g. ``Fri, Jan 5``."""
    # Noon keeps the label on the same day whatever the offset.
    day = datetime.combine(date.fromisoformat(key), time(12, 0))
    return f"{day:%a}, {day:%b} {day.day}"


class Clock:
    """Wall clock in UTC. Subclass and override ``now`` to pin time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def now_iso(self) -> str:
        return self.now().isoformat()

    def today_key(self) -> str:
        return date_key(self.now())


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; ``None`` when missing or unreadable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
