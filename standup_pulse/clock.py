"""Process clock used for schedule matching and overdue comparisons."""

from __future__ import annotations

from datetime import date, datetime, time, timezone


class Clock:
    """Wall clock in UTC. Schedules compare raw HH:MM strings against it."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().date()


def minute_of(moment: datetime) -> str:
    return moment.strftime("%H:%M")


def scheduled_instant(day: date, schedule_time: str) -> datetime:
    """Return the aware datetime for ``HH:MM`` on ``day``."""

    hour, minute = (int(part) for part in schedule_time.split(":"))
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


__all__ = ["Clock", "minute_of", "scheduled_instant"]
