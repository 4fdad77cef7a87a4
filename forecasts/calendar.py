"""
Team capacity calendars.

A Calendar belongs to one person (or sub-team) and lists free weekdays and
free date ranges; it has capacity 1.0 on any other day. A TeamCalendar
averages its member calendars, or falls back to a plain Monday-Friday week
when it has none.
"""

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List

from forecasts.errors import InvalidVelocityDurationError

WEEKDAY_ALIASES = {
    "mon": 0, "monday": 0,
    "tue": 1, "tues": 1, "tuesday": 1,
    "wed": 2, "wednesday": 2,
    "thu": 3, "thur": 3, "thurs": 3, "thursday": 3,
    "fri": 4, "friday": 4,
    "sat": 5, "saturday": 5,
    "sun": 6, "sunday": 6,
}

# 100 years of zero capacity means the calendar can never finish the work
MAX_CALENDAR_DAYS = 36500


def parse_weekday(value):
    """Map 'Mon' / 'monday' / 'THU' etc. to date.weekday() numbers; None if unknown."""
    if value is None:
        return None
    return WEEKDAY_ALIASES.get(str(value).strip().lower())


# ── Calendars ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FreeDateRange:
    start_date: date
    end_date: date

    def contains(self, d):
        return self.start_date <= d <= self.end_date


@dataclass
class Calendar:
    free_weekdays: List[int] = field(default_factory=list)
    free_date_ranges: List[FreeDateRange] = field(default_factory=list)

    def get_capacity(self, d):
        if d.weekday() in self.free_weekdays:
            return 0.0
        for free_range in self.free_date_ranges:
            if free_range.contains(d):
                return 0.0
        return 1.0


@dataclass
class TeamCalendar:
    calendars: List[Calendar] = field(default_factory=list)

    def get_capacity(self, d):
        if not self.calendars:
            return self.get_default_capacity(d)
        return sum(c.get_capacity(d) for c in self.calendars) / len(self.calendars)

    @staticmethod
    def get_default_capacity(d):
        """Weekdays are full capacity, Saturday and Sunday are free."""
        return 0.0 if d.weekday() >= 5 else 1.0


class CachedCalendar:
    """Memoises get_capacity per date; simulations ask for the same days many times."""

    def __init__(self, calendar):
        self.calendar = calendar
        self._capacity = {}

    def get_capacity(self, d):
        try:
            return self._capacity[d]
        except KeyError:
            value = self._capacity[d] = self.calendar.get_capacity(d)
            return value


# ── Capacity arithmetic ──────────────────────────────────────────────────────

def summed_capacity(calendar, start, end):
    """Sum team capacity over every day from start to end (inclusive)."""
    total = 0.0
    d = start
    while d <= end:
        total += calendar.get_capacity(d)
        d += timedelta(days=1)
    return total


def advance_by_capacity(calendar, start_date, offset, work):
    """Elapsed offset (days after start_date) at which `work` capacity-days are done.

    Work begins at `offset`, which may fall part-way through a day; each
    calendar day contributes its capacity, so free days stretch elapsed time.
    """
    if work <= 0:
        return offset
    t = offset
    remaining = work
    limit = math.floor(offset) + MAX_CALENDAR_DAYS
    while True:
        day = math.floor(t)
        if day > limit:
            raise InvalidVelocityDurationError(
                start_date + timedelta(days=math.floor(offset)),
                start_date + timedelta(days=limit))
        capacity = calendar.get_capacity(start_date + timedelta(days=day))
        if capacity > 0:
            available = (day + 1 - t) * capacity
            if available >= remaining:
                return t + remaining / capacity
            remaining -= available
        t = day + 1
