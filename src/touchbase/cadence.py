"""Follow-up cadences and reminder status.

A contact's next reminder is its last touch date plus the number of days of
its cadence.  Day addition is calendar-day addition on naive local datetimes,
so the time of day is kept and month/year rollover falls out of the calendar:
2025-01-31 plus ``1_MONTH`` (30 days) is 2025-03-02.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from enum import Enum

DEFAULT_CADENCE_DAYS = 90


class Cadence(str, Enum):
    ONE_DAY = "1_DAY"
    TWO_DAYS = "2_DAYS"
    THREE_DAYS = "3_DAYS"
    FIVE_DAYS = "5_DAYS"
    SEVEN_DAYS = "7_DAYS"
    TWO_WEEKS = "2_WEEKS"
    THREE_WEEKS = "3_WEEKS"
    ONE_MONTH = "1_MONTH"
    TWO_MONTHS = "2_MONTHS"
    THREE_MONTHS = "3_MONTHS"
    SIX_MONTHS = "6_MONTHS"
    NINE_MONTHS = "9_MONTHS"
    TWELVE_MONTHS = "12_MONTHS"
    EIGHTEEN_MONTHS = "18_MONTHS"
    TWENTY_FOUR_MONTHS = "24_MONTHS"


DEFAULT_CADENCE = Cadence.THREE_MONTHS

# (label, days) per cadence; months are 30-day multiples, years 365
CADENCE_OPTIONS: dict[Cadence, tuple[str, int]] = {
    Cadence.ONE_DAY: ("1 day", 1),
    Cadence.TWO_DAYS: ("2 days", 2),
    Cadence.THREE_DAYS: ("3 days", 3),
    Cadence.FIVE_DAYS: ("5 days", 5),
    Cadence.SEVEN_DAYS: ("7 days (weekly)", 7),
    Cadence.TWO_WEEKS: ("2 weeks", 14),
    Cadence.THREE_WEEKS: ("3 weeks", 21),
    Cadence.ONE_MONTH: ("1 month", 30),
    Cadence.TWO_MONTHS: ("2 months", 60),
    Cadence.THREE_MONTHS: ("3 months", 90),
    Cadence.SIX_MONTHS: ("6 months", 180),
    Cadence.NINE_MONTHS: ("9 months", 270),
    Cadence.TWELVE_MONTHS: ("12 months (yearly)", 365),
    Cadence.EIGHTEEN_MONTHS: ("18 months", 548),
    Cadence.TWENTY_FOUR_MONTHS: ("24 months", 730),
}


class ReminderStatus(str, Enum):
    OVERDUE = "OVERDUE"
    DUE_TODAY = "DUE_TODAY"
    UPCOMING = "UPCOMING"
    NO_REMINDER = "NO_REMINDER"


_BADGES: dict[ReminderStatus, tuple[str, str]] = {
    ReminderStatus.OVERDUE: ("Overdue", "badge-overdue"),
    ReminderStatus.DUE_TODAY: ("Due Today", "badge-due-today"),
    ReminderStatus.UPCOMING: ("Upcoming", "badge-upcoming"),
    ReminderStatus.NO_REMINDER: ("No Reminder", "badge-none"),
}


def coerce_cadence(value: Cadence | str | None) -> Cadence | None:
    """Return the matching Cadence, or None for unknown values."""
    if isinstance(value, Cadence):
        return value
    try:
        return Cadence(value)
    except ValueError:
        return None


def days_for(cadence: Cadence | str | None) -> int:
    """Day count of a cadence.  Unknown or missing cadences count as 90 days."""
    known = coerce_cadence(cadence)
    if known is None:
        return DEFAULT_CADENCE_DAYS
    return CADENCE_OPTIONS[known][1]


def label_for(cadence: Cadence | str | None) -> str:
    known = coerce_cadence(cadence)
    if known is None:
        return CADENCE_OPTIONS[DEFAULT_CADENCE][0]
    return CADENCE_OPTIONS[known][0]


def next_reminder(last_touch: datetime, cadence: Cadence | str | None) -> datetime:
    return last_touch + timedelta(days=days_for(cadence))


def midnight(value: datetime | date) -> datetime:
    """Strip the time of day."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min)


def classify(
    next_reminder_date: datetime | None, today: datetime | date | None = None
) -> ReminderStatus:
    """Classify a reminder against today, comparing whole days only."""
    if next_reminder_date is None:
        return ReminderStatus.NO_REMINDER
    day = midnight(today if today is not None else datetime.now())
    reminder_day = midnight(next_reminder_date)
    if reminder_day < day:
        return ReminderStatus.OVERDUE
    if reminder_day == day:
        return ReminderStatus.DUE_TODAY
    return ReminderStatus.UPCOMING


def badge_text(status: ReminderStatus) -> str:
    return _BADGES[status][0]


def badge_class(status: ReminderStatus) -> str:
    return _BADGES[status][1]
