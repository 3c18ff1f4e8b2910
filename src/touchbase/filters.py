"""Translate reminder-status presets and explicit bounds into date ranges."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from touchbase.cadence import midnight


class DateRangeError(ValueError):
    """A filter bound or preset could not be understood."""


class PresetStatus(str, Enum):
    OVERDUE = "OVERDUE"
    DUE_TODAY = "DUE_TODAY"
    DUE_THIS_WEEK = "DUE_THIS_WEEK"
    DUE_THIS_MONTH = "DUE_THIS_MONTH"
    UPCOMING = "UPCOMING"
    NO_REMINDER = "NO_REMINDER"


@dataclass(frozen=True)
class DateRange:
    """Half-open interval ``[gte, lt)`` over a nullable timestamp column.

    ``is_null`` selects rows without a value and excludes both bounds.
    An empty range matches everything.
    """

    gte: datetime | None = None
    lt: datetime | None = None
    is_null: bool = False

    @property
    def is_empty(self) -> bool:
        return self.gte is None and self.lt is None and not self.is_null

    def contains(self, value: datetime | None) -> bool:
        if self.is_null:
            return value is None
        if self.is_empty:
            return True
        if value is None:
            return False
        if self.gte is not None and value < self.gte:
            return False
        if self.lt is not None and value >= self.lt:
            return False
        return True

    def to_sql(self, column: str) -> tuple[str, list[str]]:
        """Render as a parameterized SQL fragment.  Empty ranges render as ``1``."""
        if self.is_null:
            return f"{column} IS NULL", []
        clauses: list[str] = []
        params: list[str] = []
        if self.gte is not None:
            clauses.append(f"{column} >= ?")
            params.append(self.gte.isoformat(timespec="seconds"))
        if self.lt is not None:
            clauses.append(f"{column} < ?")
            params.append(self.lt.isoformat(timespec="seconds"))
        if not clauses:
            return "1", []
        return " AND ".join(clauses), params


def _add_month(day: datetime) -> datetime:
    """Same day next month; days past the month end spill into the month after."""
    year, month = (day.year + 1, 1) if day.month == 12 else (day.year, day.month + 1)
    return day.replace(year=year, month=month, day=1) + timedelta(days=day.day - 1)


def preset_range(status: PresetStatus, today: datetime | date | None = None) -> DateRange:
    start = midnight(today if today is not None else datetime.now())
    tomorrow = start + timedelta(days=1)
    if status is PresetStatus.OVERDUE:
        return DateRange(lt=start)
    if status is PresetStatus.DUE_TODAY:
        return DateRange(gte=start, lt=tomorrow)
    if status is PresetStatus.DUE_THIS_WEEK:
        # today is covered by DUE_TODAY, so the week starts tomorrow
        return DateRange(gte=tomorrow, lt=start + timedelta(days=7))
    if status is PresetStatus.DUE_THIS_MONTH:
        return DateRange(gte=start, lt=_add_month(start))
    if status is PresetStatus.UPCOMING:
        return DateRange(gte=tomorrow)
    return DateRange(is_null=True)


def build_range(
    status: PresetStatus | None = None,
    start_date: date | datetime | None = None,
    end_date: date | datetime | None = None,
    today: datetime | date | None = None,
) -> DateRange:
    """Build the reminder-date filter.

    Explicit bounds win over a preset whenever either one is given.  Both
    bounds are whole days: ``start_date`` from its midnight, ``end_date``
    up to and including its last instant.
    """
    if start_date is not None or end_date is not None:
        gte = midnight(start_date) if start_date is not None else None
        lt = midnight(end_date) + timedelta(days=1) if end_date is not None else None
        if gte is not None and lt is not None and gte >= lt:
            raise DateRangeError("startDate must not be after endDate")
        return DateRange(gte=gte, lt=lt)
    if status is not None:
        return preset_range(status, today)
    return DateRange()


def parse_bound(value: str | None, name: str) -> date | None:
    """Parse an explicit ``YYYY-MM-DD`` (or ISO datetime) bound."""
    if value is None or not value.strip():
        return None
    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise DateRangeError(f"Invalid date format for {name}: {value!r}") from None


def parse_status(value: str | None) -> PresetStatus | None:
    if value is None or not value.strip():
        return None
    try:
        return PresetStatus(value.strip().upper())
    except ValueError:
        allowed = ", ".join(s.value for s in PresetStatus)
        raise DateRangeError(
            f"Unknown reminderStatus {value!r}; expected one of {allowed}"
        ) from None
