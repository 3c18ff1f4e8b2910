"""A contact's next reminder, tagged by where it came from.

A reminder is either derived from the last touch date and cadence, or set
directly by a caller.  An override stays in place until the next event that
triggers a recalculation (a logged touch, a changed touch date or a changed
cadence), at which point the reminder is derived again.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from touchbase.cadence import Cadence, next_reminder

SOURCE_DERIVED = "derived"
SOURCE_OVERRIDE = "override"


class Trigger(str, Enum):
    TOUCH_LOGGED = "touch_logged"
    TOUCH_DATE_CHANGED = "touch_date_changed"
    CADENCE_CHANGED = "cadence_changed"


@dataclass(frozen=True)
class Derived:
    at: datetime

    source = SOURCE_DERIVED


@dataclass(frozen=True)
class Overridden:
    at: datetime

    source = SOURCE_OVERRIDE


ReminderDate = Derived | Overridden | None


def derive(last_touch: datetime, cadence: Cadence | str | None) -> Derived:
    return Derived(next_reminder(last_touch, cadence))


def apply_update(
    current: ReminderDate,
    last_touch: datetime,
    cadence: Cadence | str | None,
    override: datetime | None = None,
    triggers: Iterable[Trigger] = (),
) -> ReminderDate:
    """Resolve the reminder after a write to the contact.

    An explicit override always wins.  Otherwise any trigger re-derives the
    reminder, clearing an earlier override.  With neither, nothing changes.
    """
    if override is not None:
        return Overridden(override)
    if any(True for _ in triggers):
        return derive(last_touch, cadence)
    return current


def recalculate(
    current: ReminderDate, last_touch: datetime | None, cadence: Cadence | str | None
) -> ReminderDate:
    """Refresh a derived reminder.  Running it twice changes nothing."""
    if isinstance(current, Overridden) or last_touch is None:
        return current
    return derive(last_touch, cadence)


def from_columns(value: datetime | None, source: str | None) -> ReminderDate:
    if value is None:
        return None
    if source == SOURCE_OVERRIDE:
        return Overridden(value)
    return Derived(value)


def to_columns(reminder: ReminderDate) -> tuple[datetime | None, str]:
    if reminder is None:
        return None, SOURCE_DERIVED
    return reminder.at, reminder.source
