from __future__ import annotations

from datetime import date, datetime

import pytest

from touchbase.cadence import (
    CADENCE_OPTIONS,
    Cadence,
    ReminderStatus,
    badge_class,
    badge_text,
    classify,
    days_for,
    label_for,
    next_reminder,
)

TODAY = datetime(2025, 10, 15, 14, 30)


def test_table_has_fifteen_cadences():
    assert len(CADENCE_OPTIONS) == 15
    assert set(CADENCE_OPTIONS) == set(Cadence)


@pytest.mark.parametrize(
    "cadence,days",
    [
        ("1_DAY", 1),
        ("7_DAYS", 7),
        ("2_WEEKS", 14),
        ("1_MONTH", 30),
        ("3_MONTHS", 90),
        ("12_MONTHS", 365),
        ("18_MONTHS", 548),
        ("24_MONTHS", 730),
    ],
)
def test_days_for_known_cadences(cadence, days):
    assert days_for(cadence) == days
    assert days_for(Cadence(cadence)) == days


@pytest.mark.parametrize("cadence", ["", "WEEKLY", "4_MONTHS", None])
def test_days_for_unknown_cadence_defaults_to_ninety(cadence):
    assert days_for(cadence) == 90


def test_label_for():
    assert label_for("7_DAYS") == "7 days (weekly)"
    assert label_for("nonsense") == "3 months"


def test_next_reminder_crosses_month_end():
    assert next_reminder(datetime(2025, 1, 31), "1_MONTH") == datetime(2025, 3, 2)


def test_next_reminder_in_leap_year():
    assert next_reminder(datetime(2024, 1, 31), "1_MONTH") == datetime(2024, 3, 1)


def test_next_reminder_crosses_year_end_and_keeps_time():
    assert next_reminder(datetime(2025, 12, 20, 9, 15), "2_WEEKS") == datetime(2026, 1, 3, 9, 15)


def test_next_reminder_unknown_cadence_uses_default():
    assert next_reminder(datetime(2025, 1, 1), "bogus") == datetime(2025, 4, 1)


@pytest.mark.parametrize("cadence", list(Cadence))
def test_next_reminder_adds_calendar_days(cadence):
    start = datetime(2025, 1, 31, 8, 0)
    result = next_reminder(start, cadence)
    assert (result.date() - start.date()).days == CADENCE_OPTIONS[cadence][1]
    assert result.time() == start.time()


def test_classify_no_reminder():
    assert classify(None, TODAY) is ReminderStatus.NO_REMINDER


def test_classify_overdue():
    assert classify(datetime(2025, 10, 10), TODAY) is ReminderStatus.OVERDUE
    assert classify(datetime(2025, 10, 14, 23, 59), TODAY) is ReminderStatus.OVERDUE


@pytest.mark.parametrize("hour", [0, 9, 23])
def test_classify_due_today_ignores_time_of_day(hour):
    assert classify(datetime(2025, 10, 15, hour), TODAY) is ReminderStatus.DUE_TODAY


def test_classify_upcoming():
    assert classify(datetime(2025, 10, 16, 0, 0), TODAY) is ReminderStatus.UPCOMING


def test_classify_accepts_plain_date_for_today():
    assert classify(datetime(2025, 10, 15, 8), date(2025, 10, 15)) is ReminderStatus.DUE_TODAY


def test_badges():
    assert badge_text(ReminderStatus.DUE_TODAY) == "Due Today"
    assert badge_class(ReminderStatus.OVERDUE) == "badge-overdue"
