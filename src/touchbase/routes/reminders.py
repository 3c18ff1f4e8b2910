from __future__ import annotations

from datetime import datetime, timedelta

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from touchbase.cadence import ReminderStatus, badge_class, badge_text, label_for, midnight
from touchbase.db import get_db
from touchbase.filters import DateRange, PresetStatus, preset_range
from touchbase.services.contacts import serialize_contact
from touchbase.services.digest import build_weekly_digest

router = APIRouter(tags=["reminders"])

_DUE_SOON = """SELECT c.id, c.name, c.next_reminder_date, c.last_touch_date,
       (SELECT tm.name FROM contact_team_members ct
        JOIN team_members tm ON tm.id = ct.team_member_id
        WHERE ct.contact_id = c.id ORDER BY tm.name LIMIT 1) AS team_member_name,
       (SELECT co.name FROM contact_companies cc
        JOIN companies co ON co.id = cc.company_id
        WHERE cc.contact_id = c.id ORDER BY co.name LIMIT 1) AS company_name
FROM contacts c
WHERE c.next_reminder_date IS NOT NULL AND c.next_reminder_date < ?
ORDER BY c.next_reminder_date, c.id"""


def _templates(request: Request):
    return request.app.state.templates


def _count(db, date_range: DateRange) -> int:
    sql, params = date_range.to_sql("next_reminder_date")
    return db.execute(f"SELECT COUNT(*) AS n FROM contacts WHERE {sql}", params).fetchone()["n"]


@router.get("/api/dashboard/stats")
async def dashboard_stats():
    today = midnight(datetime.now())
    with get_db() as db:
        return {
            "total_contacts": _count(db, DateRange()),
            "overdue_contacts": _count(db, preset_range(PresetStatus.OVERDUE, today)),
            "due_today_contacts": _count(db, preset_range(PresetStatus.DUE_TODAY, today)),
            # the next seven days counted from today, today included
            "due_this_week_contacts": _count(
                db, DateRange(gte=today, lt=today + timedelta(days=7))
            ),
        }


@router.get("/api/reminders/weekly")
async def weekly_reminders():
    now = datetime.now()
    cutoff = midnight(now) + timedelta(days=7)
    with get_db() as db:
        rows = db.execute(_DUE_SOON, (cutoff.isoformat(timespec="seconds"),)).fetchall()
    message, grouped = build_weekly_digest(rows, now)
    return {"message": message, "reminders": grouped}


@router.get("/reminders", response_class=HTMLResponse)
async def reminders_page(request: Request, status: str = ""):
    today = datetime.now()
    with get_db() as db:
        rows = db.execute(
            """SELECT * FROM contacts
               ORDER BY next_reminder_date IS NULL, next_reminder_date, name"""
        ).fetchall()

    groups: dict[ReminderStatus, list[dict]] = {s: [] for s in ReminderStatus}
    for row in rows:
        contact = serialize_contact(row, today)
        contact["cadence_label"] = label_for(row["cadence"])
        groups[ReminderStatus(contact["reminder_status"])].append(contact)

    sections = [
        {
            "status": s.value,
            "title": badge_text(s),
            "badge": badge_class(s),
            "contacts": groups[s],
        }
        for s in ReminderStatus
        if not status or s.value == status.upper()
    ]
    return _templates(request).TemplateResponse(
        request,
        "reminders/list.html",
        {"sections": sections, "today": today.date(), "active": "reminders"},
    )
