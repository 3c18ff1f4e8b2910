from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Mapping

from touchbase.cadence import ReminderStatus, badge_text, classify
from touchbase.db import from_db

UNASSIGNED = "Unassigned"


def build_weekly_digest(
    rows: Iterable[Mapping[str, Any]], today: date | datetime
) -> tuple[str, dict[str, list[dict[str, Any]]]]:
    """Group due contacts by team member and render a plain-text reminder.

    Each row needs ``id``, ``name``, ``next_reminder_date``, ``last_touch_date``
    and may carry ``company_name`` and ``team_member_name``.
    """
    grouped: dict[str, list[dict[str, Any]]] = {}
    for row in rows:
        assignee = row["team_member_name"] or UNASSIGNED
        reminder = from_db(row["next_reminder_date"])
        grouped.setdefault(assignee, []).append(
            {
                "contact_id": row["id"],
                "name": row["name"],
                "company": row["company_name"],
                "next_reminder_date": row["next_reminder_date"],
                "last_touch_date": row["last_touch_date"],
                "reminder_status": classify(reminder, today).value,
            }
        )

    day = today.date() if isinstance(today, datetime) else today
    lines = [f"Follow-up reminders: {day.isoformat()}", ""]
    for assignee in sorted(grouped, key=lambda a: (a == UNASSIGNED, a.lower())):
        lines.append(f"@{assignee}")
        for item in grouped[assignee]:
            touched = (item["last_touch_date"] or "")[:10] or "never"
            status = badge_text(ReminderStatus(item["reminder_status"]))
            lines.append(
                f"- {item['company'] or item['name']} - {status.lower()}, last touch {touched}"
            )
        lines.append("")
    return "\n".join(lines).rstrip() + "\n", grouped
