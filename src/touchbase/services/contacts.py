from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any, Iterable

from touchbase.cadence import classify, days_for
from touchbase.db import from_db, to_db
from touchbase.reminders import (
    ReminderDate,
    Trigger,
    apply_update,
    from_columns,
    recalculate,
    to_columns,
)

logger = logging.getLogger(__name__)


def reminder_of(row: sqlite3.Row) -> ReminderDate:
    return from_columns(from_db(row["next_reminder_date"]), row["reminder_source"])


def serialize_contact(row: sqlite3.Row, today: datetime | None = None) -> dict[str, Any]:
    data = dict(row)
    data["reminder_status"] = classify(from_db(row["next_reminder_date"]), today).value
    data["cadence_days"] = days_for(row["cadence"])
    return data


def with_links(db: sqlite3.Connection, contact: dict[str, Any], *, full: bool = False) -> dict[str, Any]:
    """Attach companies and team members (and labels, interactions when full)."""
    cid = contact["id"]
    contact["companies"] = [
        dict(r)
        for r in db.execute(
            """SELECT co.* FROM companies co
               JOIN contact_companies cc ON cc.company_id = co.id
               WHERE cc.contact_id = ? ORDER BY co.name""",
            (cid,),
        ).fetchall()
    ]
    contact["team_members"] = [
        dict(r)
        for r in db.execute(
            """SELECT tm.* FROM team_members tm
               JOIN contact_team_members ct ON ct.team_member_id = tm.id
               WHERE ct.contact_id = ? ORDER BY tm.name""",
            (cid,),
        ).fetchall()
    ]
    if full:
        contact["labels"] = [
            dict(r)
            for r in db.execute(
                """SELECT l.* FROM labels l
                   JOIN contact_labels cl ON cl.label_id = l.id
                   WHERE cl.contact_id = ? ORDER BY l.name""",
                (cid,),
            ).fetchall()
        ]
        contact["interactions"] = list_interactions(db, cid)
    return contact


def list_interactions(db: sqlite3.Connection, contact_id: int) -> list[dict[str, Any]]:
    rows = db.execute(
        """SELECT i.*, tm.name AS team_member_name FROM interactions i
           JOIN team_members tm ON tm.id = i.team_member_id
           WHERE i.contact_id = ?
           ORDER BY i.interaction_date DESC, i.id DESC""",
        (contact_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def fetch_contact(db: sqlite3.Connection, contact_id: int) -> sqlite3.Row | None:
    return db.execute("SELECT * FROM contacts WHERE id = ?", (contact_id,)).fetchone()


def replace_links(
    db: sqlite3.Connection, contact_id: int, table: str, column: str, target: str, ids: Iterable[int]
) -> None:
    """Replace a contact's links, silently dropping ids that do not exist."""
    db.execute(f"DELETE FROM {table} WHERE contact_id = ?", (contact_id,))
    for target_id in dict.fromkeys(ids):
        if db.execute(f"SELECT 1 FROM {target} WHERE id = ?", (target_id,)).fetchone():
            db.execute(
                f"INSERT INTO {table} (contact_id, {column}) VALUES (?, ?)",
                (contact_id, target_id),
            )


def write_reminder(db: sqlite3.Connection, contact_id: int, reminder: ReminderDate) -> None:
    value, source = to_columns(reminder)
    db.execute(
        """UPDATE contacts SET next_reminder_date = ?, reminder_source = ?,
           updated_at = strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime')
           WHERE id = ?""",
        (to_db(value), source, contact_id),
    )


def log_touch(db: sqlite3.Connection, contact_id: int, when: datetime) -> ReminderDate:
    """Move the last touch date to ``when`` and re-derive the reminder.

    Runs inside the caller's transaction so the touch date and reminder
    change together.
    """
    row = fetch_contact(db, contact_id)
    if row is None:
        return None
    reminder = apply_update(
        reminder_of(row), when, row["cadence"], triggers=[Trigger.TOUCH_LOGGED]
    )
    db.execute("UPDATE contacts SET last_touch_date = ? WHERE id = ?", (to_db(when), contact_id))
    write_reminder(db, contact_id, reminder)
    logger.debug("Contact %s touched at %s, next reminder %s", contact_id, when, reminder)
    return reminder


def recalculate_all(db: sqlite3.Connection) -> int:
    """Re-derive every non-overridden reminder.  Returns the number of rows changed."""
    changed = 0
    for row in db.execute("SELECT * FROM contacts").fetchall():
        current = reminder_of(row)
        updated = recalculate(current, from_db(row["last_touch_date"]), row["cadence"])
        if updated != current:
            write_reminder(db, row["id"], updated)
            changed += 1
    return changed
