from __future__ import annotations

import logging
import math
from datetime import datetime, time

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from touchbase.cadence import DEFAULT_CADENCE
from touchbase.config import page_size
from touchbase.db import from_db, get_db, naive_local, to_db
from touchbase.filters import DateRangeError, build_range, parse_bound, parse_status
from touchbase.models import (
    CompanyIds,
    CompanyLink,
    ContactCreate,
    ContactUpdate,
    InteractionCreate,
    NoteCreate,
    ReminderRequest,
)
from touchbase.reminders import Overridden, Trigger, apply_update, derive
from touchbase.services.ai import schedule_from_text
from touchbase.services.contacts import (
    fetch_contact,
    log_touch,
    reminder_of,
    replace_links,
    serialize_contact,
    with_links,
    write_reminder,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contacts", tags=["contacts"])

_OPTIONAL_TEXT_FIELDS = (
    "first_name",
    "last_name",
    "job_title",
    "linkedin_url",
    "referrer",
    "crm_id",
)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _not_found() -> JSONResponse:
    return _error("Contact not found", 404)


@router.get("")
async def list_contacts(
    search: str = "",
    team_member: int | None = Query(None, alias="teamMember"),
    cadence: str = "",
    company: int | None = None,
    label: int | None = None,
    reminder_status: str | None = Query(None, alias="reminderStatus"),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1, le=100),
):
    try:
        date_range = build_range(
            parse_status(reminder_status),
            parse_bound(start_date, "startDate"),
            parse_bound(end_date, "endDate"),
        )
    except DateRangeError as exc:
        return _error(str(exc), 400)

    limit = limit or page_size()
    clauses: list[str] = []
    params: list = []

    if search:
        like = f"%{search}%"
        clauses.append(
            """(c.name LIKE ? OR c.email LIKE ? OR c.job_title LIKE ?
                OR EXISTS (SELECT 1 FROM contact_labels cl JOIN labels l ON l.id = cl.label_id
                           WHERE cl.contact_id = c.id AND l.name LIKE ?)
                OR EXISTS (SELECT 1 FROM contact_companies cc JOIN companies co ON co.id = cc.company_id
                           WHERE cc.contact_id = c.id AND co.name LIKE ?)
                OR EXISTS (SELECT 1 FROM contact_team_members ct JOIN team_members tm ON tm.id = ct.team_member_id
                           WHERE ct.contact_id = c.id AND tm.name LIKE ?))"""
        )
        params.extend([like] * 6)
    if team_member is not None:
        clauses.append(
            "EXISTS (SELECT 1 FROM contact_team_members WHERE contact_id = c.id AND team_member_id = ?)"
        )
        params.append(team_member)
    if cadence:
        clauses.append("c.cadence = ?")
        params.append(cadence)
    if company is not None:
        clauses.append(
            "EXISTS (SELECT 1 FROM contact_companies WHERE contact_id = c.id AND company_id = ?)"
        )
        params.append(company)
    if label is not None:
        clauses.append(
            "EXISTS (SELECT 1 FROM contact_labels WHERE contact_id = c.id AND label_id = ?)"
        )
        params.append(label)
    if not date_range.is_empty:
        sql, range_params = date_range.to_sql("c.next_reminder_date")
        clauses.append(sql)
        params.extend(range_params)

    where = " AND ".join(clauses) or "1"
    with get_db() as db:
        total = db.execute(
            f"SELECT COUNT(*) AS n FROM contacts c WHERE {where}", params
        ).fetchone()["n"]
        rows = db.execute(
            f"""SELECT c.* FROM contacts c WHERE {where}
                ORDER BY c.next_reminder_date IS NULL, c.next_reminder_date,
                         c.updated_at DESC, c.id
                LIMIT ? OFFSET ?""",
            [*params, limit, (page - 1) * limit],
        ).fetchall()
        contacts = [with_links(db, serialize_contact(r)) for r in rows]

    total_pages = math.ceil(total / limit)
    return {
        "contacts": contacts,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


@router.post("", status_code=201)
async def create_contact(payload: ContactCreate):
    if not payload.name or not payload.email:
        return _error("Name and email are required", 400)

    touch = naive_local(payload.last_touch_date) or datetime.now().replace(microsecond=0)
    cadence = payload.cadence or DEFAULT_CADENCE.value
    reminder = derive(touch, cadence)

    with get_db() as db:
        cur = db.execute(
            """INSERT INTO contacts (name, first_name, last_name, email, job_title,
                   linkedin_url, referrer, crm_id, cadence, last_touch_date,
                   next_reminder_date, reminder_source, general_notes)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                payload.name,
                payload.first_name or None,
                payload.last_name or None,
                payload.email,
                payload.job_title or None,
                payload.linkedin_url or None,
                payload.referrer or None,
                payload.crm_id or None,
                cadence,
                to_db(touch),
                to_db(reminder.at),
                reminder.source,
                payload.general_notes or None,
            ),
        )
        contact_id = cur.lastrowid
        replace_links(db, contact_id, "contact_companies", "company_id", "companies", payload.company_ids)
        replace_links(
            db, contact_id, "contact_team_members", "team_member_id", "team_members", payload.team_member_ids
        )
        replace_links(db, contact_id, "contact_labels", "label_id", "labels", payload.label_ids)
        contact = with_links(db, serialize_contact(fetch_contact(db, contact_id)), full=True)

    logger.info("Created contact %s (%s), next reminder %s", contact_id, payload.name, reminder.at)
    return contact


@router.get("/{contact_id}")
async def get_contact(contact_id: int):
    with get_db() as db:
        row = fetch_contact(db, contact_id)
        if not row:
            return _not_found()
        return with_links(db, serialize_contact(row), full=True)


@router.put("/{contact_id}")
async def update_contact(contact_id: int, payload: ContactUpdate):
    sent = payload.model_fields_set
    with get_db(immediate=True) as db:
        row = fetch_contact(db, contact_id)
        if not row:
            return _not_found()

        updates: dict[str, object] = {}
        if payload.name:
            updates["name"] = payload.name
        if payload.email:
            updates["email"] = payload.email
        for field in _OPTIONAL_TEXT_FIELDS:
            if field in sent:
                updates[field] = getattr(payload, field) or None
        if "general_notes" in sent:
            updates["general_notes"] = payload.general_notes

        triggers: list[Trigger] = []
        touch = from_db(row["last_touch_date"])
        if payload.last_touch_date:
            new_touch = naive_local(payload.last_touch_date)
            if new_touch != touch:
                triggers.append(Trigger.TOUCH_DATE_CHANGED)
            touch = new_touch
            updates["last_touch_date"] = to_db(touch)
        cadence = row["cadence"]
        if payload.cadence:
            if payload.cadence != cadence:
                triggers.append(Trigger.CADENCE_CHANGED)
            cadence = payload.cadence
            updates["cadence"] = cadence

        current = reminder_of(row)
        reminder = apply_update(
            current,
            touch,
            cadence,
            override=naive_local(payload.next_reminder_date),
            triggers=triggers,
        )

        if updates:
            assignments = ", ".join(f"{column} = ?" for column in updates)
            db.execute(
                f"""UPDATE contacts SET {assignments},
                    updated_at = strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime')
                    WHERE id = ?""",
                [*updates.values(), contact_id],
            )
        if reminder != current:
            write_reminder(db, contact_id, reminder)

        if payload.company_ids is not None:
            replace_links(db, contact_id, "contact_companies", "company_id", "companies", payload.company_ids)
        if payload.team_member_ids is not None:
            replace_links(
                db, contact_id, "contact_team_members", "team_member_id", "team_members", payload.team_member_ids
            )
        if payload.label_ids is not None:
            replace_links(db, contact_id, "contact_labels", "label_id", "labels", payload.label_ids)

        return with_links(db, serialize_contact(fetch_contact(db, contact_id)), full=True)


@router.delete("/{contact_id}")
async def delete_contact(contact_id: int):
    with get_db() as db:
        deleted = db.execute("DELETE FROM contacts WHERE id = ?", (contact_id,)).rowcount
    if deleted == 0:
        return _not_found()
    return {"message": "Contact deleted successfully"}


@router.post("/{contact_id}/companies")
async def add_company(contact_id: int, payload: CompanyLink):
    if payload.company_id is None:
        return _error("company_id is required", 400)
    with get_db() as db:
        if not fetch_contact(db, contact_id):
            return _not_found()
        if not db.execute("SELECT 1 FROM companies WHERE id = ?", (payload.company_id,)).fetchone():
            return _error("Company not found", 404)
        added = db.execute(
            "INSERT OR IGNORE INTO contact_companies (contact_id, company_id) VALUES (?, ?)",
            (contact_id, payload.company_id),
        ).rowcount
        contact = with_links(db, serialize_contact(fetch_contact(db, contact_id)))
    if added == 0:
        return {"message": "Company already associated with contact", "contact": contact}
    return contact


@router.put("/{contact_id}/companies")
async def set_companies(contact_id: int, payload: CompanyIds):
    ids = list(dict.fromkeys(payload.company_ids))
    with get_db() as db:
        if not fetch_contact(db, contact_id):
            return _not_found()
        if ids:
            marks = ", ".join("?" for _ in ids)
            found = db.execute(
                f"SELECT COUNT(*) AS n FROM companies WHERE id IN ({marks})", ids
            ).fetchone()["n"]
            if found != len(ids):
                return _error("One or more companies not found", 404)
        replace_links(db, contact_id, "contact_companies", "company_id", "companies", ids)
        return with_links(db, serialize_contact(fetch_contact(db, contact_id)))


@router.get("/{contact_id}/timeline")
async def timeline(contact_id: int):
    with get_db() as db:
        if not fetch_contact(db, contact_id):
            return _not_found()
        notes = db.execute(
            """SELECT n.*, tm.name AS team_member_name FROM notes n
               JOIN team_members tm ON tm.id = n.team_member_id
               WHERE n.contact_id = ?""",
            (contact_id,),
        ).fetchall()
        interactions = db.execute(
            """SELECT i.*, tm.name AS team_member_name FROM interactions i
               JOIN team_members tm ON tm.id = i.team_member_id
               WHERE i.contact_id = ?""",
            (contact_id,),
        ).fetchall()

    entries = [
        {
            "id": n["id"],
            "type": "note",
            "content": n["content"],
            "team_member_id": n["team_member_id"],
            "team_member_name": n["team_member_name"],
            "date": n["created_at"],
            "created_at": n["created_at"],
        }
        for n in notes
    ]
    entries.extend(
        {
            "id": i["id"],
            "type": "interaction",
            "interaction_type": i["type"],
            "subject": i["subject"],
            "content": i["content"],
            "outcome": i["outcome"],
            "team_member_id": i["team_member_id"],
            "team_member_name": i["team_member_name"],
            "date": i["interaction_date"],
            "created_at": i["created_at"],
            "updated_at": i["updated_at"],
        }
        for i in interactions
    )
    entries.sort(key=lambda e: e["date"], reverse=True)
    return entries


def _team_member_exists(db, team_member_id: int) -> bool:
    return db.execute("SELECT 1 FROM team_members WHERE id = ?", (team_member_id,)).fetchone() is not None


@router.post("/{contact_id}/notes", status_code=201)
async def add_note(contact_id: int, payload: NoteCreate):
    if not payload.content or payload.team_member_id is None:
        return _error("Content and team member are required", 400)
    now = datetime.now().replace(microsecond=0)
    with get_db(immediate=True) as db:
        if not fetch_contact(db, contact_id):
            return _not_found()
        if not _team_member_exists(db, payload.team_member_id):
            return _error("Team member not found", 400)
        cur = db.execute(
            "INSERT INTO notes (contact_id, team_member_id, content, created_at) VALUES (?, ?, ?, ?)",
            (contact_id, payload.team_member_id, payload.content, to_db(now)),
        )
        if payload.update_last_touch:
            log_touch(db, contact_id, now)
        note = db.execute(
            """SELECT n.*, tm.name AS team_member_name FROM notes n
               JOIN team_members tm ON tm.id = n.team_member_id WHERE n.id = ?""",
            (cur.lastrowid,),
        ).fetchone()
    return dict(note)


@router.post("/{contact_id}/interactions", status_code=201)
async def add_interaction(contact_id: int, payload: InteractionCreate):
    if payload.type is None or not payload.content or payload.team_member_id is None:
        return _error("Type, content, and team member are required", 400)
    when = naive_local(payload.interaction_date) or datetime.now().replace(microsecond=0)
    with get_db(immediate=True) as db:
        if not fetch_contact(db, contact_id):
            return _not_found()
        if not _team_member_exists(db, payload.team_member_id):
            return _error("Team member not found", 400)
        cur = db.execute(
            """INSERT INTO interactions
                   (contact_id, team_member_id, type, subject, content, outcome, interaction_date)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                contact_id,
                payload.team_member_id,
                payload.type.value,
                payload.subject or None,
                payload.content,
                payload.outcome or None,
                to_db(when),
            ),
        )
        if payload.update_last_touch:
            log_touch(db, contact_id, when)
        interaction = db.execute(
            """SELECT i.*, tm.name AS team_member_name FROM interactions i
               JOIN team_members tm ON tm.id = i.team_member_id WHERE i.id = ?""",
            (cur.lastrowid,),
        ).fetchone()
    return dict(interaction)


@router.post("/{contact_id}/reminder")
async def schedule_reminder(contact_id: int, payload: ReminderRequest):
    with get_db() as db:
        if not fetch_contact(db, contact_id):
            return _not_found()

    try:
        day = await schedule_from_text(payload.text)
    except ValueError as exc:
        return _error(str(exc), 422)

    with get_db(immediate=True) as db:
        # the contact may have been deleted while the schedule was computed
        if not fetch_contact(db, contact_id):
            return _not_found()
        write_reminder(db, contact_id, Overridden(datetime.combine(day, time.min)))
        return serialize_contact(fetch_contact(db, contact_id))
