from __future__ import annotations

import random
import sqlite3

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from touchbase.db import get_db
from touchbase.models import LabelIn, TeamMemberIn

router = APIRouter(prefix="/api", tags=["team"])


@router.get("/team-members")
async def list_team_members(search: str = ""):
    with get_db() as db:
        if search:
            like = f"%{search}%"
            rows = db.execute(
                """SELECT tm.*, (SELECT COUNT(*) FROM contact_team_members ct
                                 WHERE ct.team_member_id = tm.id) AS contact_count
                   FROM team_members tm
                   WHERE tm.name LIKE ? OR tm.email LIKE ?
                   ORDER BY tm.name""",
                (like, like),
            ).fetchall()
        else:
            rows = db.execute(
                """SELECT tm.*, (SELECT COUNT(*) FROM contact_team_members ct
                                 WHERE ct.team_member_id = tm.id) AS contact_count
                   FROM team_members tm ORDER BY tm.name"""
            ).fetchall()
    return [dict(r) for r in rows]


@router.post("/team-members", status_code=201)
async def create_team_member(payload: TeamMemberIn):
    try:
        with get_db() as db:
            cur = db.execute(
                "INSERT INTO team_members (name, email) VALUES (?, ?)",
                (payload.name, payload.email),
            )
            row = db.execute("SELECT * FROM team_members WHERE id = ?", (cur.lastrowid,)).fetchone()
    except sqlite3.IntegrityError:
        return JSONResponse(
            {"error": "Team member with this email already exists"}, status_code=400
        )
    return dict(row)


@router.get("/labels")
async def list_labels():
    with get_db() as db:
        rows = db.execute("SELECT * FROM labels ORDER BY name").fetchall()
    return [dict(r) for r in rows]


@router.post("/labels", status_code=201)
async def create_label(payload: LabelIn):
    name = payload.name.strip()
    if not name:
        return JSONResponse({"error": "Label name is required"}, status_code=400)
    color = payload.color or f"#{random.randint(0, 0xFFFFFF):06x}"
    with get_db() as db:
        if db.execute("SELECT 1 FROM labels WHERE name = ?", (name,)).fetchone():
            return JSONResponse(
                {"error": "Label with this name already exists"}, status_code=400
            )
        cur = db.execute("INSERT INTO labels (name, color) VALUES (?, ?)", (name, color))
        row = db.execute("SELECT * FROM labels WHERE id = ?", (cur.lastrowid,)).fetchone()
    return dict(row)
