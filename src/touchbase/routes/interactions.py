from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from touchbase.db import get_db, naive_local, to_db
from touchbase.models import InteractionUpdate

router = APIRouter(prefix="/api/interactions", tags=["interactions"])


@router.patch("/{interaction_id}")
async def update_interaction(interaction_id: int, payload: InteractionUpdate):
    sent = payload.model_fields_set
    updates: dict[str, object] = {}
    if payload.type:
        updates["type"] = payload.type.value
    if "subject" in sent:
        updates["subject"] = payload.subject or None
    if payload.content:
        updates["content"] = payload.content
    if "outcome" in sent:
        updates["outcome"] = payload.outcome or None
    if payload.interaction_date:
        # editing a past interaction leaves the contact's touch date alone
        updates["interaction_date"] = to_db(naive_local(payload.interaction_date))

    with get_db() as db:
        if not db.execute("SELECT 1 FROM interactions WHERE id = ?", (interaction_id,)).fetchone():
            return JSONResponse({"error": "Interaction not found"}, status_code=404)
        if updates:
            assignments = ", ".join(f"{column} = ?" for column in updates)
            db.execute(
                f"""UPDATE interactions SET {assignments},
                    updated_at = strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime')
                    WHERE id = ?""",
                [*updates.values(), interaction_id],
            )
        row = db.execute(
            """SELECT i.*, tm.name AS team_member_name FROM interactions i
               JOIN team_members tm ON tm.id = i.team_member_id WHERE i.id = ?""",
            (interaction_id,),
        ).fetchone()
    return dict(row)


@router.delete("/{interaction_id}")
async def delete_interaction(interaction_id: int):
    with get_db() as db:
        deleted = db.execute("DELETE FROM interactions WHERE id = ?", (interaction_id,)).rowcount
    if not deleted:
        return JSONResponse({"error": "Interaction not found"}, status_code=404)
    return {"message": "Interaction deleted successfully"}
