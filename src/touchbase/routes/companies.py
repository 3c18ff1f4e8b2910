from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from touchbase.db import get_db
from touchbase.models import CompanyIn

router = APIRouter(prefix="/api/companies", tags=["companies"])

_SELECT = """SELECT co.*,
                    (SELECT COUNT(*) FROM contact_companies cc WHERE cc.company_id = co.id)
                        AS contact_count
             FROM companies co"""


@router.get("")
async def list_companies():
    with get_db() as db:
        rows = db.execute(f"{_SELECT} ORDER BY co.name").fetchall()
    return [dict(r) for r in rows]


@router.post("", status_code=201)
async def create_company(payload: CompanyIn):
    with get_db() as db:
        cur = db.execute(
            "INSERT INTO companies (name, industry, size, website) VALUES (?, ?, ?, ?)",
            (payload.name, payload.industry, payload.size, payload.website),
        )
        row = db.execute(f"{_SELECT} WHERE co.id = ?", (cur.lastrowid,)).fetchone()
    return dict(row)


@router.get("/{company_id}")
async def get_company(company_id: int):
    with get_db() as db:
        row = db.execute(f"{_SELECT} WHERE co.id = ?", (company_id,)).fetchone()
    if not row:
        return JSONResponse({"error": "Company not found"}, status_code=404)
    return dict(row)


@router.put("/{company_id}")
async def update_company(company_id: int, payload: CompanyIn):
    with get_db() as db:
        updated = db.execute(
            "UPDATE companies SET name = ?, industry = ?, size = ?, website = ? WHERE id = ?",
            (payload.name, payload.industry, payload.size, payload.website, company_id),
        ).rowcount
        row = db.execute(f"{_SELECT} WHERE co.id = ?", (company_id,)).fetchone()
    if not updated:
        return JSONResponse({"error": "Company not found"}, status_code=404)
    return dict(row)


@router.delete("/{company_id}")
async def delete_company(company_id: int):
    with get_db() as db:
        deleted = db.execute("DELETE FROM companies WHERE id = ?", (company_id,)).rowcount
    if not deleted:
        return JSONResponse({"error": "Company not found"}, status_code=404)
    return {"message": "Company deleted successfully"}
