from __future__ import annotations

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from touchbase.db import get_db, init_db
import touchbase.db as db_module


@pytest.fixture(autouse=True)
def use_temp_db(tmp_path, monkeypatch):
    """Use a temporary database for each test."""
    test_db = tmp_path / "test.db"
    monkeypatch.setattr(db_module, "DB_PATH", test_db)
    init_db(test_db)
    return test_db


@pytest.fixture
def client():
    from touchbase.web import create_app

    app = create_app()
    return TestClient(app)


@pytest.fixture
def team_member(client):
    resp = client.post("/api/team-members", json={"name": "Karl", "email": "karl@example.com"})
    assert resp.status_code == 201
    return resp.json()["id"]


def _days_ago(days: int) -> str:
    return (datetime.now() - timedelta(days=days)).replace(microsecond=0).isoformat()


def _create(client, name, **fields):
    body = {"name": name, "email": f"{name.lower()}@example.com", **fields}
    resp = client.post("/api/contacts", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _names(resp):
    return sorted(c["name"] for c in resp.json()["contacts"])


def test_index_redirects_to_reminders(client):
    resp = client.get("/", follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == "/reminders"


def test_create_contact_derives_reminder(client):
    contact = _create(client, "Ann", cadence="1_MONTH", last_touch_date="2025-01-31T10:00:00")
    assert contact["last_touch_date"] == "2025-01-31T10:00:00"
    assert contact["next_reminder_date"] == "2025-03-02T10:00:00"
    assert contact["reminder_source"] == "derived"
    assert contact["reminder_status"] == "OVERDUE"
    assert contact["cadence_days"] == 30


def test_create_contact_defaults(client):
    contact = _create(client, "Ann")
    assert contact["cadence"] == "3_MONTHS"
    assert contact["reminder_status"] == "UPCOMING"
    touched = datetime.fromisoformat(contact["last_touch_date"])
    assert datetime.fromisoformat(contact["next_reminder_date"]) - touched == timedelta(days=90)


def test_create_contact_unknown_cadence_counts_as_ninety_days(client):
    contact = _create(client, "Ann", cadence="FORTNIGHTLY", last_touch_date="2025-01-01T00:00:00")
    assert contact["next_reminder_date"] == "2025-04-01T00:00:00"


def test_create_contact_requires_name_and_email(client):
    resp = client.post("/api/contacts", json={"name": "Ann"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Name and email are required"


def test_create_contact_drops_unknown_team_members(client, team_member):
    contact = _create(client, "Ann", team_member_ids=[team_member, 999])
    assert [tm["id"] for tm in contact["team_members"]] == [team_member]


def test_get_contact_not_found(client):
    resp = client.get("/api/contacts/42")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Contact not found"


def test_list_contacts_by_reminder_status(client):
    _create(client, "Overdue", cadence="1_DAY", last_touch_date=_days_ago(5))
    _create(client, "Today", cadence="7_DAYS", last_touch_date=_days_ago(7))
    _create(client, "Week", cadence="7_DAYS", last_touch_date=_days_ago(4))
    _create(client, "Later", cadence="3_MONTHS", last_touch_date=_days_ago(0))

    assert _names(client.get("/api/contacts?reminderStatus=OVERDUE")) == ["Overdue"]
    assert _names(client.get("/api/contacts?reminderStatus=DUE_TODAY")) == ["Today"]
    assert _names(client.get("/api/contacts?reminderStatus=DUE_THIS_WEEK")) == ["Week"]
    assert _names(client.get("/api/contacts?reminderStatus=UPCOMING")) == ["Later", "Week"]

    statuses = {c["name"]: c["reminder_status"] for c in client.get("/api/contacts").json()["contacts"]}
    assert statuses == {
        "Overdue": "OVERDUE",
        "Today": "DUE_TODAY",
        "Week": "UPCOMING",
        "Later": "UPCOMING",
    }


def test_list_contacts_orders_by_next_reminder_nulls_last(client, use_temp_db):
    _create(client, "Later", cadence="3_MONTHS")
    _create(client, "Sooner", cadence="1_DAY")
    with get_db(use_temp_db) as db:
        db.execute(
            """INSERT INTO contacts (name, email, last_touch_date, next_reminder_date)
               VALUES ('Legacy', 'legacy@example.com', '2020-01-01T00:00:00', NULL)"""
        )

    resp = client.get("/api/contacts")
    assert [c["name"] for c in resp.json()["contacts"]] == ["Sooner", "Later", "Legacy"]
    assert resp.json()["contacts"][2]["reminder_status"] == "NO_REMINDER"
    assert _names(client.get("/api/contacts?reminderStatus=NO_REMINDER")) == ["Legacy"]


def test_explicit_dates_override_preset(client):
    _create(client, "Ann", cadence="1_MONTH", last_touch_date="2025-01-31T10:00:00")
    _create(client, "Bob", cadence="1_MONTH", last_touch_date="2025-02-10T10:00:00")

    resp = client.get(
        "/api/contacts",
        params={"reminderStatus": "NO_REMINDER", "startDate": "2025-03-02", "endDate": "2025-03-02"},
    )
    assert _names(resp) == ["Ann"]
    assert _names(client.get("/api/contacts", params={"startDate": "2025-03-03"})) == ["Bob"]
    assert _names(client.get("/api/contacts", params={"endDate": "2025-03-02"})) == ["Ann"]


@pytest.mark.parametrize(
    "params",
    [
        {"startDate": "yesterday"},
        {"endDate": "2025-02-30"},
        {"reminderStatus": "SOMEDAY"},
        {"startDate": "2025-03-05", "endDate": "2025-03-01"},
    ],
)
def test_invalid_filters_rejected(client, params):
    resp = client.get("/api/contacts", params=params)
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_list_contacts_search_and_pagination(client, team_member):
    company = client.post("/api/companies", json={"name": "Accel"}).json()["id"]
    _create(client, "Ann", company_ids=[company])
    _create(client, "Bob", team_member_ids=[team_member])
    _create(client, "Cy", job_title="Engineer")

    assert _names(client.get("/api/contacts?search=accel")) == ["Ann"]
    assert _names(client.get("/api/contacts?search=Karl")) == ["Bob"]
    assert _names(client.get("/api/contacts?search=engineer")) == ["Cy"]
    assert _names(client.get(f"/api/contacts?company={company}")) == ["Ann"]
    assert _names(client.get(f"/api/contacts?teamMember={team_member}")) == ["Bob"]

    resp = client.get("/api/contacts?limit=2&page=2")
    pagination = resp.json()["pagination"]
    assert len(resp.json()["contacts"]) == 1
    assert pagination == {
        "page": 2,
        "limit": 2,
        "total": 3,
        "total_pages": 2,
        "has_next": False,
        "has_prev": True,
    }


def test_update_cadence_recalculates(client):
    contact = _create(client, "Ann", cadence="1_MONTH", last_touch_date="2025-01-31T10:00:00")
    resp = client.put(f"/api/contacts/{contact['id']}", json={"cadence": "7_DAYS"})
    assert resp.status_code == 200
    assert resp.json()["next_reminder_date"] == "2025-02-07T10:00:00"


def test_update_same_values_keeps_override(client):
    contact = _create(client, "Ann", cadence="1_MONTH", last_touch_date="2025-01-31T10:00:00")
    url = f"/api/contacts/{contact['id']}"
    client.put(url, json={"next_reminder_date": "2025-06-01T09:00:00"})

    resp = client.put(
        url, json={"cadence": "1_MONTH", "last_touch_date": "2025-01-31T10:00:00", "job_title": "CTO"}
    )
    body = resp.json()
    assert body["job_title"] == "CTO"
    assert body["next_reminder_date"] == "2025-06-01T09:00:00"
    assert body["reminder_source"] == "override"


def test_override_then_cadence_change_rederives(client):
    contact = _create(client, "Ann", cadence="1_MONTH", last_touch_date="2025-01-31T10:00:00")
    url = f"/api/contacts/{contact['id']}"

    body = client.put(url, json={"next_reminder_date": "2025-06-01T09:00:00"}).json()
    assert body["reminder_source"] == "override"

    body = client.put(url, json={"cadence": "2_WEEKS"}).json()
    assert body["reminder_source"] == "derived"
    assert body["next_reminder_date"] == "2025-02-14T10:00:00"


def test_override_wins_when_sent_with_cadence(client):
    contact = _create(client, "Ann", cadence="1_MONTH", last_touch_date="2025-01-31T10:00:00")
    body = client.put(
        f"/api/contacts/{contact['id']}",
        json={"cadence": "2_WEEKS", "next_reminder_date": "2025-07-01T00:00:00"},
    ).json()
    assert body["cadence"] == "2_WEEKS"
    assert body["next_reminder_date"] == "2025-07-01T00:00:00"


def test_update_missing_contact(client):
    assert client.put("/api/contacts/9", json={"name": "X"}).status_code == 404


def test_delete_contact(client):
    contact = _create(client, "Ann")
    assert client.delete(f"/api/contacts/{contact['id']}").status_code == 200
    assert client.get(f"/api/contacts/{contact['id']}").status_code == 404
    assert client.delete(f"/api/contacts/{contact['id']}").status_code == 404


def test_log_interaction_updates_touch_and_reminder(client, team_member):
    contact = _create(client, "Ann", cadence="2_WEEKS", last_touch_date="2025-01-01T10:00:00")
    resp = client.post(
        f"/api/contacts/{contact['id']}/interactions",
        json={
            "type": "CALL",
            "content": "Caught up",
            "team_member_id": team_member,
            "interaction_date": "2025-03-01T15:00:00",
        },
    )
    assert resp.status_code == 201
    assert resp.json()["team_member_name"] == "Karl"

    updated = client.get(f"/api/contacts/{contact['id']}").json()
    assert updated["last_touch_date"] == "2025-03-01T15:00:00"
    assert updated["next_reminder_date"] == "2025-03-15T15:00:00"
    assert [i["content"] for i in updated["interactions"]] == ["Caught up"]


def test_log_interaction_without_touch(client, team_member):
    contact = _create(client, "Ann", cadence="2_WEEKS", last_touch_date="2025-01-01T10:00:00")
    client.post(
        f"/api/contacts/{contact['id']}/interactions",
        json={"type": "EMAIL", "content": "FYI", "team_member_id": team_member, "update_last_touch": False},
    )
    updated = client.get(f"/api/contacts/{contact['id']}").json()
    assert updated["last_touch_date"] == "2025-01-01T10:00:00"


def test_log_interaction_validation(client, team_member):
    contact = _create(client, "Ann")
    resp = client.post(f"/api/contacts/{contact['id']}/interactions", json={"content": "x"})
    assert resp.status_code == 400
    resp = client.post(
        f"/api/contacts/{contact['id']}/interactions",
        json={"type": "CALL", "content": "x", "team_member_id": 999},
    )
    assert resp.status_code == 400


def test_add_note_touches_contact(client, team_member):
    contact = _create(client, "Ann", cadence="1_DAY", last_touch_date="2025-01-01T10:00:00")
    resp = client.post(
        f"/api/contacts/{contact['id']}/notes",
        json={"content": "Met at conference", "team_member_id": team_member},
    )
    assert resp.status_code == 201

    updated = client.get(f"/api/contacts/{contact['id']}").json()
    assert updated["reminder_status"] == "UPCOMING"
    assert updated["last_touch_date"] == resp.json()["created_at"]


def test_timeline_merges_notes_and_interactions(client, team_member):
    contact = _create(client, "Ann")
    base = f"/api/contacts/{contact['id']}"
    client.post(
        f"{base}/interactions",
        json={
            "type": "MEETING",
            "content": "Kickoff",
            "team_member_id": team_member,
            "interaction_date": "2020-05-01T10:00:00",
            "update_last_touch": False,
        },
    )
    client.post(f"{base}/notes", json={"content": "Recent note", "team_member_id": team_member})

    entries = client.get(f"{base}/timeline").json()
    assert [e["type"] for e in entries] == ["note", "interaction"]
    assert entries[1]["interaction_type"] == "MEETING"


def test_edit_and_delete_interaction(client, team_member):
    contact = _create(client, "Ann")
    interaction = client.post(
        f"/api/contacts/{contact['id']}/interactions",
        json={"type": "CALL", "content": "Quick call", "team_member_id": team_member},
    ).json()

    resp = client.patch(
        f"/api/interactions/{interaction['id']}", json={"outcome": "Interested", "subject": ""}
    )
    assert resp.status_code == 200
    assert resp.json()["outcome"] == "Interested"
    assert resp.json()["subject"] is None

    assert client.delete(f"/api/interactions/{interaction['id']}").status_code == 200
    assert client.delete(f"/api/interactions/{interaction['id']}").status_code == 404


def test_schedule_reminder_from_text(client, monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    contact = _create(client, "Ann")
    resp = client.post(f"/api/contacts/{contact['id']}/reminder", json={"text": "follow up tomorrow"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["reminder_source"] == "override"
    expected = (datetime.now() + timedelta(days=1)).date().isoformat()
    assert body["next_reminder_date"] == f"{expected}T00:00:00"
    assert body["reminder_status"] == "UPCOMING"


@patch("touchbase.routes.contacts.schedule_from_text", new_callable=AsyncMock)
def test_schedule_reminder_unparseable(mock_schedule, client):
    mock_schedule.side_effect = ValueError("Could not work out a date from 'soon'")
    contact = _create(client, "Ann")
    resp = client.post(f"/api/contacts/{contact['id']}/reminder", json={"text": "soon"})
    assert resp.status_code == 422
    assert "Could not work out" in resp.json()["error"]


def test_schedule_reminder_contact_deleted_while_scheduling(client, use_temp_db):
    contact = _create(client, "Ann")

    async def delete_then_schedule(text):
        with get_db(use_temp_db) as db:
            db.execute("DELETE FROM contacts WHERE id = ?", (contact["id"],))
        return (datetime.now() + timedelta(days=3)).date()

    with patch("touchbase.routes.contacts.schedule_from_text", new=AsyncMock(side_effect=delete_then_schedule)):
        resp = client.post(f"/api/contacts/{contact['id']}/reminder", json={"text": "in three days"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Contact not found"}


@pytest.mark.parametrize(
    "method,path,kwargs",
    [
        ("post", "/api/companies", {"json": {}}),
        ("get", "/api/contacts", {"params": {"limit": 500}}),
        ("get", "/api/contacts", {"params": {"page": 0}}),
    ],
)
def test_request_validation_errors_are_400(client, method, path, kwargs):
    resp = getattr(client, method)(path, **kwargs)
    assert resp.status_code == 400
    body = resp.json()
    assert set(body) == {"error"}
    assert isinstance(body["error"], str) and body["error"]


def test_empty_reminder_text_is_400(client):
    contact = _create(client, "Ann")
    resp = client.post(f"/api/contacts/{contact['id']}/reminder", json={"text": ""})
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("text:")


def test_contact_companies(client):
    contact = _create(client, "Ann")
    accel = client.post("/api/companies", json={"name": "Accel", "industry": "VC"}).json()["id"]
    trimedx = client.post("/api/companies", json={"name": "TrimedX"}).json()["id"]
    base = f"/api/contacts/{contact['id']}/companies"

    body = client.post(base, json={"company_id": accel}).json()
    assert [c["name"] for c in body["companies"]] == ["Accel"]
    again = client.post(base, json={"company_id": accel}).json()
    assert again["message"] == "Company already associated with contact"

    assert client.put(base, json={"company_ids": [trimedx, 999]}).status_code == 404
    body = client.put(base, json={"company_ids": [trimedx]}).json()
    assert [c["name"] for c in body["companies"]] == ["TrimedX"]

    listed = {c["name"]: c["contact_count"] for c in client.get("/api/companies").json()}
    assert listed == {"Accel": 0, "TrimedX": 1}


def test_company_crud(client):
    company = client.post("/api/companies", json={"name": "Accel"}).json()
    url = f"/api/companies/{company['id']}"
    assert client.put(url, json={"name": "Accel Partners", "website": "https://accel.com"}).json()[
        "name"
    ] == "Accel Partners"
    assert client.get(url).json()["website"] == "https://accel.com"
    assert client.delete(url).status_code == 200
    assert client.get(url).status_code == 404


def test_team_members(client, team_member):
    resp = client.post("/api/team-members", json={"name": "Karl 2", "email": "karl@example.com"})
    assert resp.status_code == 400
    client.post("/api/team-members", json={"name": "Erad", "email": "erad@example.com"})
    assert [m["name"] for m in client.get("/api/team-members").json()] == ["Erad", "Karl"]
    assert [m["name"] for m in client.get("/api/team-members?search=erad").json()] == ["Erad"]


def test_labels(client):
    resp = client.post("/api/labels", json={"name": "  VIP  "})
    assert resp.status_code == 201
    assert resp.json()["name"] == "VIP"
    assert resp.json()["color"].startswith("#")
    assert client.post("/api/labels", json={"name": "VIP"}).status_code == 400
    assert client.post("/api/labels", json={"name": " "}).status_code == 400
    label = client.post("/api/labels", json={"name": "Investor", "color": "#112233"}).json()

    contact = _create(client, "Ann", label_ids=[label["id"]])
    assert [lb["name"] for lb in contact["labels"]] == ["Investor"]
    assert _names(client.get(f"/api/contacts?label={label['id']}")) == ["Ann"]


def test_dashboard_stats(client):
    _create(client, "Overdue", cadence="1_DAY", last_touch_date=_days_ago(5))
    _create(client, "Today", cadence="7_DAYS", last_touch_date=_days_ago(7))
    _create(client, "Week", cadence="7_DAYS", last_touch_date=_days_ago(4))
    _create(client, "Later", cadence="3_MONTHS")

    assert client.get("/api/dashboard/stats").json() == {
        "total_contacts": 4,
        "overdue_contacts": 1,
        "due_today_contacts": 1,
        "due_this_week_contacts": 2,
    }


def test_weekly_reminders(client, team_member):
    _create(client, "Ann", cadence="1_DAY", last_touch_date=_days_ago(5), team_member_ids=[team_member])
    _create(client, "Bob", cadence="7_DAYS", last_touch_date=_days_ago(4))
    _create(client, "Cy", cadence="3_MONTHS")

    body = client.get("/api/reminders/weekly").json()
    assert set(body["reminders"]) == {"Karl", "Unassigned"}
    assert [r["name"] for r in body["reminders"]["Unassigned"]] == ["Bob"]
    assert "@Karl" in body["message"]
    assert "Cy" not in body["message"]


def test_reminders_page(client):
    _create(client, "Overdue Olga", cadence="1_DAY", last_touch_date=_days_ago(5))
    _create(client, "Later Lee", cadence="3_MONTHS")

    resp = client.get("/reminders")
    assert resp.status_code == 200
    assert "Overdue Olga" in resp.text
    assert "badge-overdue" in resp.text

    resp = client.get("/reminders?status=upcoming")
    assert "Later Lee" in resp.text
    assert "Overdue Olga" not in resp.text
