from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from touchbase.cadence import DEFAULT_CADENCE


class InteractionType(str, Enum):
    EMAIL = "EMAIL"
    CALL = "CALL"
    MEETING = "MEETING"
    LINKEDIN = "LINKEDIN"
    FOLLOWUP = "FOLLOWUP"
    PROPOSAL = "PROPOSAL"
    OTHER = "OTHER"


class ContactCreate(BaseModel):
    # name and email are checked by the route so a missing one answers 400
    name: str = ""
    email: str = ""
    first_name: str | None = None
    last_name: str | None = None
    job_title: str | None = None
    linkedin_url: str | None = None
    referrer: str | None = None
    crm_id: str | None = None
    # unknown cadences are stored as given and count as 90 days
    cadence: str = DEFAULT_CADENCE.value
    last_touch_date: datetime | None = None
    general_notes: str | None = None
    company_ids: list[int] = Field(default_factory=list)
    team_member_ids: list[int] = Field(default_factory=list)
    label_ids: list[int] = Field(default_factory=list)


class ContactUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    job_title: str | None = None
    linkedin_url: str | None = None
    referrer: str | None = None
    crm_id: str | None = None
    cadence: str | None = None
    last_touch_date: datetime | None = None
    next_reminder_date: datetime | None = None
    general_notes: str | None = None
    company_ids: list[int] | None = None
    team_member_ids: list[int] | None = None
    label_ids: list[int] | None = None


class CompanyIn(BaseModel):
    name: str = Field(..., min_length=1)
    industry: str | None = None
    size: str | None = None
    website: str | None = None


class CompanyLink(BaseModel):
    company_id: int | None = None


class CompanyIds(BaseModel):
    company_ids: list[int]


class TeamMemberIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)


class LabelIn(BaseModel):
    name: str = ""
    color: str | None = None


class InteractionCreate(BaseModel):
    type: InteractionType | None = None
    content: str = ""
    team_member_id: int | None = None
    subject: str | None = None
    outcome: str | None = None
    interaction_date: datetime | None = None
    update_last_touch: bool = True


class InteractionUpdate(BaseModel):
    type: InteractionType | None = None
    subject: str | None = None
    content: str | None = None
    outcome: str | None = None
    interaction_date: datetime | None = None


class NoteCreate(BaseModel):
    content: str = ""
    team_member_id: int | None = None
    update_last_touch: bool = True


class ReminderRequest(BaseModel):
    text: str = Field(..., min_length=1)
