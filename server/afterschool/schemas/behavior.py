from __future__ import annotations

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field

IncidentTypeLiteral = Literal["disruption", "disrespect", "physical", "property-damage", "bullying", "other"]

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class IncidentCreate(BaseModel):
    student_id: int
    incident_date: dt.date
    incident_time: str = Field(..., pattern=TIME_PATTERN)
    incident_type: IncidentTypeLiteral
    description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1, max_length=150)
    witness_names: list[str] = Field(default_factory=list)
    follow_up_required: bool = False


class IncidentResolveRequest(BaseModel):
    action_taken: str = Field(..., min_length=1)


class ParentNotificationRequest(BaseModel):
    notification_date: Optional[dt.date] = None


class IncidentOut(BaseModel):
    id: int
    student_id: int
    reported_by_staff_id: Optional[int]
    incident_date: dt.date
    incident_time: str
    incident_type: IncidentTypeLiteral
    description: str
    location: str
    witness_names: Optional[list[str]]
    action_taken: Optional[str]
    parent_notified: bool
    parent_notification_date: Optional[dt.date]
    follow_up_required: bool
    is_resolved: bool

    class Config:
        from_attributes = True


class NoteCreate(BaseModel):
    student_id: int
    date: Optional[dt.date] = None
    time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    note: str = Field(..., min_length=1)
    is_positive: bool = True
    is_private: bool = False


class NoteOut(BaseModel):
    id: int
    student_id: int
    staff_id: Optional[int]
    date: dt.date
    time: str
    note: str
    is_positive: bool
    is_private: bool
    parent_read: bool

    class Config:
        from_attributes = True


class ParentNoteOut(BaseModel):
    id: int
    student_id: int
    date: dt.date
    time: str
    note: str
    is_positive: bool
    parent_read: bool

    class Config:
        from_attributes = True
