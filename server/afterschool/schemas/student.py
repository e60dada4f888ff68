from __future__ import annotations

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field

BehaviorTierLiteral = Literal["good-standing", "tier-1", "tier-2", "tier-3", "suspended"]


class StudentCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field(..., min_length=1, max_length=120)
    grade: str = Field(..., min_length=1, max_length=20)
    parent_id: Optional[int] = None
    emergency_contact: Optional[str] = Field(None, max_length=255)
    medical_notes: Optional[str] = None


class StudentUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=120)
    last_name: Optional[str] = Field(None, min_length=1, max_length=120)
    grade: Optional[str] = Field(None, min_length=1, max_length=20)
    parent_id: Optional[int] = None
    emergency_contact: Optional[str] = Field(None, max_length=255)
    medical_notes: Optional[str] = None


class StudentOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    grade: str
    parent_id: Optional[int]
    emergency_contact: Optional[str]
    medical_notes: Optional[str]
    current_tier: BehaviorTierLiteral
    tier_update_date: Optional[dt.date]

    class Config:
        from_attributes = True


class TierTransitionCreate(BaseModel):
    # Plain string so unknown tiers reach the state machine and come back as InvalidTier.
    to_tier: str = Field(..., min_length=1, max_length=32)
    reason: str = Field(..., min_length=1, max_length=2000)
    date: Optional[dt.date] = None
    notify_parent: bool = False
    expected_from_tier: Optional[str] = Field(None, max_length=32)
    incident_ids: list[int] = Field(default_factory=list)


class TierTransitionOut(BaseModel):
    id: int
    student_id: int
    from_tier: BehaviorTierLiteral
    to_tier: BehaviorTierLiteral
    date: dt.date
    reason: str
    authorized_by_id: Optional[int]
    parent_notified: bool
    parent_notification_date: Optional[dt.date]
    incident_ids: Optional[list[int]]
    created_at: dt.datetime

    class Config:
        from_attributes = True
