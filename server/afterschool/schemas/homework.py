from __future__ import annotations

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

HomeworkStatusLiteral = Literal["assigned", "completed", "verified", "overdue"]
HomeworkPriorityLiteral = Literal["low", "normal", "high"]


class HomeworkCreate(BaseModel):
    student_id: int
    activity_id: Optional[int] = None
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    due_date: dt.date
    assigned_date: Optional[dt.date] = None
    priority: HomeworkPriorityLiteral = "normal"

    @model_validator(mode="after")
    def check_dates(self) -> "HomeworkCreate":
        if self.assigned_date and self.due_date < self.assigned_date:
            raise ValueError("Due date cannot be before the assigned date")
        return self


class HomeworkCompleteRequest(BaseModel):
    completion_notes: Optional[str] = None
    completed_date: Optional[dt.date] = None


class HomeworkOut(BaseModel):
    id: int
    student_id: int
    activity_id: Optional[int]
    assigned_by_staff_id: Optional[int]
    title: str
    description: str
    due_date: dt.date
    assigned_date: dt.date
    status: HomeworkStatusLiteral
    priority: HomeworkPriorityLiteral
    completed_date: Optional[dt.date]
    completion_notes: Optional[str]
    verified_by_staff_id: Optional[int]
    verification_date: Optional[dt.date]
    parent_notified: bool

    class Config:
        from_attributes = True
