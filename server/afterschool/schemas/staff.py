from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from afterschool.auth.permissions import StaffSubRole


class StaffUserSummary(BaseModel):
    id: int
    username: str
    full_name: str
    is_active: bool

    class Config:
        from_attributes = True


class StaffProfileCreate(BaseModel):
    user_id: int
    title: str = Field(..., min_length=1, max_length=120)
    staff_role: Optional[StaffSubRole] = None
    permissions: list[str] = Field(default_factory=list)
    specialties: Optional[list[str]] = None


class StaffProfileUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=120)
    staff_role: Optional[StaffSubRole] = None
    permissions: Optional[list[str]] = None
    specialties: Optional[list[str]] = None
    is_active: Optional[bool] = None


class StaffProfileOut(BaseModel):
    id: int
    user_id: int
    title: str
    staff_role: Optional[str]
    permissions: list[str]
    specialties: Optional[list[str]]
    is_active: bool
    user: StaffUserSummary

    class Config:
        from_attributes = True


class StaffListResponse(BaseModel):
    items: list[StaffProfileOut]
    total: int
