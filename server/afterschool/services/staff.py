from __future__ import annotations

import logging
from typing import Iterable

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, joinedload

from afterschool.models.staff import StaffProfile
from afterschool.models.user import User

logger = logging.getLogger(__name__)


def get_staff_by_user_id(db: Session, user_id: int) -> StaffProfile | None:
    return db.query(StaffProfile).filter(StaffProfile.user_id == user_id).first()


def normalize_grants(grants: Iterable[str] | None) -> list[str]:
    """Collapse duplicates and blanks; grants have set semantics."""

    if not grants:
        return []
    return sorted({grant.strip() for grant in grants if grant and grant.strip()})


def _get_profile_or_404(db: Session, profile_id: int) -> StaffProfile:
    profile = (
        db.query(StaffProfile)
        .options(joinedload(StaffProfile.user))
        .filter(StaffProfile.id == profile_id)
        .first()
    )
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff member not found")
    return profile


def list_staff(db: Session, *, active_only: bool = False) -> list[StaffProfile]:
    query = db.query(StaffProfile).options(joinedload(StaffProfile.user))
    if active_only:
        query = query.filter(StaffProfile.is_active.is_(True))
    return query.order_by(StaffProfile.id.asc()).all()


def create_staff_profile(
    db: Session,
    *,
    user_id: int,
    title: str,
    staff_role: str | None,
    permissions: Iterable[str] | None,
    specialties: list[str] | None = None,
) -> StaffProfile:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.role != "staff":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only staff users can have a staff profile")
    if get_staff_by_user_id(db, user_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Staff profile already exists")

    profile = StaffProfile(
        user_id=user_id,
        title=title.strip(),
        staff_role=staff_role,
        permissions=normalize_grants(permissions),
        specialties=specialties,
        is_active=True,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    logger.info("staff_profile_created", extra={"user_id": user_id, "staff_role": staff_role})
    return profile


def update_staff_profile(db: Session, profile_id: int, changes: dict) -> StaffProfile:
    profile = _get_profile_or_404(db, profile_id)
    if "title" in changes and changes["title"] is not None:
        profile.title = changes["title"].strip()
    if "staff_role" in changes:
        profile.staff_role = changes["staff_role"]
    if "permissions" in changes:
        profile.permissions = normalize_grants(changes["permissions"])
    if "specialties" in changes:
        profile.specialties = changes["specialties"]
    if "is_active" in changes and changes["is_active"] is not None:
        profile.is_active = changes["is_active"]
    db.commit()
    db.refresh(profile)
    logger.info(
        "staff_profile_updated",
        extra={"staff_id": profile.id, "fields": sorted(changes)},
    )
    return profile


def staff_profile_id_for_user(db: Session, user_id: int) -> int | None:
    profile = get_staff_by_user_id(db, user_id)
    return profile.id if profile else None
