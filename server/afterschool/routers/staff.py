from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from afterschool.auth.deps import require_roles
from afterschool.auth.permissions import Principal
from afterschool.core.db import get_db
from afterschool.schemas.staff import StaffListResponse, StaffProfileCreate, StaffProfileOut, StaffProfileUpdate
from afterschool.services import staff as staff_service

router = APIRouter(prefix="/staff", tags=["staff"])


@router.get("", response_model=StaffListResponse, status_code=status.HTTP_200_OK)
def list_staff(
    *,
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles("admin")),
) -> StaffListResponse:
    profiles = staff_service.list_staff(db, active_only=active_only)
    return StaffListResponse(
        items=[StaffProfileOut.model_validate(profile) for profile in profiles],
        total=len(profiles),
    )


@router.post("", response_model=StaffProfileOut, status_code=status.HTTP_201_CREATED)
def create_staff_profile(
    payload: StaffProfileCreate,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles("admin")),
) -> StaffProfileOut:
    profile = staff_service.create_staff_profile(
        db,
        user_id=payload.user_id,
        title=payload.title,
        staff_role=payload.staff_role.value if payload.staff_role else None,
        permissions=payload.permissions,
        specialties=payload.specialties,
    )
    return StaffProfileOut.model_validate(profile)


@router.patch("/{profile_id}", response_model=StaffProfileOut)
def update_staff_profile(
    profile_id: int,
    payload: StaffProfileUpdate,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles("admin")),
) -> StaffProfileOut:
    profile = staff_service.update_staff_profile(db, profile_id, payload.model_dump(mode="json", exclude_unset=True))
    return StaffProfileOut.model_validate(profile)
