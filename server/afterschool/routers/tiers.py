from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from afterschool.auth.deps import require_permission, require_roles
from afterschool.auth.permissions import PERM_TIER_MANAGEMENT, Principal, Role
from afterschool.core.config import settings
from afterschool.core.db import get_db
from afterschool.schemas.student import StudentOut, TierTransitionCreate, TierTransitionOut
from afterschool.services import tiers as tiers_service
from afterschool.services.notifications import NotificationDispatcher, get_dispatcher
from afterschool.services.students import get_student_or_404

router = APIRouter(tags=["tiers"])


@router.post(
    "/students/{student_id}/tier-transitions",
    response_model=TierTransitionOut,
    status_code=status.HTTP_201_CREATED,
)
def create_tier_transition(
    student_id: int,
    payload: TierTransitionCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission(PERM_TIER_MANAGEMENT)),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> TierTransitionOut:
    try:
        transition = tiers_service.record_transition(
            db,
            student_id=student_id,
            to_tier=payload.to_tier,
            reason=payload.reason.strip(),
            authorized_by_id=principal.id,
            on_date=payload.date or date.today(),
            notify_parent=payload.notify_parent,
            expected_from_tier=payload.expected_from_tier,
            incident_ids=payload.incident_ids,
            dispatcher=dispatcher,
        )
    except tiers_service.InvalidTierError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except tiers_service.TransitionDateError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except tiers_service.StudentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found") from exc
    except tiers_service.TierConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return TierTransitionOut.model_validate(transition)


@router.get("/students/{student_id}/tier-transitions", response_model=list[TierTransitionOut])
def list_tier_transitions(
    student_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles("staff")),
) -> list[TierTransitionOut]:
    get_student_or_404(db, student_id)
    return [TierTransitionOut.model_validate(row) for row in tiers_service.list_transitions(db, student_id)]


@router.get("/tier-transitions/recent", response_model=list[TierTransitionOut])
def recent_tier_transitions(
    limit: int = Query(settings.RECENT_ITEMS_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles("staff")),
) -> list[TierTransitionOut]:
    return [TierTransitionOut.model_validate(row) for row in tiers_service.recent_transitions(db, limit=limit)]


@router.get("/tiers/{tier}/students", response_model=list[StudentOut])
def students_in_tier(
    tier: str,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles(Role.STAFF)),
) -> list[StudentOut]:
    try:
        students = tiers_service.students_by_tier(db, tier)
    except tiers_service.InvalidTierError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return [StudentOut.model_validate(student) for student in students]
