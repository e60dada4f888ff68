from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from afterschool.auth.deps import (
    ensure_guardian_access,
    ensure_permission,
    get_permission_evaluator,
    require_permission,
    require_roles,
)
from afterschool.auth.permissions import (
    PERM_COMPLETE_CHILD_HOMEWORK,
    PERM_HOMEWORK_MANAGEMENT,
    PERM_VIEW_CHILD_HOMEWORK,
    ROLE_PARENT,
    PermissionEvaluator,
    Principal,
)
from afterschool.core.db import get_db
from afterschool.schemas.homework import HomeworkCompleteRequest, HomeworkCreate, HomeworkOut
from afterschool.services import homework as homework_service
from afterschool.services.notifications import NotificationDispatcher, get_dispatcher
from afterschool.services.staff import staff_profile_id_for_user
from afterschool.services.students import get_student_or_404

router = APIRouter(tags=["homework"])


@router.post("/homework", response_model=HomeworkOut, status_code=status.HTTP_201_CREATED)
def assign_homework(
    payload: HomeworkCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission(PERM_HOMEWORK_MANAGEMENT)),
) -> HomeworkOut:
    homework = homework_service.create_homework(db, payload, staff_profile_id_for_user(db, principal.id))
    return HomeworkOut.model_validate(homework)


@router.get("/homework/pending", response_model=list[HomeworkOut])
def list_pending_homework(
    db: Session = Depends(get_db),
    _: Principal = Depends(require_permission(PERM_HOMEWORK_MANAGEMENT)),
) -> list[HomeworkOut]:
    return [HomeworkOut.model_validate(row) for row in homework_service.pending_homework(db)]


@router.get("/students/{student_id}/homework", response_model=list[HomeworkOut])
def list_student_homework(
    student_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles("staff", "parent")),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator),
) -> list[HomeworkOut]:
    student = get_student_or_404(db, student_id)
    ensure_guardian_access(principal, student.parent_id, PERM_VIEW_CHILD_HOMEWORK, evaluator)
    return [HomeworkOut.model_validate(row) for row in homework_service.homework_for_student(db, student.id)]


@router.post("/homework/{homework_id}/complete", response_model=HomeworkOut)
def complete_homework(
    homework_id: int,
    payload: HomeworkCompleteRequest | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles("staff", "parent")),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator),
) -> HomeworkOut:
    homework = homework_service.get_homework_or_404(db, homework_id)
    if principal.role == ROLE_PARENT:
        ensure_guardian_access(principal, homework.student.parent_id, PERM_COMPLETE_CHILD_HOMEWORK, evaluator)
    else:
        ensure_permission(principal, PERM_HOMEWORK_MANAGEMENT, evaluator)
    homework = homework_service.complete_homework(
        db,
        homework,
        completion_notes=payload.completion_notes if payload else None,
        completed_date=payload.completed_date if payload else None,
    )
    return HomeworkOut.model_validate(homework)


@router.post("/homework/{homework_id}/verify", response_model=HomeworkOut)
def verify_homework(
    homework_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission(PERM_HOMEWORK_MANAGEMENT)),
) -> HomeworkOut:
    homework = homework_service.verify_homework(db, homework_id, staff_profile_id_for_user(db, principal.id))
    return HomeworkOut.model_validate(homework)


@router.post("/homework/{homework_id}/notify-parent", response_model=HomeworkOut)
def notify_parent_about_homework(
    homework_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_permission(PERM_HOMEWORK_MANAGEMENT)),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> HomeworkOut:
    homework = homework_service.notify_parent_about_homework(db, homework_id, dispatcher=dispatcher)
    return HomeworkOut.model_validate(homework)
