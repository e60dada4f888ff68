from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from afterschool.auth.deps import ensure_guardian_access, get_permission_evaluator, require_roles
from afterschool.auth.permissions import PERM_VIEW_CHILD_INFO, PermissionEvaluator, Principal
from afterschool.core.db import get_db
from afterschool.schemas.student import StudentCreate, StudentOut, StudentUpdate
from afterschool.services import students as students_service
from afterschool.services.tiers import is_valid_tier

router = APIRouter(prefix="/students", tags=["students"])


@router.post("", response_model=StudentOut, status_code=status.HTTP_201_CREATED)
def enroll_student(
    payload: StudentCreate,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles("staff")),
) -> StudentOut:
    student = students_service.enroll_student(db, payload)
    return StudentOut.model_validate(student)


@router.get("", response_model=list[StudentOut])
def list_students(
    *,
    tier: str | None = Query(None),
    grade: str | None = Query(None),
    search: str | None = Query(None),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles("staff")),
) -> list[StudentOut]:
    if tier is not None and not is_valid_tier(tier):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Unknown behavior tier: {tier}")
    students = students_service.list_students(db, tier=tier, grade=grade, search=search)
    return [StudentOut.model_validate(student) for student in students]


@router.get("/mine", response_model=list[StudentOut])
def list_my_children(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles("parent")),
) -> list[StudentOut]:
    children = students_service.children_of_parent(db, principal.id)
    return [StudentOut.model_validate(child) for child in children]


@router.get("/{student_id}", response_model=StudentOut)
def get_student(
    student_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles("staff", "parent")),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator),
) -> StudentOut:
    student = students_service.get_student_or_404(db, student_id)
    ensure_guardian_access(principal, student.parent_id, PERM_VIEW_CHILD_INFO, evaluator)
    return StudentOut.model_validate(student)


@router.patch("/{student_id}", response_model=StudentOut)
def update_student(
    student_id: int,
    payload: StudentUpdate,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles("staff")),
) -> StudentOut:
    student = students_service.update_student(db, student_id, payload)
    return StudentOut.model_validate(student)
