from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from afterschool.models.student import DEFAULT_TIER, Student
from afterschool.models.user import User
from afterschool.schemas.student import StudentCreate, StudentUpdate

logger = logging.getLogger(__name__)


def get_student_or_404(db: Session, student_id: int) -> Student:
    student = db.get(Student, student_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student


def _validate_parent(db: Session, parent_id: int | None) -> None:
    if parent_id is None:
        return
    parent = db.get(User, parent_id)
    if not parent or parent.role != "parent":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Parent account not found")


def enroll_student(db: Session, payload: StudentCreate) -> Student:
    _validate_parent(db, payload.parent_id)
    student = Student(
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        grade=payload.grade.strip(),
        parent_id=payload.parent_id,
        emergency_contact=payload.emergency_contact,
        medical_notes=payload.medical_notes,
        current_tier=DEFAULT_TIER,
        tier_update_date=None,
    )
    db.add(student)
    db.commit()
    db.refresh(student)
    logger.info("student_enrolled", extra={"student_id": student.id, "parent_id": student.parent_id})
    return student


def update_student(db: Session, student_id: int, payload: StudentUpdate) -> Student:
    student = get_student_or_404(db, student_id)
    changes = payload.model_dump(exclude_unset=True)
    if "parent_id" in changes:
        _validate_parent(db, changes["parent_id"])
    for field, value in changes.items():
        setattr(student, field, value.strip() if isinstance(value, str) else value)
    db.commit()
    db.refresh(student)
    return student


def list_students(
    db: Session,
    *,
    tier: str | None = None,
    grade: str | None = None,
    search: str | None = None,
) -> list[Student]:
    query = db.query(Student)
    if tier:
        query = query.filter(Student.current_tier == tier)
    if grade:
        query = query.filter(Student.grade == grade)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(
            or_(
                func.lower(Student.first_name).like(pattern),
                func.lower(Student.last_name).like(pattern),
            )
        )
    return query.order_by(Student.last_name.asc(), Student.first_name.asc()).all()


def children_of_parent(db: Session, parent_id: int) -> list[Student]:
    return (
        db.query(Student)
        .filter(Student.parent_id == parent_id)
        .order_by(Student.first_name.asc())
        .all()
    )
