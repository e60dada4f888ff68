from __future__ import annotations

import logging
from datetime import date

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from afterschool.models.homework import HomeworkAssignment
from afterschool.schemas.homework import HomeworkCreate
from afterschool.services.notifications import NotificationDispatcher, NotificationIntent, publish_intent
from afterschool.services.students import get_student_or_404

logger = logging.getLogger(__name__)

COMPLETABLE_STATUSES = {"assigned", "overdue"}


def get_homework_or_404(db: Session, homework_id: int) -> HomeworkAssignment:
    homework = db.get(HomeworkAssignment, homework_id)
    if not homework:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Homework assignment not found")
    return homework


def create_homework(db: Session, payload: HomeworkCreate, assigned_by_staff_id: int | None) -> HomeworkAssignment:
    get_student_or_404(db, payload.student_id)
    homework = HomeworkAssignment(
        student_id=payload.student_id,
        activity_id=payload.activity_id,
        assigned_by_staff_id=assigned_by_staff_id,
        title=payload.title.strip(),
        description=payload.description.strip(),
        due_date=payload.due_date,
        assigned_date=payload.assigned_date or date.today(),
        status="assigned",
        priority=payload.priority,
        parent_notified=False,
    )
    db.add(homework)
    db.commit()
    db.refresh(homework)
    logger.info("homework_assigned", extra={"homework_id": homework.id, "student_id": homework.student_id})
    return homework


def homework_for_student(db: Session, student_id: int) -> list[HomeworkAssignment]:
    return (
        db.query(HomeworkAssignment)
        .filter(HomeworkAssignment.student_id == student_id)
        .order_by(HomeworkAssignment.due_date.asc(), HomeworkAssignment.id.asc())
        .all()
    )


def pending_homework(db: Session) -> list[HomeworkAssignment]:
    return (
        db.query(HomeworkAssignment)
        .filter(HomeworkAssignment.status.in_(COMPLETABLE_STATUSES))
        .order_by(HomeworkAssignment.due_date.asc())
        .all()
    )


def complete_homework(
    db: Session,
    homework: HomeworkAssignment,
    *,
    completion_notes: str | None = None,
    completed_date: date | None = None,
) -> HomeworkAssignment:
    if homework.status not in COMPLETABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Homework in status '{homework.status}' cannot be completed",
        )
    homework.status = "completed"
    homework.completed_date = completed_date or date.today()
    if completion_notes:
        homework.completion_notes = completion_notes.strip()
    db.commit()
    db.refresh(homework)
    logger.info("homework_completed", extra={"homework_id": homework.id})
    return homework


def verify_homework(db: Session, homework_id: int, staff_id: int | None) -> HomeworkAssignment:
    homework = get_homework_or_404(db, homework_id)
    if homework.status != "completed":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only completed homework can be verified",
        )
    homework.status = "verified"
    homework.verified_by_staff_id = staff_id
    homework.verification_date = date.today()
    db.commit()
    db.refresh(homework)
    logger.info("homework_verified", extra={"homework_id": homework.id, "staff_id": staff_id})
    return homework


def notify_parent_about_homework(
    db: Session,
    homework_id: int,
    dispatcher: NotificationDispatcher | None = None,
) -> HomeworkAssignment:
    homework = get_homework_or_404(db, homework_id)
    if homework.parent_notified:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Parent already notified")
    homework.parent_notified = True
    db.commit()
    db.refresh(homework)

    publish_intent(
        dispatcher,
        NotificationIntent(
            entity_type="student",
            entity_id=homework.student_id,
            payload={
                "event": "homework_update",
                "homework_id": homework.id,
                "parent_id": homework.student.parent_id if homework.student else None,
                "status": homework.status,
                "due_date": homework.due_date.isoformat(),
            },
        ),
    )
    return homework


def mark_overdue_homework(db: Session, today: date | None = None) -> int:
    """Flag assigned work whose due date has passed; returns rows updated."""

    cutoff = today or date.today()
    overdue = (
        db.query(HomeworkAssignment)
        .filter(HomeworkAssignment.status == "assigned", HomeworkAssignment.due_date < cutoff)
        .all()
    )
    for homework in overdue:
        homework.status = "overdue"
    if overdue:
        db.commit()
    return len(overdue)
