from __future__ import annotations

import logging
from datetime import date, datetime

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from afterschool.models.behavior import BehaviorIncident, BehaviorNote
from afterschool.schemas.behavior import IncidentCreate, NoteCreate
from afterschool.services.notifications import NotificationDispatcher, NotificationIntent, publish_intent
from afterschool.services.students import get_student_or_404

logger = logging.getLogger(__name__)


def get_incident_or_404(db: Session, incident_id: int) -> BehaviorIncident:
    incident = db.get(BehaviorIncident, incident_id)
    if not incident:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Incident not found")
    return incident


def get_note_or_404(db: Session, note_id: int) -> BehaviorNote:
    note = db.get(BehaviorNote, note_id)
    if not note:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")
    return note


def create_incident(db: Session, payload: IncidentCreate, reported_by_staff_id: int | None) -> BehaviorIncident:
    get_student_or_404(db, payload.student_id)
    incident = BehaviorIncident(
        student_id=payload.student_id,
        reported_by_staff_id=reported_by_staff_id,
        incident_date=payload.incident_date,
        incident_time=payload.incident_time,
        incident_type=payload.incident_type,
        description=payload.description.strip(),
        location=payload.location.strip(),
        witness_names=[name.strip() for name in payload.witness_names if name.strip()] or None,
        follow_up_required=payload.follow_up_required,
        is_resolved=False,
        action_taken=None,
        parent_notified=False,
        parent_notification_date=None,
    )
    db.add(incident)
    db.commit()
    db.refresh(incident)
    logger.info(
        "behavior_incident_created",
        extra={"incident_id": incident.id, "student_id": incident.student_id, "incident_type": incident.incident_type},
    )
    return incident


def incidents_for_student(db: Session, student_id: int) -> list[BehaviorIncident]:
    get_student_or_404(db, student_id)
    return (
        db.query(BehaviorIncident)
        .filter(BehaviorIncident.student_id == student_id)
        .order_by(BehaviorIncident.incident_date.desc(), BehaviorIncident.incident_time.desc())
        .all()
    )


def recent_incidents(db: Session, limit: int = 10) -> list[BehaviorIncident]:
    return (
        db.query(BehaviorIncident)
        .order_by(BehaviorIncident.incident_date.desc(), BehaviorIncident.incident_time.desc())
        .limit(limit)
        .all()
    )


def resolve_incident(db: Session, incident_id: int, action_taken: str) -> BehaviorIncident:
    incident = get_incident_or_404(db, incident_id)
    if incident.is_resolved:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Incident already resolved")
    incident.action_taken = action_taken.strip()
    incident.is_resolved = True
    db.commit()
    db.refresh(incident)
    logger.info("behavior_incident_resolved", extra={"incident_id": incident.id})
    return incident


def notify_parent_of_incident(
    db: Session,
    incident_id: int,
    notification_date: date | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> BehaviorIncident:
    incident = get_incident_or_404(db, incident_id)
    if incident.parent_notified:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Parent already notified")
    incident.parent_notified = True
    incident.parent_notification_date = notification_date or date.today()
    db.commit()
    db.refresh(incident)

    publish_intent(
        dispatcher,
        NotificationIntent(
            entity_type="student",
            entity_id=incident.student_id,
            payload={
                "event": "behavior_incident",
                "incident_id": incident.id,
                "parent_id": incident.student.parent_id if incident.student else None,
                "incident_type": incident.incident_type,
                "incident_date": incident.incident_date.isoformat(),
            },
        ),
    )
    return incident


def create_note(db: Session, payload: NoteCreate, staff_id: int | None) -> BehaviorNote:
    get_student_or_404(db, payload.student_id)
    now = datetime.now()
    note = BehaviorNote(
        student_id=payload.student_id,
        staff_id=staff_id,
        date=payload.date or now.date(),
        time=payload.time or now.strftime("%H:%M"),
        note=payload.note.strip(),
        is_positive=payload.is_positive,
        is_private=payload.is_private,
        parent_read=False,
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    logger.info(
        "behavior_note_created",
        extra={"note_id": note.id, "student_id": note.student_id, "is_private": note.is_private},
    )
    return note


def notes_for_student(db: Session, student_id: int) -> list[BehaviorNote]:
    get_student_or_404(db, student_id)
    return (
        db.query(BehaviorNote)
        .filter(BehaviorNote.student_id == student_id)
        .order_by(BehaviorNote.date.desc(), BehaviorNote.time.desc())
        .all()
    )


def recent_notes(db: Session, limit: int = 10) -> list[BehaviorNote]:
    return (
        db.query(BehaviorNote)
        .order_by(BehaviorNote.date.desc(), BehaviorNote.time.desc())
        .limit(limit)
        .all()
    )


def parent_visible_notes(db: Session, student_id: int) -> list[BehaviorNote]:
    """Notes a parent may see: private notes are never included."""

    return (
        db.query(BehaviorNote)
        .filter(BehaviorNote.student_id == student_id, BehaviorNote.is_private.is_(False))
        .order_by(BehaviorNote.date.desc(), BehaviorNote.time.desc())
        .all()
    )


def mark_note_read_by_parent(db: Session, note: BehaviorNote) -> BehaviorNote:
    if note.is_private:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")
    if not note.parent_read:
        note.parent_read = True
        db.commit()
        db.refresh(note)
    return note
