from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from afterschool.auth.deps import ensure_guardian_access, get_permission_evaluator, require_permission
from afterschool.auth.permissions import (
    PERM_BEHAVIOR_MANAGEMENT,
    PERM_MARK_NOTE_READ,
    PERM_PARENT_NOTIFICATIONS,
    PERM_VIEW_BEHAVIOR_NOTES,
    ROLE_PARENT,
    PermissionEvaluator,
    Principal,
)
from afterschool.core.config import settings
from afterschool.core.db import get_db
from afterschool.schemas.behavior import (
    IncidentCreate,
    IncidentOut,
    IncidentResolveRequest,
    NoteCreate,
    NoteOut,
    ParentNoteOut,
    ParentNotificationRequest,
)
from afterschool.services import behavior as behavior_service
from afterschool.services.notifications import NotificationDispatcher, get_dispatcher
from afterschool.services.staff import staff_profile_id_for_user
from afterschool.services.students import get_student_or_404

router = APIRouter(tags=["behavior"])


@router.post("/incidents", response_model=IncidentOut, status_code=status.HTTP_201_CREATED)
def create_incident(
    payload: IncidentCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission(PERM_BEHAVIOR_MANAGEMENT)),
) -> IncidentOut:
    incident = behavior_service.create_incident(db, payload, staff_profile_id_for_user(db, principal.id))
    return IncidentOut.model_validate(incident)


@router.get("/incidents/recent", response_model=list[IncidentOut])
def recent_incidents(
    limit: int = Query(settings.RECENT_ITEMS_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_permission(PERM_BEHAVIOR_MANAGEMENT)),
) -> list[IncidentOut]:
    return [IncidentOut.model_validate(row) for row in behavior_service.recent_incidents(db, limit=limit)]


@router.get("/students/{student_id}/incidents", response_model=list[IncidentOut])
def list_student_incidents(
    student_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_permission(PERM_BEHAVIOR_MANAGEMENT)),
) -> list[IncidentOut]:
    return [IncidentOut.model_validate(row) for row in behavior_service.incidents_for_student(db, student_id)]


@router.post("/incidents/{incident_id}/resolve", response_model=IncidentOut)
def resolve_incident(
    incident_id: int,
    payload: IncidentResolveRequest,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_permission(PERM_BEHAVIOR_MANAGEMENT)),
) -> IncidentOut:
    incident = behavior_service.resolve_incident(db, incident_id, payload.action_taken)
    return IncidentOut.model_validate(incident)


@router.post("/incidents/{incident_id}/notify-parent", response_model=IncidentOut)
def notify_parent_of_incident(
    incident_id: int,
    payload: ParentNotificationRequest | None = None,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_permission(PERM_PARENT_NOTIFICATIONS)),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> IncidentOut:
    incident = behavior_service.notify_parent_of_incident(
        db,
        incident_id,
        notification_date=payload.notification_date if payload else None,
        dispatcher=dispatcher,
    )
    return IncidentOut.model_validate(incident)


@router.post("/notes", response_model=NoteOut, status_code=status.HTTP_201_CREATED)
def create_note(
    payload: NoteCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission(PERM_BEHAVIOR_MANAGEMENT)),
) -> NoteOut:
    note = behavior_service.create_note(db, payload, staff_profile_id_for_user(db, principal.id))
    return NoteOut.model_validate(note)


@router.get("/notes/recent", response_model=list[NoteOut])
def recent_notes(
    limit: int = Query(settings.RECENT_ITEMS_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_permission(PERM_BEHAVIOR_MANAGEMENT)),
) -> list[NoteOut]:
    return [NoteOut.model_validate(row) for row in behavior_service.recent_notes(db, limit=limit)]


@router.get("/students/{student_id}/notes", response_model=list[NoteOut])
def list_student_notes(
    student_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_permission(PERM_BEHAVIOR_MANAGEMENT)),
) -> list[NoteOut]:
    return [NoteOut.model_validate(row) for row in behavior_service.notes_for_student(db, student_id)]


@router.get("/students/{student_id}/notes/parent", response_model=list[ParentNoteOut])
def list_parent_notes(
    student_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission(PERM_VIEW_BEHAVIOR_NOTES)),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator),
) -> list[ParentNoteOut]:
    student = get_student_or_404(db, student_id)
    ensure_guardian_access(principal, student.parent_id, PERM_VIEW_BEHAVIOR_NOTES, evaluator)
    return [ParentNoteOut.model_validate(row) for row in behavior_service.parent_visible_notes(db, student.id)]


@router.post("/notes/{note_id}/read", response_model=ParentNoteOut)
def mark_note_read(
    note_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission(PERM_MARK_NOTE_READ)),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator),
) -> ParentNoteOut:
    # Only the child's parent records a read receipt.
    if principal.role != ROLE_PARENT:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    note = behavior_service.get_note_or_404(db, note_id)
    ensure_guardian_access(principal, note.student.parent_id, PERM_MARK_NOTE_READ, evaluator)
    note = behavior_service.mark_note_read_by_parent(db, note)
    return ParentNoteOut.model_validate(note)
