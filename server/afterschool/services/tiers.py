"""Behavior tier state machine.

A student's standing moves between the tiers in ``BEHAVIOR_TIERS`` (least to
most severe). Movement is unrestricted in direction; every accepted move is an
immutable ``TierTransition`` row written in the same transaction as the
student's ``current_tier``. Callers are expected to be authorized already.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from afterschool.models.behavior import TierTransition
from afterschool.models.student import BEHAVIOR_TIERS, DEFAULT_TIER, Student
from afterschool.services.notifications import NotificationDispatcher, NotificationIntent, publish_intent

logger = logging.getLogger(__name__)


class TierTransitionError(Exception):
    """Base class for rejected tier transitions."""


class InvalidTierError(TierTransitionError):
    def __init__(self, tier: object):
        super().__init__(f"Unknown behavior tier: {tier!r}")
        self.tier = tier


class StudentNotFoundError(TierTransitionError):
    def __init__(self, student_id: int):
        super().__init__(f"Student {student_id} not found")
        self.student_id = student_id


class TierConflictError(TierTransitionError):
    """The student's tier changed underneath the caller; re-read and retry."""


class TransitionDateError(TierTransitionError):
    """The transition is dated before the student's last tier change."""


def is_valid_tier(tier: object) -> bool:
    return isinstance(tier, str) and tier in BEHAVIOR_TIERS


def record_transition(
    db: Session,
    *,
    student_id: int,
    to_tier: str,
    reason: str,
    authorized_by_id: int | None,
    on_date: date,
    notify_parent: bool = False,
    expected_from_tier: str | None = None,
    incident_ids: Iterable[int] | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> TierTransition:
    if not is_valid_tier(to_tier):
        raise InvalidTierError(to_tier)
    if expected_from_tier is not None and not is_valid_tier(expected_from_tier):
        raise InvalidTierError(expected_from_tier)

    student = (
        db.query(Student)
        .filter(Student.id == student_id)
        .with_for_update()
        .one_or_none()
    )
    if student is None:
        db.rollback()
        raise StudentNotFoundError(student_id)

    from_tier = student.current_tier
    if expected_from_tier is not None and expected_from_tier != from_tier:
        db.rollback()
        logger.warning(
            "tier_transition_conflict",
            extra={"student_id": student_id, "expected": expected_from_tier, "actual": from_tier},
        )
        raise TierConflictError(
            f"Student {student_id} is at {from_tier}, not {expected_from_tier}"
        )
    if student.tier_update_date is not None and on_date < student.tier_update_date:
        db.rollback()
        raise TransitionDateError(
            f"Transition date {on_date.isoformat()} precedes last tier change "
            f"{student.tier_update_date.isoformat()}"
        )

    transition = TierTransition(
        student_id=student.id,
        from_tier=from_tier,
        to_tier=to_tier,
        date=on_date,
        reason=reason,
        authorized_by_id=authorized_by_id,
        parent_notified=notify_parent,
        parent_notification_date=on_date if notify_parent else None,
        incident_ids=sorted(set(incident_ids)) if incident_ids else None,
    )
    student.current_tier = to_tier
    student.tier_update_date = on_date
    db.add(transition)
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.warning("tier_transition_conflict", extra={"student_id": student_id, "expected": from_tier})
        raise TierConflictError(f"Student {student_id} was modified concurrently") from exc

    logger.info(
        "tier_transition_recorded",
        extra={
            "student_id": student.id,
            "from_tier": from_tier,
            "to_tier": to_tier,
            "authorized_by_id": authorized_by_id,
            "notify_parent": notify_parent,
        },
    )

    if notify_parent:
        publish_intent(
            dispatcher,
            NotificationIntent(
                entity_type="student",
                entity_id=student.id,
                payload={
                    "event": "tier_changed",
                    "transition_id": transition.id,
                    "parent_id": student.parent_id,
                    "from_tier": from_tier,
                    "to_tier": to_tier,
                    "date": on_date.isoformat(),
                    "reason": reason,
                },
            ),
        )
    return transition


def list_transitions(db: Session, student_id: int) -> list[TierTransition]:
    return (
        db.query(TierTransition)
        .filter(TierTransition.student_id == student_id)
        .order_by(TierTransition.id.desc())
        .all()
    )


def recent_transitions(db: Session, limit: int = 10) -> list[TierTransition]:
    return db.query(TierTransition).order_by(TierTransition.id.desc()).limit(limit).all()


def latest_transition(db: Session, student_id: int) -> TierTransition | None:
    return (
        db.query(TierTransition)
        .filter(TierTransition.student_id == student_id)
        .order_by(TierTransition.id.desc())
        .first()
    )


def tier_history_consistent(db: Session, student: Student) -> bool:
    """True when ``current_tier`` matches the newest transition (or the default)."""

    latest = latest_transition(db, student.id)
    if latest is None:
        return student.current_tier == DEFAULT_TIER
    return latest.to_tier == student.current_tier and latest.date == student.tier_update_date



def students_by_tier(db: Session, tier: str) -> list[Student]:
    if not is_valid_tier(tier):
        raise InvalidTierError(tier)
    return (
        db.query(Student)
        .filter(Student.current_tier == tier)
        .order_by(Student.last_name.asc(), Student.first_name.asc())
        .all()
    )
