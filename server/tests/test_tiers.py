from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import event
from sqlalchemy.orm.exc import StaleDataError

from afterschool.models.behavior import TierTransition
from afterschool.models.student import Student
from afterschool.services import tiers as tiers_service


def _record(db, student, to_tier, on_date, **kwargs):
    return tiers_service.record_transition(
        db,
        student_id=student.id,
        to_tier=to_tier,
        reason=kwargs.pop("reason", "staff review"),
        authorized_by_id=kwargs.pop("authorized_by_id", None),
        on_date=on_date,
        **kwargs,
    )


def test_new_students_start_in_good_standing(db_session, student):
    assert student.current_tier == "good-standing"
    assert student.tier_update_date is None
    assert tiers_service.tier_history_consistent(db_session, student)


def test_transition_updates_student_and_history(db_session, student, ydl_user, dispatcher):
    _record(db_session, student, "tier-1", date(2024, 2, 1), authorized_by_id=ydl_user.id)

    transition = _record(
        db_session,
        student,
        "tier-2",
        date(2024, 3, 1),
        reason="repeated disruption",
        authorized_by_id=ydl_user.id,
        notify_parent=True,
        dispatcher=dispatcher,
    )

    db_session.refresh(student)
    assert student.current_tier == "tier-2"
    assert student.tier_update_date == date(2024, 3, 1)
    assert transition.from_tier == "tier-1"
    assert transition.to_tier == "tier-2"
    assert transition.parent_notified is True
    assert transition.parent_notification_date == date(2024, 3, 1)
    assert tiers_service.latest_transition(db_session, student.id).id == transition.id
    assert tiers_service.tier_history_consistent(db_session, student)

    assert len(dispatcher.published) == 1
    entity_type, entity_id, payload = dispatcher.published[0]
    assert (entity_type, entity_id) == ("student", student.id)
    assert payload["event"] == "tier_changed"
    assert payload["from_tier"] == "tier-1"
    assert payload["to_tier"] == "tier-2"
    assert payload["parent_id"] == student.parent_id


def test_no_intent_without_notify_flag(db_session, student, dispatcher):
    transition = _record(db_session, student, "tier-1", date(2024, 2, 1), dispatcher=dispatcher)
    assert dispatcher.published == []
    assert transition.parent_notified is False
    assert transition.parent_notification_date is None


def test_invalid_tier_is_rejected_without_writes(db_session, student):
    with pytest.raises(tiers_service.InvalidTierError):
        _record(db_session, student, "not-a-real-tier", date(2024, 3, 1))

    db_session.refresh(student)
    assert student.current_tier == "good-standing"
    assert db_session.query(TierTransition).count() == 0


def test_unknown_student_is_not_found(db_session):
    with pytest.raises(tiers_service.StudentNotFoundError):
        tiers_service.record_transition(
            db_session,
            student_id=9999,
            to_tier="tier-1",
            reason="missing",
            authorized_by_id=None,
            on_date=date(2024, 3, 1),
        )


def test_history_is_append_only(db_session, student):
    first = _record(db_session, student, "tier-1", date(2024, 1, 10))
    snapshot = (first.id, first.from_tier, first.to_tier, first.date, first.reason)

    _record(db_session, student, "tier-3", date(2024, 1, 20))
    _record(db_session, student, "good-standing", date(2024, 2, 1))

    rows = tiers_service.list_transitions(db_session, student.id)
    assert len(rows) == 3
    assert [row.to_tier for row in rows] == ["good-standing", "tier-3", "tier-1"]
    stored = db_session.get(TierTransition, first.id)
    assert (stored.id, stored.from_tier, stored.to_tier, stored.date, stored.reason) == snapshot


def test_suspended_students_can_move_back_down(db_session, student):
    _record(db_session, student, "suspended", date(2024, 4, 1))
    transition = _record(db_session, student, "tier-2", date(2024, 4, 15))
    assert transition.from_tier == "suspended"
    db_session.refresh(student)
    assert student.current_tier == "tier-2"


def test_backdated_transition_is_rejected(db_session, student):
    _record(db_session, student, "tier-1", date(2024, 5, 1))
    with pytest.raises(tiers_service.TransitionDateError):
        _record(db_session, student, "tier-2", date(2024, 4, 1))
    db_session.refresh(student)
    assert student.current_tier == "tier-1"


def test_stale_from_tier_assumption_conflicts(db_session, student):
    _record(db_session, student, "tier-1", date(2024, 3, 1), expected_from_tier="good-standing")
    with pytest.raises(tiers_service.TierConflictError):
        _record(db_session, student, "tier-2", date(2024, 3, 1), expected_from_tier="good-standing")

    db_session.refresh(student)
    assert student.current_tier == "tier-1"
    assert db_session.query(TierTransition).filter_by(student_id=student.id).count() == 1


def test_unknown_expected_from_tier_is_invalid(db_session, student):
    with pytest.raises(tiers_service.InvalidTierError):
        _record(db_session, student, "tier-1", date(2024, 3, 1), expected_from_tier="green")


def test_concurrent_write_on_stale_row_is_detected(db_session, session_factory, student):
    stale_session = session_factory()
    try:
        stale_copy = stale_session.get(Student, student.id)
        _record(db_session, student, "tier-1", date(2024, 3, 1))

        stale_copy.current_tier = "tier-3"
        with pytest.raises(StaleDataError):
            stale_session.commit()
        stale_session.rollback()
    finally:
        stale_session.close()

    db_session.refresh(student)
    assert student.current_tier == "tier-1"


def test_dispatcher_failure_does_not_roll_back(db_session, student):
    class BrokenDispatcher:
        def publish(self, entity_type, entity_id, payload):
            raise RuntimeError("socket closed")

    transition = _record(
        db_session, student, "tier-1", date(2024, 3, 1), notify_parent=True, dispatcher=BrokenDispatcher()
    )
    db_session.refresh(student)
    assert student.current_tier == "tier-1"
    assert transition.id is not None


def test_incident_ids_are_deduplicated(db_session, student):
    transition = _record(db_session, student, "tier-1", date(2024, 3, 1), incident_ids=[3, 1, 3])
    assert transition.incident_ids == [1, 3]


def test_api_records_transition(client, authorize, ydl_user, student, api_dispatcher, db_session):
    authorize(ydl_user)
    response = client.post(
        f"/students/{student.id}/tier-transitions",
        json={"to_tier": "tier-1", "reason": "late pickups", "date": "2024-03-01", "notify_parent": True},
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["from_tier"] == "good-standing"
    assert body["to_tier"] == "tier-1"
    assert body["authorized_by_id"] == ydl_user.id
    assert len(api_dispatcher.published) == 1

    history = client.get(f"/students/{student.id}/tier-transitions")
    assert history.status_code == 200
    assert [row["to_tier"] for row in history.json()] == ["tier-1"]

    recent = client.get("/tier-transitions/recent?limit=5")
    assert recent.status_code == 200
    assert len(recent.json()) == 1

    db_session.expire_all()
    assert db_session.get(Student, student.id).current_tier == "tier-1"


def test_api_maps_errors(client, authorize, site_manager_user, student):
    authorize(site_manager_user)
    invalid = client.post(f"/students/{student.id}/tier-transitions", json={"to_tier": "purple", "reason": "x"})
    assert invalid.status_code == 422

    missing = client.post("/students/9999/tier-transitions", json={"to_tier": "tier-1", "reason": "x"})
    assert missing.status_code == 404

    first = client.post(
        f"/students/{student.id}/tier-transitions",
        json={"to_tier": "tier-1", "reason": "x", "expected_from_tier": "good-standing"},
    )
    assert first.status_code == 201
    conflict = client.post(
        f"/students/{student.id}/tier-transitions",
        json={"to_tier": "tier-2", "reason": "y", "expected_from_tier": "good-standing"},
    )
    assert conflict.status_code == 409


def test_coach_cannot_change_tiers(client, authorize, coach_user, student):
    authorize(coach_user)
    response = client.post(f"/students/{student.id}/tier-transitions", json={"to_tier": "tier-1", "reason": "x"})
    assert response.status_code == 403


def test_parent_cannot_read_tier_history(client, authorize, parent_user, student):
    authorize(parent_user)
    assert client.get(f"/students/{student.id}/tier-transitions").status_code == 403


def test_write_racing_the_commit_becomes_tier_conflict(db_session, session_factory, student):
    def overtake(session, flush_context, instances):
        rival = session_factory()
        try:
            rival.get(Student, student.id).current_tier = "tier-3"
            rival.commit()
        finally:
            rival.close()

    event.listen(db_session, "before_flush", overtake, once=True)
    with pytest.raises(tiers_service.TierConflictError):
        _record(db_session, student, "tier-1", date(2024, 3, 1))

    assert db_session.query(TierTransition).filter_by(student_id=student.id).count() == 0
    db_session.refresh(student)
    assert student.current_tier == "tier-3"


def test_api_rejects_backdated_transition(client, authorize, ydl_user, student):
    authorize(ydl_user)
    first = client.post(
        f"/students/{student.id}/tier-transitions",
        json={"to_tier": "tier-1", "reason": "late pickups", "date": "2024-05-01"},
    )
    assert first.status_code == 201

    backdated = client.post(
        f"/students/{student.id}/tier-transitions",
        json={"to_tier": "tier-2", "reason": "earlier incident", "date": "2024-04-01"},
    )
    assert backdated.status_code == 422
    assert "precedes last tier change" in backdated.json()["detail"]


def test_students_by_tier(db_session, student, other_student):
    _record(db_session, other_student, "tier-2", date(2024, 3, 1))
    _record(db_session, student, "tier-2", date(2024, 3, 2))

    assert [row.first_name for row in tiers_service.students_by_tier(db_session, "tier-2")] == ["Abel", "Beti"]
    assert tiers_service.students_by_tier(db_session, "good-standing") == []
    with pytest.raises(tiers_service.InvalidTierError):
        tiers_service.students_by_tier(db_session, "purple")


def test_api_lists_students_in_tier(client, authorize, coach_user, parent_user, student, other_student, db_session):
    _record(db_session, student, "suspended", date(2024, 3, 1))

    authorize(coach_user)
    response = client.get("/tiers/suspended/students")
    assert response.status_code == 200
    assert [row["id"] for row in response.json()] == [student.id]
    assert client.get("/tiers/good-standing/students").json()[0]["id"] == other_student.id
    assert client.get("/tiers/purple/students").status_code == 422

    authorize(parent_user)
    assert client.get("/tiers/suspended/students").status_code == 403
