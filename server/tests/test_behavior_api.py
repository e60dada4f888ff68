from __future__ import annotations

from datetime import date

from afterschool.models.behavior import BehaviorNote
from afterschool.services import behavior as behavior_service


def _incident_payload(student_id: int) -> dict:
    return {
        "student_id": student_id,
        "incident_date": "2024-03-01",
        "incident_time": "15:30",
        "incident_type": "disruption",
        "description": "Threw blocks during reading time",
        "location": "Library",
        "witness_names": ["Coach Sam", " "],
    }


def _add_note(session, student, *, private: bool, positive: bool = True, read: bool = False) -> BehaviorNote:
    note = BehaviorNote(
        student_id=student.id,
        date=date(2024, 3, 1),
        time="16:00",
        note="private observation" if private else "great teamwork",
        is_positive=positive,
        is_private=private,
        parent_read=read,
    )
    session.add(note)
    session.commit()
    session.refresh(note)
    return note


def test_incident_lifecycle(client, authorize, ydl_user, student):
    authorize(ydl_user)
    created = client.post("/incidents", json=_incident_payload(student.id))
    assert created.status_code == 201, created.text
    incident = created.json()
    assert incident["is_resolved"] is False
    assert incident["action_taken"] is None
    assert incident["parent_notified"] is False
    assert incident["witness_names"] == ["Coach Sam"]
    assert incident["reported_by_staff_id"] is not None

    listed = client.get(f"/students/{student.id}/incidents")
    assert [row["id"] for row in listed.json()] == [incident["id"]]
    assert len(client.get("/incidents/recent").json()) == 1

    resolved = client.post(f"/incidents/{incident['id']}/resolve", json={"action_taken": "Called home"})
    assert resolved.status_code == 200
    assert resolved.json()["is_resolved"] is True
    assert resolved.json()["action_taken"] == "Called home"

    again = client.post(f"/incidents/{incident['id']}/resolve", json={"action_taken": "Other"})
    assert again.status_code == 409


def test_incident_rejects_bad_time(client, authorize, ydl_user, student):
    authorize(ydl_user)
    payload = _incident_payload(student.id)
    payload["incident_time"] = "25:99"
    assert client.post("/incidents", json=payload).status_code == 422


def test_incident_for_missing_student(client, authorize, admin_user):
    authorize(admin_user)
    response = client.post("/incidents", json=_incident_payload(9999))
    assert response.status_code == 404


def test_parent_notification_is_set_once(client, authorize, ydl_user, second_user, student, api_dispatcher):
    authorize(ydl_user)
    incident_id = client.post("/incidents", json=_incident_payload(student.id)).json()["id"]

    # Notifying parents needs parent-notifications, which youth development leads lack.
    assert client.post(f"/incidents/{incident_id}/notify-parent").status_code == 403

    authorize(second_user)
    response = client.post(f"/incidents/{incident_id}/notify-parent", json={"notification_date": "2024-03-02"})
    assert response.status_code == 200
    body = response.json()
    assert body["parent_notified"] is True
    assert body["parent_notification_date"] == "2024-03-02"
    assert api_dispatcher.published[0][2]["event"] == "behavior_incident"

    assert client.post(f"/incidents/{incident_id}/notify-parent").status_code == 409
    assert len(api_dispatcher.published) == 1


def test_staff_note_defaults(client, authorize, ydl_user, student):
    authorize(ydl_user)
    response = client.post("/notes", json={"student_id": student.id, "note": "Helped a friend", "is_private": True})
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["is_private"] is True
    assert body["parent_read"] is False
    assert body["time"]

    staff_view = client.get(f"/students/{student.id}/notes")
    assert len(staff_view.json()) == 1
    assert len(client.get("/notes/recent").json()) == 1


def test_private_notes_never_reach_parents(db_session, student):
    _add_note(db_session, student, private=True, positive=True, read=True)
    _add_note(db_session, student, private=True, positive=False, read=False)
    public = _add_note(db_session, student, private=False)

    visible = behavior_service.parent_visible_notes(db_session, student.id)
    assert [note.id for note in visible] == [public.id]


def test_parent_note_view_is_scoped(client, authorize, parent_user, db_session, student, other_student):
    private = _add_note(db_session, student, private=True)
    public = _add_note(db_session, student, private=False)
    _add_note(db_session, other_student, private=False)

    authorize(parent_user)
    response = client.get(f"/students/{student.id}/notes/parent")
    assert response.status_code == 200
    notes = response.json()
    assert [note["id"] for note in notes] == [public.id]
    assert "is_private" not in notes[0]
    assert private.id not in {note["id"] for note in notes}

    assert client.get(f"/students/{other_student.id}/notes/parent").status_code == 404
    assert client.get(f"/students/{student.id}/notes").status_code == 403


def test_parent_marks_note_read(client, authorize, parent_user, other_parent_user, db_session, student):
    public = _add_note(db_session, student, private=False)
    private = _add_note(db_session, student, private=True)

    authorize(other_parent_user)
    assert client.post(f"/notes/{public.id}/read").status_code == 404

    authorize(parent_user)
    response = client.post(f"/notes/{public.id}/read")
    assert response.status_code == 200
    assert response.json()["parent_read"] is True

    assert client.post(f"/notes/{private.id}/read").status_code == 404
    db_session.expire_all()
    assert db_session.get(BehaviorNote, private.id).parent_read is False


def test_coach_needs_grant_for_incidents(client, authorize, coach_user, make_user, student):
    authorize(coach_user)
    assert client.post("/incidents", json=_incident_payload(student.id)).status_code == 403

    granted = make_user("coach2", "staff", staff_role="coach", permissions=["behavior-management"])
    authorize(granted)
    assert client.post("/incidents", json=_incident_payload(student.id)).status_code == 201


def test_only_parents_record_read_receipts(
    client, authorize, admin_user, site_manager_user, make_user, db_session, student
):
    public = _add_note(db_session, student, private=False)
    granted = make_user("reader", "staff", staff_role="coach", permissions=["mark-note-read"])

    for user in (admin_user, site_manager_user, granted):
        authorize(user)
        response = client.post(f"/notes/{public.id}/read")
        assert response.status_code == 403, user.username

    db_session.expire_all()
    assert db_session.get(BehaviorNote, public.id).parent_read is False
