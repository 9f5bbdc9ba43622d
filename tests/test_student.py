from __future__ import annotations
from datetime import timedelta

import pytest

from extensions import db
from models import Assignment, AssignmentStatus, StudentWork, WorkStatus, utcnow
from blueprints.core.errors import ValidationError
from blueprints.student import services as svc
from conftest import create_assignment

def _access(client, code, name="Jane Doe"):
    return client.post("/api/v1/student/access", json={"assignmentCode": code, "studentName": name})

def _save(client, aid, content, name="Jane Doe", **extra):
    return client.post("/api/v1/student/save",
                       json={"assignmentId": aid, "studentName": name, "content": content, **extra})

def _submit(client, aid, content, name="Jane Doe"):
    return client.post("/api/v1/student/submit",
                       json={"assignmentId": aid, "studentName": name, "content": content})

@pytest.fixture()
def assignment(teacher_client):
    return create_assignment(teacher_client)

@pytest.fixture()
def student(app):
    return app.test_client()

# ---------- helpers ----------
@pytest.mark.parametrize("text,expected", [
    ("  a  b   c ", 3),
    ("", 0),
    (None, 0),
    ("one\ntwo\tthree four", 4),
    ("   ", 0),
])
def test_count_words(text, expected):
    assert svc.count_words(text) == expected

def test_normalize_student_name():
    assert svc.normalize_student_name("  Jane   Doe ") == "Jane Doe"
    assert svc.student_key("Jane Doe") == "jane doe"
    for bad in ("J", "", "Jane_Doe", "Jane3", "x" * 51):
        with pytest.raises(ValidationError):
            svc.normalize_student_name(bad)

# ---------- access ----------
def test_access_new_student(student, assignment):
    r = _access(student, assignment["assignment_code"])
    assert r.status_code == 200
    body = r.get_json()
    assert body["isReturning"] is False
    assert body["studentWork"] is None
    assert body["assignment"]["title"] == "Essay"
    assert body["assignment"]["content"] == "Write about X"
    # код и служебные поля студенту не нужны
    assert "assignment_code" not in body["assignment"]

def test_access_does_not_create_rows(app, student, assignment):
    _access(student, assignment["assignment_code"])
    with app.app_context():
        assert StudentWork.query.count() == 0
        assert db.session.get(Assignment, assignment["id"]).student_count == 0

def test_access_code_is_case_insensitive(student, assignment):
    r = _access(student, "  " + assignment["assignment_code"].lower() + " ")
    assert r.status_code == 200

def test_access_invalid_name(student, assignment):
    r = _access(student, assignment["assignment_code"], name="R2D2")
    assert r.status_code == 400
    assert r.get_json()["error"] == "validation_error"

def test_access_unknown_code(student, assignment):
    r = _access(student, "NOPE00")
    assert r.status_code == 404
    assert r.get_json()["error"] == "not_found"

def test_access_closed_assignment(teacher_client, student, assignment):
    teacher_client.patch(f"/api/v1/assignments/{assignment['id']}", json={"action": "close"})
    r = _access(student, assignment["assignment_code"])
    assert r.status_code == 403
    assert r.get_json()["error"] == "not_active"

def test_access_after_deadline(app, student, assignment):
    with app.app_context():
        a = db.session.get(Assignment, assignment["id"])
        a.deadline = utcnow() - timedelta(minutes=1)
        db.session.commit()
    r = _access(student, assignment["assignment_code"])
    assert r.status_code == 403
    assert r.get_json()["error"] == "expired"

def test_returning_student_gets_draft(student, assignment):
    _save(student, assignment["id"], "my first draft")
    r = _access(student, assignment["assignment_code"], name="jane   doe")
    body = r.get_json()
    assert body["isReturning"] is True
    assert body["studentWork"]["content"] == "my first draft"
    assert body["studentWork"]["wordCount"] == 3
    assert body["studentWork"]["status"] == "draft"

def test_access_after_final_is_rejected(student, assignment):
    _submit(student, assignment["id"], "done")
    r = _access(student, assignment["assignment_code"])
    assert r.status_code == 409
    assert r.get_json()["error"] == "already_submitted"

# ---------- capacity ----------
def test_capacity_limit(app, student, assignment):
    with app.app_context():
        a = db.session.get(Assignment, assignment["id"])
        a.max_students = 3
        db.session.commit()
    for name in ("Ann Lee", "Bob Lee", "Cid Lee"):
        assert _save(student, assignment["id"], "text", name=name).status_code == 200

    r = _access(student, assignment["assignment_code"], name="Dan Lee")
    assert r.status_code == 403
    assert r.get_json()["error"] == "at_capacity"
    r = _save(student, assignment["id"], "text", name="Dan Lee")
    assert r.status_code == 403

    # уже записавшиеся студенты продолжают работу
    assert _access(student, assignment["assignment_code"], name="Bob Lee").status_code == 200
    assert _save(student, assignment["id"], "more text", name="Bob Lee").status_code == 200
    with app.app_context():
        assert db.session.get(Assignment, assignment["id"]).student_count == 3

def test_default_capacity_is_thirty(app, student, assignment):
    letters = "abcdefghijklmnopqrstuvwxyz"
    names = [f"Student {letters[i // 26]}{letters[i % 26]}" for i in range(30)]
    for name in names:
        assert _save(student, assignment["id"], "x", name=name).status_code == 200
    r = _access(student, assignment["assignment_code"], name="Late Comer")
    assert r.status_code == 403
    assert r.get_json()["error"] == "at_capacity"

# ---------- save / submit ----------
def test_save_creates_then_updates_one_row(app, student, assignment):
    r1 = _save(student, assignment["id"], "hello world", sessionToken="tab-1")
    assert r1.status_code == 200
    assert r1.get_json()["wordCount"] == 2
    r2 = _save(student, assignment["id"], "hello world")
    assert r2.status_code == 200
    with app.app_context():
        rows = StudentWork.query.filter_by(assignment_id=assignment["id"]).all()
        assert len(rows) == 1
        w = rows[0]
        assert w.status == WorkStatus.DRAFT
        assert w.content == "hello world"
        assert w.word_count == 2
        assert w.session_token == "tab-1"
        assert w.ip_address
        assert db.session.get(Assignment, assignment["id"]).student_count == 1

def test_name_variants_share_one_record(app, student, assignment):
    _save(student, assignment["id"], "a", name="Jane Doe")
    _save(student, assignment["id"], "a b", name="  jane  DOE ")
    with app.app_context():
        rows = StudentWork.query.filter_by(assignment_id=assignment["id"]).all()
        assert len(rows) == 1
        assert rows[0].word_count == 2

def test_save_on_closed_assignment(teacher_client, student, assignment):
    teacher_client.patch(f"/api/v1/assignments/{assignment['id']}", json={"action": "close"})
    r = _save(student, assignment["id"], "text")
    assert r.status_code == 403
    assert r.get_json()["error"] == "not_active"

def test_save_unknown_assignment(student, assignment):
    assert _save(student, 424242, "text").status_code == 404

def test_submit_flips_row_to_final(app, student, assignment):
    _save(student, assignment["id"], "hello world")
    r = _submit(student, assignment["id"], "hello world done")
    assert r.status_code == 200
    body = r.get_json()
    assert body["wordCount"] == 3
    assert body["submittedAt"].endswith("Z")
    with app.app_context():
        rows = StudentWork.query.filter_by(assignment_id=assignment["id"]).all()
        assert len(rows) == 1
        assert rows[0].status == WorkStatus.FINAL
        assert rows[0].submitted_at is not None
        assert db.session.get(Assignment, assignment["id"]).student_count == 1

def test_final_is_immutable(app, student, assignment):
    _submit(student, assignment["id"], "final answer")
    r = _save(student, assignment["id"], "sneaky edit")
    assert r.status_code == 409
    assert r.get_json()["error"] == "already_submitted"
    r = _submit(student, assignment["id"], "second final")
    assert r.status_code == 409
    with app.app_context():
        w = StudentWork.query.filter_by(assignment_id=assignment["id"]).one()
        assert w.content == "final answer"
        assert w.word_count == 2

def test_submit_empty_is_rejected(app, student, assignment):
    r = _submit(student, assignment["id"], "   ")
    assert r.status_code == 400
    with app.app_context():
        assert StudentWork.query.count() == 0

def test_submit_after_deadline(app, student, assignment):
    _save(student, assignment["id"], "draft")
    with app.app_context():
        a = db.session.get(Assignment, assignment["id"])
        a.deadline = utcnow() - timedelta(seconds=5)
        db.session.commit()
    r = _submit(student, assignment["id"], "late answer")
    assert r.status_code == 403
    assert r.get_json()["error"] == "expired"
    with app.app_context():
        w = StudentWork.query.filter_by(assignment_id=assignment["id"]).one()
        assert w.status == WorkStatus.DRAFT
        assert w.content == "draft"

def test_student_count_tracks_distinct_students(app, student, assignment):
    _save(student, assignment["id"], "a", name="Ann Lee")
    _save(student, assignment["id"], "b", name="Bob Lee")
    _submit(student, assignment["id"], "c", name="Ann Lee")
    with app.app_context():
        a = db.session.get(Assignment, assignment["id"])
        assert a.status == AssignmentStatus.ACTIVE
        assert a.student_count == 2
        assert StudentWork.query.filter_by(assignment_id=a.id).count() == 2

def test_name_length_checked_before_collapsing(student, assignment):
    r = _access(student, assignment["assignment_code"], name="Jane" + " " * 60 + "Doe")
    assert r.status_code == 400
    assert "2-50" in r.get_json()["message"]
    with pytest.raises(ValidationError):
        svc.normalize_student_name("Jane" + " " * 60 + "Doe")

def test_forwarded_ip_is_validated(app, student, assignment):
    r = student.post("/api/v1/student/save",
                     json={"assignmentId": assignment["id"], "studentName": "Jane Doe", "content": "x"},
                     headers={"X-Forwarded-For": "A" * 200 + ", 10.0.0.1"})
    assert r.status_code == 200
    r = student.post("/api/v1/student/save",
                     json={"assignmentId": assignment["id"], "studentName": "Ann Lee", "content": "x"},
                     headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    assert r.status_code == 200
    with app.app_context():
        jane = StudentWork.query.filter_by(student_key="jane doe").one()
        ann = StudentWork.query.filter_by(student_key="ann lee").one()
        # мусор в заголовке: берём адрес соединения
        assert jane.ip_address == "127.0.0.1"
        assert ann.ip_address == "203.0.113.7"
        assert len(jane.ip_address) <= 64
