# blueprints/assignments/services.py
from __future__ import annotations
import logging
import secrets
import string
from datetime import datetime
from typing import Callable, Dict, List, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import Assignment, AssignmentStatus, StudentWork, Teacher, WorkStatus, utcnow
from blueprints.core.audit import record_event
from blueprints.core.errors import InternalError, NotFound, QuotaExceeded, ValidationError

log = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits

def generate_assignment_code(length: int = 6) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))

# подменяется в тестах, чтобы смоделировать коллизии
code_generator: Callable[[int], str] = generate_assignment_code

def _max_active() -> int:
    return int(current_app.config.get("MAX_ACTIVE_ASSIGNMENTS", 3))

def _quota_message() -> str:
    return (f"You have reached the maximum of {_max_active()} active assignments. "
            "Please close an existing assignment before creating or reopening another.")

def count_active(teacher_id: int) -> int:
    return (db.session.query(func.count(Assignment.id))
            .filter(Assignment.teacher_id == teacher_id,
                    Assignment.status == AssignmentStatus.ACTIVE)
            .scalar()) or 0

def recompute_active_count(teacher: Teacher) -> int:
    """Rewrite the cached counter from a live COUNT; never adjusted incrementally."""
    db.session.flush()
    teacher.active_sessions_count = count_active(teacher.id)
    return teacher.active_sessions_count

def _lock_teacher(teacher: Teacher) -> Teacher:
    # сериализуем проверку квоты по строке преподавателя (SQLite игнорирует FOR UPDATE)
    locked = (db.session.query(Teacher)
              .filter(Teacher.id == teacher.id)
              .with_for_update()
              .one())
    return locked

def get_owned_assignment(teacher: Teacher, assignment_id: int) -> Assignment:
    """Lookup by id AND owner: someone else's assignment is indistinguishable from a missing one."""
    a = Assignment.query.filter_by(id=assignment_id, teacher_id=teacher.id).first()
    if a is None:
        raise NotFound("Assignment not found")
    return a

def _unique_code() -> str:
    length = int(current_app.config.get("ASSIGNMENT_CODE_LENGTH", 6))
    attempts = int(current_app.config.get("ASSIGNMENT_CODE_ATTEMPTS", 10))
    for _ in range(attempts):
        code = code_generator(length)
        exists = db.session.query(Assignment.id).filter_by(assignment_code=code).first()
        if exists is None:
            return code
    log.error("assignment code space exhausted", extra={"event": "code_collision"})
    raise InternalError("Could not generate a unique assignment code")

def create_assignment(teacher: Teacher, *, title: str, content: str,
                      instructions: Optional[str] = None,
                      deadline: Optional[datetime] = None) -> Assignment:
    title = (title or "").strip()
    content = (content or "").strip()
    if not title or not content:
        raise ValidationError("Title and content are required")

    owner = _lock_teacher(teacher)
    if count_active(owner.id) >= _max_active():
        raise QuotaExceeded(_quota_message())

    now = utcnow()
    a = Assignment(
        teacher_id=owner.id,
        title=title,
        content=content,
        instructions=(instructions or "").strip() or None,
        assignment_code=_unique_code(),
        deadline=deadline,
        status=AssignmentStatus.ACTIVE,
        created_at=now,
        activated_at=now,
        student_count=0,
        max_students=int(current_app.config.get("MAX_STUDENTS_PER_ASSIGNMENT", 30)),
    )
    db.session.add(a)
    try:
        db.session.flush()
    except IntegrityError:
        # гонка за тот же код между двумя запросами
        db.session.rollback()
        raise InternalError("Could not generate a unique assignment code")
    recompute_active_count(owner)
    record_event("create", "assignment", a.id, teacher_id=owner.id, code=a.assignment_code)
    db.session.commit()
    log.info("assignment created", extra={"event": "assignment_created",
                                          "teacher_id": owner.id, "assignment_id": a.id})
    return a

def close_assignment(teacher: Teacher, assignment_id: int) -> Assignment:
    a = get_owned_assignment(teacher, assignment_id)
    owner = _lock_teacher(teacher)
    a.status = AssignmentStatus.CLOSED
    a.closed_at = utcnow()
    recompute_active_count(owner)
    record_event("close", "assignment", a.id, teacher_id=owner.id)
    db.session.commit()
    log.info("assignment closed", extra={"event": "assignment_closed",
                                         "teacher_id": owner.id, "assignment_id": a.id})
    return a

def reopen_assignment(teacher: Teacher, assignment_id: int) -> Assignment:
    a = get_owned_assignment(teacher, assignment_id)
    owner = _lock_teacher(teacher)
    if a.status == AssignmentStatus.ACTIVE:
        recompute_active_count(owner)
        db.session.commit()
        return a
    if recompute_active_count(owner) >= _max_active():
        raise QuotaExceeded(_quota_message())
    a.status = AssignmentStatus.ACTIVE
    a.activated_at = utcnow()
    a.closed_at = None
    recompute_active_count(owner)
    record_event("reopen", "assignment", a.id, teacher_id=owner.id)
    db.session.commit()
    log.info("assignment reopened", extra={"event": "assignment_reopened",
                                           "teacher_id": owner.id, "assignment_id": a.id})
    return a

def delete_assignment(teacher: Teacher, assignment_id: int) -> None:
    a = get_owned_assignment(teacher, assignment_id)
    owner = _lock_teacher(teacher)
    aid, code = a.id, a.assignment_code
    removed = (StudentWork.query
               .filter(StudentWork.assignment_id == aid)
               .delete(synchronize_session=False))
    db.session.delete(a)
    recompute_active_count(owner)
    record_event("delete", "assignment", aid, teacher_id=owner.id, code=code, removed_work=removed)
    db.session.commit()
    log.info("assignment deleted", extra={"event": "assignment_deleted",
                                          "teacher_id": owner.id, "assignment_id": aid})

def list_assignments(teacher: Teacher) -> Dict:
    rows: List[Assignment] = (Assignment.query
                              .filter_by(teacher_id=teacher.id)
                              .order_by(Assignment.created_at.desc(), Assignment.id.desc())
                              .all())
    items = []
    for a in rows:
        work = [w.to_summary_dict() for w in a.student_work]
        items.append({
            **a.to_dict(),
            "student_work": work,
            "final_count": sum(1 for w in a.student_work if w.status == WorkStatus.FINAL),
        })
    return {
        "assignments": items,
        "activeCount": sum(1 for a in rows if a.status == AssignmentStatus.ACTIVE),
    }
