# blueprints/student/services.py
"""Student side of an assignment: access check, draft autosave and final submit.

One StudentWork row exists per (assignment, student). The row is created by
the first save or submit, is overwritten by autosaves while it is a draft, and
has its status flipped to FINAL in place on submission. A FINAL row is never
modified again.
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import Assignment, AssignmentStatus, StudentWork, WorkStatus, utcnow
from blueprints.core.audit import record_event
from blueprints.core.errors import (
    AlreadySubmitted, AtCapacity, Expired, InternalError, NotActive, NotFound, ValidationError,
)

log = logging.getLogger(__name__)

NAME_RE = re.compile(r"^[A-Za-z ]+$")
NAME_MIN, NAME_MAX = 2, 50
_WS = re.compile(r"\s+")

# ---------- helpers ----------
def count_words(text: Optional[str]) -> int:
    if not text:
        return 0
    return len([w for w in _WS.split(text.strip()) if w])

def normalize_student_name(raw: Optional[str]) -> str:
    raw = (raw or "").strip()
    # длину проверяем до схлопывания пробелов
    if not (NAME_MIN <= len(raw) <= NAME_MAX):
        raise ValidationError(f"Student name must be between {NAME_MIN}-{NAME_MAX} characters")
    name = _WS.sub(" ", raw)
    if not NAME_RE.match(name):
        raise ValidationError("Student name can only contain letters and spaces")
    return name

def student_key(name: str) -> str:
    return _WS.sub(" ", name).strip().lower()

def normalize_code(raw: Optional[str]) -> str:
    return (raw or "").strip().upper()

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(timespec="seconds") + "Z" if value else None

def _distinct_students(assignment_id: int) -> int:
    return (db.session.query(func.count(func.distinct(StudentWork.student_key)))
            .filter(StudentWork.assignment_id == assignment_id)
            .scalar()) or 0

def _find_work(assignment_id: int, key: str) -> Optional[StudentWork]:
    return StudentWork.query.filter_by(assignment_id=assignment_id, student_key=key).first()

def _capacity_message(a: Assignment) -> str:
    return f"This assignment has reached its maximum capacity of {a.max_students} students."

def _ensure_capacity(a: Assignment, existing: Optional[StudentWork]) -> None:
    # вернувшихся студентов пускаем всегда
    if existing is None and _distinct_students(a.id) >= a.max_students:
        raise AtCapacity(_capacity_message(a))

def _lock_assignment(assignment_id: int) -> Assignment:
    a = (db.session.query(Assignment)
         .filter(Assignment.id == assignment_id)
         .with_for_update()
         .first())
    if a is None:
        raise NotFound("Assignment not found")
    return a

def _recompute_student_count(a: Assignment) -> int:
    db.session.flush()
    a.student_count = _distinct_students(a.id)
    return a.student_count

# ---------- results ----------
@dataclass
class AccessResult:
    assignment: Assignment
    work: Optional[StudentWork]

    def to_dict(self) -> dict:
        w = self.work
        return {
            "assignment": self.assignment.to_public_dict(),
            "studentWork": None if w is None else {
                "content": w.content,
                "wordCount": w.word_count,
                "status": w.status.value,
                "lastSavedAt": _iso(w.last_saved_at),
            },
            "isReturning": w is not None,
        }

@dataclass
class SaveResult:
    saved_at: datetime
    word_count: int

    def to_dict(self) -> dict:
        return {"savedAt": _iso(self.saved_at), "wordCount": self.word_count}

@dataclass
class SubmitResult:
    submitted_at: datetime
    word_count: int

    def to_dict(self) -> dict:
        return {"submittedAt": _iso(self.submitted_at), "wordCount": self.word_count}

# ---------- operations ----------
def request_access(assignment_code: str, student_name: str) -> AccessResult:
    name = normalize_student_name(student_name)
    a = Assignment.query.filter_by(assignment_code=normalize_code(assignment_code)).first()
    if a is None:
        raise NotFound("Assignment not found. Please check the assignment code.")
    if a.status != AssignmentStatus.ACTIVE:
        raise NotActive()
    if a.is_expired():
        raise Expired()

    work = _find_work(a.id, student_key(name))
    if work is not None and work.is_final:
        raise AlreadySubmitted("You have already submitted this assignment.")
    _ensure_capacity(a, work)
    return AccessResult(assignment=a, work=work)

def save_draft(assignment_id: int, student_name: str, content: str, *,
               session_token: Optional[str] = None,
               ip_address: Optional[str] = None) -> SaveResult:
    """Upsert the student's draft. Same content twice leaves the same stored state."""
    name = normalize_student_name(student_name)
    a = _lock_assignment(assignment_id)
    if a.status != AssignmentStatus.ACTIVE:
        raise NotActive("Assignment is no longer active")

    key = student_key(name)
    work = _find_work(a.id, key)
    if work is not None and work.is_final:
        raise AlreadySubmitted()

    now = utcnow()
    created = work is None
    if created:
        _ensure_capacity(a, None)
        work = StudentWork(assignment_id=a.id, student_name=name, student_key=key,
                           status=WorkStatus.DRAFT, created_at=now)
        db.session.add(work)
    work.content = content or ""
    work.word_count = count_words(content)
    work.last_saved_at = now
    if session_token:
        work.session_token = session_token
    if ip_address:
        work.ip_address = ip_address
    if created:
        _recompute_student_count(a)
    _commit_work()
    log.info("draft saved", extra={"event": "draft_saved", "assignment_id": a.id})
    return SaveResult(saved_at=now, word_count=work.word_count)

def submit_final(assignment_id: int, student_name: str, content: str, *,
                 session_token: Optional[str] = None,
                 ip_address: Optional[str] = None) -> SubmitResult:
    name = normalize_student_name(student_name)
    if not (content or "").strip():
        raise ValidationError("Cannot submit an empty answer")
    a = _lock_assignment(assignment_id)
    if a.status != AssignmentStatus.ACTIVE:
        raise NotActive("Assignment is no longer active")
    if a.is_expired():
        raise Expired()

    key = student_key(name)
    work = _find_work(a.id, key)
    if work is not None and work.is_final:
        raise AlreadySubmitted("Work has already been submitted")
    if work is None:
        _ensure_capacity(a, None)
        work = StudentWork(assignment_id=a.id, student_name=name, student_key=key)
        db.session.add(work)

    now = utcnow()
    work.content = content
    work.word_count = count_words(content)
    work.status = WorkStatus.FINAL
    work.submitted_at = now
    work.last_saved_at = now
    if session_token:
        work.session_token = session_token
    if ip_address:
        work.ip_address = ip_address
    _recompute_student_count(a)
    db.session.flush()
    record_event("submit", "student_work", work.id, teacher_id=a.teacher_id,
                 assignment_id=a.id, word_count=work.word_count)
    _commit_work()
    log.info("final submitted", extra={"event": "final_submitted", "assignment_id": a.id})
    return SubmitResult(submitted_at=now, word_count=work.word_count)

def _commit_work() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        # две вкладки одного студента вставили строку одновременно
        db.session.rollback()
        raise InternalError("Could not save work, please retry")
