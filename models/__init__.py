from datetime import datetime, timezone
from enum import Enum as PyEnum

from flask_login import UserMixin
from sqlalchemy import (
    Enum, ForeignKey, UniqueConstraint, Index, DateTime, Integer, String, Text, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from extensions import db


def utcnow() -> datetime:
    """Naive UTC timestamp; all DateTime columns store UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------- Enums ----------
class AssignmentStatus(PyEnum):
    ACTIVE = "active"
    CLOSED = "closed"

class WorkStatus(PyEnum):
    DRAFT = "draft"
    FINAL = "final"


# ---------- Core Entities ----------
class Teacher(UserMixin, db.Model):
    __tablename__ = "teachers"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    failed_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    locked_until: Mapped[datetime | None] = mapped_column(DateTime)
    last_login: Mapped[datetime | None] = mapped_column(DateTime)
    # cache of COUNT(active assignments); rewritten by recompute_active_count()
    active_sessions_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    assignments = relationship("Assignment", back_populates="teacher", passive_deletes=True)

    def is_locked(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return self.locked_until is not None and self.locked_until > now

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "active_sessions_count": self.active_sessions_count,
            "last_login": _iso(self.last_login),
        }

    def __repr__(self):
        return f"<Teacher {self.username}>"


class Assignment(db.Model):
    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(primary_key=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    instructions: Mapped[str | None] = mapped_column(Text)
    assignment_code: Mapped[str] = mapped_column(String(6), unique=True, nullable=False, index=True)
    status: Mapped[AssignmentStatus] = mapped_column(
        Enum(AssignmentStatus, values_callable=lambda e: [m.value for m in e], name="assignment_status"),
        nullable=False, default=AssignmentStatus.ACTIVE,
    )
    deadline: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    activated_at: Mapped[datetime | None] = mapped_column(DateTime)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime)
    student_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False, default=30)

    teacher = relationship("Teacher", back_populates="assignments")
    student_work = relationship(
        "StudentWork", back_populates="assignment",
        order_by="StudentWork.student_key", passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_assignments_teacher_status", "teacher_id", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == AssignmentStatus.ACTIVE

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.deadline is not None and self.deadline < (now or utcnow())

    def to_public_dict(self) -> dict:
        """Fields a student may see."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "instructions": self.instructions,
            "deadline": _iso(self.deadline),
        }

    def to_dict(self) -> dict:
        return {
            **self.to_public_dict(),
            "assignment_code": self.assignment_code,
            "status": self.status.value,
            "created_at": _iso(self.created_at),
            "activated_at": _iso(self.activated_at),
            "closed_at": _iso(self.closed_at),
            "student_count": self.student_count,
            "max_students": self.max_students,
        }

    def __repr__(self):
        return f"<Assignment {self.assignment_code}>"


class StudentWork(db.Model):
    __tablename__ = "student_work"

    id: Mapped[int] = mapped_column(primary_key=True)
    assignment_id: Mapped[int] = mapped_column(ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    student_name: Mapped[str] = mapped_column(String(50), nullable=False)
    # lowercased, whitespace-collapsed name; one row per student per assignment
    student_key: Mapped[str] = mapped_column(String(50), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[WorkStatus] = mapped_column(
        Enum(WorkStatus, values_callable=lambda e: [m.value for m in e], name="work_status"),
        nullable=False, default=WorkStatus.DRAFT,
    )
    last_saved_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime)
    session_token: Mapped[str | None] = mapped_column(String(128))
    ip_address: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    assignment = relationship("Assignment", back_populates="student_work")

    __table_args__ = (
        UniqueConstraint("assignment_id", "student_key", name="uq_student_work_assignment_student"),
        Index("ix_student_work_assignment_status", "assignment_id", "status"),
    )

    @property
    def is_final(self) -> bool:
        return self.status == WorkStatus.FINAL

    def to_summary_dict(self) -> dict:
        return {
            "id": self.id,
            "student_name": self.student_name,
            "status": self.status.value,
            "word_count": self.word_count,
            "last_saved_at": _iso(self.last_saved_at),
            "submitted_at": _iso(self.submitted_at),
        }

    def to_dict(self) -> dict:
        return {**self.to_summary_dict(), "content": self.content}

    def __repr__(self):
        return f"<StudentWork {self.assignment_id}:{self.student_key} {self.status.value}>"


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    teacher_id: Mapped[int | None] = mapped_column(ForeignKey("teachers.id", ondelete="SET NULL"), index=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    entity: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[int | None] = mapped_column(Integer)
    payload: Mapped[dict | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<AuditLog {self.action} {self.entity}:{self.entity_id}>"


def _iso(value: datetime | None) -> str | None:
    if not value:
        return None
    return value.isoformat(timespec="seconds") + "Z"
