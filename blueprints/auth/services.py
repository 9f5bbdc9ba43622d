# blueprints/auth/services.py
from __future__ import annotations
import logging
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Optional

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import Teacher, utcnow
from blueprints.core.audit import record_event
from blueprints.core.errors import AccountLocked, InvalidCredentials, ValidationError

log = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72

def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

def hash_password(password: str) -> str:
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")

def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # битый хеш в БД = неверный пароль
        log.error("stored password hash is not a bcrypt hash", extra={"event": "bad_password_hash"})
        return False

@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    # для неизвестного логина: та же стоимость bcrypt, что и для неверного пароля
    return bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(rounds=rounds)).decode("utf-8")

def _lockout_window() -> timedelta:
    return timedelta(minutes=int(current_app.config.get("LOGIN_LOCKOUT_MINUTES", 15)))

def _locked_message() -> str:
    minutes = int(current_app.config.get("LOGIN_LOCKOUT_MINUTES", 15))
    attempts = int(current_app.config.get("LOGIN_MAX_FAILED_ATTEMPTS", 5))
    return (f"Account is temporarily locked after {attempts} failed login attempts. "
            f"Try again in {minutes} minutes.")

def verify_credentials(username: str, password: str, now: Optional[datetime] = None) -> Teacher:
    """Check a teacher login and update the lockout state on the teacher row.

    Unknown username and wrong password both raise InvalidCredentials. A locked
    account raises AccountLocked whether or not the password is right. A
    failed comparison is committed before raising so the counter survives.
    """
    now = now or utcnow()
    teacher: Teacher | None = (
        db.session.query(Teacher)
        .filter(Teacher.username == (username or "").strip())
        .with_for_update()
        .first()
    )
    if teacher is None:
        db.session.rollback()
        check_password(password or "", _dummy_hash(int(current_app.config.get("BCRYPT_ROUNDS", 12))))
        raise InvalidCredentials()

    if teacher.is_locked(now):
        db.session.rollback()
        raise AccountLocked(_locked_message())

    if not check_password(password or "", teacher.password_hash):
        previous = teacher.failed_attempts or 0
        teacher.failed_attempts = previous + 1
        max_attempts = int(current_app.config.get("LOGIN_MAX_FAILED_ATTEMPTS", 5))
        if previous >= max_attempts - 1:
            teacher.locked_until = now + _lockout_window()
            record_event("lockout", "teacher", teacher.id, teacher_id=teacher.id,
                         failed_attempts=teacher.failed_attempts)
            log.warning("account locked", extra={"event": "account_locked", "teacher_id": teacher.id})
        else:
            teacher.locked_until = None
        record_event("login_failed", "teacher", teacher.id, teacher_id=teacher.id,
                     failed_attempts=teacher.failed_attempts)
        db.session.commit()
        raise InvalidCredentials()

    teacher.failed_attempts = 0
    teacher.locked_until = None
    teacher.last_login = now
    record_event("login", "teacher", teacher.id, teacher_id=teacher.id)
    db.session.commit()
    log.info("teacher logged in", extra={"event": "login", "teacher_id": teacher.id})
    return teacher

def register_teacher(username: str, password: str) -> Teacher:
    username = (username or "").strip()
    if Teacher.query.filter_by(username=username).first():
        raise ValidationError("User already exists")
    teacher = Teacher(
        username=username,
        password_hash=hash_password(password),
        failed_attempts=0,
        active_sessions_count=0,
    )
    db.session.add(teacher)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("User already exists")
    record_event("signup", "teacher", teacher.id, teacher_id=teacher.id)
    db.session.commit()
    log.info("teacher registered", extra={"event": "signup", "teacher_id": teacher.id})
    return teacher

def load_teacher(teacher_id: int) -> Optional[Teacher]:
    return db.session.get(Teacher, teacher_id)
