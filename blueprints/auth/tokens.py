"""Signed, time-limited session credentials for teachers.

Tokens are HS256 JWTs carrying the teacher id (``sub``) and username. Any
problem with a token (missing, bad signature, expired, malformed claims) makes
:func:`validate_session_token` return ``None``; callers only ever learn that
the request is unauthenticated.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from flask import current_app
from jose import JWTError, jwt

log = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class SessionClaims:
    teacher_id: int
    username: str
    expires_at: datetime


def _secret() -> str:
    cfg = current_app.config
    secret = cfg.get("SESSION_SECRET") or cfg.get("SECRET_KEY")
    if not secret:
        raise RuntimeError("SESSION_SECRET is not configured")
    return secret


def issue_session_token(teacher, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    ttl = int(current_app.config.get("SESSION_TTL_SECONDS", 7200))
    claims = {
        "sub": str(teacher.id),
        "username": teacher.username,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl)).timestamp()),
    }
    return jwt.encode(claims, _secret(), algorithm=ALGORITHM)


def validate_session_token(token: Optional[str]) -> Optional[SessionClaims]:
    if not token:
        return None
    try:
        payload = jwt.decode(token, _secret(), algorithms=[ALGORITHM])
    except JWTError:
        return None
    try:
        teacher_id = int(payload["sub"])
        username = str(payload["username"])
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
    except (KeyError, TypeError, ValueError):
        log.warning("session token with malformed claims", extra={"event": "bad_session_claims"})
        return None
    return SessionClaims(teacher_id=teacher_id, username=username, expires_at=expires_at)
