# blueprints/auth/routes.py
from __future__ import annotations
from typing import Optional

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from extensions import csrf, login_manager
from models import Teacher
from blueprints.core.validation import parse_body
from . import services as svc
from .schemas import LoginIn, SignupIn
from .tokens import issue_session_token, validate_session_token

api_bp = Blueprint("auth_api", __name__)

def _cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "session_token")

# ---------- Flask-Login: the teacher comes from the signed cookie ----------
@login_manager.request_loader
def load_teacher_from_cookie(req) -> Optional[Teacher]:
    claims = validate_session_token(req.cookies.get(_cookie_name()))
    if claims is None:
        return None
    teacher = svc.load_teacher(claims.teacher_id)
    if teacher is None or teacher.username != claims.username:
        return None
    return teacher

@login_manager.unauthorized_handler
def _unauth():
    # никаких редиректов: только JSON API
    return jsonify({"error": "unauthorized", "message": "Authentication required"}), 401

def _set_session_cookie(resp, token: str):
    resp.set_cookie(
        _cookie_name(),
        token,
        max_age=int(current_app.config.get("SESSION_TTL_SECONDS", 7200)),
        httponly=True,
        secure=bool(current_app.config.get("SESSION_COOKIE_SECURE")),
        samesite="Lax",
        path="/",
    )

# ---------- API ----------
@api_bp.post("/auth/login")
@csrf.exempt
def api_login():
    data = parse_body(LoginIn)
    teacher = svc.verify_credentials(data.username, data.password)
    resp = jsonify({"ok": True, "teacher": teacher.to_dict()})
    _set_session_cookie(resp, issue_session_token(teacher))
    return resp

@api_bp.post("/auth/logout")
@csrf.exempt
def api_logout():
    resp = jsonify({"ok": True})
    resp.delete_cookie(_cookie_name(), path="/")
    return resp

@api_bp.get("/auth/me")
@login_required
def api_me():
    return jsonify({"teacher": current_user.to_dict()})

@api_bp.post("/signup")
@csrf.exempt
def api_signup():
    data = parse_body(SignupIn)
    teacher = svc.register_teacher(data.username, data.password)
    return jsonify({"ok": True, "teacher": teacher.to_dict()})
