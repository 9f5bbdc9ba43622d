# blueprints/student/routes.py
from __future__ import annotations
import ipaddress
from typing import Optional

from flask import Blueprint, jsonify, request

from blueprints.core.validation import parse_body
from . import services as svc
from .schemas import AccessIn, WorkIn

api_bp = Blueprint("student_api", __name__)

IP_MAX_LEN = 64  # StudentWork.ip_address

def _valid_ip(value: Optional[str]) -> Optional[str]:
    try:
        return str(ipaddress.ip_address((value or "").strip()))
    except ValueError:
        return None

def _client_ip() -> Optional[str]:
    # X-Forwarded-For приходит от клиента: берём только корректный адрес
    forwarded = request.headers.get("X-Forwarded-For", "").split(",")[0]
    ip = _valid_ip(forwarded) or _valid_ip(request.remote_addr)
    return ip[:IP_MAX_LEN] if ip else None

@api_bp.post("/student/access")
def api_student_access():
    data = parse_body(AccessIn)
    out = svc.request_access(data.assignment_code, data.student_name)
    return jsonify(out.to_dict())

@api_bp.post("/student/save")
def api_student_save():
    data = parse_body(WorkIn)
    out = svc.save_draft(
        data.assignment_id, data.student_name, data.content,
        session_token=data.session_token, ip_address=_client_ip(),
    )
    return jsonify({"ok": True, **out.to_dict()})

@api_bp.post("/student/submit")
def api_student_submit():
    data = parse_body(WorkIn)
    out = svc.submit_final(
        data.assignment_id, data.student_name, data.content,
        session_token=data.session_token, ip_address=_client_ip(),
    )
    return jsonify({"ok": True, **out.to_dict()})
