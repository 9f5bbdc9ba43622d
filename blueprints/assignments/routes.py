# blueprints/assignments/routes.py
from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from blueprints.core.validation import parse_body
from . import services as svc
from .schemas import AssignmentActionIn, AssignmentIn

api_bp = Blueprint("assignments_api", __name__)

@api_bp.get("/assignments")
@login_required
def api_list_assignments():
    return jsonify(svc.list_assignments(current_user))

@api_bp.post("/assignments")
@login_required
def api_create_assignment():
    data = parse_body(AssignmentIn)
    a = svc.create_assignment(
        current_user,
        title=data.title,
        content=data.content,
        instructions=data.instructions,
        deadline=data.deadline,
    )
    return jsonify({"ok": True, "assignment": a.to_dict()})

@api_bp.patch("/assignments/<int:assignment_id>")
@login_required
def api_update_assignment(assignment_id: int):
    data = parse_body(AssignmentActionIn)
    if data.action == "close":
        a = svc.close_assignment(current_user, assignment_id)
    else:
        a = svc.reopen_assignment(current_user, assignment_id)
    return jsonify({"ok": True, "assignment": a.to_dict()})

@api_bp.delete("/assignments/<int:assignment_id>")
@login_required
def api_delete_assignment(assignment_id: int):
    svc.delete_assignment(current_user, assignment_id)
    return jsonify({"ok": True})
