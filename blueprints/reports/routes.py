# blueprints/reports/routes.py
from __future__ import annotations
from flask import Blueprint, request, Response
from flask_login import login_required, current_user

from .services import export_submissions

api_bp = Blueprint("reports_api", __name__)

def _file_resp(content: bytes, filename: str, mimetype: str) -> Response:
    return Response(
        content,
        mimetype=mimetype,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )

@api_bp.get("/assignments/<int:assignment_id>/download")
@login_required
def download_submissions(assignment_id: int):
    kind = (request.args.get("type") or "all").lower()
    student = (request.args.get("student") or "").strip() or None
    out = export_submissions(current_user, assignment_id, kind, student)
    return _file_resp(out.data, out.filename, out.mimetype)
