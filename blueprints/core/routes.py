from __future__ import annotations
import json, logging
from datetime import datetime, timezone
from uuid import uuid4

from flask import g, jsonify, request
from flask_wtf.csrf import generate_csrf
from werkzeug.exceptions import HTTPException
from werkzeug.wrappers.response import Response

from extensions import csrf, db

from . import bp                 # используем bp из __init__.py
from . import api_bp
from .errors import AppError, InternalError

VISITOR_COOKIE = "visitor_id"
VISITOR_MAX_AGE = 60 * 60 * 24 * 180  # 180 дней

LOG_EXTRA_KEYS = (
    "event", "path", "method", "status", "duration_ms", "visitor_id",
    "teacher_id", "assignment_id", "error",
)

log = logging.getLogger(__name__)

def _now() -> datetime:
    return datetime.now(timezone.utc)

class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": _now().strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in LOG_EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

def _setup_structured_logging(app):
    root = logging.getLogger()
    has_json = any(
        isinstance(h, logging.StreamHandler)
        and isinstance(getattr(h, "formatter", None), JSONFormatter)
        for h in root.handlers
    )
    if not has_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
    root.setLevel(app.config.get("LOG_LEVEL", "INFO"))

@api_bp.get("/csrf")
@csrf.exempt          # токен выдаём без проверки
def get_csrf():
    token = generate_csrf()
    resp = jsonify({"csrf": token})
    resp.set_cookie("csrf_token", token, samesite="Lax")
    return resp

@bp.before_app_request
def _ensure_visitor_and_start_timer():
    g._req_start = _now()
    vid = request.cookies.get(VISITOR_COOKIE)
    if not vid:
        vid = uuid4().hex
        g._set_visitor_cookie = vid
    g.visitor_id = vid

@bp.after_app_request
def _maybe_set_cookie_and_log(response: Response):
    if getattr(g, "_set_visitor_cookie", None):
        response.set_cookie(
            VISITOR_COOKIE,
            g._set_visitor_cookie,
            max_age=VISITOR_MAX_AGE,
            httponly=False,
            secure=request.is_secure,
            samesite="Lax",
            path="/",
        )
    start = getattr(g, "_req_start", None)
    duration_ms = int((_now() - start).total_seconds() * 1000) if start else None
    extra = {
        "event": "http_request",
        "path": request.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
        "visitor_id": getattr(g, "visitor_id", None),
    }
    log.info("request handled", extra=extra)
    return response

# ---------- errors ----------
@bp.app_errorhandler(AppError)
def _app_error(err: AppError):
    db.session.rollback()
    if err.http_status >= 500:
        log.error("request failed", extra={"event": "app_error", "error": err.code, "path": request.path})
    else:
        log.warning("request rejected", extra={"event": "app_error", "error": err.code, "path": request.path})
    return jsonify(err.to_dict()), err.http_status

@bp.app_errorhandler(HTTPException)
def _http_error(err: HTTPException):
    body = {"error": (err.name or "error").lower().replace(" ", "_")}
    if err.description:
        body["message"] = err.description
    return jsonify(body), err.code or 500

@bp.app_errorhandler(Exception)
def _unexpected_error(err: Exception):
    db.session.rollback()
    log.exception("unhandled error", extra={"event": "unhandled_error", "path": request.path})
    return jsonify(InternalError().to_dict()), 500

@bp.record_once
def _on_register(state):
    _setup_structured_logging(state.app)

@bp.get("/health")
def health():
    return jsonify({
        "status": "ok",
        "ts": _now().strftime("%Y-%m-%dT%H:%M:%SZ"),
        "visitor_id": getattr(g, "visitor_id", None),
    })
