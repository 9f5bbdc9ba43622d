from __future__ import annotations
import json
import logging
import re
from http.cookies import SimpleCookie

import pytest

from app import create_app
from blueprints.core.routes import JSONFormatter

VISITOR_COOKIE = "visitor_id"
MAX_AGE = 60 * 60 * 24 * 180  # 180 дней

def _get_cookie_from_headers(headers, name: str):
    for raw in headers.getlist("Set-Cookie"):
        c = SimpleCookie()
        c.load(raw)
        if name in c:
            return c[name]
    return None

def test_health_ok(client):
    rv = client.get("/health")
    assert rv.status_code == 200
    data = rv.get_json()
    assert data["status"] == "ok"
    assert "visitor_id" in data

def test_sets_visitor_id_cookie(client):
    rv = client.get("/health")
    assert rv.status_code == 200

    cookie = _get_cookie_from_headers(rv.headers, VISITOR_COOKIE)
    assert cookie is not None, "visitor_id must be set"
    assert re.fullmatch(r"[0-9a-f]{32}", cookie.value)
    assert cookie["max-age"] == str(MAX_AGE)

    # the client now sends the cookie back; it must not be replaced
    rv2 = client.get("/health")
    cookie2 = _get_cookie_from_headers(rv2.headers, VISITOR_COOKIE)
    if cookie2:
        assert cookie2.value == cookie.value

def test_unknown_route_is_json_404(client):
    rv = client.get("/api/v1/nope")
    assert rv.status_code == 404
    assert rv.get_json()["error"] == "not_found"

def test_unexpected_error_is_generic_500(app):
    @app.get("/boom")
    def boom():
        raise RuntimeError("db password is hunter2")

    rv = app.test_client().get("/boom")
    assert rv.status_code == 500
    body = rv.get_json()
    assert body == {"error": "internal_error", "message": "Internal server error"}

def test_json_formatter_includes_extras():
    rec = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)
    rec.event = "http_request"
    rec.status = 200
    out = json.loads(JSONFormatter().format(rec))
    assert out["msg"] == "hello"
    assert out["event"] == "http_request"
    assert out["status"] == 200
    assert out["level"] == "INFO"

def test_prod_requires_secret(monkeypatch):
    from config import ProdConfig
    monkeypatch.setattr(ProdConfig, "SECRET_KEY", None)
    monkeypatch.setattr(ProdConfig, "SESSION_SECRET", None)
    with pytest.raises(RuntimeError):
        create_app("prod")
