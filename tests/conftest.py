from __future__ import annotations
import pytest

from app import create_app
from extensions import db

@pytest.fixture()
def app():
    app = create_app("testing")
    # контекст не держим открытым: иначе g (и current_user) переживает запросы
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()

@pytest.fixture()
def client(app):
    return app.test_client()

@pytest.fixture()
def teacher_client(app):
    """Test client already logged in as teacher1."""
    c = app.test_client()
    signup(c, "teacher1", "password123")
    login(c, "teacher1", "password123")
    return c

def signup(client, username: str, password: str):
    r = client.post("/api/v1/signup", json={"username": username, "password": password})
    assert r.status_code == 200, r.get_json()
    return r.get_json()["teacher"]

def login(client, username: str, password: str):
    r = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.get_json()
    return r.get_json()["teacher"]

def create_assignment(client, title="Essay", content="Write about X", **extra):
    r = client.post("/api/v1/assignments", json={"title": title, "content": content, **extra})
    assert r.status_code == 200, r.get_json()
    return r.get_json()["assignment"]

def csrf_headers(client) -> dict:
    token = client.get("/api/v1/csrf").get_json()["csrf"]
    return {"X-CSRF-Token": token}
