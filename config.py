from __future__ import annotations
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY")
    # secret for signing teacher session tokens; falls back to SECRET_KEY
    SESSION_SECRET = os.getenv("SESSION_SECRET")
    REQUIRE_SECRET = False
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite file in project directory
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'app.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    AUTH_COOKIE_NAME = os.getenv("AUTH_COOKIE_NAME", "session_token")
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE")
    SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", str(2 * 60 * 60)))

    BCRYPT_ROUNDS = 12
    LOGIN_MAX_FAILED_ATTEMPTS = 5
    LOGIN_LOCKOUT_MINUTES = 15

    MAX_ACTIVE_ASSIGNMENTS = 3
    MAX_STUDENTS_PER_ASSIGNMENT = 30
    ASSIGNMENT_CODE_LENGTH = 6
    ASSIGNMENT_CODE_ATTEMPTS = 10

    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = None
    WTF_CSRF_HEADERS = ["X-CSRF-Token", "X-CSRFToken"]

class DevConfig(BaseConfig):
    DEBUG = True
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

class TestConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SESSION_SECRET = "test-session-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    # bcrypt cost 12 makes the suite crawl
    BCRYPT_ROUNDS = 4
    WTF_CSRF_ENABLED = False
    LOG_LEVEL = "WARNING"

class ProdConfig(BaseConfig):
    DEBUG = False
    REQUIRE_SECRET = True
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", True)

config_map = {
    "dev": DevConfig,
    "testing": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
