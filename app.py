from __future__ import annotations
import os
from importlib import import_module
from flask import Flask
from config import config_map
from extensions import db, migrate, login_manager, csrf

def _check_secrets(app: Flask) -> None:
    # в проде без секрета не стартуем: никаких угадываемых значений по умолчанию
    if not app.config.get("REQUIRE_SECRET"):
        if not app.config.get("SESSION_SECRET"):
            app.config["SESSION_SECRET"] = app.config.get("SECRET_KEY")
        return
    missing = [k for k in ("SECRET_KEY", "SESSION_SECRET") if not app.config.get(k)]
    if missing:
        raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")

def register_blueprints(app: Flask) -> None:
    # Жёстко импортируем модуль с маршрутами core перед взятием bp
    import_module("blueprints.core.routes")
    from blueprints.core import bp as core_bp, api_bp as core_api_bp
    from blueprints.auth.routes import api_bp as auth_api_bp
    from blueprints.assignments.routes import api_bp as assignments_api_bp
    from blueprints.student.routes import api_bp as student_api_bp
    from blueprints.reports.routes import api_bp as reports_api_bp

    # core без префикса → '/health' в корне
    app.register_blueprint(core_bp)
    app.register_blueprint(core_api_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_api_bp, url_prefix="/api/v1")
    app.register_blueprint(assignments_api_bp, url_prefix="/api/v1")
    app.register_blueprint(student_api_bp, url_prefix="/api/v1")
    app.register_blueprint(reports_api_bp, url_prefix="/api/v1")

def create_app(config_name: str | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    _check_secrets(app)

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    register_blueprints(app)
    return app
