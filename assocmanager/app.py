# app.py: AssocManager API (Flask + Flask-SQLAlchemy, one SQLite file per association)
import atexit
import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy import text

from .auth import close_tenant
from .config import Config, _normalize_db_url
from .errors import register_error_handlers
from .models import TENANT_BIND, db
from .registry import TenantRegistry
from .seed import register_commands, seed_default_tenant, seed_platform


def _configure_logging(app):
    level = app.config["LOG_LEVEL"]
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    app.logger.setLevel(level)


def register_routes(app):
    from .admin_routes import bp as admin_bp
    from .auth_routes import bp as auth_bp
    from .config_routes import bp as config_bp
    from .exceptional_routes import bp as exceptional_bp
    from .export_routes import bp as export_bp
    from .import_routes import bp as import_bp
    from .member_routes import bp as member_bp
    from .payment_routes import bp as payment_bp
    from .platform_routes import bp as platform_bp
    from .year_routes import bp as year_bp

    for bp in (auth_bp, admin_bp, member_bp, config_bp, year_bp, payment_bp,
               exceptional_bp, import_bp, export_bp, platform_bp):
        app.register_blueprint(bp)

    @app.get("/api")
    def api_root():
        try:
            db.session.execute(text("SELECT 1"))
            return jsonify({"message": "AssocManager API", "status": "OK"}), 200
        except Exception as e:
            app.logger.error(f"platform database unreachable: {e}")
            return jsonify({"message": "AssocManager API", "status": "DEGRADED"}), 503


def create_app(test_config=None, registry=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)
    _configure_logging(app)

    if registry is None:
        registry = TenantRegistry(
            app.config["DATA_DIR"],
            app.config["DEFAULT_DB_NAME"],
            app.config["SQLALCHEMY_ENGINE_OPTIONS"],
        )
    app.config["DATA_DIR"] = registry.data_dir
    os.makedirs(registry.data_dir, exist_ok=True)

    platform_url = _normalize_db_url(app.config.get("PLATFORM_DATABASE_URL") or "")
    app.config.setdefault(
        "SQLALCHEMY_DATABASE_URI",
        platform_url or f"sqlite:///{os.path.join(registry.data_dir, 'platform.db')}",
    )
    app.config["SQLALCHEMY_BINDS"] = {TENANT_BIND: registry.url_for(registry.default_name)}

    origin = app.config.get("FRONTEND_ORIGIN")
    CORS(app, resources={r"/api/*": {"origins": [origin] if origin else ["*"]}})
    app.json.sort_keys = False

    db.init_app(app)
    app.extensions["tenant_registry"] = registry
    register_error_handlers(app)
    app.teardown_appcontext(close_tenant)
    register_routes(app)
    register_commands(app)

    with app.app_context():
        registry.adopt_default(db.engines[TENANT_BIND])
        db.create_all()
        if app.config["SEED_ON_STARTUP"]:
            seed_default_tenant(registry)
            seed_platform(registry.default_name)

    atexit.register(registry.dispose_all)
    return app
