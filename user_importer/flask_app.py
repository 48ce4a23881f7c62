"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, services, and configuration.
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import Flask, request

from user_importer.config import AppConfig, load_settings
from user_importer.core.audit import AuditLog
from user_importer.core.credential_store import CredentialStore
from user_importer.core.importer import BulkImporter
from user_importer.core.sessions import SessionRegistry


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None) -> Flask:
    """Create and configure Flask application."""
    # Load configuration
    if cfg is None:
        cfg = load_settings()

    _configure_logging(cfg)
    cfg.ensure_directories()

    app = Flask(__name__)

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg
    app.config["MAX_CONTENT_LENGTH"] = cfg.max_content_length
    app.config["DEMO_MODE"] = cfg.demo_mode

    # Long-lived services shared by every request
    _init_services(app, cfg)

    # Register blueprints
    from user_importer.api import credentials, docs, errors, health, imports

    app.register_blueprint(credentials.bp, url_prefix="/api")
    app.register_blueprint(imports.bp, url_prefix="/api")
    app.register_blueprint(health.bp)
    app.register_blueprint(docs.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    # Register middleware/after_request handlers
    _register_middleware(app, cfg)

    # Log startup info
    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}")
    print(f"[flask_app] Credentials dir={cfg.service_account_dir}; CSV staging dir={cfg.csv_upload_dir}")

    if cfg.demo_mode:
        print("[flask_app] WARNING: Demo mode active - default hash key in use")

    return app


def _configure_logging(cfg: AppConfig) -> None:
    """Configure root logging once (gunicorn installs its own handlers first)."""
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger().setLevel(getattr(logging, cfg.log_level, logging.INFO))


def _init_services(app: Flask, cfg: AppConfig) -> None:
    """Build the credential store, session registry, importer and audit trail."""
    store = CredentialStore(cfg.service_account_dir, max_bytes=cfg.max_credential_bytes)
    registry = SessionRegistry(store)

    app.extensions["credential_store"] = store
    app.extensions["session_registry"] = registry
    app.extensions["bulk_importer"] = BulkImporter(store, registry, batch_size=cfg.import_batch_size)
    app.extensions["audit_log"] = AuditLog(cfg.audit_log_dir, cfg.audit_log_signing_key)


def _register_middleware(app: Flask, cfg: AppConfig):
    """Register after_request middleware."""
    allowed_origins = [origin.strip() for origin in cfg.cors_allowed_origins.split(",") if origin.strip()]

    @app.after_request
    def add_cors_headers(response):
        """Allow browser clients from the configured origins."""
        origin = request.headers.get("Origin")
        if "*" in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = "*"
        elif origin and origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        else:
            return response

        response.headers["Access-Control-Allow-Methods"] = "GET,HEAD,POST,OPTIONS"
        requested_headers = request.headers.get("Access-Control-Request-Headers")
        if requested_headers:
            response.headers["Access-Control-Allow-Headers"] = requested_headers
        return response


# Gunicorn entry point: "user_importer.flask_app:create_app()"
if __name__ == "__main__":
    settings = load_settings()
    create_app(settings).run(host="0.0.0.0", port=settings.port, debug=settings.demo_mode)
