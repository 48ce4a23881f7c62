"""Health check endpoints."""
from flask import Blueprint, current_app

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check():
    """Basic health check endpoint."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness check: storage directories must be present and writable."""
    cfg = current_app.config.get("APP_CONFIG")
    if cfg is not None:
        for directory in (cfg.service_account_dir, cfg.csv_upload_dir):
            if not directory.is_dir():
                return (f"missing {directory}", 503, {"Content-Type": "text/plain"})
    return ("ready", 200, {"Content-Type": "text/plain"})
