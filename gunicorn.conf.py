"""Gunicorn configuration for the user import service.

Run with:
    gunicorn -c gunicorn.conf.py "user_importer.flask_app:create_app()"

The listening port comes from PORT (default 3000). Workers each hold their
own per-project client cache, so a single worker keeps one client per
project for the whole process lifetime.
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '3000')}"
workers = int(os.environ.get("GUNICORN_WORKERS", "1"))
threads = int(os.environ.get("GUNICORN_THREADS", "4"))
# Batch imports of large files can take minutes against the identity platform
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "300"))
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"


def post_fork(server, worker):
    """
    Called just after a worker has been forked.

    Checks that the storage directories the worker will write to exist and
    reports where credentials are read from.
    """
    from pathlib import Path

    uploads_root = Path(os.environ.get("UPLOADS_ROOT", "uploads"))
    service_dir = Path(os.environ.get("SERVICE_ACCOUNT_DIR") or uploads_root / "serviceAccounts")
    csv_dir = Path(os.environ.get("CSV_UPLOAD_DIR") or uploads_root / "csv")

    for directory in (service_dir, csv_dir):
        if not directory.is_dir():
            worker.log.warning(f"Storage directory {directory} missing; it will be created on app start")

    if service_dir.is_dir():
        stored = len(list(service_dir.glob("*.json")))
        worker.log.info(f"Found {stored} stored service-account file(s) in {service_dir}")

    if Path("/run/secrets/import_hash_key").exists():
        worker.log.info("Import hash key available from /run/secrets")
    elif not os.environ.get("IMPORT_HASH_KEY"):
        worker.log.warning("IMPORT_HASH_KEY not set; requests must supply hash_key")
