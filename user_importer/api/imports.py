"""Bulk user import endpoint."""
from __future__ import annotations
import logging

from flask import Blueprint, current_app, jsonify, request

from user_importer.core.exceptions import ValidationError
from user_importer.core.hashing import default_hash_config, hash_config_from_form
from user_importer.core.uploads import stage_upload, validate_csv_upload

bp = Blueprint("imports", __name__)

logger = logging.getLogger(__name__)


@bp.route("/import-users", methods=["POST"])
def import_users():
    """Import users from an uploaded CSV into a project's identity store.

    Multipart fields:
        csv_file: ``*.csv`` upload (<= 10 MiB)
        target_project_id: Project whose stored credentials are used
        hash_algorithm / hash_key / hash_rounds: optional hash overrides
    """
    cfg = current_app.config["APP_CONFIG"]
    importer = current_app.extensions["bulk_importer"]
    audit = current_app.extensions["audit_log"]

    upload = validate_csv_upload(request.files.get("csv_file"))
    project_id = (request.form.get("target_project_id") or "").strip()
    if not project_id:
        raise ValidationError("target_project_id is required")

    hash_config = hash_config_from_form(request.form, default_hash_config(cfg))
    operator = request.remote_addr or "unknown"

    with stage_upload(upload, cfg.csv_upload_dir, cfg.max_csv_bytes) as csv_path:
        try:
            report = importer.run(project_id, csv_path, hash_config)
        except Exception as exc:
            audit.safe_log_event(
                "import_failed",
                project_id,
                operator=operator,
                success=False,
                details={"filename": upload.filename, "error": str(exc)},
            )
            raise

    audit.safe_log_event(
        "import_completed",
        project_id,
        operator=operator,
        details={
            "filename": upload.filename,
            "rows": report.total_rows,
            "batches": len(report.batches),
            "succeeded": report.success_count,
            "failed": report.failure_count,
            "hash": hash_config.describe(),
        },
    )
    logger.info(
        "Imported %s for %s: %d rows, %d succeeded, %d failed",
        upload.filename, project_id, report.total_rows, report.success_count, report.failure_count,
    )

    return jsonify({
        "success": True,
        "totalImported": report.total_rows,
        "report": [batch.to_dict() for batch in report.batches],
    })
