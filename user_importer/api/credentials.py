"""Service-account credential upload endpoint."""
from __future__ import annotations
import logging

from flask import Blueprint, current_app, jsonify, request

bp = Blueprint("credentials", __name__)

logger = logging.getLogger(__name__)


@bp.route("/store-service-account", methods=["POST"])
def store_service_account():
    """Store (or overwrite) the credential file for a project.

    Multipart fields:
        credentials_file: JSON service-account document (<= 5 MiB)
        project_id: Project identifier the document belongs to
    """
    store = current_app.extensions["credential_store"]
    registry = current_app.extensions["session_registry"]
    audit = current_app.extensions["audit_log"]

    upload = request.files.get("credentials_file")
    if upload is None or not upload.filename:
        return jsonify({"error": "No file uploaded"}), 400

    project_id = request.form.get("project_id")
    # One byte over the limit is enough to reject
    content = upload.read(store.max_bytes + 1)
    path = store.save(project_id, content, upload.mimetype)
    project_id = path.stem

    # A replaced key must not keep serving the client built from the old one
    if registry.invalidate(project_id):
        logger.info("Credentials for %s replaced; cached client dropped", project_id)

    audit.safe_log_event(
        "credentials_stored",
        project_id,
        operator=request.remote_addr or "unknown",
        details={"filename": upload.filename, "bytes": len(content)},
    )

    return jsonify({
        "success": True,
        "message": f"Saved {path.name}",
        "body": request.form.to_dict(),
    })
