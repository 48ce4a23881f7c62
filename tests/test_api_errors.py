from types import SimpleNamespace

import pytest
from flask import Flask, abort, request

from user_importer.api.errors import register_error_handlers
from user_importer.core.exceptions import (
    CredentialNotFoundError,
    PayloadTooLargeError,
    ValidationError,
)


@pytest.fixture()
def flask_client():
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.logger = SimpleNamespace(error=lambda *args, **kwargs: None, info=lambda *args, **kwargs: None)

    register_error_handlers(app)

    @app.route("/validation")
    def validation():
        raise ValidationError("target_project_id is required")

    @app.route("/too-large")
    def too_large():
        raise PayloadTooLargeError("CSV file exceeds 10 bytes")

    @app.route("/upload", methods=["POST"])
    def upload():
        return {"size": len(request.get_data())}

    @app.route("/not-found")
    def not_found():
        raise CredentialNotFoundError("ghost")

    @app.route("/crash")
    def crash():
        raise RuntimeError("boom")

    @app.route("/abort")
    def aborted():
        abort(405)

    with app.test_client() as client:
        yield client


def test_validation_error_is_400(flask_client):
    response = flask_client.get("/validation")
    assert response.status_code == 400
    assert response.get_json() == {"error": "target_project_id is required"}


def test_payload_too_large_is_400(flask_client):
    response = flask_client.get("/too-large")
    assert response.status_code == 400
    assert response.get_json() == {"error": "CSV file exceeds 10 bytes"}


def test_body_over_content_length_limit_is_400(flask_client):
    flask_client.application.config["MAX_CONTENT_LENGTH"] = 16
    response = flask_client.post("/upload", data=b"x" * 64, content_type="application/octet-stream")
    assert response.status_code == 400
    assert response.get_json() == {"error": "Request body exceeds 16 bytes"}


def test_credential_not_found_is_404(flask_client):
    response = flask_client.get("/not-found")
    assert response.status_code == 404
    assert response.get_json() == {"error": "No service account for project ghost"}


def test_unhandled_error_returns_raw_message(flask_client):
    response = flask_client.get("/crash")
    assert response.status_code == 500
    assert response.get_json() == {"error": "boom"}


def test_http_errors_are_json(flask_client):
    response = flask_client.get("/abort")
    assert response.status_code == 405
    assert "error" in response.get_json()


def test_unknown_route_is_json_404(flask_client):
    response = flask_client.get("/nowhere")
    assert response.status_code == 404
    assert "error" in response.get_json()
