"""On-disk storage of per-project service-account credential files."""
from __future__ import annotations
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional

from .exceptions import (
    CredentialFormatError,
    CredentialNotFoundError,
    PayloadTooLargeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 5 * 1024 * 1024
JSON_CONTENT_TYPE = "application/json"

# Project ids become file names, so keep them to a path-safe alphabet
_PROJECT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]*$")


def validate_project_id(project_id: Optional[str], field_name: str = "project_id") -> str:
    """Return the stripped project id or raise ValidationError."""
    if project_id is None or not str(project_id).strip():
        raise ValidationError(f"Missing {field_name}")
    project_id = str(project_id).strip()
    if not _PROJECT_ID_PATTERN.match(project_id):
        raise ValidationError(f"Invalid {field_name}: {project_id!r}")
    return project_id


class CredentialStore:
    """Persist one credential document per project id.

    Files live at ``<directory>/<project_id>.json``. A later upload for the
    same project replaces the earlier file atomically.
    """

    def __init__(self, directory: Path | str, max_bytes: int = DEFAULT_MAX_BYTES):
        self.directory = Path(directory)
        self.max_bytes = max_bytes

    def path_for(self, project_id: str) -> Path:
        """Deterministic credential path for a project id."""
        return self.directory / f"{validate_project_id(project_id)}.json"

    def exists(self, project_id: str) -> bool:
        return self.path_for(project_id).is_file()

    def save(self, project_id: Optional[str], content: bytes, content_type: Optional[str]) -> Path:
        """Validate and write a credential document, overwriting any previous one.

        Args:
            project_id: Project identifier (file name stem)
            content: Raw document bytes
            content_type: Declared MIME type of the upload

        Returns:
            Path the document was written to

        Raises:
            ValidationError: Missing/invalid project id or non-JSON content type
            PayloadTooLargeError: Content exceeds max_bytes
        """
        project_id = validate_project_id(project_id)
        mimetype = (content_type or "").split(";", 1)[0].strip().lower()
        if mimetype != JSON_CONTENT_TYPE:
            raise ValidationError("Only JSON service-account files allowed")
        if len(content) > self.max_bytes:
            raise PayloadTooLargeError(
                f"Credential file exceeds {self.max_bytes} bytes"
            )

        target = self.path_for(project_id)
        target.parent.mkdir(parents=True, exist_ok=True)

        # Write beside the target then swap in, so readers never see a partial file
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{project_id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("Stored credential file for project %s (%d bytes)", project_id, len(content))
        return target

    def load(self, project_id: str) -> dict[str, Any]:
        """Read and parse the credential document for a project.

        Raises:
            CredentialNotFoundError: No file stored for the project
            CredentialFormatError: File is not a JSON object
        """
        path = self.path_for(project_id)
        if not path.is_file():
            raise CredentialNotFoundError(project_id)
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CredentialFormatError(f"Credential file for project {project_id} is not valid JSON: {exc}")
        if not isinstance(document, dict):
            raise CredentialFormatError(f"Credential file for project {project_id} must contain a JSON object")
        return document
