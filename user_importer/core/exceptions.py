"""Typed exceptions for credential storage and user import operations.

Every exception carries the HTTP status code the API layer should answer
with, so route handlers can simply let them propagate to the registered
error handlers.
"""
from __future__ import annotations

from typing import Any, Optional


class ImporterError(Exception):
    """Base exception for all importer operations.

    Attributes:
        message: Human-readable error message (returned to the caller)
        status_code: HTTP status code for the API layer
    """

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON error body."""
        return {"error": self.message}


class ValidationError(ImporterError):
    """Missing or malformed request input (field, file type, hash config)."""

    status_code = 400


class PayloadTooLargeError(ValidationError):
    """Uploaded file exceeds its configured size limit (a validation failure, 400)."""
    pass


class CredentialNotFoundError(ImporterError):
    """No credential file is stored for the requested project."""

    status_code = 404

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"No service account for project {project_id}")


class CredentialFormatError(ImporterError):
    """Stored credential file is not a readable JSON document."""
    pass


class RowParseError(ImporterError):
    """A CSV data row could not be decoded into an import record."""

    def __init__(self, row_number: int, reason: str):
        self.row_number = row_number
        self.reason = reason
        super().__init__(f"Row {row_number}: {reason}")


class BatchSubmissionError(ImporterError):
    """The identity platform rejected a batch import call.

    The message is the platform's own error message. The partial report,
    extended with the number of the failed batch, shows which batches were
    committed before the failure and how many were never attempted.
    """

    def __init__(self, batch: int, cause: Exception, report: Any):
        self.batch = batch
        self.cause = cause
        self.report = report
        super().__init__(str(cause) or type(cause).__name__)

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["report"] = dict(self.report.to_dict(), failedBatch=self.batch)
        return body
