"""Credential storage, client sessions and the bulk import pipeline.

Architecture:
- credential_store.py: per-project service-account files on disk
- sessions.py: one cached firebase_admin.App per project
- csv_rows.py: CSV rows -> ImportRow records
- hashing.py: password hash configuration for imports
- importer.py: batching, sequential submission, per-batch report
- uploads.py: staged CSV uploads with guaranteed cleanup
- audit.py: signed JSONL audit trail
- exceptions.py: typed exceptions carrying HTTP status codes
"""
from .audit import AuditLog
from .credential_store import CredentialStore, validate_project_id
from .csv_rows import ImportRow, parse_rows
from .exceptions import (
    ImporterError,
    ValidationError,
    PayloadTooLargeError,
    CredentialNotFoundError,
    CredentialFormatError,
    RowParseError,
    BatchSubmissionError,
)
from .hashing import HashConfig, hash_config_from_form, default_hash_config
from .importer import BulkImporter, BatchResult, ImportReport, partition
from .sessions import SessionRegistry, session_name
from .uploads import stage_upload, validate_csv_upload

__all__ = [
    "AuditLog",
    "CredentialStore",
    "validate_project_id",
    "ImportRow",
    "parse_rows",

    # Exceptions
    "ImporterError",
    "ValidationError",
    "PayloadTooLargeError",
    "CredentialNotFoundError",
    "CredentialFormatError",
    "RowParseError",
    "BatchSubmissionError",

    "HashConfig",
    "hash_config_from_form",
    "default_hash_config",
    "BulkImporter",
    "BatchResult",
    "ImportReport",
    "partition",
    "SessionRegistry",
    "session_name",
    "stage_upload",
    "validate_csv_upload",
]
