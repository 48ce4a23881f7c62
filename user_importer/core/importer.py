"""Bulk import of CSV user rows into a project's identity store.

Pipeline:
    CSV file -> csv_rows.parse_rows -> batches of <= 1000 -> auth.import_users

Batches are submitted one after another. When a batch call raises, the
remaining batches are skipped and a BatchSubmissionError carries the partial
report (committed batches plus the count never attempted).
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from firebase_admin import auth

from .credential_store import CredentialStore, validate_project_id
from .csv_rows import ImportRow, parse_rows
from .exceptions import BatchSubmissionError, CredentialNotFoundError
from .hashing import HashConfig
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


@dataclass
class BatchResult:
    """Outcome of one import_users call."""
    batch: int
    success: int
    failed: int
    errors: List[dict] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch": self.batch,
            "success": self.success,
            "failed": self.failed,
            "errors": self.errors,
        }


@dataclass
class ImportReport:
    """Per-request import summary (never persisted)."""
    total_rows: int
    batches_planned: int
    batches: List[BatchResult] = field(default_factory=list)

    @property
    def not_attempted(self) -> int:
        return self.batches_planned - len(self.batches)

    @property
    def success_count(self) -> int:
        return sum(b.success for b in self.batches)

    @property
    def failure_count(self) -> int:
        return sum(b.failed for b in self.batches)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRows": self.total_rows,
            "batchesPlanned": self.batches_planned,
            "notAttempted": self.not_attempted,
            "batches": [b.to_dict() for b in self.batches],
        }


def partition(rows: Sequence[ImportRow], batch_size: int = DEFAULT_BATCH_SIZE) -> List[Sequence[ImportRow]]:
    """Split rows into consecutive slices of at most batch_size, keeping order."""
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    return [rows[i:i + batch_size] for i in range(0, len(rows), batch_size)]


def _serialize_errors(errors) -> List[dict]:
    return [{"index": err.index, "reason": err.reason} for err in (errors or [])]


class BulkImporter:
    """Runs CSV imports for projects whose credentials are on file."""

    def __init__(
        self,
        store: CredentialStore,
        registry: SessionRegistry,
        batch_size: int = DEFAULT_BATCH_SIZE,
        import_fn: Optional[Callable[..., Any]] = None,
    ):
        self.store = store
        self.registry = registry
        self.batch_size = batch_size
        # None means auth.import_users, looked up on every call
        self._import_fn = import_fn

    def _submit(self, records, hash_alg, fb_app):
        import_fn = self._import_fn or auth.import_users
        return import_fn(records, hash_alg=hash_alg, app=fb_app)

    def run(self, project_id: str, csv_path: Path | str, hash_config: HashConfig) -> ImportReport:
        """Import every row of csv_path into the project's identity store.

        The project's app is leased for the whole run, so a credential
        upload arriving mid-import only affects later imports.

        Raises:
            ValidationError: Missing project id or bad hash configuration
            CredentialNotFoundError: No credentials stored for the project
            RowParseError: A CSV row could not be decoded
            BatchSubmissionError: An import call failed (carries partial report)
        """
        project_id = validate_project_id(project_id, "target_project_id")
        if not self.store.exists(project_id):
            raise CredentialNotFoundError(project_id)

        hash_alg = hash_config.to_user_import_hash()
        with self.registry.lease(project_id) as fb_app:
            rows = parse_rows(csv_path)
            batches = partition(rows, self.batch_size)
            report = ImportReport(total_rows=len(rows), batches_planned=len(batches))
            logger.info(
                "Importing %d rows into %s in %d batch(es) (hash=%s)",
                len(rows), project_id, len(batches), hash_config.algorithm,
            )

            for position, batch in enumerate(batches):
                batch_number = position + 1
                try:
                    records = [row.to_import_record() for row in batch]
                    result = self._submit(records, hash_alg, fb_app)
                except Exception as exc:
                    logger.error(
                        "Batch %d/%d for %s failed: %s", batch_number, len(batches), project_id, exc
                    )
                    raise BatchSubmissionError(batch_number, exc, report) from exc

                report.batches.append(BatchResult(
                    batch=batch_number,
                    success=result.success_count,
                    failed=result.failure_count,
                    errors=_serialize_errors(result.errors),
                ))
                logger.info(
                    "Batch %d/%d for %s: %d succeeded, %d failed",
                    batch_number, len(batches), project_id, result.success_count, result.failure_count,
                )

        return report
