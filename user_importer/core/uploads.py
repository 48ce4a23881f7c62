"""Staging of uploaded CSV files on local disk."""
from __future__ import annotations
import logging
import re
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from .exceptions import PayloadTooLargeError, ValidationError

logger = logging.getLogger(__name__)

CSV_EXTENSION = ".csv"
_WHITESPACE = re.compile(r"\s+")


def staged_filename(original_name: str, timestamp_ms: int | None = None) -> str:
    """``<epoch_ms>_<name>`` with whitespace runs collapsed to underscores."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    name = secure_filename(_WHITESPACE.sub("_", original_name)) or "upload.csv"
    return f"{timestamp_ms}_{name}"


def validate_csv_upload(upload: FileStorage | None) -> FileStorage:
    """Ensure a CSV file part is present and named *.csv."""
    if upload is None or not upload.filename:
        raise ValidationError("CSV file is required")
    if not upload.filename.endswith(CSV_EXTENSION):
        raise ValidationError("Only CSV files allowed")
    return upload


@contextmanager
def stage_upload(upload: FileStorage, directory: Path, max_bytes: int) -> Iterator[Path]:
    """Save an upload under directory and remove it on exit, success or failure.

    Raises:
        PayloadTooLargeError: Upload is bigger than max_bytes
    """
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / staged_filename(upload.filename or "upload.csv")
    try:
        upload.save(str(path))
        size = path.stat().st_size
        if size > max_bytes:
            raise PayloadTooLargeError(f"CSV file exceeds {max_bytes} bytes")
        logger.debug("Staged upload %s (%d bytes)", path.name, size)
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.debug("Removed staged upload %s", path.name)
