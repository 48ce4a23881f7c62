"""Audit logging for credential uploads and user import runs."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

AUDIT_LOG_FILENAME = "import-events.jsonl"

EventType = Literal[
    "credentials_stored",
    "import_completed",
    "import_failed",
]


class AuditLog:
    """Append-only JSONL trail, HMAC-SHA256 signed when a key is configured."""

    def __init__(self, directory: Path | str, signing_key: str = ""):
        self.directory = Path(directory)
        self.signing_key = signing_key.strip().encode("utf-8")

    @property
    def path(self) -> Path:
        return self.directory / AUDIT_LOG_FILENAME

    def _ensure_dir(self) -> None:
        """Create audit directory with restricted permissions."""
        self.directory.mkdir(parents=True, exist_ok=True)
        self.directory.chmod(0o700)

    def sign(self, event: dict[str, Any]) -> str:
        """Generate HMAC-SHA256 signature for an audit event."""
        if not self.signing_key:
            return ""
        # Canonical JSON representation for signing
        canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
        return hmac.new(self.signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()

    def verify(self, event: dict[str, Any]) -> bool:
        """Check the signature of an event read back from the trail."""
        event = dict(event)
        signature = event.pop("signature", "")
        expected = self.sign(event)
        return bool(expected) and hmac.compare_digest(signature, expected)

    def log_event(
        self,
        event_type: EventType,
        project_id: str,
        *,
        operator: str = "system",
        details: dict[str, Any] | None = None,
        success: bool = True,
    ) -> dict[str, Any]:
        """Append an event to the trail and return it.

        Args:
            event_type: Kind of operation
            project_id: Project the operation targeted
            operator: Who performed the operation (client address or system)
            details: Additional context (batch counts, file names, ...)
            success: Whether the operation succeeded
        """
        self._ensure_dir()

        event = {
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "event_type": event_type,
            "project_id": project_id,
            "operator": operator,
            "success": success,
            "details": details or {},
        }

        signature = self.sign(event)
        if signature:
            event["signature"] = signature

        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False) + "\n")

        self.path.chmod(0o600)
        return event

    def safe_log_event(self, event_type: EventType, project_id: str, **kwargs: Any) -> None:
        """Like log_event, but an unwritable trail only produces a warning."""
        try:
            self.log_event(event_type, project_id, **kwargs)
        except OSError as exc:
            logger.warning("Failed to write audit event %s for %s: %s", event_type, project_id, exc)

    def read_events(self) -> list[dict[str, Any]]:
        """Return all events in the trail (oldest first)."""
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
