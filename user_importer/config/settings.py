"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

MIB = 1024 * 1024

# Hard limit of the identity platform's batch import call
MAX_IMPORT_BATCH_SIZE = 1000

# Algorithms whose UserImportHash constructor requires a signer key
KEYED_HASH_ALGORITHMS = {"HMAC_SHA512", "HMAC_SHA256", "HMAC_SHA1", "HMAC_MD5", "SCRYPT"}


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _int_from_env(var_name: str, default: Optional[int], minimum: int = 1) -> Optional[int]:
    """Read an integer of at least `minimum` (positive by default) from the environment."""
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got {raw!r}")
    if value < minimum:
        requirement = "positive" if minimum == 1 else f"at least {minimum}"
        raise RuntimeError(f"Environment variable {var_name} must be {requirement}, got {value}")
    return value


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool = False

    # Server
    port: int = 3000
    log_level: str = "INFO"
    cors_allowed_origins: str = "*"

    # Storage
    uploads_root: Path = Path("uploads")
    service_account_dir: Path = Path("uploads/serviceAccounts")
    csv_upload_dir: Path = Path("uploads/csv")
    audit_log_dir: Path = Path(".runtime/audit")

    # Upload limits
    max_credential_bytes: int = 5 * MIB
    max_csv_bytes: int = 10 * MIB

    # Import
    import_batch_size: int = MAX_IMPORT_BATCH_SIZE
    import_hash_algorithm: str = "HMAC_SHA256"
    import_hash_key: str = ""
    import_hash_rounds: Optional[int] = None

    # Audit
    audit_log_signing_key: str = ""

    @property
    def max_content_length(self) -> int:
        """Request body ceiling enforced by Werkzeug (largest upload + form overhead)."""
        return max(self.max_credential_bytes, self.max_csv_bytes) + MIB

    def ensure_directories(self) -> None:
        """Create storage directories if they do not exist yet."""
        for directory in (self.uploads_root, self.service_account_dir, self.csv_upload_dir):
            directory.mkdir(parents=True, exist_ok=True)


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    port = _int_from_env("PORT", 3000)
    log_level = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    cors_allowed_origins = os.environ.get("CORS_ALLOWED_ORIGINS", "*").strip() or "*"

    # Storage layout
    uploads_root = Path(os.environ.get("UPLOADS_ROOT", "uploads"))
    service_account_dir = Path(os.environ.get("SERVICE_ACCOUNT_DIR") or uploads_root / "serviceAccounts")
    csv_upload_dir = Path(os.environ.get("CSV_UPLOAD_DIR") or uploads_root / "csv")
    audit_log_dir = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))

    max_credential_bytes = _int_from_env("MAX_CREDENTIAL_BYTES", 5 * MIB)
    max_csv_bytes = _int_from_env("MAX_CSV_BYTES", 10 * MIB)

    import_batch_size = _int_from_env("IMPORT_BATCH_SIZE", MAX_IMPORT_BATCH_SIZE)
    if import_batch_size > MAX_IMPORT_BATCH_SIZE:
        print(f"[settings] WARNING: IMPORT_BATCH_SIZE={import_batch_size} exceeds platform limit, using {MAX_IMPORT_BATCH_SIZE}")
        import_batch_size = MAX_IMPORT_BATCH_SIZE

    # Password hash configuration used when a request does not supply its own
    import_hash_algorithm = os.environ.get("IMPORT_HASH_ALGORITHM", "HMAC_SHA256").strip().upper()
    import_hash_key = _load_secret_from_file("import_hash_key", "IMPORT_HASH_KEY") or ""
    if not import_hash_key and import_hash_algorithm in KEYED_HASH_ALGORITHMS:
        if demo_mode:
            import_hash_key = "secretKey"
            print("[demo-mode] Using default IMPORT_HASH_KEY")
        else:
            print(f"[settings] WARNING: IMPORT_HASH_KEY not set; imports must supply hash_key for {import_hash_algorithm}")

    # MD5 and SHA* accept zero rounds
    import_hash_rounds = _int_from_env("IMPORT_HASH_ROUNDS", None, minimum=0)

    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(f"[settings] Mode={mode_label}; port={port}; uploads={uploads_root}; hash={import_hash_algorithm}")

    return AppConfig(
        demo_mode=demo_mode,
        port=port,
        log_level=log_level,
        cors_allowed_origins=cors_allowed_origins,
        uploads_root=uploads_root,
        service_account_dir=service_account_dir,
        csv_upload_dir=csv_upload_dir,
        audit_log_dir=audit_log_dir,
        max_credential_bytes=max_credential_bytes,
        max_csv_bytes=max_csv_bytes,
        import_batch_size=import_batch_size,
        import_hash_algorithm=import_hash_algorithm,
        import_hash_key=import_hash_key,
        import_hash_rounds=import_hash_rounds,
        audit_log_signing_key=audit_log_signing_key,
    )
