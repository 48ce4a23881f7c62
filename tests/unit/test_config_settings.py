from pathlib import Path

import pytest

from user_importer.config import settings
from user_importer.config.settings import AppConfig, load_settings

ENV_VARS = [
    "DEMO_MODE", "PORT", "LOG_LEVEL", "CORS_ALLOWED_ORIGINS", "UPLOADS_ROOT",
    "SERVICE_ACCOUNT_DIR", "CSV_UPLOAD_DIR", "AUDIT_LOG_DIR", "MAX_CREDENTIAL_BYTES",
    "MAX_CSV_BYTES", "IMPORT_BATCH_SIZE", "IMPORT_HASH_ALGORITHM", "IMPORT_HASH_KEY",
    "IMPORT_HASH_ROUNDS", "AUDIT_LOG_SIGNING_KEY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    # Keep /run/secrets lookups away from the host
    real_path = settings.Path

    def fake_path(target, *args):
        if str(target) == "/run/secrets":
            return tmp_path / "secrets"
        return real_path(target, *args)

    monkeypatch.setattr(settings, "Path", fake_path)


def test_defaults():
    cfg = load_settings()
    assert cfg.port == 3000
    assert cfg.demo_mode is False
    assert cfg.uploads_root == Path("uploads")
    assert cfg.service_account_dir == Path("uploads") / "serviceAccounts"
    assert cfg.csv_upload_dir == Path("uploads") / "csv"
    assert cfg.max_credential_bytes == 5 * 1024 * 1024
    assert cfg.max_csv_bytes == 10 * 1024 * 1024
    assert cfg.import_batch_size == 1000
    assert cfg.import_hash_algorithm == "HMAC_SHA256"
    assert cfg.import_hash_key == ""


def test_port_from_environment(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    assert load_settings().port == 8080


def test_invalid_port_rejected(monkeypatch):
    monkeypatch.setenv("PORT", "http")
    with pytest.raises(RuntimeError, match="PORT must be an integer"):
        load_settings()


def test_directories_follow_uploads_root(monkeypatch, tmp_path):
    monkeypatch.setenv("UPLOADS_ROOT", str(tmp_path / "data"))
    cfg = load_settings()
    assert cfg.service_account_dir == tmp_path / "data" / "serviceAccounts"
    assert cfg.csv_upload_dir == tmp_path / "data" / "csv"


def test_explicit_directories_override_root(monkeypatch, tmp_path):
    monkeypatch.setenv("SERVICE_ACCOUNT_DIR", str(tmp_path / "keys"))
    assert load_settings().service_account_dir == tmp_path / "keys"


def test_demo_mode_supplies_hash_key(monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")
    assert load_settings().import_hash_key == "secretKey"


def test_hash_key_read_from_run_secrets(tmp_path):
    secrets_dir = tmp_path / "secrets"
    secrets_dir.mkdir()
    (secrets_dir / "import_hash_key").write_text("from-secret-file\n")
    assert load_settings().import_hash_key == "from-secret-file"


def test_hash_key_from_environment(monkeypatch):
    monkeypatch.setenv("IMPORT_HASH_KEY", "env-key")
    monkeypatch.setenv("IMPORT_HASH_ALGORITHM", "hmac_sha512")
    cfg = load_settings()
    assert cfg.import_hash_key == "env-key"
    assert cfg.import_hash_algorithm == "HMAC_SHA512"


def test_batch_size_clamped_to_platform_limit(monkeypatch):
    monkeypatch.setenv("IMPORT_BATCH_SIZE", "5000")
    assert load_settings().import_batch_size == 1000


@pytest.mark.parametrize("raw, expected", [("", None), ("8", 8), ("0", 0)])
def test_hash_rounds_from_environment(monkeypatch, raw, expected):
    monkeypatch.setenv("IMPORT_HASH_ROUNDS", raw)
    assert load_settings().import_hash_rounds == expected


@pytest.mark.parametrize("raw, message", [
    ("eight", "IMPORT_HASH_ROUNDS must be an integer"),
    ("8.5", "IMPORT_HASH_ROUNDS must be an integer"),
    ("-1", "IMPORT_HASH_ROUNDS must be at least 0"),
])
def test_invalid_hash_rounds_rejected(monkeypatch, raw, message):
    monkeypatch.setenv("IMPORT_HASH_ROUNDS", raw)
    with pytest.raises(RuntimeError, match=message):
        load_settings()


def test_max_content_length_covers_largest_upload():
    cfg = AppConfig(max_credential_bytes=100, max_csv_bytes=200)
    assert cfg.max_content_length == 200 + 1024 * 1024


def test_ensure_directories(tmp_path):
    cfg = AppConfig(
        uploads_root=tmp_path / "u",
        service_account_dir=tmp_path / "u" / "serviceAccounts",
        csv_upload_dir=tmp_path / "u" / "csv",
    )
    cfg.ensure_directories()
    assert cfg.service_account_dir.is_dir()
    assert cfg.csv_upload_dir.is_dir()
