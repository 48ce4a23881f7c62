"""Password hash configuration for user imports.

Imported password hashes are only usable if the identity platform is told
how they were produced, so the configuration travels with every import run
instead of being a process-wide constant.
"""
from __future__ import annotations
import base64
import binascii
from dataclasses import dataclass
from typing import Mapping, Optional

from firebase_admin import auth

from .exceptions import ValidationError

HMAC_ALGORITHMS = {
    "HMAC_SHA512": auth.UserImportHash.hmac_sha512,
    "HMAC_SHA256": auth.UserImportHash.hmac_sha256,
    "HMAC_SHA1": auth.UserImportHash.hmac_sha1,
    "HMAC_MD5": auth.UserImportHash.hmac_md5,
}

# (factory, default rounds)
ROUNDS_ALGORITHMS = {
    "MD5": (auth.UserImportHash.md5, 0),
    "SHA1": (auth.UserImportHash.sha1, 1),
    "SHA256": (auth.UserImportHash.sha256, 1),
    "SHA512": (auth.UserImportHash.sha512, 1),
    "PBKDF_SHA1": (auth.UserImportHash.pbkdf_sha1, 1),
    "PBKDF2_SHA256": (auth.UserImportHash.pbkdf2_sha256, 1),
}

SUPPORTED_ALGORITHMS = sorted(set(HMAC_ALGORITHMS) | set(ROUNDS_ALGORITHMS) | {"BCRYPT", "SCRYPT"})


@dataclass(frozen=True)
class HashConfig:
    """How the imported password hashes were generated."""
    algorithm: str
    key: Optional[bytes] = None
    rounds: Optional[int] = None
    memory_cost: Optional[int] = None
    salt_separator: Optional[bytes] = None

    def describe(self) -> dict:
        """Loggable summary (never includes key material)."""
        return {"algorithm": self.algorithm, "rounds": self.rounds, "has_key": bool(self.key)}

    def to_user_import_hash(self) -> auth.UserImportHash:
        """Build the SDK hash descriptor.

        Raises:
            ValidationError: Unknown algorithm or missing key
        """
        algorithm = self.algorithm
        if algorithm in HMAC_ALGORITHMS:
            if not self.key:
                raise ValidationError(f"hash_key is required for {algorithm}")
            return HMAC_ALGORITHMS[algorithm](self.key)
        if algorithm in ROUNDS_ALGORITHMS:
            factory, default_rounds = ROUNDS_ALGORITHMS[algorithm]
            rounds = default_rounds if self.rounds is None else self.rounds
            try:
                return factory(rounds)
            except ValueError as exc:
                raise ValidationError(f"Invalid hash_rounds for {algorithm}: {exc}")
        if algorithm == "BCRYPT":
            return auth.UserImportHash.bcrypt()
        if algorithm == "SCRYPT":
            if not self.key:
                raise ValidationError("hash_key is required for SCRYPT")
            try:
                return auth.UserImportHash.scrypt(
                    self.key,
                    self.rounds if self.rounds is not None else 8,
                    self.memory_cost if self.memory_cost is not None else 14,
                    salt_separator=self.salt_separator,
                )
            except ValueError as exc:
                raise ValidationError(f"Invalid SCRYPT parameters: {exc}")
        raise ValidationError(
            f"Unsupported hash_algorithm {algorithm!r}; expected one of {', '.join(SUPPORTED_ALGORITHMS)}"
        )


def _decode_key(value: str, field_name: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(f"{field_name} must be base64 encoded")


def _parse_int(value: str, field_name: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{field_name} must be an integer")


def hash_config_from_form(form: Mapping[str, str], default: HashConfig) -> HashConfig:
    """Resolve the hash configuration for one import request.

    Form fields ``hash_algorithm``, ``hash_key`` (base64), ``hash_rounds``,
    ``hash_memory_cost`` and ``hash_salt_separator`` (base64) override the
    server default. Switching algorithm without a key does not inherit the
    default key.
    """
    algorithm = (form.get("hash_algorithm") or "").strip().upper()
    key_text = (form.get("hash_key") or "").strip()
    rounds_text = (form.get("hash_rounds") or "").strip()
    memory_text = (form.get("hash_memory_cost") or "").strip()
    separator_text = (form.get("hash_salt_separator") or "").strip()

    if not any((algorithm, key_text, rounds_text, memory_text, separator_text)):
        return default

    same_algorithm = not algorithm or algorithm == default.algorithm
    return HashConfig(
        algorithm=algorithm or default.algorithm,
        key=_decode_key(key_text, "hash_key") if key_text else (default.key if same_algorithm else None),
        rounds=_parse_int(rounds_text, "hash_rounds") if rounds_text else (default.rounds if same_algorithm else None),
        memory_cost=_parse_int(memory_text, "hash_memory_cost") if memory_text else (default.memory_cost if same_algorithm else None),
        salt_separator=_decode_key(separator_text, "hash_salt_separator") if separator_text else None,
    )


def default_hash_config(cfg) -> HashConfig:
    """Server-wide default taken from settings (the key is raw text, as configured)."""
    return HashConfig(
        algorithm=cfg.import_hash_algorithm,
        key=cfg.import_hash_key.encode("utf-8") if cfg.import_hash_key else None,
        rounds=cfg.import_hash_rounds,
    )
