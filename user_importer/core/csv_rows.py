"""CSV decoding of user rows into identity-platform import records.

Expected header: ``uid,email,emailVerified,passwordHash,passwordSalt``.
Hash and salt columns carry base64 text.
"""
from __future__ import annotations
import base64
import binascii
import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from firebase_admin import auth

from .exceptions import RowParseError

COLUMNS = ("uid", "email", "emailVerified", "passwordHash", "passwordSalt")


@dataclass(frozen=True)
class ImportRow:
    """One decoded CSV data row."""
    uid: str
    email: Optional[str]
    email_verified: bool
    password_hash: bytes
    password_salt: bytes

    def to_import_record(self) -> auth.ImportUserRecord:
        """Convert to the SDK's import record (empty values are left unset)."""
        return auth.ImportUserRecord(
            self.uid,
            email=self.email or None,
            email_verified=self.email_verified,
            password_hash=self.password_hash or None,
            password_salt=self.password_salt or None,
        )


def parse_email_verified(value: Optional[str]) -> bool:
    """Only the exact text "true" counts as verified."""
    return value == "true"


def _decode_base64(value: Optional[str], column: str, row_number: int) -> bytes:
    if value is None:
        raise RowParseError(row_number, f"missing {column} column")
    text = value.strip()
    # Exports often drop the trailing "=" padding
    text += "=" * (-len(text) % 4)
    try:
        return base64.b64decode(text)
    except (binascii.Error, ValueError) as exc:
        raise RowParseError(row_number, f"{column} is not valid base64 ({exc})")


def iter_rows(path: Path | str) -> Iterator[ImportRow]:
    """Yield ImportRows from a CSV file in file order.

    Raises:
        RowParseError: On a row without uid or with undecodable hash/salt
    """
    # utf-8-sig drops the BOM spreadsheet exports like to prepend
    with open(path, "r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        for row_number, row in enumerate(reader, start=1):
            uid = (row.get("uid") or "").strip()
            if not uid:
                raise RowParseError(row_number, "missing uid")
            yield ImportRow(
                uid=uid,
                email=(row.get("email") or "").strip() or None,
                email_verified=parse_email_verified(row.get("emailVerified")),
                password_hash=_decode_base64(row.get("passwordHash"), "passwordHash", row_number),
                password_salt=_decode_base64(row.get("passwordSalt"), "passwordSalt", row_number),
            )


def parse_rows(path: Path | str) -> List[ImportRow]:
    """Parse the whole file into memory before any batch is submitted."""
    return list(iter_rows(path))
