"""Content hashes used to recognise records that were already stored."""

from __future__ import annotations

import hashlib


def _sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def calculate_member_hash(first_name: str, last_name: str, birth_date: str) -> str:
    """Hash a member by normalised first name, last name and birth date."""
    normalized = ":".join(
        part.strip().lower() for part in (first_name, last_name, birth_date)
    )
    return _sha256_hex(normalized)


def calculate_bank_transaction_hash(other_fields: str) -> str:
    """Hash a bank transaction by its raw joined CSV fields."""
    return _sha256_hex(other_fields)


def calculate_import_row_hash(data: str) -> str:
    """Hash the raw data of an imported row."""
    return _sha256_hex(data)