"""Import members and bank transactions from uploaded CSV files."""

from __future__ import annotations

import csv
import datetime
import enum
import io
import logging
import re
import sqlite3
from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from memberdesk import service
from memberdesk.hashing import calculate_bank_transaction_hash, calculate_member_hash
from memberdesk.models import BankTransaction, Member

log = logging.getLogger(__name__)

# Column positions in the bank's CSV export.
TRANSACTION_COLUMNS: dict[str, int] = {
    "bookkeeping_date": 5,
    "transaction_date": 6,
    "currency_date": 7,
    "transaction_text": 9,
    "amount": 10,
    "account_total": 11,
    "reference": 8,
}

_DASHES = str.maketrans({"\u2212": "-", "\u2013": "-", "\u2014": "-", ",": "."})
_NUMBER = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)")
_DATE = re.compile(r"\d{4}-\d{1,2}-\d{1,2}")


class ImportType(enum.Enum):
    """What kind of records an uploaded file holds."""

    MEMBERS = "members"
    TRANSACTIONS = "transactions"

    @classmethod
    def parse(cls, value: str) -> ImportType:
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown import type: {value!r}") from None


@dataclass
class ImportResult:
    """Counts of rows stored, skipped as duplicates, and failed."""

    imported: int = 0
    skipped: int = 0
    failed: int = 0


def parse_amount(text: str) -> Decimal:
    """Parse an amount with any dash as minus and comma as decimal point; 0 if invalid."""
    cleaned = "".join(text.translate(_DASHES).split())
    if not _NUMBER.fullmatch(cleaned):
        return Decimal(0)
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return Decimal(0)


def parse_date(text: str) -> datetime.date | None:
    """Parse a ``YYYY-MM-DD`` date, or return None."""
    if not _DATE.fullmatch(text):
        return None
    try:
        return datetime.datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        return None


def _records(data: bytes) -> Iterator[list[str]]:
    """Data rows of a CSV file with a header line; rows must match its width."""
    text = data.decode("utf-8")
    reader = csv.reader(io.StringIO(text, newline=""))
    width = None
    for row in reader:
        if not row:
            continue
        if width is None:
            width = len(row)
            continue
        if len(row) != width:
            raise ValueError(
                f"CSV row on line {reader.line_num} has {len(row)} fields, "
                f"expected {width}"
            )
        yield row


def _field(row: list[str], index: int) -> str:
    try:
        return row[index]
    except IndexError:
        raise ValueError(f"CSV row has no column {index}") from None


def import_members(conn: sqlite3.Connection, data: bytes) -> ImportResult:
    """Store members from CSV rows of first name, last name, birth date, phone, e-mail."""
    result = ImportResult()
    for row in _records(data):
        first_name, last_name, birthdate, mobile_phone, email = (
            _field(row, i) for i in range(5)
        )
        birth_date = parse_date(birthdate)
        record_hash = calculate_member_hash(
            first_name, last_name, birth_date.isoformat() if birth_date else ""
        )
        if service.member_exists_by_hash(conn, record_hash):
            result.skipped += 1
            continue
        member = Member(
            first_name=first_name,
            last_name=last_name,
            email=email or None,
            mobile_phone=mobile_phone or None,
            birth_date=birth_date,
        )
        try:
            service.create_member(conn, member)
        except sqlite3.Error as exc:
            log.error("Failed to create member: %s", exc)
            result.failed += 1
        else:
            result.imported += 1
    return result


def import_transactions(conn: sqlite3.Connection, data: bytes) -> ImportResult:
    """Store bank transactions from the bank's CSV export."""
    result = ImportResult()
    order = (
        "bookkeeping_date",
        "transaction_date",
        "currency_date",
        "transaction_text",
        "amount",
        "account_total",
        "reference",
    )
    for row in _records(data):
        fields = {name: _field(row, TRANSACTION_COLUMNS[name]) for name in order}
        other_fields = "|".join(fields[name] for name in order)
        bookkeeping_date = parse_date(fields["bookkeeping_date"]) or datetime.date.min
        record_hash = calculate_bank_transaction_hash(other_fields)
        if service.bank_transaction_exists_by_hash(conn, record_hash):
            result.skipped += 1
            continue
        transaction = BankTransaction(
            bookkeeping_date=bookkeeping_date,
            transaction_text=fields["transaction_text"],
            reference=fields["reference"],
            amount=parse_amount(fields["amount"]),
            other_fields=other_fields,
        )
        try:
            service.create_bank_transaction(conn, transaction)
        except sqlite3.Error as exc:
            log.error("Failed to create bank transaction: %s", exc)
            result.failed += 1
        else:
            result.imported += 1
    return result