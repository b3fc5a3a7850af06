"""Record types stored in the database."""

from __future__ import annotations

import datetime
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, ClassVar

from memberdesk.hashing import (
    calculate_bank_transaction_hash,
    calculate_import_row_hash,
    calculate_member_hash,
)

NIL_UUID = uuid.UUID(int=0)


def _required(form: Mapping[str, str], name: str) -> str:
    try:
        return form[name]
    except KeyError:
        raise ValueError(f"missing field: {name}") from None


def _optional_date(value: str | None) -> datetime.date | None:
    if value is None or value == "":
        return None
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"invalid date: {value!r}") from None


def _date_text(value: datetime.date | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class Member:
    """A club member."""

    table: ClassVar[str] = "members"

    first_name: str
    last_name: str
    email: str | None = None
    mobile_phone: str | None = None
    birth_date: datetime.date | None = None
    id: uuid.UUID = NIL_UUID
    hash: str = ""

    def record_hash(self) -> str:
        """Hash identifying this member independent of its id."""
        date_text = self.birth_date.isoformat() if self.birth_date else ""
        return calculate_member_hash(self.first_name, self.last_name, date_text)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "mobile_phone": self.mobile_phone,
            "birth_date": _date_text(self.birth_date),
            "hash": self.hash,
        }

    @classmethod
    def from_form(cls, form: Mapping[str, str]) -> Member:
        """Build a member from submitted form fields; id and hash are ignored."""
        return cls(
            first_name=_required(form, "first_name"),
            last_name=_required(form, "last_name"),
            email=form.get("email"),
            mobile_phone=form.get("mobile_phone"),
            birth_date=_optional_date(form.get("birth_date")),
        )


@dataclass
class BankTransaction:
    """A bank account transaction."""

    table: ClassVar[str] = "bank_transactions"

    bookkeeping_date: datetime.date
    transaction_text: str
    reference: str
    amount: Decimal
    other_fields: str
    id: uuid.UUID = NIL_UUID
    hash: str = ""

    def record_hash(self) -> str:
        """Hash of the raw account fields."""
        return calculate_bank_transaction_hash(self.other_fields)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "bookkeeping_date": self.bookkeeping_date.isoformat(),
            "transaction_text": self.transaction_text,
            "reference": self.reference,
            "amount": str(self.amount),
            "other_fields": self.other_fields,
            "hash": self.hash,
        }


@dataclass
class Post:
    """A text post."""

    table: ClassVar[str] = "posts"

    title: str
    text: str
    id: uuid.UUID = NIL_UUID

    def to_dict(self) -> dict[str, Any]:
        return {"id": str(self.id), "title": self.title, "text": self.text}

    @classmethod
    def from_form(cls, form: Mapping[str, str]) -> Post:
        """Build a post from submitted form fields; the id is ignored."""
        return cls(title=_required(form, "title"), text=_required(form, "text"))


@dataclass
class Episode:
    """A podcast episode owned by a user."""

    table: ClassVar[str] = "episodes"

    title: str
    summary: str
    tags: str
    user_id: uuid.UUID
    url: str | None = None
    id: uuid.UUID = NIL_UUID

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "title": self.title,
            "summary": self.summary,
            "tags": self.tags,
            "url": self.url,
            "user_id": str(self.user_id),
        }


@dataclass
class User:
    """An account that can log in."""

    table: ClassVar[str] = "users"

    id: uuid.UUID
    email: str
    name: str
    role: str = "user"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "email": self.email,
            "name": self.name,
            "role": self.role,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> User:
        try:
            return cls(
                id=uuid.UUID(str(data["id"])),
                email=data["email"],
                name=data["name"],
                role=data["role"],
            )
        except KeyError as exc:
            raise ValueError(f"missing field: {exc.args[0]}") from None


@dataclass
class Import:
    """An uploaded data file."""

    table: ClassVar[str] = "imports"

    id: int
    title: str
    text: str
    data: bytes = b""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "text": self.text,
            "data": list(self.data),
        }


@dataclass
class ImportRow:
    """One row of an uploaded data file."""

    table: ClassVar[str] = "import_rows"

    data: str
    import_id: uuid.UUID
    hash: str = ""
    id: uuid.UUID = NIL_UUID

    def record_hash(self) -> str:
        """Hash of the row's raw data."""
        return calculate_import_row_hash(self.data)