"""Queries and changes against the stored records."""

from __future__ import annotations

import datetime
import sqlite3
import uuid
from collections.abc import Callable
from dataclasses import replace
from decimal import Decimal
from typing import TypeVar

from memberdesk.models import (
    NIL_UUID,
    BankTransaction,
    Episode,
    Import,
    Member,
    Post,
    User,
)

T = TypeVar("T")

_MEMBER_COLUMNS = "id, first_name, last_name, email, mobile_phone, birth_date, hash"
_POST_COLUMNS = "id, title, text"
_EPISODE_COLUMNS = "id, title, summary, tags, url, user_id"
_USER_COLUMNS = "id, email, name, role"
_IMPORT_COLUMNS = "id, title, text, data"


class NotFoundError(LookupError):
    """Raised when a record to change or delete does not exist."""


def _date_or_none(value: str | None) -> datetime.date | None:
    return datetime.date.fromisoformat(value) if value else None


def _member_from_row(row: tuple) -> Member:
    id_, first_name, last_name, email, mobile_phone, birth_date, hash_ = row
    return Member(
        first_name=first_name,
        last_name=last_name,
        email=email,
        mobile_phone=mobile_phone,
        birth_date=_date_or_none(birth_date),
        id=uuid.UUID(id_),
        hash=hash_,
    )


def _post_from_row(row: tuple) -> Post:
    id_, title, text = row
    return Post(title=title, text=text, id=uuid.UUID(id_))


def _episode_from_row(row: tuple) -> Episode:
    id_, title, summary, tags, url, user_id = row
    return Episode(
        title=title,
        summary=summary,
        tags=tags,
        user_id=uuid.UUID(user_id),
        url=url,
        id=uuid.UUID(id_),
    )


def _user_from_row(row: tuple) -> User:
    id_, email, name, role = row
    return User(id=uuid.UUID(id_), email=email, name=name, role=role)


def _import_from_row(row: tuple) -> Import:
    id_, title, text, data = row
    return Import(id=id_, title=title, text=text, data=bytes(data or b""))


def _paginate(
    conn: sqlite3.Connection,
    table: str,
    columns: str,
    from_row: Callable[[tuple], T],
    page: int,
    per_page: int,
) -> tuple[list[T], int]:
    if per_page < 1:
        raise ValueError("items per page must be at least 1")
    if page < 1:
        raise ValueError("page numbers start at 1")
    (count,) = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
    num_pages = (count + per_page - 1) // per_page
    rows = conn.execute(
        f"SELECT {columns} FROM {table} ORDER BY id ASC LIMIT ? OFFSET ?",
        (per_page, (page - 1) * per_page),
    ).fetchall()
    return [from_row(row) for row in rows], num_pages


# Changes.


def create_episode(conn: sqlite3.Connection, episode: Episode) -> Episode:
    """Store an episode under its own id, replacing the fields of an existing one."""
    with conn:
        conn.execute(
            f"INSERT INTO episodes ({_EPISODE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET title = excluded.title, "
            "summary = excluded.summary, tags = excluded.tags, "
            "url = excluded.url, user_id = excluded.user_id",
            (
                str(episode.id),
                episode.title,
                episode.summary,
                episode.tags,
                episode.url,
                str(episode.user_id),
            ),
        )
    return replace(episode)


def create_member(conn: sqlite3.Connection, member: Member) -> Member:
    """Insert a member under a fresh id with its hash computed."""
    stored = replace(member, id=uuid.uuid4(), hash=member.record_hash())
    with conn:
        conn.execute(
            f"INSERT INTO members ({_MEMBER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                str(stored.id),
                stored.first_name,
                stored.last_name,
                stored.email,
                stored.mobile_phone,
                stored.birth_date.isoformat() if stored.birth_date else None,
                stored.hash,
            ),
        )
    return stored


def create_bank_transaction(
    conn: sqlite3.Connection, transaction: BankTransaction
) -> BankTransaction:
    """Insert a bank transaction under a fresh id with its hash computed."""
    stored = replace(transaction, id=uuid.uuid4(), hash=transaction.record_hash())
    with conn:
        conn.execute(
            "INSERT INTO bank_transactions (id, bookkeeping_date, transaction_text, "
            "reference, other_fields, amount, hash) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                str(stored.id),
                stored.bookkeeping_date.isoformat(),
                stored.transaction_text,
                stored.reference,
                stored.other_fields,
                str(stored.amount),
                stored.hash,
            ),
        )
    return stored


def update_member_by_id(
    conn: sqlite3.Connection, member_id: uuid.UUID, member: Member
) -> Member:
    """Overwrite the fields of an existing member and recompute its hash."""
    if find_member_by_id(conn, member_id) is None:
        raise NotFoundError("Cannot find member.")
    stored = replace(member, id=member_id, hash=member.record_hash())
    with conn:
        conn.execute(
            "UPDATE members SET first_name = ?, last_name = ?, email = ?, "
            "mobile_phone = ?, birth_date = ?, hash = ? WHERE id = ?",
            (
                stored.first_name,
                stored.last_name,
                stored.email,
                stored.mobile_phone,
                stored.birth_date.isoformat() if stored.birth_date else None,
                stored.hash,
                str(member_id),
            ),
        )
    return stored


def delete_member(conn: sqlite3.Connection, member_id: uuid.UUID) -> int:
    """Delete one member; return the number of rows removed."""
    if find_member_by_id(conn, member_id) is None:
        raise NotFoundError("Cannot find member.")
    with conn:
        cursor = conn.execute("DELETE FROM members WHERE id = ?", (str(member_id),))
    return cursor.rowcount


def delete_all_members(conn: sqlite3.Connection) -> int:
    """Delete every member; return the number of rows removed."""
    with conn:
        cursor = conn.execute("DELETE FROM members")
    return cursor.rowcount


def create_post(conn: sqlite3.Connection, post: Post) -> Post:
    """Insert a post under a fresh id."""
    stored = replace(post, id=uuid.uuid4())
    with conn:
        conn.execute(
            f"INSERT INTO posts ({_POST_COLUMNS}) VALUES (?, ?, ?)",
            (str(stored.id), stored.title, stored.text),
        )
    return stored


def update_post_by_id(conn: sqlite3.Connection, post_id: uuid.UUID, post: Post) -> Post:
    """Overwrite the title and text of an existing post."""
    if find_post_by_id(conn, post_id) is None:
        raise NotFoundError("Cannot find post.")
    stored = replace(post, id=post_id)
    with conn:
        conn.execute(
            "UPDATE posts SET title = ?, text = ? WHERE id = ?",
            (stored.title, stored.text, str(post_id)),
        )
    return stored


def delete_post(conn: sqlite3.Connection, post_id: uuid.UUID) -> int:
    """Delete one post; return the number of rows removed."""
    if find_post_by_id(conn, post_id) is None:
        raise NotFoundError("Cannot find post.")
    with conn:
        cursor = conn.execute("DELETE FROM posts WHERE id = ?", (str(post_id),))
    return cursor.rowcount


def delete_all_posts(conn: sqlite3.Connection) -> int:
    """Delete every post; return the number of rows removed."""
    with conn:
        cursor = conn.execute("DELETE FROM posts")
    return cursor.rowcount


# Queries.


def find_member_by_id(conn: sqlite3.Connection, member_id: uuid.UUID) -> Member | None:
    row = conn.execute(
        f"SELECT {_MEMBER_COLUMNS} FROM members WHERE id = ?", (str(member_id),)
    ).fetchone()
    return _member_from_row(row) if row else None


def find_episodes(
    conn: sqlite3.Connection, page: int, episodes_per_page: int
) -> tuple[list[Episode], int]:
    """Return one page of episodes ordered by id, and the number of pages."""
    return _paginate(
        conn, "episodes", _EPISODE_COLUMNS, _episode_from_row, page, episodes_per_page
    )


def find_members_in_page(
    conn: sqlite3.Connection, page: int, members_per_page: int
) -> tuple[list[Member], int]:
    """Return one page of members ordered by id, and the number of pages."""
    return _paginate(
        conn, "members", _MEMBER_COLUMNS, _member_from_row, page, members_per_page
    )


def find_post_by_id(conn: sqlite3.Connection, post_id: uuid.UUID) -> Post | None:
    row = conn.execute(
        f"SELECT {_POST_COLUMNS} FROM posts WHERE id = ?", (str(post_id),)
    ).fetchone()
    return _post_from_row(row) if row else None


def find_posts_in_page(
    conn: sqlite3.Connection, page: int, posts_per_page: int
) -> tuple[list[Post], int]:
    """Return one page of posts ordered by id, and the number of pages."""
    return _paginate(conn, "posts", _POST_COLUMNS, _post_from_row, page, posts_per_page)


def find_user_by_email(conn: sqlite3.Connection, email: str) -> User | None:
    """Return a user whose e-mail address contains ``email``."""
    row = conn.execute(
        f"SELECT {_USER_COLUMNS} FROM users WHERE email LIKE '%' || ? || '%' LIMIT 1",
        (email,),
    ).fetchone()
    return _user_from_row(row) if row else None


def list_imports(conn: sqlite3.Connection) -> list[Import]:
    rows = conn.execute(f"SELECT {_IMPORT_COLUMNS} FROM imports").fetchall()
    return [_import_from_row(row) for row in rows]


def _exists(conn: sqlite3.Connection, sql: str, params: tuple) -> bool:
    try:
        return conn.execute(sql, params).fetchone() is not None
    except sqlite3.Error:
        return False


def member_exists_by_hash(conn: sqlite3.Connection, record_hash: str) -> bool:
    """Whether a member with this hash is stored; false when the lookup fails."""
    return _exists(conn, "SELECT 1 FROM members WHERE hash = ? LIMIT 1", (record_hash,))


def bank_transaction_exists_by_hash(conn: sqlite3.Connection, record_hash: str) -> bool:
    """Whether a transaction with this hash is stored; false when the lookup fails."""
    return _exists(
        conn, "SELECT 1 FROM bank_transactions WHERE hash = ? LIMIT 1", (record_hash,)
    )


def member_exists_by_data(
    conn: sqlite3.Connection, first_name: str, last_name: str, email: str
) -> bool:
    """Whether a member has this e-mail address, or else this first and last name."""
    if _exists(conn, "SELECT 1 FROM members WHERE email = ? LIMIT 1", (email,)):
        return True
    return _exists(
        conn,
        "SELECT 1 FROM members WHERE first_name = ? AND last_name = ? LIMIT 1",
        (first_name, last_name),
    )


__all__ = [
    "NIL_UUID",
    "NotFoundError",
    "Decimal",
]