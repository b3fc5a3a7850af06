"""Database schema migrations and the command that applies them."""

from __future__ import annotations

import argparse
import enum
import os
import sqlite3
import sys
import time
import urllib.parse
from collections.abc import Iterable, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

from dotenv import load_dotenv

MIGRATION_TABLE = "seaql_migrations"


class _Iden(str):
    """An SQL identifier that carries a separate display label."""

    label: str

    def __new__(cls, name: str, label: str | None = None) -> _Iden:
        obj = super().__new__(cls, name)
        obj.label = label if label is not None else name
        return obj


def _label(iden: str) -> str:
    return getattr(iden, "label", str(iden))


def _q(name: str) -> str:
    return '"' + str(name).replace('"', '""') + '"'


class MemberEventType(enum.Enum):
    """Kinds of events recorded for a member."""

    PAYMENT = "payment"
    OTHER = "other"

    def __str__(self) -> str:
        return self.value


# Column definitions.

def _pk_uuid(col: str) -> str:
    return f"{_q(col)} TEXT NOT NULL PRIMARY KEY"


def _pk_auto(col: str) -> str:
    return f"{_q(col)} INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT"


def _uuid(col: str) -> str:
    return f"{_q(col)} TEXT NOT NULL"


def _integer(col: str) -> str:
    return f"{_q(col)} INTEGER NOT NULL"


def _string(col: str, default: str | None = None) -> str:
    column = f"{_q(col)} TEXT NOT NULL"
    if default is not None:
        escaped = default.replace("'", "''")
        column += f" DEFAULT '{escaped}'"
    return column


def _string_null(col: str) -> str:
    return f"{_q(col)} TEXT"


def _date(col: str) -> str:
    return f"{_q(col)} DATE NOT NULL"


def _date_null(col: str) -> str:
    return f"{_q(col)} DATE"


def _binary(col: str) -> str:
    return f"{_q(col)} BLOB NOT NULL"


def _money(col: str) -> str:
    return f"{_q(col)} NUMERIC NOT NULL"


def _json(col: str) -> str:
    return f"{_q(col)} TEXT NOT NULL"


def _enumeration(col: str, variants: Iterable[enum.Enum]) -> str:
    allowed = ", ".join(f"'{v.value}'" for v in variants)
    return f"{_q(col)} TEXT NOT NULL CHECK ({_q(col)} IN ({allowed}))"


def _create_table(table: str, columns: Sequence[str]) -> str:
    return f"CREATE TABLE IF NOT EXISTS {_q(table)} ( {', '.join(columns)} )"


def _drop_table(table: str) -> str:
    return f"DROP TABLE {_q(table)}"


def fk_auto(from_table: str, fk_column: str, to_table: str, to_id_column: str) -> str:
    """Foreign key constraint that cascades on delete and on update."""
    name = f"fk_{_label(from_table)}_{_label(to_table)}"
    return (
        f"CONSTRAINT {_q(name)} FOREIGN KEY ({_q(fk_column)}) "
        f"REFERENCES {_q(to_table)} ({_q(to_id_column)}) "
        "ON DELETE CASCADE ON UPDATE CASCADE"
    )


def foreign_key_auto(
    columns: Sequence[str],
    from_table: str,
    fk_column: str,
    to_table: str,
    to_id_column: str,
    use_uuid: bool,
) -> list[str]:
    """Return the columns with a non-null key column and its constraint added."""
    column = _uuid(fk_column) if use_uuid else _integer(fk_column)
    return [*columns, column, fk_auto(from_table, fk_column, to_table, to_id_column)]


# Identifiers, with the labels used in constraint names.

_POSTS = _Iden("posts")

_MEMBERS = _Iden("members")
_MEMBERS_ID = _Iden("id", "member_id")

_USERS = _Iden("users")
_USERS_ID = _Iden("id", "user_id")
_EPISODES = _Iden("episodes")
_EPISODES_USER_ID = _Iden("user_id", "episode_user_id")

_IMPORTS = _Iden("imports", "import_table")
_IMPORTS_ID = _Iden("id", "import_id")
_IMPORT_ROWS = _Iden("import_rows")
_IMPORT_ROWS_IMPORT_ID = _Iden("import_id", "import_row_import_id")

_BANK_TRANSACTIONS = _Iden("bank_transactions")

_MEMBER_EVENTS = _Iden("member_events")
_MEMBER_EVENTS_MEMBER_ID = _Iden("member_id", "member_event_member_id")


@dataclass(frozen=True)
class Migration:
    """A named schema change with the statements that apply and undo it."""

    name: str
    up: tuple[str, ...]
    down: tuple[str, ...]


MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        "m20220120_000001_create_post_table",
        up=(
            _create_table(
                _POSTS, [_pk_uuid("id"), _string("title"), _string("text")]
            ),
        ),
        down=(_drop_table(_POSTS),),
    ),
    Migration(
        "m20241205_170802_create_member_table",
        up=(
            _create_table(
                _MEMBERS,
                [
                    _pk_uuid(_MEMBERS_ID),
                    _string("first_name"),
                    _string("last_name"),
                    _string_null("email"),
                    _string_null("mobile_phone"),
                    _date_null("birth_date"),
                    _string("hash"),
                ],
            ),
        ),
        down=(_drop_table(_MEMBERS),),
    ),
    Migration(
        "m20250108_130829_add_episode_and_user_table",
        up=(
            _create_table(
                _USERS,
                [
                    _pk_uuid(_USERS_ID),
                    _string("email"),
                    _string("name"),
                    _string("role", default="user"),
                ],
            ),
            _create_table(
                _EPISODES,
                foreign_key_auto(
                    [
                        _pk_uuid("id"),
                        _string("title"),
                        _string("summary"),
                        _string("tags"),
                        _string_null("url"),
                    ],
                    _EPISODES,
                    _EPISODES_USER_ID,
                    _USERS,
                    _USERS_ID,
                    True,
                ),
            ),
        ),
        down=(_drop_table(_EPISODES), _drop_table(_USERS)),
    ),
    Migration(
        "m20250405_063228_create_import",
        up=(
            _create_table(
                _IMPORTS,
                [
                    _pk_auto(_IMPORTS_ID),
                    _string("title"),
                    _string("text"),
                    _binary("data"),
                ],
            ),
            _create_table(
                _IMPORT_ROWS,
                foreign_key_auto(
                    [_pk_uuid("id"), _string("data"), _string("hash")],
                    _IMPORT_ROWS,
                    _IMPORT_ROWS_IMPORT_ID,
                    _IMPORTS,
                    _IMPORTS_ID,
                    True,
                ),
            ),
        ),
        down=(_drop_table(_IMPORTS),),
    ),
    Migration(
        "m20250410_123829_create_transactions",
        up=(
            _create_table(
                _BANK_TRANSACTIONS,
                [
                    _pk_uuid("id"),
                    _date("bookkeeping_date"),
                    _string("transaction_text"),
                    _string("reference"),
                    _string("other_fields"),
                    _money("amount"),
                    _string("hash"),
                ],
            ),
        ),
        down=(_drop_table(_BANK_TRANSACTIONS),),
    ),
    Migration(
        "m20250410_195329_create_member_events",
        up=(
            _create_table(
                _MEMBER_EVENTS,
                foreign_key_auto(
                    [
                        _pk_uuid("id"),
                        _enumeration("type", MemberEventType),
                        _json("data"),
                        _date("happened_at"),
                    ],
                    _MEMBER_EVENTS,
                    _MEMBER_EVENTS_MEMBER_ID,
                    _MEMBERS,
                    _MEMBERS_ID,
                    True,
                ),
            ),
        ),
        down=(_drop_table(_MEMBER_EVENTS),),
    ),
    Migration(
        "m20250608_123514_add_message_to_transactions",
        up=(f"ALTER TABLE {_q(_BANK_TRANSACTIONS)} ADD COLUMN {_q('message')} TEXT",),
        down=(f"ALTER TABLE {_q(_BANK_TRANSACTIONS)} DROP COLUMN {_q('message')}",),
    ),
)

_BY_NAME = {migration.name: migration for migration in MIGRATIONS}


def connect(database_url: str) -> sqlite3.Connection:
    """Open an SQLite database given as ``sqlite:path[?mode=...]`` or ``sqlite::memory:``."""
    scheme, sep, rest = database_url.partition(":")
    if not sep or scheme.lower() != "sqlite":
        raise ValueError(f"unsupported database url: {database_url!r}")
    if rest.startswith("//"):
        rest = rest[2:]
    path, _, query = rest.partition("?")
    if not path:
        raise ValueError(f"database url has no path: {database_url!r}")
    if path == ":memory:":
        conn = sqlite3.connect(":memory:")
    else:
        params = urllib.parse.parse_qs(query)
        mode = params.get("mode", ["rw"])[-1]
        uri = f"file:{urllib.parse.quote(path, safe='/:')}?mode={mode}"
        conn = sqlite3.connect(uri, uri=True)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def _ensure_migration_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        f"CREATE TABLE IF NOT EXISTS {_q(MIGRATION_TABLE)} "
        '( "version" TEXT NOT NULL PRIMARY KEY, "applied_at" INTEGER NOT NULL )'
    )
    conn.commit()


@contextmanager
def _transaction(conn: sqlite3.Connection):
    if conn.in_transaction:
        conn.commit()
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    conn.commit()


def applied_migrations(conn: sqlite3.Connection) -> list[str]:
    """Names of the migrations already applied, oldest first."""
    _ensure_migration_table(conn)
    rows = conn.execute(
        f'SELECT "version" FROM {_q(MIGRATION_TABLE)} ORDER BY "version"'
    ).fetchall()
    return [row[0] for row in rows]


def apply_migrations(conn: sqlite3.Connection, steps: int | None = None) -> list[str]:
    """Apply pending migrations, at most ``steps`` of them; return their names."""
    done = set(applied_migrations(conn))
    pending = [m for m in MIGRATIONS if m.name not in done]
    if steps is not None:
        pending = pending[:steps]
    applied = []
    for migration in pending:
        with _transaction(conn):
            for statement in migration.up:
                conn.execute(statement)
            conn.execute(
                f"INSERT INTO {_q(MIGRATION_TABLE)} (\"version\", \"applied_at\") VALUES (?, ?)",
                (migration.name, int(time.time())),
            )
        applied.append(migration.name)
    return applied


def revert_migrations(conn: sqlite3.Connection, steps: int | None = 1) -> list[str]:
    """Undo the most recent migrations, ``steps`` of them or all; return their names."""
    done = list(reversed(applied_migrations(conn)))
    if steps is not None:
        done = done[:steps]
    reverted = []
    for name in done:
        try:
            migration = _BY_NAME[name]
        except KeyError:
            raise ValueError(f"migration file of version '{name}' is missing") from None
        with _transaction(conn):
            for statement in migration.down:
                conn.execute(statement)
            conn.execute(
                f'DELETE FROM {_q(MIGRATION_TABLE)} WHERE "version" = ?', (name,)
            )
        reverted.append(name)
    return reverted


def _drop_all_tables(conn: sqlite3.Connection) -> None:
    conn.commit()
    conn.execute("PRAGMA foreign_keys = OFF")
    tables = [
        row[0]
        for row in conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name NOT LIKE 'sqlite_%'"
        )
    ]
    for table in tables:
        conn.execute(_drop_table(table))
    conn.commit()
    conn.execute("PRAGMA foreign_keys = ON")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memberdesk-migrate", description="Manage the database schema."
    )
    parser.add_argument("-u", "--database-url", help="defaults to $DATABASE_URL")
    commands = parser.add_subparsers(dest="command")
    up = commands.add_parser("up", help="apply pending migrations")
    up.add_argument("-n", "--num", type=int, default=None)
    down = commands.add_parser("down", help="revert applied migrations")
    down.add_argument("-n", "--num", type=int, default=1)
    commands.add_parser("status", help="show the state of every migration")
    commands.add_parser("fresh", help="drop all tables, then apply all migrations")
    commands.add_parser("refresh", help="revert all migrations, then apply them")
    commands.add_parser("reset", help="revert all migrations")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the migration command line."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    load_dotenv()
    database_url = args.database_url or os.environ.get("DATABASE_URL")
    if not database_url:
        parser.error("DATABASE_URL is not set")
    try:
        conn = connect(database_url)
    except (ValueError, sqlite3.Error) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    command = args.command or "up"
    try:
        if command == "status":
            done = set(applied_migrations(conn))
            for migration in MIGRATIONS:
                state = "Applied" if migration.name in done else "Pending"
                print(f"{migration.name}\t{state}")
            return 0
        if command == "fresh":
            _drop_all_tables(conn)
            names = apply_migrations(conn)
        elif command == "refresh":
            for name in revert_migrations(conn, None):
                print(f"Rolling back migration '{name}'")
            names = apply_migrations(conn)
        elif command == "reset":
            for name in revert_migrations(conn, None):
                print(f"Rolling back migration '{name}'")
            return 0
        elif command == "down":
            reverted = revert_migrations(conn, args.num)
            for name in reverted:
                print(f"Rolling back migration '{name}'")
            if not reverted:
                print("No applied migrations")
            return 0
        else:
            names = apply_migrations(conn, getattr(args, "num", None))
        for name in names:
            print(f"Applying migration '{name}'")
        if not names:
            print("No pending migrations")
        return 0
    except (ValueError, sqlite3.Error) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())