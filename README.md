# memberdesk

Building blocks for an association's member register: record types for
members, posts, episodes, users and bank transactions, an SQLite schema
managed by built-in migrations, queries and changes against the stored
records, CSV import of member lists and bank statements, and Flask request
guards for logged-in users and roles.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Managing the database

```
memberdesk-migrate [-u DATABASE_URL] [up|down|status|fresh|refresh|reset]
```

The database URL is taken from `-u/--database-url`, or else from the
`DATABASE_URL` environment variable (a `.env` file in the working directory
is read too). Only SQLite is supported:

- `sqlite:path/to/file.db` – opens an existing file (`mode=rw`)
- `sqlite:path/to/file.db?mode=rwc` – creates the file if it is missing
- `sqlite::memory:` – an in-memory database

Commands (the default is `up`):

| Command        | Effect                                               |
|----------------|------------------------------------------------------|
| `up [-n N]`    | apply pending migrations, all or the next `N`        |
| `down [-n N]`  | revert the last `N` applied migrations (default 1)   |
| `status`       | list every migration as `Applied` or `Pending`       |
| `fresh`        | drop all tables, then apply every migration          |
| `refresh`      | revert all migrations, then apply them again         |
| `reset`        | revert all migrations                                |

Applied migrations are recorded in the `seaql_migrations` table. From
Python, `memberdesk.schema.connect`, `apply_migrations`, `revert_migrations`
and `applied_migrations` do the same work; `MIGRATIONS` holds the
`Migration` objects in order.

## Records and storage

`memberdesk.models` defines the dataclasses `Member`, `BankTransaction`,
`Post`, `Episode`, `User`, `Import` and `ImportRow`. `Member.from_form` and
`Post.from_form` build records from submitted form fields; `to_dict` gives a
plain dictionary.

Members and bank transactions carry a content hash used to spot duplicates
(`memberdesk.hashing`): a member's hash is the SHA-256 of its trimmed,
lower-cased first name, last name and birth date joined by `:`; a
transaction's is the SHA-256 of its raw joined CSV fields.

`memberdesk.service` works on an open connection:

- `create_member`, `update_member_by_id`, `delete_member`,
  `delete_all_members`, `find_member_by_id`, `find_members_in_page`
- `create_post`, `update_post_by_id`, `delete_post`, `delete_all_posts`,
  `find_post_by_id`, `find_posts_in_page`
- `create_episode`, `find_episodes`, `create_bank_transaction`,
  `find_user_by_email`, `list_imports`
- `member_exists_by_hash`, `bank_transaction_exists_by_hash`,
  `member_exists_by_data`

New members, posts and transactions get a fresh UUID. Paged queries take a
page number starting at 1 and return `(records, number_of_pages)`, ordered
by id. Updating or deleting a record that does not exist raises
`NotFoundError`.

```python
from memberdesk import schema, service
from memberdesk.models import Member

conn = schema.connect("sqlite::memory:")
schema.apply_migrations(conn)
member = service.create_member(conn, Member(first_name="Ada", last_name="Lovelace"))
members, pages = service.find_members_in_page(conn, 1, 100)
```

## CSV imports

`memberdesk.importer.import_members(conn, data)` and
`import_transactions(conn, data)` take the raw bytes of a UTF-8 CSV file and
return an `ImportResult` with the counts `imported`, `skipped` (already
stored, by hash) and `failed`. The first line is a header and is skipped;
every row must have as many fields as the header.

- **members** – columns: first name, last name, birth date (`YYYY-MM-DD`;
  anything else is stored as no date), mobile phone, e-mail. Empty phone and
  e-mail fields are stored as missing.
- **transactions** – a bank statement export; bookkeeping date, transaction
  date, currency date, reference, text, amount and account total are read
  from columns 5 to 11. `parse_amount` accepts a decimal comma, spaces as
  thousands separators and typographic minus signs, and gives 0 for anything
  it cannot read; an unreadable bookkeeping date becomes `date.min`.

`ImportType.parse` turns the strings `members` and `transactions` into an
`ImportType`.

## Request guards

`memberdesk.access` offers decorators for Flask views, using the user stored
as a dictionary under the session key `current_user`:

- `login_required` – anonymous visitors are redirected (302) to
  `/auth/login`.
- `require_role(role)` – users with another role get 404; anonymous visitors
  are redirected (307) to `/auth/login`.

In both cases the requested path is remembered in the session under
`redirect_after_login`. `current_user()` returns the session's `User` or
`None`.

## Scaffolding

```
memberdesk-scaffold [--root DIR] generate scaffold book
```

writes, below the project directory (default: the current one), a migration
stub `migrations/<timestamp>_create_book.py`, a record class
`entities/book.py`, handler stubs `handlers/book_handlers.py` and a list
template `templates/book/index.html`. The `migrations` and `handlers`
directories must already exist.

## What is not included

The package holds no web application: it defines no routes or pages, does
not serve static files, has no login or logout flow, and starts no server.
The guards, services and importer are meant to be wired into a Flask
application of your own.