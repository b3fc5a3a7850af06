import datetime
import uuid
from decimal import Decimal

import pytest

from memberdesk import service
from memberdesk.models import BankTransaction, Episode, Member, Post
from memberdesk.schema import apply_migrations, connect


@pytest.fixture
def conn():
    connection = connect("sqlite::memory:")
    apply_migrations(connection)
    yield connection
    connection.close()


def _member(first="Anna", last="Berg", birth=datetime.date(1990, 5, 17)):
    return Member(
        first_name=first,
        last_name=last,
        email=f"{first.lower()}@example.com",
        mobile_phone=None,
        birth_date=birth,
    )


def _add_user(conn, email="admin@example.com"):
    user_id = uuid.uuid4()
    with conn:
        conn.execute(
            "INSERT INTO users (id, email, name, role) VALUES (?, ?, ?, ?)",
            (str(user_id), email, "Admin", "super_admin"),
        )
    return user_id


def test_create_member_assigns_id_and_hash(conn):
    created = service.create_member(conn, _member())
    assert created.id != service.NIL_UUID
    assert created.hash == _member().record_hash()
    assert service.find_member_by_id(conn, created.id) == created


def test_find_member_missing_returns_none(conn):
    assert service.find_member_by_id(conn, uuid.uuid4()) is None


def test_update_member_changes_fields_and_hash(conn):
    created = service.create_member(conn, _member())
    changed = _member(first="Bo", birth=None)
    updated = service.update_member_by_id(conn, created.id, changed)
    assert updated.id == created.id
    assert updated.hash == changed.record_hash()
    assert updated.hash != created.hash
    assert service.find_member_by_id(conn, created.id) == updated


def test_update_missing_member_raises(conn):
    with pytest.raises(service.NotFoundError, match="Cannot find member."):
        service.update_member_by_id(conn, uuid.uuid4(), _member())


def test_delete_member(conn):
    created = service.create_member(conn, _member())
    assert service.delete_member(conn, created.id) == 1
    assert service.find_member_by_id(conn, created.id) is None
    with pytest.raises(service.NotFoundError):
        service.delete_member(conn, created.id)


def test_delete_all_members_counts_rows(conn):
    names = ["Anna", "Bo", "Cecilia"]
    for name in names:
        service.create_member(conn, _member(first=name))
    assert service.delete_all_members(conn) == len(names)
    members, num_pages = service.find_members_in_page(conn, 1, 10)
    assert members == []
    assert num_pages == 0


def test_members_pagination_covers_all_in_id_order(conn):
    created = [service.create_member(conn, _member(first=f"N{i}")) for i in range(5)]
    per_page = 2
    first, num_pages = service.find_members_in_page(conn, 1, per_page)
    assert (num_pages - 1) * per_page < len(created) <= num_pages * per_page
    collected = []
    for page in range(1, num_pages + 1):
        items, pages = service.find_members_in_page(conn, page, per_page)
        assert pages == num_pages
        assert len(items) <= per_page
        collected.extend(items)
    assert collected[: len(first)] == first
    ids = [str(m.id) for m in collected]
    assert ids == sorted(ids)
    assert {m.id for m in collected} == {m.id for m in created}


def test_page_past_end_is_empty(conn):
    service.create_member(conn, _member())
    items, num_pages = service.find_members_in_page(conn, num_pages_plus(conn), 1)
    assert items == []
    assert num_pages == 1


def num_pages_plus(conn):
    return service.find_members_in_page(conn, 1, 1)[1] + 1


@pytest.mark.parametrize("page, per_page", [(0, 10), (1, 0)])
def test_invalid_pagination_raises(conn, page, per_page):
    with pytest.raises(ValueError):
        service.find_posts_in_page(conn, page, per_page)


def test_post_crud(conn):
    created = service.create_post(conn, Post(title="Hello", text="World"))
    assert service.find_post_by_id(conn, created.id) == created
    updated = service.update_post_by_id(conn, created.id, Post(title="New", text="Body"))
    assert service.find_post_by_id(conn, created.id) == updated
    assert updated.title == "New"
    assert service.delete_post(conn, created.id) == 1
    with pytest.raises(service.NotFoundError, match="Cannot find post."):
        service.update_post_by_id(conn, created.id, updated)


def test_delete_all_posts(conn):
    for title in ("a", "b"):
        service.create_post(conn, Post(title=title, text=""))
    assert service.delete_all_posts(conn) == 2
    assert service.find_posts_in_page(conn, 1, 5) == ([], 0)


def test_posts_pages_hold_every_post(conn):
    created = {service.create_post(conn, Post(title=str(i), text="x")).id for i in range(3)}
    posts, num_pages = service.find_posts_in_page(conn, 1, len(created))
    assert num_pages == 1
    assert {p.id for p in posts} == created


def test_create_and_find_episodes(conn):
    user_id = _add_user(conn)
    episode = Episode(
        title="Pilot", summary="First", tags="intro", user_id=user_id, id=uuid.uuid4()
    )
    stored = service.create_episode(conn, episode)
    assert stored == episode
    episodes, num_pages = service.find_episodes(conn, 1, 10)
    assert episodes == [episode]
    assert num_pages == 1


def test_create_episode_twice_updates(conn):
    user_id = _add_user(conn)
    episode = Episode(title="Pilot", summary="", tags="", user_id=user_id, id=uuid.uuid4())
    service.create_episode(conn, episode)
    renamed = Episode(title="Renamed", summary="", tags="", user_id=user_id, id=episode.id)
    service.create_episode(conn, renamed)
    episodes, _ = service.find_episodes(conn, 1, 10)
    assert episodes == [renamed]


def test_find_user_by_email_matches_substring(conn):
    user_id = _add_user(conn, "admin@example.com")
    found = service.find_user_by_email(conn, "admin@")
    assert found is not None and found.id == user_id
    assert service.find_user_by_email(conn, "nobody@example.com") is None


def test_list_imports(conn):
    with conn:
        conn.execute(
            "INSERT INTO imports (title, text, data) VALUES (?, ?, ?)",
            ("members", "first", b"\x01\x02"),
        )
    imports = service.list_imports(conn)
    assert [(i.title, i.text, i.data) for i in imports] == [("members", "first", b"\x01\x02")]


def test_member_exists_by_hash(conn):
    created = service.create_member(conn, _member())
    assert service.member_exists_by_hash(conn, created.hash)
    assert not service.member_exists_by_hash(conn, "missing")


def test_exists_lookup_failure_is_false(conn):
    created = service.create_member(conn, _member())
    conn.close()
    assert service.member_exists_by_hash(conn, created.hash) is False


def test_bank_transaction_exists_by_hash(conn):
    transaction = BankTransaction(
        bookkeeping_date=datetime.date(2025, 4, 1),
        transaction_text="Fee",
        reference="ref",
        amount=Decimal("-12.50"),
        other_fields="a|b|c",
    )
    stored = service.create_bank_transaction(conn, transaction)
    assert stored.hash == transaction.record_hash()
    assert stored.id != service.NIL_UUID
    assert service.bank_transaction_exists_by_hash(conn, stored.hash)
    assert not service.bank_transaction_exists_by_hash(conn, "missing")


def test_member_exists_by_data(conn):
    service.create_member(conn, _member())
    assert service.member_exists_by_data(conn, "X", "Y", "anna@example.com")
    assert service.member_exists_by_data(conn, "Anna", "Berg", "other@example.com")
    assert not service.member_exists_by_data(conn, "Anna", "Other", "other@example.com")