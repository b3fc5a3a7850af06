import uuid

import pytest
from flask import Flask, session

from memberdesk.access import (
    CURRENT_USER_KEY,
    LOGIN_URL,
    REDIRECT_AFTER_LOGIN_KEY,
    current_user,
    login_required,
    require_role,
)
from memberdesk.models import User

ADMIN = User(
    id=uuid.UUID("920b2fc5-d127-4003-b3f9-43bb685558d4"),
    email="admin@example.com",
    name="Admin",
    role="super_admin",
)
PLAIN = User(id=uuid.uuid4(), email="plain@example.com", name="Plain", role="user")


@pytest.fixture
def app():
    app = Flask(__name__)
    app.secret_key = "secret"
    return app


def _members_page():
    return "members page"


def _new_member_form():
    return "new member form"


def _serve(app, rule, view):
    app.add_url_rule(rule, endpoint=rule, view_func=view)
    return app.test_client()


def _login(client, user):
    with client.session_transaction() as sess:
        sess[CURRENT_USER_KEY] = user.to_dict()


def test_login_required_redirects_anonymous(app):
    client = _serve(app, "/members/", login_required(_members_page))
    response = client.get("/members/")
    assert response.status_code == 302
    assert response.headers["Location"].endswith(LOGIN_URL)
    with client.session_transaction() as sess:
        assert sess[REDIRECT_AFTER_LOGIN_KEY] == "/members/"


def test_login_required_passes_logged_in_user(app):
    client = _serve(app, "/members/", login_required(_members_page))
    _login(client, PLAIN)
    response = client.get("/members/")
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "members page"


def test_require_role_allows_matching_role(app):
    client = _serve(app, "/members/new", require_role("super_admin")(_new_member_form))
    _login(client, ADMIN)
    response = client.get("/members/new")
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "new member form"


def test_require_role_hides_route_from_other_roles(app):
    client = _serve(app, "/members/new", require_role("super_admin")(_new_member_form))
    _login(client, PLAIN)
    response = client.get("/members/new")
    assert response.status_code == 404
    assert "new member form" not in response.get_data(as_text=True)


def test_require_role_redirects_anonymous_temporarily(app):
    client = _serve(app, "/members/new", require_role("super_admin")(_new_member_form))
    response = client.get("/members/new")
    assert response.status_code == 307
    assert response.headers["Location"].endswith(LOGIN_URL)
    with client.session_transaction() as sess:
        assert sess[REDIRECT_AFTER_LOGIN_KEY] == "/members/new"


def test_current_user_round_trips_through_session(app):
    with app.test_request_context("/"):
        session[CURRENT_USER_KEY] = ADMIN.to_dict()
        assert current_user() == ADMIN


@pytest.mark.parametrize(
    "stored",
    [None, "not a user", {"email": "x@example.com"}, {**PLAIN.to_dict(), "id": "bad"}],
)
def test_current_user_is_none_for_missing_or_malformed_data(app, stored):
    with app.test_request_context("/"):
        if stored is not None:
            session[CURRENT_USER_KEY] = stored
        assert current_user() is None