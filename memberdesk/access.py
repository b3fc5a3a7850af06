"""Request guards that require a logged-in user or a particular role."""

from __future__ import annotations

import functools
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from flask import abort, redirect, request, session

from memberdesk.models import User

LOGIN_URL = "/auth/login"
CURRENT_USER_KEY = "current_user"
REDIRECT_AFTER_LOGIN_KEY = "redirect_after_login"

F = TypeVar("F", bound=Callable[..., Any])


def current_user() -> User | None:
    """The user stored in the session, or None when absent or unreadable."""
    data = session.get(CURRENT_USER_KEY)
    if not isinstance(data, Mapping):
        return None
    try:
        return User.from_dict(data)
    except (ValueError, TypeError):
        return None


def _remember_path() -> None:
    session[REDIRECT_AFTER_LOGIN_KEY] = request.path


def login_required(view: F) -> F:
    """Run the view only for a logged-in user; otherwise redirect to the login page."""

    @functools.wraps(view)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if current_user() is not None:
            return view(*args, **kwargs)
        _remember_path()
        return redirect(LOGIN_URL, code=302)

    return wrapper  # type: ignore[return-value]


def require_role(role: str) -> Callable[[F], F]:
    """Run the view only for a user with ``role``.

    Users with another role get 404; anonymous visitors are sent to log in.
    """

    def decorator(view: F) -> F:
        @functools.wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            user = current_user()
            if user is not None:
                if user.role == role:
                    return view(*args, **kwargs)
                abort(404)
            _remember_path()
            return redirect(LOGIN_URL, code=307)

        return wrapper  # type: ignore[return-value]

    return decorator