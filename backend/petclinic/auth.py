"""Session authentication gate for HTML routes.

This module provides the FastAPI dependency `require_login` that reads
the `username` attribute from the signed session cookie. Missing
sessions are not an error page: the dependency raises `LoginRequired`,
which the application turns into the login view.
"""

from fastapi import Request

SESSION_USER_KEY = "username"


class LoginRequired(Exception):
    """Raised when a gated route is requested without a session user."""
    def __init__(self, next_url: str = "/"):
        super().__init__("login required")
        self.next_url = next_url


def current_username(request: Request):
    """Return the username stored in the session, or `None`."""
    return request.session.get(SESSION_USER_KEY)


def require_login(request: Request) -> str:
    """FastAPI dependency that returns the session username.

    Raises `LoginRequired` before the handler body (and before any
    repository access) when no username is present.
    """
    username = current_username(request)
    if username is None:
        raise LoginRequired(next_url=request.url.path)
    return str(username)
