"""
Authentication objects for the niquests session.
"""

from typing import Optional

from niquests.auth import AuthBase

from webdavlite.lib import error


class HTTPBearerAuth(AuthBase):
    def __init__(self, password: str) -> None:
        self.password = password

    def __eq__(self, other: object) -> bool:
        return self.password == getattr(other, "password", None)

    def __ne__(self, other: object) -> bool:
        return not self == other

    def __call__(self, r):
        r.headers["Authorization"] = f"Bearer {self.password}"
        return r


def build_auth(
    auth_type: Optional[str],
    username: Optional[str],
    password: Optional[str],
) -> Optional[AuthBase]:
    """
    Builds the auth object to attach to every request.

    Args:
        auth_type: ``basic``, ``digest`` or ``bearer``.  When not given,
            basic auth is used if there is a username, bearer auth if
            there is only a password, and no auth at all otherwise.
        username: Username for basic/digest auth.
        password: Password, or the token for bearer auth.

    Returns:
        An auth object, or None if no credentials were given.
    """
    if not auth_type:
        if username:
            auth_type = "basic"
        elif password:
            auth_type = "bearer"
        else:
            return None

    auth_type = auth_type.lower()
    if auth_type == "bearer":
        if not password:
            raise error.AuthorizationError(
                reason="bearer auth requested, but no password given.  The bearer token should be configured as password"
            )
        return HTTPBearerAuth(password)
    elif auth_type == "digest":
        from niquests.auth import AsyncHTTPDigestAuth

        return AsyncHTTPDigestAuth(username or "", password or "")
    elif auth_type == "basic":
        from niquests.auth import HTTPBasicAuth

        return HTTPBasicAuth(username or "", password or "")
    raise error.AuthorizationError(reason=f"Unsupported auth type: {auth_type}")
