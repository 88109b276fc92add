#!/usr/bin/env python
import logging
import os
from typing import FrozenSet
from typing import Iterable
from typing import Optional

from webdavlite import __version__

## Environmental variables prepended with "PYTHON_WEBDAVLITE" are used for debug purposes,
## environmental variables prepended with "WEBDAV_" are for connection parameters
## one of DEBUG, DEVELOPMENT, PRODUCTION
debugmode = os.environ.get("PYTHON_WEBDAVLITE_DEBUGMODE")
if not debugmode:
    if "dev" in __version__:
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("webdavlite")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def weirdness(*reasons) -> None:
    """Logs a deviation from what the protocol says the server should deliver"""
    from webdavlite.lib.debug import xmlstring

    reason = " : ".join([xmlstring(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")


class DAVError(Exception):
    url: Optional[str] = None
    reason: str = "no reason"

    def __init__(self, url: Optional[str] = None, reason: Optional[str] = None) -> None:
        if url:
            self.url = url
        if reason:
            self.reason = reason

    def __str__(self) -> str:
        return "%s at '%s', reason %s" % (
            self.__class__.__name__,
            self.url,
            self.reason,
        )


class AuthorizationError(DAVError):
    """
    Raised when no usable authentication object can be built from the
    credentials and auth type given to the client.
    """

    pass


class OperationError(DAVError):
    """
    A WebDAV operation ended with a status code the caller did not
    accept, or a redirect could not be followed.

    The error carries the full request context: the cause, the status
    code actually received, the HTTP method, the operation path (as
    given by the caller, before resolution) and the set of status codes
    that would have been accepted.  The context is read-only.
    """

    def __init__(
        self,
        cause: str,
        status_code: int,
        method: str,
        path: str,
        expected_codes: Iterable[int],
    ) -> None:
        super().__init__(url=path, reason=cause)
        self._cause = cause
        self._status_code = status_code
        self._method = method
        self._path = path
        self._expected_codes = frozenset(expected_codes)

    @property
    def cause(self) -> str:
        return self._cause

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def method(self) -> str:
        return self._method

    @property
    def path(self) -> str:
        return self._path

    @property
    def expected_codes(self) -> FrozenSet[int]:
        return self._expected_codes

    def __str__(self) -> str:
        return "%s - %s, statusCode: %s, method: %s, path: %s, expected: %s" % (
            self.__class__.__name__,
            self.cause,
            self.status_code,
            self.method,
            self.path,
            sorted(self.expected_codes),
        )


class RedirectError(OperationError):
    """
    A redirect response could not be followed, either because it had no
    Location header or because it pointed to another origin.  Never
    retried.
    """

    pass


class DateFormatError(ValueError):
    """The text is not a date on the supported RFC 1123 form"""

    def __init__(self, message: str, source: str) -> None:
        super().__init__(message, source)
        self.message = message
        self.source = source

    def __str__(self) -> str:
        return "%s: %r" % (self.message, self.source)
