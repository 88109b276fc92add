"""
Core protocol types.

These dataclasses represent HTTP requests and responses at the protocol
level, independent of any I/O implementation, plus the outcome of one
dispatch attempt and the backoff policy between attempts.
"""

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterable, AsyncIterator, Mapping, Optional, Union

REDIRECT_CODES = frozenset((301, 302, 303, 307, 308))


class DAVMethod(Enum):
    """HTTP methods used by the client."""

    GET = "GET"
    PUT = "PUT"
    DELETE = "DELETE"
    PROPFIND = "PROPFIND"
    MKCOL = "MKCOL"


@dataclass(frozen=True)
class DAVRequest:
    """
    Represents an HTTP request to be made.

    This is a pure data structure with no I/O. It describes what request
    should be made, but does not make it.

    Attributes:
        method: HTTP method (GET, PUT, PROPFIND, etc.)
        url: Full URL for the request
        headers: HTTP headers as dict
        body: Request body as bytes (optional)
        stream: Ask the transport for the response body as a stream of
            chunks instead of reading it into memory
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    stream: bool = False

    def with_url(self, url: str) -> "DAVRequest":
        """Return the same request aimed at another URL."""
        return DAVRequest(
            method=self.method,
            url=url,
            headers=self.headers,
            body=self.body,
            stream=self.stream,
        )


@dataclass(frozen=True)
class DAVResponse:
    """
    Represents an HTTP response received.

    Attributes:
        status: HTTP status code
        headers: HTTP headers
        body: Response body as bytes, empty when streamed
        reason: Reason phrase given by the server, if any
        stream: Unread body of a streamed response, see ``iter_body``
    """

    status: int
    headers: Mapping[str, str]
    body: bytes
    reason: str = ""
    stream: Optional[AsyncIterable[bytes]] = None

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None

    @property
    def is_redirect(self) -> bool:
        return self.status in REDIRECT_CODES

    async def iter_body(self) -> AsyncIterator[bytes]:
        """Yields the body chunk by chunk, streamed or not."""
        if self.stream is None:
            if self.body:
                yield self.body
            return
        async for chunk in self.stream:
            yield chunk

    async def release(self) -> None:
        """Gives back the connection of a streamed body that will not be read."""
        aclose = getattr(self.stream, "aclose", None)
        if aclose is not None:
            await aclose()


@dataclass(frozen=True)
class Success:
    """The attempt produced a response with an acceptable status."""

    response: DAVResponse


@dataclass(frozen=True)
class RetryableFailure:
    """
    Transport error or unexpected (non-redirect) status.  Worth trying
    the whole operation again.
    """

    error: Exception


@dataclass(frozen=True)
class RedirectFailure:
    """
    A redirect that must not be followed: no Location header, or a
    Location on another origin.  Fatal.
    """

    error: Exception


@dataclass(frozen=True)
class TerminalFailure:
    """
    The redirect budget ran out and the final status was a redirect.
    Retrying would only walk the same chain again.
    """

    error: Exception


Outcome = Union[Success, RetryableFailure, RedirectFailure, TerminalFailure]


def should_retry(outcome: Outcome) -> bool:
    return isinstance(outcome, RetryableFailure)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff with jitter.

    The delay before attempt ``n + 1`` is
    ``delay_factor * 2 ** n``, randomized by ``randomization_factor``
    in both directions and capped at ``max_delay`` (all in seconds).
    """

    delay_factor: float = 0.2
    randomization_factor: float = 0.25
    max_delay: float = 30.0

    def delay(self, attempt: int) -> float:
        exp = min(attempt, 31)
        jitter = 1 + self.randomization_factor * (random.random() * 2 - 1)
        return min(self.delay_factor * (2**exp) * jitter, self.max_delay)
