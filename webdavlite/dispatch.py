"""
Request dispatching: one logical WebDAV operation, with redirect
following and retries.

A logical operation is made of up to ``max_attempts`` attempts.  Each
attempt issues the request and follows up to ``max_redirects``
same-origin redirects itself (the transport never follows them), then
checks the final status code against the set of codes the operation
accepts.  Every attempt ends in one of the outcomes of
``webdavlite.protocol.types``, and only a ``RetryableFailure`` leads to
another attempt.
"""

import asyncio
from typing import Callable, Iterable, Mapping, Optional

from niquests.exceptions import RequestException

from webdavlite.io.base import AsyncIOProtocol
from webdavlite.lib.error import OperationError, RedirectError, log
from webdavlite.lib.url import URL, origin
from webdavlite.protocol.types import (
    DAVRequest,
    DAVResponse,
    Outcome,
    RedirectFailure,
    RetryableFailure,
    RetryPolicy,
    Success,
    TerminalFailure,
    should_retry,
)


def validate_response(
    response: DAVResponse,
    expected_codes: Iterable[int],
    method: str,
    path: str,
) -> DAVResponse:
    """
    Returns the response if its status is one of ``expected_codes``,
    raises OperationError otherwise.
    """
    expected_codes = frozenset(expected_codes)
    if response.status not in expected_codes:
        raise OperationError(
            "operation failed", response.status, method, path, expected_codes
        )
    return response


class RequestDispatcher:
    """
    Executes WebDAV operations through an AsyncIOProtocol.

    ``resolve`` turns an operation path into an absolute URL.  It is
    called once per attempt and once per redirect hop, so it sees the
    client's working directory as it is at that moment.
    """

    def __init__(
        self,
        io: AsyncIOProtocol,
        resolve: Callable[[str], str],
        max_attempts: int = 5,
        max_redirects: int = 5,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be greater than 0, got %s" % max_attempts)
        if max_redirects < 0:
            raise ValueError("max_redirects must not be negative, got %s" % max_redirects)
        self.io = io
        self.resolve = resolve
        self.max_attempts = max_attempts
        self.max_redirects = max_redirects
        self.retry_policy = retry_policy or RetryPolicy()

    async def send(
        self,
        method: str,
        path: str,
        expected_codes: Iterable[int],
        body: Optional[bytes] = None,
        headers: Optional[Mapping[str, str]] = None,
        stream: bool = False,
    ) -> DAVResponse:
        """
        Performs one logical operation and returns the final response.

        Raises the error of the last attempt once the attempts are used
        up, or at once if the failure is not worth retrying.

        With ``stream``, the body of the returned response is left unread
        in ``DAVResponse.stream``.  Streamed bodies of redirects and
        rejected responses are released on the way.
        """
        expected_codes = frozenset(expected_codes)

        attempt = 0
        while True:
            attempt += 1
            outcome = await self.attempt(method, path, expected_codes, body, headers, stream)
            if isinstance(outcome, Success):
                return outcome.response
            if not should_retry(outcome) or attempt >= self.max_attempts:
                raise outcome.error
            log.info(
                f"{method} {path} failed, attempt {attempt} of {self.max_attempts}: {outcome.error}"
            )
            await asyncio.sleep(self.retry_policy.delay(attempt))

    async def attempt(
        self,
        method: str,
        path: str,
        expected_codes: frozenset,
        body: Optional[bytes] = None,
        headers: Optional[Mapping[str, str]] = None,
        stream: bool = False,
    ) -> Outcome:
        """One attempt, following redirects on the same origin."""
        request = DAVRequest(method, self.resolve(path), dict(headers or {}), body, stream)

        hop = 0
        while True:
            hop += 1
            log.debug(f"{method}: {request.url}")
            try:
                response = await self.io.execute(request)
            except RequestException as e:
                return RetryableFailure(e)

            if not response.is_redirect or hop > self.max_redirects:
                break

            await response.release()
            location = response.header("Location")
            if not location:
                return RedirectFailure(
                    RedirectError(
                        "redirect with no location",
                        response.status,
                        method,
                        path,
                        expected_codes,
                    )
                )
            target = URL(location)
            if target.scheme and target.origin() != origin(request.url):
                return RedirectFailure(
                    RedirectError(
                        f"redirect origin change - {location}",
                        response.status,
                        method,
                        path,
                        expected_codes,
                    )
                )

            request = request.with_url(self.resolve(target.path))
            log.debug(f"{response.status} redirect, following to {request.url}")
            await asyncio.sleep(self.retry_policy.delay(hop))

        try:
            return Success(validate_response(response, expected_codes, method, path))
        except OperationError as e:
            await response.release()
            if response.is_redirect:
                return TerminalFailure(e)
            return RetryableFailure(e)
