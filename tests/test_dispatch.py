#!/usr/bin/env python
"""
Unit tests for the request dispatcher: redirects, retries and status
validation.

Rule: None of the tests in this file should initiate any internet
communication. The transport is an AsyncMock returning canned responses.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import niquests
import pytest

from webdavlite.dispatch import RequestDispatcher, validate_response
from webdavlite.lib import error
from webdavlite.lib.url import PathContext
from webdavlite.protocol.types import (
    DAVResponse,
    RedirectFailure,
    RetryableFailure,
    RetryPolicy,
    Success,
    TerminalFailure,
    should_retry,
)

NO_DELAY = RetryPolicy(delay_factor=0, randomization_factor=0)


def make_response(status: int, headers: dict = None, body: bytes = b"") -> DAVResponse:
    return DAVResponse(status=status, headers=headers or {}, body=body)


def make_io(*responses) -> MagicMock:
    io = MagicMock()
    io.execute = AsyncMock(side_effect=list(responses))
    io.close = AsyncMock()
    return io


def make_dispatcher(io, base_url="https://host/base", **kwargs) -> RequestDispatcher:
    context = PathContext(base_url)
    kwargs.setdefault("retry_policy", NO_DELAY)
    return RequestDispatcher(io, context.resolve, **kwargs)


def requested_urls(io) -> list:
    return [call.args[0].url for call in io.execute.call_args_list]


class TestValidateResponse:
    def test_accepted_status_returns_response(self) -> None:
        response = make_response(201)
        assert validate_response(response, {201, 405}, "MKCOL", "dir") is response

    def test_unexpected_status_raises(self) -> None:
        with pytest.raises(error.OperationError) as excinfo:
            validate_response(make_response(500), [200, 204], "PUT", "a.txt")
        err = excinfo.value
        assert err.cause == "operation failed"
        assert err.status_code == 500
        assert err.method == "PUT"
        assert err.path == "a.txt"
        assert err.expected_codes == frozenset({200, 204})
        assert "statusCode: 500" in str(err)

    def test_operation_error_is_read_only(self) -> None:
        err = error.OperationError("operation failed", 500, "GET", "/x", {200})
        with pytest.raises(AttributeError):
            err.status_code = 200


class TestOutcomes:
    def test_only_retryable_failures_are_retried(self) -> None:
        err = error.OperationError("operation failed", 500, "GET", "/x", {200})
        assert should_retry(RetryableFailure(err))
        assert not should_retry(RedirectFailure(err))
        assert not should_retry(TerminalFailure(err))
        assert not should_retry(Success(make_response(200)))

    def test_retry_policy_delay(self) -> None:
        policy = RetryPolicy(delay_factor=0.2, randomization_factor=0, max_delay=30)
        assert policy.delay(1) == pytest.approx(0.4)
        assert policy.delay(3) == pytest.approx(1.6)
        assert policy.delay(100) == 30

    def test_retry_policy_jitter_is_bounded(self) -> None:
        policy = RetryPolicy(delay_factor=1, randomization_factor=0.25, max_delay=1000)
        for _ in range(50):
            assert 1.5 <= policy.delay(1) <= 2.5


class TestRequestDispatcher:
    def test_invalid_limits(self) -> None:
        with pytest.raises(ValueError):
            make_dispatcher(make_io(), max_attempts=0)
        with pytest.raises(ValueError):
            make_dispatcher(make_io(), max_redirects=-1)
        make_dispatcher(make_io(), max_redirects=0)

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        io = make_io(make_response(207, body=b"<multistatus/>"))
        dispatcher = make_dispatcher(io)

        response = await dispatcher.send(
            "PROPFIND", "/", {207}, headers={"User-Agent": "test", "Depth": "1"}
        )

        assert response.status == 207
        request = io.execute.call_args.args[0]
        assert request.method == "PROPFIND"
        assert request.url == "https://host/base/"
        assert request.headers == {"User-Agent": "test", "Depth": "1"}
        assert request.stream is False

    @pytest.mark.asyncio
    async def test_body_is_sent(self) -> None:
        io = make_io(make_response(201))
        await make_dispatcher(io).send("PUT", "a.txt", {201}, body=b"data")
        assert io.execute.call_args.args[0].body == b"data"

    @pytest.mark.asyncio
    async def test_follows_same_origin_redirect(self) -> None:
        io = make_io(
            make_response(301, {"Location": "/moved/a.txt"}),
            make_response(307, {"location": "https://host:443/again/a.txt"}),
            make_response(200, body=b"content"),
        )
        dispatcher = make_dispatcher(io, base_url="https://host")

        response = await dispatcher.send("GET", "a.txt", {200})

        assert response.body == b"content"
        assert requested_urls(io) == [
            "https://host/a.txt",
            "https://host/moved/a.txt",
            "https://host/again/a.txt",
        ]

    @pytest.mark.asyncio
    async def test_redirect_path_goes_through_resolver(self) -> None:
        io = make_io(
            make_response(302, {"Location": "relative.txt"}),
            make_response(200),
        )
        context = PathContext("https://host/base", "/dir/")
        dispatcher = RequestDispatcher(io, context.resolve, retry_policy=NO_DELAY)

        await dispatcher.send("GET", "/a.txt", {200})

        assert requested_urls(io) == [
            "https://host/base/a.txt",
            "https://host/base/dir/relative.txt",
        ]

    @pytest.mark.asyncio
    async def test_redirect_loop_stops_after_max_redirects(self) -> None:
        io = MagicMock()
        io.execute = AsyncMock(return_value=make_response(302, {"Location": "/loop"}))
        dispatcher = make_dispatcher(io, max_redirects=2, max_attempts=5)

        with pytest.raises(error.OperationError) as excinfo:
            await dispatcher.send("GET", "/start", {200})

        assert excinfo.value.status_code == 302
        assert not isinstance(excinfo.value, error.RedirectError)
        # two redirects followed, the third stops the loop, and no retry
        assert io.execute.call_count == 3

    @pytest.mark.asyncio
    async def test_no_redirects_allowed(self) -> None:
        io = make_io(make_response(308, {"Location": "/elsewhere"}))
        dispatcher = make_dispatcher(io, max_redirects=0)

        outcome = await dispatcher.attempt("GET", "/start", frozenset({200}))

        assert isinstance(outcome, TerminalFailure)
        assert outcome.error.status_code == 308
        assert io.execute.call_count == 1

    @pytest.mark.asyncio
    async def test_cross_origin_redirect_is_refused(self) -> None:
        io = make_io(make_response(302, {"Location": "https://evil.example.com/steal"}))
        dispatcher = make_dispatcher(io, max_redirects=5, max_attempts=5)

        with pytest.raises(error.RedirectError) as excinfo:
            await dispatcher.send("GET", "/a.txt", {200})

        assert "redirect origin change" in excinfo.value.cause
        assert excinfo.value.status_code == 302
        assert io.execute.call_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "location",
        [
            "http://host/base/a.txt",  # scheme change
            "https://host:8443/base/a.txt",  # port change
        ],
    )
    async def test_origin_includes_scheme_and_port(self, location) -> None:
        io = make_io(make_response(301, {"Location": location}))
        outcome = await make_dispatcher(io).attempt("GET", "/a.txt", frozenset({200}))
        assert isinstance(outcome, RedirectFailure)

    @pytest.mark.asyncio
    async def test_redirect_without_location(self) -> None:
        io = make_io(make_response(302, {"Location": ""}))
        dispatcher = make_dispatcher(io)

        with pytest.raises(error.RedirectError) as excinfo:
            await dispatcher.send("GET", "/a.txt", {200})

        assert excinfo.value.cause == "redirect with no location"
        assert io.execute.call_count == 1

    @pytest.mark.asyncio
    async def test_retries_until_max_attempts(self) -> None:
        io = MagicMock()
        io.execute = AsyncMock(return_value=make_response(500))
        dispatcher = make_dispatcher(io, max_attempts=3)

        with pytest.raises(error.OperationError) as excinfo:
            await dispatcher.send("GET", "/a.txt", {200})

        assert excinfo.value.status_code == 500
        assert io.execute.call_count == 3

    @pytest.mark.asyncio
    async def test_retry_then_success(self) -> None:
        io = make_io(make_response(503), make_response(200, body=b"ok"))
        response = await make_dispatcher(io).send("GET", "/a.txt", {200})
        assert response.body == b"ok"
        assert io.execute.call_count == 2

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self) -> None:
        io = make_io(niquests.exceptions.ConnectionError("connection reset"), make_response(204))
        response = await make_dispatcher(io).send("DELETE", "/a.txt", {204})
        assert response.status == 204

    @pytest.mark.asyncio
    async def test_transport_error_surfaces_after_last_attempt(self) -> None:
        io = MagicMock()
        io.execute = AsyncMock(side_effect=niquests.exceptions.Timeout("too slow"))
        dispatcher = make_dispatcher(io, max_attempts=2)

        with pytest.raises(niquests.exceptions.Timeout):
            await dispatcher.send("GET", "/a.txt", {200})
        assert io.execute.call_count == 2

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self) -> None:
        io = make_io(RuntimeError("bug"))
        with pytest.raises(RuntimeError):
            await make_dispatcher(io).send("GET", "/a.txt", {200})
        assert io.execute.call_count == 1

    @pytest.mark.asyncio
    async def test_backoff_between_attempts_and_hops(self) -> None:
        io = make_io(
            make_response(500),
            make_response(302, {"Location": "/b.txt"}),
            make_response(200),
        )
        policy = RetryPolicy(delay_factor=0.1, randomization_factor=0)
        dispatcher = make_dispatcher(io, retry_policy=policy)

        with patch("webdavlite.dispatch.asyncio.sleep", new=AsyncMock()) as sleep:
            await dispatcher.send("GET", "/a.txt", {200})

        delays = [call.args[0] for call in sleep.call_args_list]
        # after attempt 1 failed, then after the first hop of attempt 2
        assert delays == [pytest.approx(0.2), pytest.approx(0.2)]

    @pytest.mark.asyncio
    async def test_attempt_outcomes(self) -> None:
        dispatcher = make_dispatcher(make_io(make_response(200)))
        assert isinstance(await dispatcher.attempt("GET", "/", frozenset({200})), Success)

        dispatcher = make_dispatcher(make_io(make_response(404)))
        outcome = await dispatcher.attempt("GET", "/", frozenset({200}))
        assert isinstance(outcome, RetryableFailure)
        assert outcome.error.status_code == 404


class FakeStream:
    """A streamed body that records whether its connection was given back."""

    def __init__(self, *chunks: bytes) -> None:
        self.chunks = chunks
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


def make_streamed(status: int, headers: dict = None, *chunks: bytes) -> DAVResponse:
    return DAVResponse(status=status, headers=headers or {}, body=b"", stream=FakeStream(*chunks))


class TestStreaming:
    @pytest.mark.asyncio
    async def test_stream_flag_reaches_every_hop(self) -> None:
        io = make_io(
            make_streamed(307, {"Location": "/b.txt"}),
            make_streamed(200, None, b"ab", b"cd"),
        )
        response = await make_dispatcher(io).send("GET", "/a.txt", {200}, stream=True)
        assert [call.args[0].stream for call in io.execute.call_args_list] == [True, True]
        assert [chunk async for chunk in response.iter_body()] == [b"ab", b"cd"]

    @pytest.mark.asyncio
    async def test_redirect_body_is_released(self) -> None:
        redirect = make_streamed(302, {"Location": "/b.txt"})
        final = make_streamed(200, None, b"data")
        io = make_io(redirect, final)

        await make_dispatcher(io).send("GET", "/a.txt", {200}, stream=True)

        assert redirect.stream.closed
        assert not final.stream.closed

    @pytest.mark.asyncio
    async def test_rejected_body_is_released(self) -> None:
        failed = make_streamed(500)
        io = make_io(failed)
        with pytest.raises(error.OperationError):
            await make_dispatcher(io, max_attempts=1).send("GET", "/a.txt", {200}, stream=True)
        assert failed.stream.closed

    @pytest.mark.asyncio
    async def test_iter_body_without_stream(self) -> None:
        assert [chunk async for chunk in make_response(200, body=b"abc").iter_body()] == [b"abc"]
        assert [chunk async for chunk in make_response(204).iter_body()] == []
        await make_response(200).release()
