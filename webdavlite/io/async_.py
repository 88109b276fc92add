"""
Asynchronous I/O implementation using the niquests library.
"""

from typing import AsyncIterator, Optional, Tuple, Union

from niquests import AsyncResponse, AsyncSession
from niquests.auth import AuthBase

from webdavlite.lib.error import log
from webdavlite.lib.url import URL
from webdavlite.protocol.types import DAVRequest, DAVResponse


class ResponseStream:
    """
    The body of a streamed niquests response, read ``chunk_size`` bytes
    at a time.  The connection is given back once the body has been
    read to the end, or on ``aclose``.
    """

    def __init__(self, response: AsyncResponse, chunk_size: int) -> None:
        self.response = response
        self.chunk_size = chunk_size
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in await self.response.iter_content(self.chunk_size):
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if not self.closed:
            self.closed = True
            await self.response.close()


class AsyncIO:
    """
    Asynchronous I/O shell using niquests.

    This is a thin wrapper that executes DAVRequest objects via HTTP
    and returns DAVResponse objects.  Redirect following is always
    disabled at this level.

    Example:
        async with AsyncIO(auth=HTTPBasicAuth("user", "secret")) as io:
            response = await io.execute(DAVRequest("GET", "https://dav.example.com/a.txt"))
    """

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        auth: Optional[AuthBase] = None,
        proxy: Optional[str] = None,
        timeout: Optional[float] = None,
        ssl_verify_cert: Union[bool, str] = True,
        ssl_cert: Union[str, Tuple[str, str], None] = None,
        chunk_size: int = 65536,
    ) -> None:
        """
        Args:
            session: Existing niquests AsyncSession to use (creates new if None)
            auth: Auth object attached to every request
            proxy: Proxy server (scheme://hostname:port)
            timeout: Request timeout in seconds
            ssl_verify_cert: SSL certificate verification (bool or CA bundle path)
            ssl_cert: Client SSL certificate (path or (cert, key) tuple)
            chunk_size: Bytes per chunk when a response body is streamed
        """
        self._session = session
        self._owns_session = session is None
        self.auth = auth
        self.proxy = proxy
        if self.proxy is not None and "://" not in self.proxy:
            self.proxy = "http://" + self.proxy
        self.timeout = timeout
        self.ssl_verify_cert = ssl_verify_cert
        self.ssl_cert = ssl_cert
        self.chunk_size = chunk_size

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            self._session = AsyncSession()
        return self._session

    async def execute(self, request: DAVRequest) -> DAVResponse:
        """
        Execute a DAVRequest and return DAVResponse.

        Args:
            request: The request to execute

        Returns:
            DAVResponse with status, headers, and body.  For a request
            with ``stream`` set, the body is left unread in
            ``DAVResponse.stream``.
        """
        proxies = None
        if self.proxy is not None:
            proxies = {URL(request.url).scheme: self.proxy}
            log.debug(f"using proxy - {proxies}")

        r = await self.session.request(
            request.method,
            request.url,
            data=request.body,
            headers=dict(request.headers),
            auth=self.auth,
            timeout=self.timeout,
            allow_redirects=False,
            proxies=proxies,
            verify=self.ssl_verify_cert,
            cert=self.ssl_cert,
            stream=request.stream,
        )
        log.debug(f"server responded with {r.status_code} {r.reason}")
        if request.stream:
            return DAVResponse(
                status=r.status_code,
                headers=dict(r.headers),
                body=b"",
                reason=r.reason or "",
                stream=ResponseStream(r, self.chunk_size),
            )
        return DAVResponse(
            status=r.status_code,
            headers=dict(r.headers),
            body=r.content or b"",
            reason=r.reason or "",
        )

    async def close(self) -> None:
        """Close the session if we created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "AsyncIO":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args) -> None:
        """Async context manager exit."""
        await self.close()
