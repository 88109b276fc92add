#!/usr/bin/env python
"""
Async WebDAV client.

The client keeps a virtual working directory, so operations can be given
paths relative to it (``"notes.txt"``) or to the root of the endpoint
(``"/docs/notes.txt"``).  Every operation goes through the
RequestDispatcher, which follows same-origin redirects, retries
transient failures and checks the status code of the final response.

Example:
    async with AsyncDAVClient("https://dav.example.com", "me", "secret", path="/remote.php/dav") as client:
        await client.mkdirs("backups/2024")
        client.cd("backups/2024")
        await client.upload_file("db.dump", "db.dump")
        for entry in await client.propfind():
            print(entry.name, entry.bytes, entry.modified)
"""

import contextlib
import os
import sys
import warnings
from collections.abc import Mapping
from types import TracebackType
from typing import Any, AsyncIterator, Iterable, Iterator, List, Optional, Tuple, Union
from urllib.parse import unquote

import aiofiles
from niquests.auth import AuthBase
from niquests.exceptions import RequestException

from webdavlite import __version__
from webdavlite.dispatch import RequestDispatcher
from webdavlite.entry import DirectoryEntry
from webdavlite.io.async_ import AsyncIO
from webdavlite.io.base import AsyncIOProtocol
from webdavlite.lib import error
from webdavlite.lib.auth import build_auth
from webdavlite.lib.error import log
from webdavlite.lib.url import URL, PathContext, build_base_url
from webdavlite.protocol.types import DAVMethod, DAVResponse, RetryPolicy
from webdavlite.protocol.xml_parsers import parse_multistatus

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self

## connection parameters that get_davclient will accept from the
## environment or from a configuration file
CONNKEYS = {
    "url",
    "username",
    "password",
    "auth_type",
    "proxy",
    "timeout",
    "ssl_verify_cert",
    "ssl_cert",
    "huge_tree",
    "max_attempts",
    "max_redirects",
    "path",
    "protocol",
    "port",
}
_INT_KEYS = {"max_attempts", "max_redirects", "port"}
_BOOL_KEYS = {"huge_tree"}
_FLOAT_KEYS = {"timeout"}
_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


class AsyncDAVClient:
    """
    Async WebDAV client.

    The working directory is plain client state with no locking.  Only
    one task at a time may change it (``cd`` and ``mkdirs``); tasks
    running operations concurrently on the same client should use
    absolute paths.
    """

    url: URL = None
    huge_tree: bool = False

    def __init__(
        self,
        url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        path: Optional[str] = None,
        protocol: Optional[str] = None,
        port: Optional[int] = None,
        auth: Optional[AuthBase] = None,
        auth_type: Optional[str] = None,
        proxy: Optional[str] = None,
        timeout: Optional[float] = None,
        ssl_verify_cert: Union[bool, str] = True,
        ssl_cert: Union[str, Tuple[str, str], None] = None,
        headers: Optional[Mapping[str, str]] = None,
        huge_tree: bool = False,
        max_attempts: int = 5,
        max_redirects: int = 5,
        retry_policy: Optional[RetryPolicy] = None,
        io: Optional[AsyncIOProtocol] = None,
    ) -> None:
        """
        Initialize an async WebDAV client.

        Args:
            url: Server URL (``https://host[:port]``), or a bare host name if ``protocol`` is given.
            username: Username for authentication.
            password: Password for authentication (or bearer token).
            path: Root path on the server, appended to ``url``.
            protocol: ``http`` or ``https``, when ``url`` is a bare host name.
            port: Port, when ``url`` is a bare host name.
            auth: Custom auth object (niquests.auth.AuthBase).
            auth_type: Auth type ('basic', 'digest' or 'bearer').
            proxy: Proxy server (scheme://hostname:port).
            timeout: Request timeout in seconds.
            ssl_verify_cert: SSL certificate verification (bool or CA bundle path).
            ssl_cert: Client SSL certificate (path or (cert, key) tuple).
            headers: Additional headers for all requests.
            huge_tree: Enable XMLParser huge_tree for very large listings (security consideration).
            max_attempts: Attempts per operation, must be greater than 0.
            max_redirects: Redirects followed per attempt, must not be negative.
            retry_policy: Backoff between attempts and between redirects.
            io: Transport to use instead of a niquests session.
        """
        base_url = URL(build_base_url(url, protocol=protocol, port=port, path=path))

        # Credentials in the URL, explicit parameters take precedence
        if base_url.username and username is None:
            username = unquote(base_url.username)
        if base_url.password and password is None:
            password = unquote(base_url.password)
        self.url = base_url.unauth().strip_trailing_slash()
        self.username = username
        self.password = password
        self.huge_tree = huge_tree

        if auth and auth_type:
            log.error(
                "both auth object and auth_type sent to AsyncDAVClient.  The latter will be ignored."
            )
        self.auth = auth or build_auth(auth_type, username, password)

        self.headers: dict[str, str] = {
            "User-Agent": f"webdavlite/{__version__}",
        }
        self.headers.update(headers or {})

        self.io = io or AsyncIO(
            auth=self.auth,
            proxy=proxy,
            timeout=timeout,
            ssl_verify_cert=ssl_verify_cert,
            ssl_cert=ssl_cert,
        )
        self._context = PathContext(str(self.url))
        self.dispatcher = RequestDispatcher(
            self.io,
            self.get_url,
            max_attempts=max_attempts,
            max_redirects=max_redirects,
            retry_policy=retry_policy,
        )
        log.debug(f"client for {self.url}")

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the transport."""
        await self.io.close()

    # ==================== Working Directory ====================

    @property
    def cwd(self) -> str:
        return self._context.cwd

    @property
    def context(self) -> PathContext:
        return self._context

    def get_url(self, path: str) -> str:
        """Returns the absolute URL for ``path``"""
        return self._context.resolve(path)

    def cd(self, path: str) -> None:
        """
        Changes the working directory to ``path``.  The server is not
        asked whether the directory exists.
        """
        self._context = self._context.cd(path)

    @contextlib.contextmanager
    def _preserved_cwd(self) -> Iterator[PathContext]:
        saved = self._context
        try:
            yield saved
        finally:
            self._context = saved

    # ==================== Dispatch ====================

    async def request(
        self,
        method: str,
        path: str,
        expected_codes: Iterable[int],
        body: Union[bytes, str, None] = None,
        headers: Optional[Mapping[str, str]] = None,
        stream: bool = False,
    ) -> DAVResponse:
        """
        Sends ``method`` to ``path``, following redirects and retrying
        as configured.  With ``stream``, the body is left unread, to be
        consumed through ``DAVResponse.iter_body``.

        Raises:
            OperationError: the final status was not in ``expected_codes``
            RedirectError: a redirect without location, or to another origin
        """
        if isinstance(body, str):
            body = body.encode("utf-8")
        combined_headers = self.headers.copy()
        combined_headers.update(headers or {})
        return await self.dispatcher.send(
            method,
            path,
            expected_codes,
            body=body,
            headers=combined_headers,
            stream=stream,
        )

    # ==================== Collections ====================

    async def mkdir(self, path: str, safe: bool = True) -> DAVResponse:
        """
        Creates the collection ``path``.  With ``safe``, an already
        existing collection (405) is not an error.
        """
        expected_codes = {201}
        if safe:
            expected_codes.add(405)
        return await self.request(DAVMethod.MKCOL.value, path, expected_codes)

    async def mkdirs(self, path: str) -> None:
        """
        Like ``mkdir -p``: creates every collection along ``path``.

        Each segment is tried regardless of how the previous ones went,
        and failures are only logged, so a segment that already exists
        (or cannot be created) does not stop the rest.  The working
        directory is the same afterwards as before.
        """
        path = path.strip()
        dirs = [d for d in path.split("/") if d]
        if not dirs:
            return
        if path.startswith("/"):
            dirs[0] = "/" + dirs[0]

        with self._preserved_cwd():
            for dir in dirs:
                try:
                    await self.mkdir(dir, True)
                except (error.DAVError, RequestException) as e:
                    log.info(f"mkdirs: could not create {dir} in {self.cwd}: {e}")
                self.cd(dir)

    async def rmdir(self, path: str, safe: bool = True) -> DAVResponse:
        """
        Removes the collection ``path``.  With ``safe``, a collection
        that does not exist (404) is not an error.
        """
        path = path.strip()
        if not path.endswith("/"):
            # Apache is unhappy when directory to be deleted
            # does not end with '/'
            path += "/"
        expected_codes = {204}
        if safe:
            expected_codes.add(404)
        return await self.request(DAVMethod.DELETE.value, path, expected_codes)

    async def delete(self, path: str) -> DAVResponse:
        return await self.request(DAVMethod.DELETE.value, path, {204})

    # ==================== Files ====================

    async def upload(self, data: Union[bytes, str], remote_path: str) -> DAVResponse:
        """Stores ``data`` as the content of ``remote_path``"""
        return await self.request(
            DAVMethod.PUT.value, remote_path, {200, 201, 204}, body=data
        )

    async def upload_file(self, local_path: Union[str, os.PathLike], remote_path: str) -> DAVResponse:
        async with aiofiles.open(local_path, "rb") as f:
            data = await f.read()
        return await self.upload(data, remote_path)

    async def download_bytes(self, remote_path: str) -> bytes:
        response = await self.request(DAVMethod.GET.value, remote_path, {200})
        return response.body

    async def download_text(self, remote_path: str, encoding: str = "utf-8") -> str:
        return (await self.download_bytes(remote_path)).decode(encoding)

    async def download(self, remote_path: str, local_path: Union[str, os.PathLike]) -> None:
        """
        Saves the content of ``remote_path`` to the local file
        ``local_path``.  The body is written chunk by chunk as it
        arrives, it is never held in memory as a whole.
        """
        response = await self.request(DAVMethod.GET.value, remote_path, {200}, stream=True)
        try:
            async with aiofiles.open(local_path, "wb") as f:
                async for chunk in response.iter_body():
                    await f.write(chunk)
        finally:
            await response.release()

    # ==================== Listing ====================

    async def propfind_iter(
        self,
        path: Optional[str] = None,
        depth: int = 1,
        skip: int = 1,
        root_path: str = "",
    ) -> AsyncIterator[DirectoryEntry]:
        """
        Yields the directories and files under ``path``.

        Args:
            path: Collection to list, defaults to the endpoint root.
            depth: 0 or 1.  With depth 1 the server is asked for the
                children of ``path`` as well; with depth 0 only the
                entry for ``path`` itself is yielded.
            skip: Number of entries to skip (depth 1 only).  Defaults to
                1, which skips ``path`` itself.  The server always
                returns everything, the skipping is done here.
            root_path: Prefix stripped from ``DirectoryEntry.href``.
        """
        if depth not in (0, 1):
            raise ValueError("depth must be 0 or 1, got %r" % depth)
        response = await self.request(
            DAVMethod.PROPFIND.value,
            "/" if path is None else path,
            {207},
            headers={"Depth": str(depth)},
        )
        entries = parse_multistatus(response.body, root_path=root_path, huge_tree=self.huge_tree)
        if depth == 0:
            for entry in entries:
                yield entry
                break
            return
        for i, entry in enumerate(entries):
            if i >= skip:
                yield entry

    async def propfind(
        self,
        path: Optional[str] = None,
        depth: int = 1,
        skip: int = 1,
        root_path: str = "",
    ) -> List[DirectoryEntry]:
        """Same as ``propfind_iter``, but returns a list"""
        return [
            entry
            async for entry in self.propfind_iter(
                path=path, depth=depth, skip=skip, root_path=root_path
            )
        ]

    async def ls(self, path: Optional[str] = None, depth: int = 1) -> List[DirectoryEntry]:
        warnings.warn(
            "ls was renamed propfind",
            DeprecationWarning,
            stacklevel=2,
        )
        return await self.propfind(path=path, depth=depth)


# ==================== Factory Function ====================


def _client_params(conf: Mapping[str, Any]) -> dict:
    params = {}
    for key, value in conf.items():
        if key not in CONNKEYS or value is None or value == "":
            continue
        if key in _INT_KEYS and isinstance(value, str):
            value = int(value)
        elif key in _FLOAT_KEYS and isinstance(value, str):
            value = float(value)
        elif key in _BOOL_KEYS and isinstance(value, str):
            value = value.lower() in _TRUE
        elif key == "ssl_verify_cert" and isinstance(value, str):
            ## either a boolean or the path of a CA bundle
            if value.lower() in _TRUE:
                value = True
            elif value.lower() in _FALSE:
                value = False
        params[key] = value
    return params


def get_davclient(
    check_config_file: bool = True,
    config_file: Optional[str] = None,
    config_section: Optional[str] = None,
    environment: bool = True,
    **config_data: Any,
) -> AsyncDAVClient:
    """
    Returns an AsyncDAVClient.  It will not try to connect.  It will
    read configuration from various sources, dependent on the
    parameters given, in this order:

    * Data from the parameters given
    * Environment variables prepended with ``WEBDAV_``, like
      ``WEBDAV_URL``, ``WEBDAV_USERNAME``, ``WEBDAV_PASSWORD``,
      ``WEBDAV_MAX_ATTEMPTS``.
    * Environment variables ``WEBDAV_CONFIG_FILE`` and
      ``WEBDAV_CONFIG_SECTION`` point to a configuration file.
    * Configuration file, see webdavlite.config.  Keys are prepended
      with ``webdav_``; ``webdav_user`` and ``webdav_pass`` are accepted
      as well.

    Raises ValueError if no URL is found in any of them.
    """
    if config_data:
        return AsyncDAVClient(**config_data)

    if environment:
        conf = {}
        for conf_key in (
            x for x in os.environ if x.startswith("WEBDAV_") and not x.startswith("WEBDAV_CONFIG")
        ):
            conf[conf_key[7:].lower()] = os.environ[conf_key]
        params = _client_params(conf)
        if params.get("url"):
            return AsyncDAVClient(**params)
        if not config_file:
            config_file = os.environ.get("WEBDAV_CONFIG_FILE")
        if not config_section:
            config_section = os.environ.get("WEBDAV_CONFIG_SECTION")

    if check_config_file:
        from webdavlite import config

        cfg = config.read_config(config_file) or {}
        ## a meta-section or a glob pattern gives the first section with a url
        for section_name in config.expand_config_section(cfg, config_section or "default"):
            section = config.config_section(cfg, section_name)
            conf = {}
            for k in section:
                if k.startswith("webdav_") and section[k]:
                    key = k[7:]
                    if key == "pass":
                        key = "password"
                    if key == "user":
                        key = "username"
                    conf[key] = section[k]
            params = _client_params(conf)
            if params.get("url"):
                return AsyncDAVClient(**params)

    raise ValueError(
        "URL is required.  Provide it as a parameter, in the WEBDAV_URL environment variable or in a config file."
    )
