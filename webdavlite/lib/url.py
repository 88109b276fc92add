#!/usr/bin/env python
import urllib.parse
from dataclasses import dataclass
from dataclasses import replace
from typing import cast
from typing import Optional
from typing import Tuple
from typing import Union
from urllib.parse import ParseResult
from urllib.parse import SplitResult
from urllib.parse import urlparse

DEFAULT_PORTS = {"http": 80, "https": 443}


class URL:
    """
    This class is for wrapping URLs into objects.  It's used
    internally in the library, end users should not need to know
    anything about this class.

    Attribute lookups not found on the object itself are delegated to
    the parsed URL, so ``URL("https://host/x").hostname`` works as
    expected.
    """

    def __init__(self, url: Union[str, ParseResult, SplitResult]) -> None:
        if isinstance(url, (ParseResult, SplitResult)):
            self.url_parsed: Optional[Union[ParseResult, SplitResult]] = url
            self.url_raw = None
        else:
            self.url_raw = url
            self.url_parsed = None

    def __bool__(self) -> bool:
        return bool(self.url_raw or self.url_parsed)

    def __eq__(self, other: object) -> bool:
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))

    @classmethod
    def objectify(cls, url: Union["URL", str, ParseResult, SplitResult, None]) -> Optional["URL"]:
        if url is None or isinstance(url, URL):
            return url
        return URL(url)

    def __getattr__(self, attr: str):
        if "url_parsed" not in vars(self):
            raise AttributeError(attr)
        if self.url_parsed is None:
            self.url_parsed = cast(urllib.parse.ParseResult, urlparse(self.url_raw))
        return getattr(self.url_parsed, attr)

    def __str__(self) -> str:
        if self.url_raw is None:
            if self.url_parsed is None:
                raise ValueError("Unexpected value None for self.url_parsed")
            self.url_raw = self.url_parsed.geturl()
        return self.url_raw

    def __repr__(self) -> str:
        return "URL(%s)" % str(self)

    def strip_trailing_slash(self) -> "URL":
        if str(self).endswith("/"):
            return URL(str(self)[:-1])
        return self

    def is_auth(self) -> bool:
        return self.username is not None

    def unauth(self) -> "URL":
        """Returns the URL with any user:password@ part removed"""
        if not self.is_auth():
            return self
        netloc = self.hostname or ""
        if self.port:
            netloc = "%s:%s" % (netloc, self.port)
        return URL(
            ParseResult(
                self.scheme,
                netloc,
                self.path,
                self.params,
                self.query,
                self.fragment,
            )
        )

    def origin(self) -> Tuple[str, str, Optional[int]]:
        """
        The (scheme, host, port) triple used to decide whether two URLs
        belong to the same site.  Default ports are filled in, so
        ``https://host`` and ``https://host:443`` share an origin.
        """
        scheme = (self.scheme or "").lower()
        return (
            scheme,
            (self.hostname or "").lower(),
            self.port or DEFAULT_PORTS.get(scheme),
        )


def origin(url: Union[URL, str]) -> Tuple[str, str, Optional[int]]:
    return URL.objectify(url).origin()


def build_base_url(
    host: str,
    protocol: Optional[str] = None,
    port: Optional[int] = None,
    path: Optional[str] = None,
) -> str:
    """
    Assembles the endpoint all operation paths are resolved against.

    ``host`` is either a full URL (``https://dav.example.com``) or, when
    ``protocol`` is given, a bare host name.  ``path`` is appended
    verbatim.
    """
    if protocol is not None:
        base = "%s://%s" % (protocol, host)
        if port is not None:
            base += ":%s" % port
    elif host.startswith("https://") or host.startswith("http://"):
        base = host
    else:
        raise ValueError(
            "%s has no http:// or https:// scheme, and no protocol was given" % host
        )
    return base + (path or "")


def _normalize_dir(path: str) -> str:
    segments = [segment for segment in path.split("/") if segment]
    return "/".join(segments) + "/"


@dataclass(frozen=True)
class PathContext:
    """
    The virtual working directory of a client, together with the
    endpoint it is relative to.

    Paths starting with ``/`` are relative to ``base_url``, other
    paths are relative to ``cwd``.  Paths are concatenated verbatim;
    ``.`` and ``..`` are ordinary name components and are never
    collapsed.

    The context is immutable, ``cd`` returns a new one.
    """

    base_url: str
    cwd: str = "/"

    def resolve(self, path: str) -> str:
        if path.startswith("/"):
            return self.base_url + path
        return "%s%s%s" % (self.base_url, self.cwd, path)

    def cd(self, path: str) -> "PathContext":
        """
        Returns the context after changing directory to ``path``.  The
        server is not consulted, the caller should make sure the
        directory exists.
        """
        path = path.strip()
        if not path:
            return self
        stripped = _normalize_dir(path)
        if stripped == "/":
            cwd = "/"
        elif path.startswith("/"):
            cwd = "/" + stripped
        else:
            cwd = self.cwd + stripped
        return replace(self, cwd=cwd)
