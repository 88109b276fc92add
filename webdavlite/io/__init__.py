"""
I/O layer.

Executes DAVRequest objects and returns DAVResponse objects.  The I/O
layer is intentionally thin - it only handles HTTP transport.  Redirects,
retries and status checks belong to webdavlite.dispatch, and XML parsing
to webdavlite.protocol.

Example:
    from webdavlite.io import AsyncIO
    from webdavlite.protocol import DAVRequest

    async with AsyncIO() as io:
        response = await io.execute(
            DAVRequest("PROPFIND", "https://dav.example.com/", {"Depth": "1"})
        )
"""

from .async_ import AsyncIO
from .base import AsyncIOProtocol

__all__ = [
    "AsyncIOProtocol",
    "AsyncIO",
]
