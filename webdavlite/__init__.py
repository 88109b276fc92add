#!/usr/bin/env python
import logging

__version__ = "1.0.0"

from .async_davclient import AsyncDAVClient
from .async_davclient import get_davclient
from .entry import DirectoryEntry
from .lib.error import OperationError

# Silence notification of no default logging handler
log = logging.getLogger("webdavlite")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = [
    "__version__",
    "AsyncDAVClient",
    "DirectoryEntry",
    "OperationError",
    "get_davclient",
]
