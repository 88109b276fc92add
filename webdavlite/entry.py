"""
The DirectoryEntry record, one per resource found in a multistatus
response.

The raw property values are stored as delivered by the server and never
validated.  Everything else (kind, size, timestamps, name parts) is
derived from them on access, with fallbacks for absent or malformed
values.
"""

import posixpath
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone
from typing import Optional

from dateutil.parser import isoparse

from webdavlite.lib.rfc1123 import try_parse_rfc1123_date

NULL_DATE = datetime.fromtimestamp(0, tz=timezone.utc)
UNIX_DIRECTORY = "httpd/unix-directory"


def _parse_creation_date(text: str) -> datetime:
    ## RFC 4918 section 15.1 says creationdate is RFC 3339
    if not text:
        return NULL_DATE
    try:
        date = isoparse(text)
    except (ValueError, OverflowError):
        return NULL_DATE
    if date.tzinfo is None:
        return date.replace(tzinfo=timezone.utc)
    return date.astimezone(timezone.utc)


def _trim(href: str) -> str:
    trimmed = href.rstrip("/")
    return trimmed or href[:1]


@dataclass(frozen=True, eq=False)
class DirectoryEntry:
    """
    A WebDAV file or collection.

    ``raw_href`` is the percent-decoded path of the resource.  All
    entries coming from one ``parse_multistatus`` call have unique,
    non-empty ``raw_href`` values.
    """

    raw_href: str
    creation_date_text: str = ""
    display_name: Optional[str] = None
    content_length_text: str = ""
    content_type: str = ""
    etag: Optional[str] = None
    last_modified_text: str = ""
    is_collection_flag: bool = False
    root_path: str = ""

    @property
    def href(self) -> str:
        """``raw_href`` without the ``root_path`` prefix (if set)"""
        if self.root_path and self.raw_href.startswith(self.root_path):
            return self.raw_href[len(self.root_path) :]
        return self.raw_href

    @property
    def path(self) -> str:
        return self.href

    @property
    def is_directory(self) -> bool:
        return (
            self.is_collection_flag
            or self.href.endswith("/")
            or self.content_type == UNIX_DIRECTORY
        )

    @property
    def bytes(self) -> int:
        """Size of the file, 0 for directories and unknown sizes"""
        if self.is_directory or not self.content_length_text:
            return 0
        try:
            return int(self.content_length_text)
        except ValueError:
            return 0

    @property
    def basename(self) -> str:
        trimmed = _trim(self.href)
        if trimmed == "/":
            return trimmed
        return posixpath.basename(trimmed)

    @property
    def dirname(self) -> str:
        return posixpath.dirname(_trim(self.href)) or "."

    @property
    def ext(self) -> str:
        """The extension of ``basename``, including the dot"""
        return posixpath.splitext(self.basename)[1]

    @property
    def name_without_ext(self) -> str:
        return posixpath.splitext(self.basename)[0]

    @property
    def created(self) -> datetime:
        return _parse_creation_date(self.creation_date_text)

    @property
    def modified(self) -> datetime:
        return try_parse_rfc1123_date(self.last_modified_text) or self.created

    @property
    def name(self) -> str:
        """The display name, falling back to ``basename``"""
        if self.has_display_name:
            return self.display_name
        return self.basename

    @property
    def has_content_type(self) -> bool:
        return bool(self.content_type)

    @property
    def has_display_name(self) -> bool:
        return bool(self.display_name)

    @property
    def has_etag(self) -> bool:
        return bool(self.etag)

    def _raw_fields(self) -> tuple:
        return (
            self.raw_href,
            self.creation_date_text,
            self.display_name,
            self.content_length_text,
            self.content_type,
            self.etag,
            self.last_modified_text,
            self.is_collection_flag,
        )

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, DirectoryEntry):
            return NotImplemented
        if self.has_etag and other.has_etag:
            return self.etag == other.etag
        return self._raw_fields() == other._raw_fields()

    def __hash__(self) -> int:
        if self.has_etag:
            return hash(self.etag)
        return hash(self._raw_fields())

    def __repr__(self) -> str:
        buf = ["name: %s" % self.name]
        if self.is_directory:
            buf.append("isDirectory: True")
        else:
            buf.append("bytes: %s" % self.bytes)
        buf.append("dirname: %s" % self.dirname)
        created = self.created
        if created is NULL_DATE:
            buf.append("created: [%s]" % created.isoformat())
        else:
            buf.append("created: %s" % created.isoformat())
        modified = try_parse_rfc1123_date(self.last_modified_text)
        if modified is None:
            buf.append("modified: [%s]" % created.isoformat())
        else:
            buf.append("modified: %s" % modified.isoformat())
        buf.append("contentType: %s" % self.content_type)
        buf.append("etag: %s" % self.etag)
        return "%s{%s}" % (self.__class__.__name__, ", ".join(buf))
