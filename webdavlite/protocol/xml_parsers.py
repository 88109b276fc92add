"""
Pure functions for parsing WebDAV multistatus responses.

All functions in this module are pure - they take XML in and return
DirectoryEntry records out, with no side effects or I/O.

Tags are matched on their local name only, so the parser works no
matter which prefix or namespace the server uses for the DAV: elements.
"""

import logging
import re
from typing import Iterator, List, Optional, Union
from urllib.parse import unquote

from lxml import etree
from lxml.etree import _Element

from webdavlite.entry import DirectoryEntry
from webdavlite.lib import error

log = logging.getLogger(__name__)

_status_200 = re.compile(r"\b200\b")


def _local_name(elem: _Element) -> Optional[str]:
    ## comments and processing instructions have a non-string tag
    if not isinstance(elem.tag, str):
        return None
    return etree.QName(elem).localname


def _find_all(node: _Element, name: str) -> Iterator[_Element]:
    for elem in node.iter():
        if _local_name(elem) == name:
            yield elem


def _children(elem: _Element, name: str) -> List[_Element]:
    return [child for child in elem if _local_name(child) == name]


def _find_single(elem: Optional[_Element], name: str) -> Optional[_Element]:
    if elem is None:
        return None
    found = _children(elem, name)
    return found[0] if found else None


def _text(elem: Optional[_Element]) -> Optional[str]:
    if elem is None:
        return None
    return "".join(elem.itertext())


def entry_from_response(response: _Element, root_path: str = "") -> Optional[DirectoryEntry]:
    """
    Builds a DirectoryEntry from one ``response`` element, using the
    properties of the first propstat reporting a 200 status.

    Returns None if the response has no href, or no usable propstat.
    """
    href = _text(_find_single(response, "href")) or ""
    if not href:
        error.weirdness("response without href", response)
        return None

    # RFC 4918 section 14.7: the href is percent-encoded
    href = unquote(href)

    for propstat in _children(response, "propstat"):
        status = _text(_find_single(propstat, "status")) or ""
        if not _status_200.search(status):
            continue

        prop = _find_single(propstat, "prop")
        if prop is None:
            continue

        resourcetype = _find_single(prop, "resourcetype")
        return DirectoryEntry(
            raw_href=href,
            creation_date_text=_text(_find_single(prop, "creationdate")) or "",
            display_name=_text(_find_single(prop, "displayname")),
            content_length_text=_text(_find_single(prop, "getcontentlength")) or "",
            content_type=_text(_find_single(prop, "getcontenttype")) or "",
            etag=_text(_find_single(prop, "getetag")),
            last_modified_text=_text(_find_single(prop, "getlastmodified")) or "",
            is_collection_flag=_find_single(resourcetype, "collection") is not None,
            root_path=root_path,
        )

    log.debug(f"no propstat with status 200 for {href}")
    return None


def parse_multistatus(
    body: Union[str, bytes],
    root_path: str = "",
    huge_tree: bool = False,
) -> Iterator[DirectoryEntry]:
    """
    Parse a 207 Multi-Status response body into DirectoryEntry records.

    Entries are yielded lazily in document order.  If several
    ``response`` elements carry the same (decoded) href, only the first
    one is yielded.

    Args:
        body: Raw XML response, text or bytes
        root_path: Prefix stripped from the hrefs by ``DirectoryEntry.href``
        huge_tree: Allow parsing very large XML documents

    Raises:
        XMLSyntaxError: If body is not valid XML
    """
    if isinstance(body, str):
        ## lxml refuses str input carrying an encoding declaration
        body = body.encode("utf-8")
    parser = etree.XMLParser(huge_tree=huge_tree)
    tree = etree.fromstring(body, parser)

    seen = set()
    for response in _find_all(tree, "response"):
        entry = entry_from_response(response, root_path=root_path)
        if entry is None:
            continue
        if entry.raw_href in seen:
            log.debug(f"dropping duplicate response for {entry.raw_href}")
            continue
        seen.add(entry.raw_href)
        yield entry
