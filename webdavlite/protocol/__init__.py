"""
Sans-I/O protocol layer: request/response types, dispatch outcomes and
the multistatus parser.  Nothing in here touches the network.
"""

from .types import (
    REDIRECT_CODES,
    DAVMethod,
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
from .xml_parsers import entry_from_response, parse_multistatus

__all__ = [
    # Types
    "REDIRECT_CODES",
    "DAVMethod",
    "DAVRequest",
    "DAVResponse",
    "RetryPolicy",
    # Dispatch outcomes
    "Outcome",
    "Success",
    "RetryableFailure",
    "RedirectFailure",
    "TerminalFailure",
    "should_retry",
    # Parsers
    "entry_from_response",
    "parse_multistatus",
]
