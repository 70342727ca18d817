"""
A line-oriented scanner for IntelliJ-style .http request files.

The format is context sensitive (a blank line ends the headers, `###` ends a
request, `> {%` opens a handler script), so the scanner is an explicit state
machine with one branch per (state, line shape) pair. Every line shape that
is not recognised in a state is ignored; the scanner never fails.
"""

from __future__ import annotations

import logging
import re
from enum import Enum, auto
from typing import List, Optional

from httprun.httprun_datatypes import (
    Header, HttpMethod, InPlaceVariable, ParseResult, Request,
)

logger = logging.getLogger(__name__)

REQUEST_LINE_RE = re.compile(
    r"^(GET|POST|PUT|PATCH|DELETE|HEAD|OPTIONS)\s+(\S+)(?:\s+HTTP/[\d.]+)?$"
)
HEADER_LINE_RE = re.compile(r"^([A-Za-z0-9\-]+)\s*:\s*(.+)$")
HANDLER_START_RE = re.compile(r"^>\s*\{%\s*$")
HANDLER_END_RE = re.compile(r"^\s*%\}\s*$")
RESPONSE_HISTORY_RE = re.compile(r"^<>\s+")
IN_PLACE_VAR_RE = re.compile(r"^@(\S+)\s*=\s*(.+)$")


class ParserState(Enum):
    AWAITING_REQUEST = auto()
    READING_HEADERS = auto()
    READING_BODY = auto()
    READING_HANDLER = auto()


def _separator_name(trimmed: str) -> Optional[str]:
    """Returns the request name carried by a `### name` line, if any."""
    after = trimmed[3:].strip()
    return after or None


class _RequestBuilder:
    """Accumulates the pieces of the request currently being scanned."""

    def __init__(self):
        self.name: Optional[str] = None
        self._reset()

    def _reset(self):
        self.method: Optional[HttpMethod] = None
        self.url: Optional[str] = None
        self.line_number = 0
        self.headers: List[Header] = []
        self.body_lines: List[str] = []
        self.handler_lines: List[str] = []

    def start(self, method: HttpMethod, url: str, line_number: int):
        self.method = method
        self.url = url
        self.line_number = line_number

    def finalize(self) -> Optional[Request]:
        """Builds the pending request and clears every buffer.

        Returns None when no method/URL line was captured; a pending name is
        then kept for the next request.
        """
        request = None
        if self.method is not None and self.url is not None:
            body_text = "\n".join(self.body_lines)
            handler_text = "\n".join(self.handler_lines)
            request = Request(
                method=self.method,
                url=self.url,
                name=self.name,
                headers=self.headers,
                body=body_text.rstrip() if body_text.strip() else None,
                handler=handler_text if handler_text.strip() else None,
                line_number=self.line_number,
            )
            self.name = None
        self._reset()
        return request


def parse_http_file(content: str) -> ParseResult:
    """Parses .http file text into requests and in-place variable declarations."""
    result = ParseResult()
    pending = _RequestBuilder()
    state = ParserState.AWAITING_REQUEST

    def finalize():
        request = pending.finalize()
        if request is not None:
            result.requests.append(request)

    def close_block(trimmed: str):
        # `###` or `<>` ends the current request; only `###` may name the next one
        finalize()
        if trimmed.startswith("###"):
            name = _separator_name(trimmed)
            if name:
                pending.name = name

    for line_num, line in enumerate(content.splitlines(), start=1):
        trimmed = line.strip()

        match state:
            case ParserState.AWAITING_REQUEST:
                if not trimmed or trimmed.startswith("//") or trimmed.startswith("#"):
                    if trimmed.startswith("###"):
                        name = _separator_name(trimmed)
                        if name:
                            pending.name = name
                    continue

                m = IN_PLACE_VAR_RE.match(trimmed)
                if m:
                    result.in_place_vars.append(InPlaceVariable(m.group(1), m.group(2).strip()))
                    continue

                if RESPONSE_HISTORY_RE.match(trimmed):
                    continue

                m = REQUEST_LINE_RE.match(trimmed)
                if m:
                    pending.start(HttpMethod(m.group(1)), m.group(2), line_num)
                    state = ParserState.READING_HEADERS

            case ParserState.READING_HEADERS:
                if not trimmed:
                    state = ParserState.READING_BODY
                    continue
                if HANDLER_START_RE.match(trimmed):
                    state = ParserState.READING_HANDLER
                    continue
                if trimmed.startswith("###") or RESPONSE_HISTORY_RE.match(trimmed):
                    close_block(trimmed)
                    state = ParserState.AWAITING_REQUEST
                    continue
                m = HEADER_LINE_RE.match(trimmed)
                if m:
                    pending.headers.append(Header(m.group(1), m.group(2).strip()))
                else:
                    logger.debug("line %d: ignoring unrecognised header line %r", line_num, trimmed)

            case ParserState.READING_BODY:
                if HANDLER_START_RE.match(trimmed):
                    state = ParserState.READING_HANDLER
                    continue
                if trimmed.startswith("###") or RESPONSE_HISTORY_RE.match(trimmed):
                    close_block(trimmed)
                    state = ParserState.AWAITING_REQUEST
                    continue
                pending.body_lines.append(line)

            case ParserState.READING_HANDLER:
                if HANDLER_END_RE.match(trimmed):
                    finalize()
                    state = ParserState.AWAITING_REQUEST
                    continue
                pending.handler_lines.append(line)

    # A file may end mid-body or mid-handler
    finalize()

    logger.debug(
        "parsed %d request(s), %d in-place variable(s)",
        len(result.requests), len(result.in_place_vars),
    )
    return result
