"""
Defines the core data types for the httprun runtime.

This module provides the records produced by the request-file parser, the
read-only response view handed to handler scripts, the outcomes harvested
back from a handler run, and the error hierarchy shared by every stage.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# =================================================================
# Errors
# =================================================================

class HttprunError(Exception):
    """Base class for every error the runner reports."""


class ParseError(HttprunError):
    def __init__(self, line: int, message: str):
        super().__init__(f"Parse error at line {line}: {message}")
        self.line = line
        self.message = message


class SelectionError(HttprunError):
    pass


class EnvironmentFileError(HttprunError):
    def __init__(self, message: str):
        super().__init__(f"Environment error: {message}")


class TransportError(HttprunError):
    def __init__(self, message: str):
        super().__init__(f"HTTP error: {message}")


class ScriptError(HttprunError):
    """A handler script failed to parse or raised outside of a `client.test` block.

    `partial` carries whatever the engine recorded before the failure.
    """
    def __init__(self, message: str, partial: Optional['HandlerResult'] = None):
        super().__init__(f"JavaScript error: {message}")
        self.partial = partial


# =================================================================
# Request-file records
# =================================================================

class HttpMethod(Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def from_token(cls, token: str) -> Optional['HttpMethod']:
        try:
            return cls(token)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


@dataclass
class Header:
    name: str
    value: str


@dataclass
class Request:
    """One request block of an .http file.

    `url`, header values and `body` are templates that may still contain
    `{{...}}` placeholders; `resolved` returns the substituted copy.
    """
    method: HttpMethod
    url: str
    name: Optional[str] = None
    headers: List[Header] = field(default_factory=list)
    body: Optional[str] = None
    handler: Optional[str] = None
    line_number: int = 0

    @property
    def display_name(self) -> str:
        return self.name or "Unnamed request"

    def resolved(self, substitute) -> 'Request':
        return replace(
            self,
            url=substitute(self.url),
            headers=[Header(h.name, substitute(h.value)) for h in self.headers],
            body=substitute(self.body) if self.body is not None else None,
        )


@dataclass(frozen=True)
class InPlaceVariable:
    name: str
    value: str


@dataclass
class ParseResult:
    requests: List[Request] = field(default_factory=list)
    in_place_vars: List[InPlaceVariable] = field(default_factory=list)

    def __iter__(self):
        # Allows `requests, declarations = parse_http_file(text)`
        yield self.requests
        yield self.in_place_vars


# =================================================================
# Responses
# =================================================================

@dataclass(frozen=True)
class ContentType:
    mime_type: str
    charset: Optional[str] = None


class _NoStructuredBody:
    """Marks a body that did not decode; a decoded JSON `null` is None."""

    def __repr__(self) -> str:
        return "NO_STRUCTURED_BODY"

    def __bool__(self) -> bool:
        return False


NO_STRUCTURED_BODY: Any = _NoStructuredBody()


@dataclass(frozen=True)
class ResponseView:
    """The immutable view of a received response that a handler script sees."""
    status: int
    headers: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    body_raw: str = ""
    body_structured: Any = NO_STRUCTURED_BODY
    content_type: Optional[ContentType] = None

    @property
    def has_structured_body(self) -> bool:
        return self.body_structured is not NO_STRUCTURED_BODY

    def header_values(self, name: str) -> List[str]:
        wanted = name.lower()
        for key, values in self.headers:
            if key.lower() == wanted:
                return list(values)
        return []

    def header(self, name: str) -> Optional[str]:
        values = self.header_values(name)
        return values[0] if values else None


@dataclass(frozen=True)
class HttpResponse:
    """A response view plus transport metadata that only the report needs."""
    view: ResponseView
    elapsed_ms: int = 0

    @property
    def status(self) -> int:
        return self.view.status


# =================================================================
# Handler outcomes
# =================================================================

@dataclass(frozen=True)
class TestOutcome:
    __test__ = False  # keep pytest from collecting this as a test class

    name: str
    passed: bool
    failure_message: Optional[str] = None


@dataclass
class HandlerResult:
    global_vars: Dict[str, str] = field(default_factory=dict)
    test_results: List[TestOutcome] = field(default_factory=list)
    log_output: List[str] = field(default_factory=list)
