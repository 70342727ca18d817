# httprun_runtime.py

import logging
from dataclasses import dataclass, replace
from typing import List, Mapping, Optional, Sequence, Tuple

import httpx

from httprun.httprun_datatypes import (
    HttprunError, ParseResult, Request, ScriptError, SelectionError, TestOutcome,
)
from httprun.httprun_http import DEFAULT_TIMEOUT, send_request
from httprun.httprun_printer import Printer
from httprun.httprun_script import ScriptHost
from httprun.httprun_variables import VariableStore

logger = logging.getLogger(__name__)

Selected = List[Tuple[int, Request]]

# ===================================================================
# 1. Selection & URL helpers
# ===================================================================


def select_requests(
    requests: Sequence[Request],
    name: Optional[str] = None,
    index: Optional[int] = None,
) -> Selected:
    """
    Returns (0-based position, request) pairs to run.

    `name` matches a case-insensitive substring of the request name; `index`
    is 1-based and must be within range. With neither, everything is selected.
    """
    if name is not None:
        needle = name.lower()
        return [(i, r) for i, r in enumerate(requests) if r.name and needle in r.name.lower()]
    if index is not None:
        if index < 1 or index > len(requests):
            raise SelectionError(f"Index {index} out of range (1-{len(requests)})")
        return [(index - 1, requests[index - 1])]
    return list(enumerate(requests))


def has_url_scheme(url: str) -> bool:
    idx = url.find("://")
    if idx <= 0:
        return False
    scheme = url[:idx]
    if not (scheme[0].isascii() and scheme[0].isalpha()):
        return False
    has_plus_or_dash = False
    has_dot = False
    for c in scheme[1:]:
        if c.isascii() and c.isalnum():
            continue
        if c in "+-":
            has_plus_or_dash = True
        elif c == ".":
            has_dot = True
        else:
            return False
    # A dotted prefix without + or - looks like a host name, not a scheme
    return not (has_dot and not has_plus_or_dash)


def ensure_http_scheme(url: str) -> str:
    trimmed = url.strip()
    if has_url_scheme(trimmed):
        return trimmed
    return f"https://{trimmed}"


# ===================================================================
# 2. Running
# ===================================================================


@dataclass
class RunSummary:
    total: int = 0
    passed: int = 0
    failed: int = 0
    errors: int = 0

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.errors == 0

    def count(self, outcomes: Sequence[TestOutcome]):
        for outcome in outcomes:
            if outcome.passed:
                self.passed += 1
            else:
                self.failed += 1


class RequestRunner:
    """Sequences parse output through substitution, transport and handlers."""

    def __init__(
        self,
        parsed: ParseResult,
        env_vars: Optional[Mapping[str, str]] = None,
        *,
        printer: Optional[Printer] = None,
        timeout: float = DEFAULT_TIMEOUT,
        verbose: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.parsed = parsed
        self.variables = VariableStore(env_vars)
        for var in parsed.in_place_vars:
            self.variables.set_in_place(var.name, var.value)
        self.printer = printer or Printer()
        self.timeout = timeout
        self.verbose = verbose
        self.transport = transport
        self.script_host = ScriptHost()

    def resolve(self, request: Request) -> Request:
        resolved = request.resolved(self.variables.substitute)
        resolved.url = ensure_http_scheme(resolved.url)
        return resolved

    def dry_run(self, selected: Selected, source: str):
        self.printer.dry_run_header(len(selected), source)
        for i, request in selected:
            # Only the URL is substituted in a dry run
            shown = replace(request, url=ensure_http_scheme(self.variables.substitute(request.url)))
            self.printer.dry_run_request(i + 1, shown)

    async def run_one(self, position: int, request: Request, summary: RunSummary):
        resolved = self.resolve(request)
        self.printer.request_header(position + 1, resolved)
        if self.verbose:
            self.printer.verbose_request(resolved)

        try:
            response = await send_request(resolved, timeout=self.timeout, transport=self.transport)
        except HttprunError as e:
            self.printer.error(str(e))
            summary.errors += 1
            return

        self.printer.response_status(response)
        if self.verbose:
            self.printer.verbose_response(response)

        if resolved.handler is None:
            return

        try:
            result = self.script_host.run(resolved.handler, response.view, self.variables.global_vars)
        except ScriptError as e:
            self.printer.error(f"Handler error: {e}")
            summary.errors += 1
            if e.partial is not None and e.partial.test_results:
                self.printer.test_results(e.partial.test_results)
                summary.count(e.partial.test_results)
            return

        self.variables.merge_globals(result.global_vars)
        if result.log_output:
            self.printer.log_output(result.log_output)
        if result.test_results:
            self.printer.test_results(result.test_results)
            summary.count(result.test_results)

    async def run(self, selected: Selected) -> RunSummary:
        summary = RunSummary(total=len(selected))
        for position, request in selected:
            await self.run_one(position, request, summary)
        logger.debug("run finished: %s", summary)
        self.printer.summary(summary.total, summary.passed, summary.failed, summary.errors)
        return summary
