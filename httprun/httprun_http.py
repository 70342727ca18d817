import logging
import re
import time
from typing import List, Optional, Tuple

import httpx

from httprun.httprun_datatypes import HttpResponse, ParseError, Request, TransportError
from httprun.httprun_response import build_response

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

# Visible ASCII, space and tab only; httpx encodes header values as ASCII
_INVALID_HEADER_VALUE_RE = re.compile(r"[^\t\x20-\x7e]")


def _header_list(request: Request) -> List[Tuple[str, str]]:
    """Headers as an ordered list so duplicate names are all sent."""
    headers = []
    for h in request.headers:
        if _INVALID_HEADER_VALUE_RE.search(h.value):
            raise ParseError(request.line_number, f"Invalid header value '{h.value}' for '{h.name}'")
        headers.append((h.name, h.value))
    return headers


async def send_request(
    request: Request,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> HttpResponse:
    """
    Sends an already-substituted request and builds the response view.

    Non-2xx statuses are responses, not errors; only transport failures raise
    (as TransportError). There is no retry.
    """
    headers = _header_list(request)
    body = request.body.encode("utf-8") if request.body is not None else None

    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=transport) as client:
        start = time.perf_counter()
        try:
            resp = await client.request(
                request.method.value,
                request.url,
                headers=headers,
                content=body,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"{request.method} {request.url}: {e}") from e
        elapsed_ms = int((time.perf_counter() - start) * 1000)

    logger.debug("%s %s -> %d in %dms", request.method, request.url, resp.status_code, elapsed_ms)
    view = build_response(
        resp.status_code,
        resp.headers.multi_items(),
        resp.text,
        content_type=resp.headers.get("content-type"),
    )
    return HttpResponse(view=view, elapsed_ms=elapsed_ms)
