"""
Builds the read-only response view that handler scripts see.
"""
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from httprun.httprun_datatypes import ContentType, ResponseView
from httprun.httprun_serialize import decode_body

RawHeaders = Union[Mapping[str, Union[str, List[str]]], Iterable[Tuple[str, str]]]


def parse_content_type(value: Optional[str]) -> Optional[ContentType]:
    """Splits `type/subtype; charset=x` into a ContentType. Never raises."""
    if value is None:
        return None
    parts = value.split(";")
    charset = None
    for part in parts[1:]:
        part = part.strip()
        if part.lower().startswith("charset="):
            charset = part[len("charset="):].strip()
            break
    return ContentType(mime_type=parts[0].strip(), charset=charset)


def _group_headers(raw: RawHeaders) -> Tuple[Tuple[str, Tuple[str, ...]], ...]:
    """Collapses a header multimap into (name, values) pairs keyed case-insensitively.

    The first spelling of a name wins; value order is preserved.
    """
    if isinstance(raw, Mapping):
        pairs: List[Tuple[str, str]] = []
        for name, values in raw.items():
            if isinstance(values, str):
                pairs.append((name, values))
            else:
                pairs.extend((name, v) for v in values)
    else:
        pairs = list(raw)

    grouped: dict = {}
    spelling: dict = {}
    for name, value in pairs:
        key = name.lower()
        spelling.setdefault(key, name)
        grouped.setdefault(key, []).append(value)
    return tuple((spelling[k], tuple(v)) for k, v in grouped.items())


def build_response(
    status: int,
    headers: RawHeaders,
    body: str,
    content_type: Optional[str] = None,
) -> ResponseView:
    """Builds the immutable view of a received response.

    `content_type` is the already-detected Content-Type header; when omitted
    it is taken from the first Content-Type value in `headers`.
    """
    grouped = _group_headers(headers)
    if content_type is None:
        content_type = next((v[0] for k, v in grouped if k.lower() == "content-type"), None)
    return ResponseView(
        status=int(status),
        headers=grouped,
        body_raw=body,
        body_structured=decode_body(body, content_type=content_type),
        content_type=parse_content_type(content_type),
    )
