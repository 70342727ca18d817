from __future__ import annotations

import json
from typing import Any, Optional
import collections.abc
from xml.parsers.expat import ExpatError

import yaml
import xmltodict

from httprun.httprun_datatypes import NO_STRUCTURED_BODY


# --------------------------
# Helpers
# --------------------------

def _reject_constant(token: str):
    # NaN and Infinity are Python extensions, not JSON
    raise ValueError(f"not a JSON value: {token}")


def _to_builtin(obj: Any) -> Any:
    # xmltodict returns nested Mappings; the script host needs plain dicts/lists
    if isinstance(obj, list):
        return [_to_builtin(x) for x in obj]
    if isinstance(obj, collections.abc.Mapping):
        return {str(k): _to_builtin(v) for k, v in obj.items()}
    return obj


def detect_format(content_type: Optional[str] = None) -> Optional[str]:
    """
    Returns 'json', 'yaml' or 'xml' for a declared Content-Type, else None.
    Unlike body sniffing, YAML and XML are only ever decoded when declared:
    plain text is valid YAML and must stay a string.
    """
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    if 'json' in mime:
        return 'json'
    if 'yaml' in mime:
        return 'yaml'
    # Only generic XML; XHTML and other +xml documents stay text
    if mime in ('application/xml', 'text/xml'):
        return 'xml'
    return None


# --------------------------
# Public API
# --------------------------

def decode_body(text: str, *, content_type: Optional[str] = None) -> Any:
    """
    Opportunistically decode a response body into structured data.

    JSON is always attempted, whatever the declared type. A declared YAML or
    XML body is decoded when it yields a mapping or a list. Anything else
    returns NO_STRUCTURED_BODY; the raw text stays authoritative.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        pass

    fmt = detect_format(content_type)
    if fmt == 'yaml':
        try:
            value = yaml.safe_load(text)
        except yaml.YAMLError:
            return NO_STRUCTURED_BODY
        if isinstance(value, (dict, list)):
            # Round-trip through JSON so dates and other YAML scalars become text
            return json.loads(json.dumps(value, default=str))
        return NO_STRUCTURED_BODY
    if fmt == 'xml':
        try:
            return _to_builtin(xmltodict.parse(text))
        except ExpatError:
            return NO_STRUCTURED_BODY
    return NO_STRUCTURED_BODY


def load_mapping_file(text: str, *, fmt: str) -> Any:
    """Decode an environment file. fmt: 'json' | 'yaml'."""
    if fmt == 'json':
        return json.loads(text)
    if fmt == 'yaml':
        return yaml.safe_load(text)
    raise ValueError(f"Unsupported environment file format: {fmt!r}")


def pretty(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2)


__all__ = [
    "decode_body",
    "detect_format",
    "load_mapping_file",
    "pretty",
]
