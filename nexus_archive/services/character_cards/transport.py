"""
Card Transport Encoding
=======================

Cards travel inside text chunks as Base64(UTF-8(JSON)).
"""

import base64
import binascii
import json
import re
from typing import Any, Optional

from .errors import TransportDecodeError

_WHITESPACE = re.compile(r"[\t\n\f\r ]+")


def decode_transport(text: str, source: Optional[str] = None) -> Any:
    """
    Decode a Base64 chunk payload into a JSON value.

    ASCII whitespace anywhere in the payload (line wrapping included) is
    ignored and missing ``=`` padding is restored.

    Raises:
        TransportDecodeError: If Base64, UTF-8 or JSON decoding fails
    """
    payload = _WHITESPACE.sub("", text)
    payload += "=" * (-len(payload) % 4)

    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise TransportDecodeError(f"Invalid Base64 card payload: {e}", source)

    try:
        decoded = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TransportDecodeError(f"Card payload is not valid UTF-8: {e}", source)

    try:
        return json.loads(decoded)
    except json.JSONDecodeError as e:
        raise TransportDecodeError(f"Card payload is not valid JSON: {e}", source)


def encode_transport(value: Any) -> str:
    """Serialize a JSON value compactly and Base64-encode it."""
    serialized = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return base64.b64encode(serialized.encode("utf-8")).decode("ascii")
