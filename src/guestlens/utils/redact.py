"""Payload redaction for safe logging.

Before any backend payload is written to logs or debug dumps the
:func:`redact` function must be applied.  It enforces the following rules:

* **Secrets** (``wedauthkey``, passwords, session tokens, cookies) are
  replaced with a masked placeholder showing only the last four characters.
* **Base64 data URIs** (``data:<mime>;base64,...``), which is how image
  payloads travel to the storage gateway, are replaced with
  ``<data_uri:N_bytes>``.
* **Binary values** are replaced with ``<binary:N_bytes>``.
"""

from __future__ import annotations

import base64
import binascii
import copy
import re
from typing import Any

# Matches RFC 2397 data URIs with base64 encoding.
_DATA_URI_RE = re.compile(
    r"data:[a-zA-Z0-9_.+-]+/[a-zA-Z0-9_.+-]+;base64,[A-Za-z0-9+/=]+"
)

# If any of these appear in a key name (case-insensitive), the value is
# redacted.  Catches ``wedauthkey``, ``admnUsrPwd``, ``session_token`` etc.
_SENSITIVE_KEY_PATTERNS: frozenset[str] = frozenset({
    "authkey",
    "auth_key",
    "token",
    "secret",
    "password",
    "pwd",
    "cookie",
    "authorization",
    "session",
    "csrf",
})


def _mask(value: str) -> str:
    if len(value) >= 8:
        return f"<redacted:...{value[-4:]}>"
    return "<redacted>"


def _estimate_data_uri_bytes(uri: str) -> int:
    """Return the approximate decoded byte length of a data URI."""
    b64_part = uri.split(";base64,", 1)[-1]
    try:
        return len(base64.b64decode(b64_part, validate=True))
    except (binascii.Error, ValueError):
        return len(b64_part) * 3 // 4


def _redact_value(value: Any) -> Any:
    if isinstance(value, dict):
        return _redact_dict(value)
    if isinstance(value, list):
        return [_redact_value(item) for item in value]
    if isinstance(value, str):
        if _DATA_URI_RE.search(value):
            value = _DATA_URI_RE.sub(
                lambda m: f"<data_uri:{_estimate_data_uri_bytes(m.group(0))}_bytes>",
                value,
            )
        return value
    if isinstance(value, (bytes, bytearray)):
        return f"<binary:{len(value)}_bytes>"
    return value


def _redact_dict(d: dict) -> dict:
    result: dict = {}
    for key, value in d.items():
        key_lower = key.lower() if isinstance(key, str) else ""
        if any(pat in key_lower for pat in _SENSITIVE_KEY_PATTERNS):
            result[key] = _mask(value) if isinstance(value, str) else "<redacted>"
        else:
            result[key] = _redact_value(value)
    return result


def redact(payload: dict) -> dict:
    """Return a deep copy of *payload* with sensitive data redacted.

    The original *payload* is never mutated.

    Examples
    --------
    >>> redact({"wedauthkey": "k-123456789", "catID": "7"})
    {'wedauthkey': '<redacted:...6789>', 'catID': '7'}

    >>> redact({"image": "data:image/webp;base64,AAAA"})
    {'image': '<data_uri:3_bytes>'}
    """
    return _redact_dict(copy.deepcopy(payload))
