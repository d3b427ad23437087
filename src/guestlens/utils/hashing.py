"""MD5 helpers for stable item identifiers.

These hashes identify files in the working set (the same file dropped
twice maps to the same item).  They are **not** used for security.
"""

from __future__ import annotations

import hashlib


def md5_hash(data: str) -> str:
    """Return the hex-encoded MD5 digest of *data* (UTF-8 encoded).

    Examples
    --------
    >>> md5_hash("hello")
    '5d41402abc4b2a76b9719d911017c592'
    """
    return hashlib.md5(data.encode("utf-8")).hexdigest()


def item_fingerprint(filename: str, modified_at: float | None) -> str:
    """Derive an upload item identifier from filename and modification time.

    Files without a known modification time hash on the name alone.

    Examples
    --------
    >>> item_fingerprint("a.jpg", 1.0) == item_fingerprint("a.jpg", 1.0)
    True
    >>> item_fingerprint("a.jpg", 1.0) == item_fingerprint("a.jpg", 2.0)
    False
    """
    stamp = "" if modified_at is None else repr(float(modified_at))
    return md5_hash(f"{filename}\x00{stamp}")[:16]
