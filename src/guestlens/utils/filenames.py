"""Filename sanitisation for object-storage keys."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9.-]")


def sanitize_filename(name: str) -> str:
    """Restrict *name* to ``[A-Za-z0-9.-]``, replacing anything else with ``_``.

    Directory components are dropped first so a crafted name can never
    escape its storage prefix.

    Examples
    --------
    >>> sanitize_filename("Our first dance (1).JPG")
    'Our_first_dance__1_.JPG'
    >>> sanitize_filename("../../etc/passwd")
    'passwd'
    """
    base = PurePosixPath(name.replace("\\", "/")).name
    cleaned = _UNSAFE_RE.sub("_", base).lstrip(".")
    return cleaned or "image"


def replace_extension(name: str, extension: str) -> str:
    """Return *name* with its extension replaced by *extension*.

    *extension* includes the leading dot.  A name without an extension
    gets one appended.

    Examples
    --------
    >>> replace_extension("IMG_0001.HEIC", ".webp")
    'IMG_0001.webp'
    >>> replace_extension("photo", ".png")
    'photo.png'
    """
    stem, dot, _ = name.rpartition(".")
    if not dot or not stem:
        return f"{name}{extension}"
    return f"{stem}{extension}"
