"""Object store protocol and storage-key helpers.

Stored photos are addressed by a key of the form::

    {logical-path}/{uuid4}-{sanitized-filename}{ext}

e.g. ``user_images/1b9d6bcd-bbfd-4b2d-9b5d-ab8dfbbd4bed-first_dance.webp``.
The public URL is virtual-hosted style, so the key is recoverable from
the URL path.
"""

from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

from guestlens.utils.filenames import replace_extension, sanitize_filename


@runtime_checkable
class ObjectStore(Protocol):
    """Write and delete access to the photo object store."""

    async def put(self, data: bytes, key: str, content_type: str) -> str:
        """Store *data* under *key* and return its public URL.

        Raises :class:`~guestlens.errors.GuestlensStorageError` (or a
        transport error) on failure.
        """
        ...

    async def delete(self, url: str) -> bool:
        """Delete the object behind *url*.

        Returns ``False`` when *url* does not address an object in this
        store.  Raises :class:`~guestlens.errors.GuestlensStorageError`
        when the store refuses the delete.
        """
        ...


def build_object_key(
    path_prefix: str,
    filename: str,
    extension: str,
    *,
    token: str | None = None,
) -> str:
    """Build a collision-free storage key.

    Parameters
    ----------
    path_prefix:
        Logical folder, e.g. ``"user_images"``.  Surrounding slashes are
        ignored.
    filename:
        The user's filename; sanitised to ``[A-Za-z0-9.-]``.
    extension:
        Extension of the encoded payload (with leading dot); replaces the
        filename's own extension.
    token:
        Unique prefix.  Defaults to a fresh UUID4.

    Examples
    --------
    >>> build_object_key("user_images", "Our dance.HEIC", ".webp", token="abc")
    'user_images/abc-Our_dance.webp'
    """
    unique = token or str(uuid.uuid4())
    name = replace_extension(sanitize_filename(filename), extension)
    prefix = path_prefix.strip("/")
    if prefix:
        return f"{prefix}/{unique}-{name}"
    return f"{unique}-{name}"


def key_from_url(url: str) -> str | None:
    """Recover the storage key from a public object URL.

    Returns ``None`` when *url* is not an absolute http(s) URL with a path.

    Examples
    --------
    >>> key_from_url("https://b.s3.eu-west-1.amazonaws.com/user_images/x-a.webp")
    'user_images/x-a.webp'
    >>> key_from_url("not a url") is None
    True
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    key = unquote(parsed.path.lstrip("/"))
    return key or None


def public_url(bucket: str, region: str, key: str) -> str:
    """Virtual-hosted-style URL for *key* in *bucket*."""
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"
