"""guestlens.backend_api -- wedding backend transport and endpoint wrappers.

This sub-package provides:

* :mod:`.retries` -- Retry decision logic, backoff and :class:`RetryPolicy`.
* :mod:`.transport` -- HTTP transport with credential injection and retries.
* :mod:`.categories` -- Category API wrappers.
* :mod:`.images` -- Image metadata and moderation API wrappers.
* :mod:`.carousel` -- Homepage carousel API wrappers.
* :mod:`.admin` -- Admin login.
"""

from __future__ import annotations

from .admin import AdminAuthAPI, AdminIdentity
from .carousel import CarouselAPI
from .categories import CategoryAPI
from .images import ImageAPI
from .retries import RetryPolicy, compute_backoff, is_transient, retry_async, should_retry
from .transport import BackendTransport

__all__ = [
    "AdminAuthAPI",
    "AdminIdentity",
    "BackendTransport",
    "CarouselAPI",
    "CategoryAPI",
    "ImageAPI",
    "RetryPolicy",
    "compute_backoff",
    "is_transient",
    "retry_async",
    "should_retry",
]
