"""SDK configuration for guestlens.

:class:`GuestlensConfig` is a dataclass that captures every tuneable knob
exposed by the SDK.  Instances are passed to :class:`GuestlensClient` and
to every component it builds.

Module-level constants document the defaults observed in production:

* :data:`DEFAULT_MAX_UPLOAD_BYTES` -- per-file upload cap (20 MiB).
* :data:`DEFAULT_MAX_DIMENSION` -- longest side after transcoding (4096 px).
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Literal

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024
"""Largest source file accepted for upload."""

DEFAULT_MAX_DIMENSION: int = 4096
"""Images whose longest side exceeds this are downsampled to it."""

GUEST_UPLOAD_PREFIX = "user_images"
CAROUSEL_UPLOAD_PREFIX = "carousel_images"

_SECRET_FIELDS = frozenset({"auth_key", "session_secret"})


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclass
class GuestlensConfig:
    """Complete configuration for a guestlens client.

    Parameters
    ----------
    backend_url:
        Root URL of the wedding backend API.
    wedding_id:
        Identifier of the wedding whose gallery is managed.  Sent as
        ``wedId`` with every backend call.
    auth_key:
        Shared backend key sent as ``wedauthkey``.  Never logged.
    storage_upload_path / storage_delete_path:
        Backend-mediated object storage endpoints used by
        :class:`~guestlens.storage.HttpStorageGateway`.
    s3_bucket / s3_region:
        Bucket and region for :class:`~guestlens.storage.S3ObjectStore`.
    guest_upload_prefix / carousel_upload_prefix:
        Logical storage paths for guest submissions and carousel slides.
    max_upload_bytes:
        Maximum size of one source file.  Oversized files are rejected
        before any network call.
    max_dimension:
        Longest side (pixels) after transcoding.  Smaller images are never
        upscaled.
    webp_quality:
        Pillow quality (0-100) for WebP output.
    heic_quality:
        Pillow quality (0-100) when converting HEIC/HEIF to WebP.
    upload_chunk_size:
        Number of images per storage-upload chunk.  Chunks are sent
        sequentially.
    upload_max_attempts:
        Attempts per upload chunk (including the first).
    retry_max_attempts:
        Attempts per backend request for retryable HTTP errors.
    retry_base_delay:
        Base delay (seconds) for exponential backoff.
    retry_max_delay:
        Upper cap (seconds) on computed backoff delay.
    retry_jitter:
        Randomly scale backoff intervals to 50-100 % of their value.
    timeout_seconds:
        Timeout for metadata and moderation requests.
    upload_timeout_seconds:
        Timeout for storage uploads.
    moderation_order:
        ``"oldest_first"`` reviews the backlog in arrival order;
        ``"newest_first"`` shows recent submissions first.
    session_secret:
        HMAC secret for admin session tokens.  Never logged.
    session_ttl_seconds:
        Lifetime of an admin session token and its cookie.
    session_cookie_name / session_cookie_secure:
        Cookie carrying the admin session.
    csrf_cookie_name / csrf_header_name:
        Double-submit CSRF cookie and header names.
    cleanup_orphans:
        Delete storage objects whose metadata registration failed.
    metrics:
        Optional :class:`~guestlens.observability.MetricsHook`.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    debug_dump_payload:
        Write the (redacted) backend payloads to *stderr*.
    """

    # ── Backend ─────────────────────────────────────────────────────────
    backend_url: str = "http://localhost:8080"

    wedding_id: str = ""

    auth_key: str = ""

    # ── Storage ─────────────────────────────────────────────────────────
    storage_upload_path: str = "/api/storage/upload"

    storage_delete_path: str = "/api/storage/delete"

    s3_bucket: str | None = None

    s3_region: str | None = None

    guest_upload_prefix: str = GUEST_UPLOAD_PREFIX

    carousel_upload_prefix: str = CAROUSEL_UPLOAD_PREFIX

    # ── Images ──────────────────────────────────────────────────────────
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES

    max_dimension: int = DEFAULT_MAX_DIMENSION

    webp_quality: int = 92

    heic_quality: int = 90

    # ── Upload batching ─────────────────────────────────────────────────
    upload_chunk_size: int = 1

    upload_max_attempts: int = 3

    # ── Retry ───────────────────────────────────────────────────────────
    retry_max_attempts: int = 3

    retry_base_delay: float = 1.0

    retry_max_delay: float = 8.0

    retry_jitter: bool = True

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 15.0

    upload_timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Moderation ──────────────────────────────────────────────────────
    moderation_order: Literal["oldest_first", "newest_first"] = "oldest_first"

    # ── Admin session / CSRF ────────────────────────────────────────────
    session_secret: str = ""

    session_ttl_seconds: int = 60 * 60

    session_cookie_name: str = "admin_session"

    session_cookie_secure: bool = True

    csrf_cookie_name: str = "csrf-token"

    csrf_header_name: str = "X-CSRF-Token"

    # ── Failure handling ────────────────────────────────────────────────
    cleanup_orphans: bool = True

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        parsed = urlparse(self.backend_url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"backend_url must be an http(s) URL, got {self.backend_url!r}")
        if parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"backend_url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS to protect the wedding auth key."
            )

        if self.max_upload_bytes <= 0:
            raise ValueError(f"max_upload_bytes must be > 0, got {self.max_upload_bytes}")
        if self.max_dimension < 1:
            raise ValueError(f"max_dimension must be >= 1, got {self.max_dimension}")
        for name in ("webp_quality", "heic_quality"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be between 0 and 100, got {value}")
        if self.upload_chunk_size < 1:
            raise ValueError(f"upload_chunk_size must be >= 1, got {self.upload_chunk_size}")
        if self.upload_max_attempts < 1:
            raise ValueError(f"upload_max_attempts must be >= 1, got {self.upload_max_attempts}")
        if self.retry_max_attempts < 1:
            raise ValueError(f"retry_max_attempts must be >= 1, got {self.retry_max_attempts}")
        if self.retry_base_delay < 0:
            raise ValueError(f"retry_base_delay must be >= 0, got {self.retry_base_delay}")
        if self.retry_max_delay < 0:
            raise ValueError(f"retry_max_delay must be >= 0, got {self.retry_max_delay}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.upload_timeout_seconds <= 0:
            raise ValueError(
                f"upload_timeout_seconds must be > 0, got {self.upload_timeout_seconds}"
            )
        if self.session_ttl_seconds <= 0:
            raise ValueError(f"session_ttl_seconds must be > 0, got {self.session_ttl_seconds}")
        if self.moderation_order not in ("oldest_first", "newest_first"):
            raise ValueError(
                "moderation_order must be 'oldest_first' or 'newest_first', "
                f"got {self.moderation_order!r}"
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> GuestlensConfig:
        """Build a config from the deployment environment.

        Reads ``API_BACKEND_URL``, ``WEDDING_ID``, ``AUTH_KEY``,
        ``JWT_SECRET``, ``AWS_S3_BUCKET_NAME`` and ``AWS_S3_REGION``.
        Keyword arguments override the environment.
        """
        values: dict[str, Any] = {}
        env_map = {
            "backend_url": "API_BACKEND_URL",
            "wedding_id": "WEDDING_ID",
            "auth_key": "AUTH_KEY",
            "session_secret": "JWT_SECRET",
            "s3_bucket": "AWS_S3_BUCKET_NAME",
            "s3_region": "AWS_S3_REGION",
        }
        for field_name, env_name in env_map.items():
            raw = os.environ.get(env_name, "").strip()
            if raw:
                values[field_name] = raw
        values.update(overrides)
        return cls(**values)

    def __repr__(self) -> str:
        """Mask secrets to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name in _SECRET_FIELDS:
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"{f.name}='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"GuestlensConfig({', '.join(parts)})"
