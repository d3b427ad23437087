"""guestlens: wedding photo submission and moderation SDK.

Public re-exports
-----------------

* **Client:** :class:`GuestlensClient`
* **Configuration:** :class:`GuestlensConfig`
* **Errors:** Every :class:`GuestlensError` subclass and :class:`ErrorCode`
* **Models:** All records, result dataclasses and enums

Usage::

    from guestlens import GuestlensClient, GuestlensConfig

    async with GuestlensClient(GuestlensConfig.from_env()) as client:
        session = client.authenticate(cookie, csrf_header=h, csrf_cookie=c)
        queue = client.moderation(session)
        await queue.load()
        image = queue.present()
        await queue.swipe("right")
"""

from __future__ import annotations

# ── Client ─────────────────────────────────────────────────────────────
from guestlens.client import GuestlensClient

# ── Configuration ───────────────────────────────────────────────────────
from guestlens.config import (
    DEFAULT_MAX_DIMENSION,
    DEFAULT_MAX_UPLOAD_BYTES,
    GuestlensConfig,
)

# ── Errors ──────────────────────────────────────────────────────────────
from guestlens.errors import (
    ErrorCode,
    GuestlensAuthError,
    GuestlensBackendError,
    GuestlensCategoryError,
    GuestlensConflictError,
    GuestlensCsrfError,
    GuestlensError,
    GuestlensImageDecodeError,
    GuestlensImageError,
    GuestlensImageSizeError,
    GuestlensImageTypeError,
    GuestlensModerationConflictError,
    GuestlensNetworkError,
    GuestlensNotFoundError,
    GuestlensPermissionError,
    GuestlensRegistrationError,
    GuestlensRetryExhaustedError,
    GuestlensSchemaError,
    GuestlensStorageError,
    GuestlensTranscodeError,
    GuestlensUploadError,
    GuestlensValidationError,
)

# ── Models ──────────────────────────────────────────────────────────────
from guestlens.models import (
    AdminSession,
    CarouselImage,
    Category,
    CropBox,
    DecisionResult,
    EncodedImage,
    GalleryImage,
    ImageFormat,
    RegistrationResult,
    ReviewState,
    SourceFile,
    SwipeDirection,
    UploadBatchResult,
    UploadOutcome,
    UploadRequest,
    UploadStatus,
)

# ── Pipeline ────────────────────────────────────────────────────────────
from guestlens.pipeline import SubmissionResult, UploadableItem, UploadSession

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    # Client
    "GuestlensClient",
    # Configuration
    "GuestlensConfig",
    "DEFAULT_MAX_UPLOAD_BYTES",
    "DEFAULT_MAX_DIMENSION",
    # Error base + code enum
    "GuestlensError",
    "ErrorCode",
    # API / transport errors
    "GuestlensValidationError",
    "GuestlensSchemaError",
    "GuestlensAuthError",
    "GuestlensPermissionError",
    "GuestlensCsrfError",
    "GuestlensNotFoundError",
    "GuestlensConflictError",
    "GuestlensRetryExhaustedError",
    "GuestlensNetworkError",
    "GuestlensBackendError",
    # Image errors
    "GuestlensImageError",
    "GuestlensImageTypeError",
    "GuestlensImageSizeError",
    "GuestlensImageDecodeError",
    "GuestlensTranscodeError",
    # Upload errors
    "GuestlensUploadError",
    "GuestlensStorageError",
    "GuestlensRegistrationError",
    # Category / moderation errors
    "GuestlensCategoryError",
    "GuestlensModerationConflictError",
    # Models: records
    "Category",
    "GalleryImage",
    "CarouselImage",
    "AdminSession",
    # Models: files in flight
    "SourceFile",
    "CropBox",
    "EncodedImage",
    "UploadableItem",
    "UploadSession",
    # Models: results
    "UploadRequest",
    "UploadOutcome",
    "UploadBatchResult",
    "RegistrationResult",
    "SubmissionResult",
    "DecisionResult",
    # Models: enums
    "ImageFormat",
    "UploadStatus",
    "ReviewState",
    "SwipeDirection",
]
