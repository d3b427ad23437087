"""Full error hierarchy for the guestlens SDK.

Every public error class inherits from GuestlensError. Each carries a
machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Error codes are defined as a :class:`str` enum so that they serialise
naturally to JSON and can be matched with simple ``==`` comparisons.

Guests and admins never see ``message`` directly; UI layers show
:attr:`GuestlensError.user_message`, which is specific to the failure
category (too large, wrong format, network, permission, ...).
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the SDK can raise."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    SCHEMA_ERROR = "SCHEMA_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    CSRF_ERROR = "CSRF_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    NETWORK_ERROR = "NETWORK_ERROR"
    BACKEND_ERROR = "BACKEND_ERROR"
    IMAGE_ERROR = "IMAGE_ERROR"
    IMAGE_TYPE_ERROR = "IMAGE_TYPE_ERROR"
    IMAGE_SIZE_ERROR = "IMAGE_SIZE_ERROR"
    IMAGE_DECODE_ERROR = "IMAGE_DECODE_ERROR"
    TRANSCODE_ERROR = "TRANSCODE_ERROR"
    UPLOAD_ERROR = "UPLOAD_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    REGISTRATION_ERROR = "REGISTRATION_ERROR"
    CATEGORY_ERROR = "CATEGORY_ERROR"
    MODERATION_CONFLICT = "MODERATION_CONFLICT"


_USER_MESSAGES: dict[str, str] = {
    ErrorCode.VALIDATION_ERROR: "Some required information is missing or invalid.",
    ErrorCode.SCHEMA_ERROR: "The server sent an unexpected response. Please try again later.",
    ErrorCode.AUTH_ERROR: "Your admin session has expired. Please sign in again.",
    ErrorCode.PERMISSION_ERROR: "You do not have permission to do that.",
    ErrorCode.CSRF_ERROR: "Your session token is out of date. Please refresh the page and retry.",
    ErrorCode.NOT_FOUND: "That item no longer exists.",
    ErrorCode.CONFLICT: "Someone else changed this item. Refresh and try again.",
    ErrorCode.RETRY_EXHAUSTED: "Network problem: the server did not respond. Please try again.",
    ErrorCode.NETWORK_ERROR: "Network problem: check your connection and try again.",
    ErrorCode.BACKEND_ERROR: "The server could not complete the request. Please try again.",
    ErrorCode.IMAGE_ERROR: "This photo could not be processed.",
    ErrorCode.IMAGE_TYPE_ERROR: "This file is not a supported image format (use JPEG, PNG, GIF, WebP or HEIC).",
    ErrorCode.IMAGE_SIZE_ERROR: "This photo is too large to upload.",
    ErrorCode.IMAGE_DECODE_ERROR: "This photo appears to be corrupt and could not be opened.",
    ErrorCode.TRANSCODE_ERROR: "This photo could not be converted for upload.",
    ErrorCode.UPLOAD_ERROR: "The photo could not be uploaded.",
    ErrorCode.STORAGE_ERROR: "The photo could not be saved to storage. Please try again.",
    ErrorCode.REGISTRATION_ERROR: (
        "Your photo was saved to storage but could not be added to the gallery. "
        "Please try submitting it again."
    ),
    ErrorCode.CATEGORY_ERROR: "Photo categories could not be loaded. Please try again.",
    ErrorCode.MODERATION_CONFLICT: "This photo has already been reviewed.",
}


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class GuestlensError(Exception):
    """Base exception for all guestlens errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys and expected types are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def user_message(self) -> str:
        """Actionable message suitable for a toast or inline error."""
        base = _USER_MESSAGES.get(self.code, "Something went wrong. Please try again.")
        filename = self.context.get("filename")
        if filename:
            return f"{filename}: {base}"
        return base

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Request / transport errors
# ---------------------------------------------------------------------------

class GuestlensValidationError(GuestlensError):
    """A required field is missing or malformed.

    Raised locally before any network call, and for backend 400 responses.

    Context keys: ``field``, ``value``, ``status_code``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            context=context,
            cause=cause,
        )

    @property
    def user_message(self) -> str:
        reason = self.context.get("reason")
        if reason:
            return str(reason)
        return super().user_message


class GuestlensSchemaError(GuestlensError):
    """A backend payload did not match the canonical wire shape.

    Context keys: ``model``, ``field``, ``payload``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.SCHEMA_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensAuthError(GuestlensError):
    """The admin session is missing, invalid or expired (HTTP 401).

    UI layers redirect the whole page to the login screen on this error.

    Context keys: ``reason``, ``status_code``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.AUTH_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensPermissionError(GuestlensError):
    """The caller is not allowed to perform the operation (HTTP 403).

    Context keys: ``operation``, ``status_code``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        code: str = ErrorCode.PERMISSION_ERROR,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensCsrfError(GuestlensPermissionError):
    """The CSRF header token is missing or does not match the cookie.

    Context keys: ``reason``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.CSRF_ERROR,
        )


class GuestlensNotFoundError(GuestlensError):
    """The backend returned 404 for the requested resource.

    Context keys: ``path``, ``status_code``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.NOT_FOUND,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensConflictError(GuestlensError):
    """The backend returned 409 (last-write-wins conflict).

    Context keys: ``path``, ``status_code``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.CONFLICT,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensRetryExhaustedError(GuestlensError):
    """All retry attempts have been exhausted for a retryable request.

    Context keys: ``attempts``, ``last_status_code``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.RETRY_EXHAUSTED,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensNetworkError(GuestlensError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``url``, ``attempt``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.NETWORK_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensBackendError(GuestlensError):
    """The backend answered 2xx but reported failure in its body.

    Context keys: ``path``, ``body``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.BACKEND_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Image errors
# ---------------------------------------------------------------------------

class GuestlensImageError(GuestlensError):
    """Base class for image-related errors.

    Context varies by subclass.
    """

    def __init__(
        self,
        code: str = ErrorCode.IMAGE_ERROR,
        message: str = "Image error",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensImageTypeError(GuestlensImageError):
    """The file is not an image format the pipeline can normalise.

    Context keys: ``filename``, ``detected_format``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.IMAGE_TYPE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensImageSizeError(GuestlensImageError):
    """The image exceeds the configured maximum upload size.

    Context keys: ``filename``, ``size_bytes``, ``max_bytes``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.IMAGE_SIZE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )

    @property
    def user_message(self) -> str:
        max_bytes = self.context.get("max_bytes")
        filename = self.context.get("filename")
        if not max_bytes:
            return super().user_message
        limit_mb = max_bytes / (1024 * 1024)
        text = f"This photo is larger than the {limit_mb:g} MB limit."
        return f"{filename}: {text}" if filename else text


class GuestlensImageDecodeError(GuestlensImageError):
    """The image bytes could not be decoded (corrupt or truncated file).

    Context keys: ``filename``, ``reason``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.IMAGE_DECODE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensTranscodeError(GuestlensImageError):
    """The decoded image could not be rendered or encoded.

    Context keys: ``filename``, ``format``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.TRANSCODE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Upload / storage errors
# ---------------------------------------------------------------------------

class GuestlensUploadError(GuestlensError):
    """Base class for upload-pipeline errors.

    Context varies by subclass.
    """

    def __init__(
        self,
        code: str = ErrorCode.UPLOAD_ERROR,
        message: str = "Upload error",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensStorageError(GuestlensUploadError):
    """The object store rejected a write or delete.

    Context keys: ``key``, ``url``, ``transient``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.STORAGE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensRegistrationError(GuestlensUploadError):
    """Storage upload succeeded but metadata registration failed.

    The uploaded objects are orphaned until cleaned up.

    Context keys: ``orphaned_urls``, ``category_id``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Category / moderation errors
# ---------------------------------------------------------------------------

class GuestlensCategoryError(GuestlensError):
    """Listing or creating categories failed (recoverable).

    Context keys: ``operation``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.CATEGORY_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class GuestlensModerationConflictError(GuestlensError):
    """A decision was requested for an image that is already decided.

    Context keys: ``image_id``, ``current_state``, ``requested_state``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.MODERATION_CONFLICT,
            message=message,
            context=context,
            cause=cause,
        )
