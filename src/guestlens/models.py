"""Public data models for the guestlens SDK.

This module contains every enum, wire DTO, and result dataclass referenced
by the public API surface.  Backend-owned records (:class:`Category`,
:class:`GalleryImage`, :class:`CarouselImage`) are parsed from exactly one
canonical wire shape through their ``from_payload`` classmethods; any
deviation raises :class:`~guestlens.errors.GuestlensSchemaError` at the
boundary instead of leaking half-parsed dicts into the pipeline.
"""

from __future__ import annotations

import base64
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from guestlens.errors import GuestlensError, GuestlensSchemaError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ImageFormat(str, Enum):
    """Encoded image formats recognised by byte signature."""

    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    WEBP = "webp"
    HEIC = "heic"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def extension(self) -> str:
        return ".jpg" if self is ImageFormat.JPEG else f".{self.value}"

    @property
    def browser_renderable(self) -> bool:
        """Whether browsers display this format without conversion."""
        return self is not ImageFormat.HEIC


class UploadStatus(str, Enum):
    """Lifecycle states for one user-selected file."""

    PENDING = "pending"
    """Selected, not yet submitted."""

    UPLOADING = "uploading"
    """Transfer to storage (or registration) is in progress."""

    COMPLETED = "completed"
    """Stored and registered against a category."""

    ERROR = "error"
    """Failed; see the item's error."""


class ReviewState(str, Enum):
    """Moderation states for a guest-submitted image."""

    UNREVIEWED = "unreviewed"
    APPROVED = "approved"
    REJECTED = "rejected"


class SwipeDirection(str, Enum):
    """Admin swipe gestures on the review card."""

    LEFT = "left"
    """Reject."""

    RIGHT = "right"
    """Approve."""


# ---------------------------------------------------------------------------
# Wire helpers
# ---------------------------------------------------------------------------

def _require(payload: Any, key: str, kind: type | tuple[type, ...], model: str) -> Any:
    if not isinstance(payload, dict):
        raise GuestlensSchemaError(
            message=f"{model} payload must be an object, got {type(payload).__name__}",
            context={"model": model, "payload": payload},
        )
    if key not in payload:
        raise GuestlensSchemaError(
            message=f"{model} payload is missing {key!r}",
            context={"model": model, "field": key, "payload": payload},
        )
    value = payload[key]
    kinds = kind if isinstance(kind, tuple) else (kind,)
    # bool is an int subclass; never accept it where a number is expected.
    if isinstance(value, bool) and bool not in kinds:
        value_ok = False
    else:
        value_ok = isinstance(value, kinds)
    if not value_ok:
        raise GuestlensSchemaError(
            message=f"{model}.{key} has unexpected type {type(value).__name__}",
            context={"model": model, "field": key, "payload": payload},
        )
    return value


def _require_id(payload: Any, key: str, model: str) -> str:
    value = _require(payload, key, (str, int), model)
    text = str(value).strip()
    if not text:
        raise GuestlensSchemaError(
            message=f"{model}.{key} must not be empty",
            context={"model": model, "field": key, "payload": payload},
        )
    return text


def _parse_timestamp(raw: str, model: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as exc:
        raise GuestlensSchemaError(
            message=f"{model}.createdAt is not an ISO-8601 timestamp: {raw!r}",
            context={"model": model, "field": "createdAt"},
            cause=exc,
        ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def require_list(payload: Any, key: str, model: str) -> list[Any]:
    """Return ``payload[key]`` if it is a list, else raise a schema error."""
    return _require(payload, key, list, model)


# ---------------------------------------------------------------------------
# Files in flight
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SourceFile:
    """A user-selected file: the bytes plus the metadata a browser exposes.

    Attributes
    ----------
    name:
        Original filename, including its (possibly misleading) extension.
    data:
        Raw file contents.
    modified_at:
        Modification time as a POSIX timestamp, when known.
    content_type:
        MIME type declared by the picker, when known.  Never trusted for
        format decisions.
    """

    name: str
    data: bytes
    modified_at: float | None = None
    content_type: str | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def suffix(self) -> str:
        return Path(self.name).suffix.lower()

    def renamed(self, suffix: str) -> SourceFile:
        """Return a copy whose filename carries *suffix* instead."""
        stem = Path(self.name).stem or "image"
        return SourceFile(
            name=f"{stem}{suffix}",
            data=self.data,
            modified_at=self.modified_at,
            content_type=self.content_type,
        )

    @classmethod
    def from_path(cls, path: str | Path) -> SourceFile:
        p = Path(path).expanduser()
        stat = p.stat()
        return cls(name=p.name, data=p.read_bytes(), modified_at=stat.st_mtime)


@dataclass(frozen=True)
class CropBox:
    """A crop rectangle in source-image pixels."""

    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class EncodedImage:
    """Output of the transcoder: an encoded payload and its geometry."""

    data: bytes
    format: ImageFormat | str
    width: int
    height: int

    @property
    def mime_type(self) -> str:
        if isinstance(self.format, ImageFormat):
            return self.format.mime_type
        return f"image/{self.format}"

    @property
    def extension(self) -> str:
        if isinstance(self.format, ImageFormat):
            return self.format.extension
        return f".{self.format}"

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


# ---------------------------------------------------------------------------
# Backend-owned records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Category:
    """A named bucket of images.  Wire shape ``{"catID", "catName"}``."""

    category_id: str
    name: str

    @classmethod
    def from_payload(cls, payload: Any) -> Category:
        category_id = _require_id(payload, "catID", "Category")
        name = _require(payload, "catName", str, "Category").strip()
        if not name:
            raise GuestlensSchemaError(
                message="Category.catName must not be empty",
                context={"model": "Category", "field": "catName", "payload": payload},
            )
        return cls(category_id=category_id, name=name)


@dataclass(frozen=True)
class GalleryImage:
    """A registered photo.

    Wire shape ``{"imageID", "imageURL", "categoryId", "approval",
    "createdAt"}``.
    """

    image_id: str
    url: str
    category_id: str
    approved: bool
    created_at: datetime

    @classmethod
    def from_payload(cls, payload: Any) -> GalleryImage:
        return cls(
            image_id=_require_id(payload, "imageID", "GalleryImage"),
            url=_require(payload, "imageURL", str, "GalleryImage"),
            category_id=_require_id(payload, "categoryId", "GalleryImage"),
            approved=_require(payload, "approval", bool, "GalleryImage"),
            created_at=_parse_timestamp(
                _require(payload, "createdAt", str, "GalleryImage"), "GalleryImage",
            ),
        )


@dataclass(frozen=True)
class CarouselImage:
    """A homepage background slide.  Wire shape ``{"carouselID", "imageURL"}``."""

    carousel_id: str
    url: str

    @classmethod
    def from_payload(cls, payload: Any) -> CarouselImage:
        return cls(
            carousel_id=_require_id(payload, "carouselID", "CarouselImage"),
            url=_require(payload, "imageURL", str, "CarouselImage"),
        )


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AdminSession:
    """A verified admin session decoded from the session cookie."""

    admin_id: str
    username: str
    issued_at: float
    expires_at: float

    @property
    def expired(self) -> bool:
        return time.time() >= self.expires_at


# ---------------------------------------------------------------------------
# Pipeline results
# ---------------------------------------------------------------------------

@dataclass
class UploadRequest:
    """One encoded image headed for object storage."""

    payload: EncodedImage
    filename: str
    item_id: str | None = None


@dataclass
class UploadOutcome:
    """Per-item result of an upload batch.

    Exactly one of ``url`` / ``error`` is set.
    """

    filename: str
    success: bool
    item_id: str | None = None
    url: str | None = None
    key: str | None = None
    error: GuestlensError | None = None


@dataclass
class UploadBatchResult:
    """Aggregate result of :meth:`UploadCoordinator.upload`."""

    outcomes: list[UploadOutcome] = field(default_factory=list)

    @property
    def total_success(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def total_failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def urls(self) -> list[str]:
        return [o.url for o in self.outcomes if o.success and o.url]

    @property
    def all_succeeded(self) -> bool:
        return self.total_failed == 0

    @property
    def has_partial_failure(self) -> bool:
        return self.total_success > 0 and self.total_failed > 0


@dataclass
class RegistrationResult:
    """Result of registering uploaded URLs against a category."""

    category_id: str
    urls: list[str]
    created_count: int
    pending_approval: bool = True


@dataclass
class DecisionResult:
    """Result of one moderation decision."""

    image_id: str
    state: ReviewState
    action: str
    storage_deleted: bool | None = None
    """``None`` for approvals; for rejections whether the storage delete
    succeeded (a failed delete does not undo the rejection)."""
