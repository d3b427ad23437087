"""Decode, orient, crop, downscale and re-encode images with Pillow.

Every photo that reaches object storage passes through :func:`transcode`:
the longest side is capped at ``max_dimension`` pixels and the result is
encoded as WebP (or PNG where the installed Pillow lacks a WebP encoder).
The work is CPU-bound; async callers run it in ``asyncio.to_thread``.
"""

from __future__ import annotations

import base64
import binascii
import io
import re

from PIL import Image, ImageOps, UnidentifiedImageError, features

from guestlens.errors import (
    GuestlensImageDecodeError,
    GuestlensTranscodeError,
    GuestlensValidationError,
)
from guestlens.models import CropBox, EncodedImage, ImageFormat

# data:[<mediatype>][;base64],<data>
_DATA_URI_RE = re.compile(
    r"^data:(?P<mime>[^;,]+)?(?:;(?P<encoding>base64))?,(?P<data>.*)$",
    re.IGNORECASE | re.DOTALL,
)

_DECODE_ERRORS = (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError)


def webp_supported() -> bool:
    """Whether the installed Pillow can encode WebP."""
    return bool(features.check("webp"))


def open_image(data: bytes, filename: str | None = None) -> Image.Image:
    """Decode *data* fully and apply its EXIF orientation.

    Raises
    ------
    GuestlensImageDecodeError
        If Pillow cannot identify or decode the bytes.
    """
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except _DECODE_ERRORS as exc:
        raise GuestlensImageDecodeError(
            message=f"Could not decode image {filename or '<bytes>'}: {exc}",
            context={"filename": filename, "reason": str(exc)},
            cause=exc,
        ) from exc
    return ImageOps.exif_transpose(img) or img


def can_decode(data: bytes) -> bool:
    """Probe whether Pillow recognises *data* as an image it can read."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except _DECODE_ERRORS:
        return False
    return True


def fit_within(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Return the size that fits ``width x height`` inside *max_dimension*.

    The longer side becomes exactly *max_dimension* and the shorter side
    is scaled proportionally.  Sizes already within the bound are returned
    unchanged; images are never upscaled.

    Examples
    --------
    >>> fit_within(8192, 4096, 4096)
    (4096, 2048)
    >>> fit_within(800, 600, 4096)
    (800, 600)
    """
    longest = max(width, height)
    if longest <= max_dimension:
        return width, height
    scale = max_dimension / longest
    if width >= height:
        return max_dimension, max(1, round(height * scale))
    return max(1, round(width * scale)), max_dimension


def _validate_crop(crop: CropBox, width: int, height: int) -> None:
    if crop.width <= 0 or crop.height <= 0:
        raise GuestlensValidationError(
            message=f"Crop area must be non-empty, got {crop.width}x{crop.height}",
            context={"field": "crop", "value": crop, "reason": "Select an area to crop."},
        )
    if (
        crop.x < 0
        or crop.y < 0
        or crop.x + crop.width > width
        or crop.y + crop.height > height
    ):
        raise GuestlensValidationError(
            message=(
                f"Crop area {crop} lies outside the {width}x{height} image"
            ),
            context={
                "field": "crop",
                "value": crop,
                "reason": "The crop area must lie inside the photo.",
            },
        )


def _prepare_mode(img: Image.Image) -> Image.Image:
    has_alpha = img.mode in ("RGBA", "LA", "PA") or (
        img.mode == "P" and "transparency" in img.info
    )
    target = "RGBA" if has_alpha else "RGB"
    if img.mode != target:
        img = img.convert(target)
    return img


def transcode(
    data: bytes,
    *,
    crop: CropBox | None = None,
    max_dimension: int = 4096,
    quality: int = 92,
    fallback_format: str = "PNG",
    filename: str | None = None,
) -> EncodedImage:
    """Produce a bounded, browser-ready encoding of *data*.

    Parameters
    ----------
    data:
        Encoded source image.  Never mutated.
    crop:
        Optional crop rectangle in pixels of the orientation-corrected
        image.  Applied before downscaling.
    max_dimension:
        Longest allowed side in pixels.
    quality:
        WebP quality (0-100).
    fallback_format:
        Pillow format name used when WebP encoding is unavailable.
    filename:
        Used only in error messages.

    Returns
    -------
    EncodedImage

    Raises
    ------
    GuestlensImageDecodeError
        The source cannot be decoded.
    GuestlensValidationError
        The crop rectangle is empty or out of bounds.
    GuestlensTranscodeError
        Resizing or encoding failed.
    """
    img = open_image(data, filename)

    if crop is not None:
        _validate_crop(crop, img.width, img.height)
        img = img.crop((crop.x, crop.y, crop.x + crop.width, crop.y + crop.height))

    use_webp = webp_supported()
    out_format = "WEBP" if use_webp else fallback_format.upper()

    try:
        img = _prepare_mode(img)
        size = fit_within(img.width, img.height, max_dimension)
        if size != img.size:
            img = img.resize(size, Image.LANCZOS)

        buf = io.BytesIO()
        if out_format == "WEBP":
            img.save(buf, format="WEBP", quality=quality, method=6)
        else:
            img.save(buf, format=out_format)
    except (OSError, ValueError, KeyError) as exc:
        raise GuestlensTranscodeError(
            message=f"Could not encode {filename or 'image'} as {out_format}: {exc}",
            context={"filename": filename, "format": out_format},
            cause=exc,
        ) from exc

    encoded = buf.getvalue()
    if not encoded:
        raise GuestlensTranscodeError(
            message=f"Encoder produced no data for {filename or 'image'}",
            context={"filename": filename, "format": out_format},
        )

    try:
        fmt: ImageFormat | str = ImageFormat(out_format.lower())
    except ValueError:
        fmt = out_format.lower()

    return EncodedImage(data=encoded, format=fmt, width=img.width, height=img.height)


def decode_data_uri(uri: str) -> tuple[str, bytes]:
    """Parse a data URI and return ``(mime_type, decoded_bytes)``.

    Raises
    ------
    GuestlensImageDecodeError
        If the data URI is malformed or its base64 payload is invalid.

    Examples
    --------
    >>> decode_data_uri("data:image/webp;base64,AAAA")
    ('image/webp', b'\\x00\\x00\\x00')
    """
    match = _DATA_URI_RE.match(uri)
    if not match:
        raise GuestlensImageDecodeError(
            message="Invalid data URI format",
            context={"reason": "regex_no_match"},
        )

    mime_type = match.group("mime") or "application/octet-stream"
    raw_data = match.group("data")

    if match.group("encoding"):
        try:
            decoded = base64.b64decode(raw_data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise GuestlensImageDecodeError(
                message="Failed to decode base64 data URI",
                context={"reason": "base64_decode_error"},
                cause=exc,
            ) from exc
    else:
        from urllib.parse import unquote_to_bytes
        decoded = unquote_to_bytes(raw_data)

    return mime_type, decoded
