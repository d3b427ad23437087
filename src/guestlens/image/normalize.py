"""Normalise user-selected files to a browser-renderable format.

JPEG, PNG, GIF and WebP pass through untouched apart from an extension
fix when the filename lies about the content.  HEIC/HEIF (the iPhone
default) is converted to WebP with pillow-heif.  Files that match no known
signature are accepted only if Pillow can decode them.
"""

from __future__ import annotations

import io
from collections.abc import Iterable
from typing import TYPE_CHECKING

from PIL import Image
from pillow_heif import register_heif_opener

from guestlens.errors import GuestlensImageError, GuestlensImageTypeError
from guestlens.image.detect import extension_matches, sniff_format
from guestlens.image.transcode import can_decode
from guestlens.models import ImageFormat, SourceFile
from guestlens.observability import get_logger

if TYPE_CHECKING:
    from guestlens.config import GuestlensConfig

register_heif_opener()

log = get_logger("guestlens.normalize")


def _convert_heic(source: SourceFile, quality: int) -> SourceFile:
    with Image.open(io.BytesIO(source.data)) as img:
        img.load()
        mode = "RGBA" if "A" in img.getbands() else "RGB"
        converted = img.convert(mode) if img.mode != mode else img
        buf = io.BytesIO()
        converted.save(buf, format="WEBP", quality=quality)
    return SourceFile(
        name=source.renamed(ImageFormat.WEBP.extension).name,
        data=buf.getvalue(),
        modified_at=source.modified_at,
        content_type=ImageFormat.WEBP.mime_type,
    )


def _passthrough_or_reject(source: SourceFile, detected: ImageFormat | None, reason: str) -> SourceFile:
    if can_decode(source.data):
        log.info(
            "Passing through undetected but decodable file",
            extra={"extra_fields": {"filename": source.name, "reason": reason}},
        )
        return source
    raise GuestlensImageTypeError(
        message=f"{source.name} is not a supported image ({reason})",
        context={
            "filename": source.name,
            "detected_format": detected.value if detected else None,
        },
    )


def normalize(source: SourceFile, config: GuestlensConfig) -> SourceFile:
    """Return *source* in a browser-renderable format with an honest name.

    Parameters
    ----------
    source:
        The user-selected file.
    config:
        Supplies ``heic_quality``.

    Returns
    -------
    SourceFile
        The original bytes for renderable formats (renamed if the
        extension was wrong), or WebP bytes for HEIC/HEIF input.

    Raises
    ------
    GuestlensImageTypeError
        If the file is empty, or is neither a known format nor decodable.
    """
    if not source.data:
        raise GuestlensImageTypeError(
            message=f"{source.name} is empty",
            context={"filename": source.name, "detected_format": None},
        )

    detected = sniff_format(source.data)

    if detected is None:
        return _passthrough_or_reject(source, None, "unrecognised signature")

    if detected.browser_renderable:
        if extension_matches(source.suffix, detected):
            return source
        log.debug(
            "Correcting misleading extension",
            extra={
                "extra_fields": {
                    "filename": source.name,
                    "detected_format": detected.value,
                }
            },
        )
        return source.renamed(detected.extension)

    try:
        converted = _convert_heic(source, config.heic_quality)
    except (OSError, ValueError) as exc:
        log.warning(
            "HEIC conversion failed",
            extra={"extra_fields": {"filename": source.name, "error": str(exc)}},
        )
        return _passthrough_or_reject(source, detected, f"HEIC conversion failed: {exc}")

    log.debug(
        "Converted HEIC to WebP",
        extra={
            "extra_fields": {
                "filename": source.name,
                "source_bytes": source.size_bytes,
                "output_bytes": converted.size_bytes,
            }
        },
    )
    return converted


def normalize_batch(
    sources: Iterable[SourceFile],
    config: GuestlensConfig,
) -> list[SourceFile | GuestlensImageError]:
    """Normalise each file independently.

    A failing file yields its error in place of a result; it never aborts
    the rest of the batch.  An empty input returns ``[]``.
    """
    results: list[SourceFile | GuestlensImageError] = []
    for source in sources:
        try:
            results.append(normalize(source, config))
        except GuestlensImageError as exc:
            results.append(exc)
    return results
