"""Image format detection by byte signature.

Guests pick files from phones, desktops and messaging apps; the filename
extension and the MIME type the picker reports are routinely wrong (an
iPhone export named ``.HEIC`` that is really a JPEG, a ``.jpg`` that is a
PNG screenshot).  Only the leading bytes are trusted.
"""

from __future__ import annotations

from guestlens.models import ImageFormat

# ISO BMFF brands that identify HEIC/HEIF still images.
HEIF_BRANDS: frozenset[bytes] = frozenset({
    b"heic", b"heix", b"hevc", b"hevx",
    b"heim", b"heis", b"mif1", b"msf1",
})

# Extensions that are acceptable spellings of each format.
_EXTENSION_ALIASES: dict[ImageFormat, frozenset[str]] = {
    ImageFormat.JPEG: frozenset({".jpg", ".jpeg", ".jpe", ".jfif"}),
    ImageFormat.PNG: frozenset({".png"}),
    ImageFormat.GIF: frozenset({".gif"}),
    ImageFormat.WEBP: frozenset({".webp"}),
    ImageFormat.HEIC: frozenset({".heic", ".heif", ".hif"}),
}


def sniff_format(data: bytes) -> ImageFormat | None:
    """Identify the encoded format of *data* from its first 12 bytes.

    Parameters
    ----------
    data:
        Raw file contents (only the head is inspected).

    Returns
    -------
    ImageFormat | None
        The detected format, or ``None`` when no known signature matches.

    Examples
    --------
    >>> sniff_format(b"\\xff\\xd8\\xff\\xe0" + b"\\x00" * 8)
    <ImageFormat.JPEG: 'jpeg'>
    >>> sniff_format(b"not an image") is None
    True
    """
    head = data[:12]
    if head[:3] == b"\xff\xd8\xff":
        return ImageFormat.JPEG
    if head[:8] == b"\x89PNG\r\n\x1a\n":
        return ImageFormat.PNG
    if head[:6] in (b"GIF87a", b"GIF89a"):
        return ImageFormat.GIF
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return ImageFormat.WEBP
    if head[4:8] == b"ftyp" and head[8:12] in HEIF_BRANDS:
        return ImageFormat.HEIC
    return None


def extension_matches(suffix: str, fmt: ImageFormat) -> bool:
    """Whether the lowercase *suffix* (with dot) is a valid spelling for *fmt*."""
    return suffix.lower() in _EXTENSION_ALIASES[fmt]
