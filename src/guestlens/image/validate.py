"""Size checks applied before any image work or network call."""

from __future__ import annotations

from guestlens.errors import GuestlensImageSizeError


def check_size(filename: str, size_bytes: int, max_bytes: int) -> None:
    """Raise if *size_bytes* exceeds *max_bytes*.

    Raises
    ------
    GuestlensImageSizeError
        With ``filename``, ``size_bytes`` and ``max_bytes`` in its context,
        so the user-facing message can name the file and the limit.
    """
    if size_bytes > max_bytes:
        raise GuestlensImageSizeError(
            message=(
                f"{filename} is {size_bytes} bytes, exceeding the "
                f"maximum of {max_bytes} bytes"
            ),
            context={
                "filename": filename,
                "size_bytes": size_bytes,
                "max_bytes": max_bytes,
            },
        )
