"""Split a list of upload requests into fixed-size chunks.

Storage uploads are sent one chunk per request so that no single request
grows large enough to hit the hosting platform's body-size or timeout
limits.
"""

from __future__ import annotations

from typing import TypeVar

T = TypeVar("T")


def chunk_items(items: list[T], size: int = 1) -> list[list[T]]:
    """Split *items* into consecutive batches of at most *size*.

    Parameters
    ----------
    items:
        The full list to partition.  Order is preserved.
    size:
        Maximum number of items per batch.  Defaults to **1**, one image
        per request.

    Returns
    -------
    list[list]
        A list of sublists.  An empty input returns an empty list (not
        ``[[]]``).

    Raises
    ------
    ValueError
        If *size* is less than 1.

    Examples
    --------
    >>> chunk_items([1, 2, 3], size=2)
    [[1, 2], [3]]
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")

    if not items:
        return []

    return [items[i : i + size] for i in range(0, len(items), size)]
