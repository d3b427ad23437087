"""Files in flight: one :class:`UploadableItem` per selected photo, and the
:class:`UploadSession` working set that holds them until submission.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from dataclasses import dataclass, field

from guestlens.errors import GuestlensError, GuestlensValidationError
from guestlens.image.state import UploadStateMachine
from guestlens.models import SourceFile, UploadStatus
from guestlens.utils.hashing import item_fingerprint


@dataclass
class UploadableItem:
    """A user-selected photo and its upload progress.

    ``status`` only moves forward (see :class:`UploadStateMachine`); use
    the ``mark_*`` methods rather than assigning it.
    """

    source: SourceFile
    item_id: str = ""
    preview: str | None = None
    url: str | None = None
    error: GuestlensError | None = None
    _machine: UploadStateMachine = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.item_id:
            self.item_id = item_fingerprint(self.source.name, self.source.modified_at)
        self._machine = UploadStateMachine(self.item_id)

    @property
    def filename(self) -> str:
        return self.source.name

    @property
    def status(self) -> UploadStatus:
        return self._machine.state

    @property
    def error_message(self) -> str | None:
        return self.error.user_message if self.error is not None else None

    def mark_uploading(self) -> None:
        self._machine.transition(UploadStatus.UPLOADING)

    def mark_completed(self, url: str) -> None:
        self._machine.transition(UploadStatus.COMPLETED)
        self.url = url

    def mark_failed(self, error: GuestlensError) -> None:
        self._machine.transition(UploadStatus.ERROR)
        self.error = error


class UploadSession:
    """The upload dialog's working set of selected photos.

    Adding the same file twice (same name and modification time) returns
    the existing item.  While a submission is running the set is frozen:
    :meth:`add`, :meth:`remove` and :meth:`reset` raise
    :class:`GuestlensValidationError`.
    """

    def __init__(self) -> None:
        self._items: dict[str, UploadableItem] = {}
        self._submitting = False

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[UploadableItem]:
        return iter(list(self._items.values()))

    @property
    def items(self) -> list[UploadableItem]:
        return list(self._items.values())

    @property
    def pending(self) -> list[UploadableItem]:
        return [i for i in self._items.values() if i.status is UploadStatus.PENDING]

    @property
    def submitting(self) -> bool:
        return self._submitting

    def _ensure_idle(self, operation: str) -> None:
        if self._submitting:
            raise GuestlensValidationError(
                message=f"Cannot {operation} while a submission is in progress",
                context={
                    "operation": operation,
                    "reason": "Please wait for the upload to finish.",
                },
            )

    def add(self, source: SourceFile, preview: str | None = None) -> UploadableItem:
        self._ensure_idle("add files")
        item = UploadableItem(source=source, preview=preview)
        return self._items.setdefault(item.item_id, item)

    def remove(self, item_id: str) -> bool:
        """Drop *item_id* from the set.  Returns ``False`` if it was absent."""
        self._ensure_idle("remove files")
        return self._items.pop(item_id, None) is not None

    def reset(self) -> None:
        """Clear the working set (dialog closed)."""
        self._ensure_idle("close the upload dialog")
        self._items.clear()

    @contextlib.contextmanager
    def submission(self) -> Iterator[list[UploadableItem]]:
        """Freeze the set and yield its pending items for submission."""
        self._ensure_idle("start another submission")
        self._submitting = True
        try:
            yield self.pending
        finally:
            self._submitting = False
