"""Upload lifecycle state machine.

Tracks one selected file from selection to its final outcome and enforces
that its status only ever moves forward.
"""

from __future__ import annotations

from guestlens.models import UploadStatus


class UploadStateMachine:
    """Finite state machine for a single uploadable item.

    Valid transitions::

        PENDING    -> UPLOADING | ERROR
        UPLOADING  -> COMPLETED | ERROR
        COMPLETED  -> (terminal)
        ERROR      -> (terminal)

    ``PENDING -> ERROR`` covers files rejected before any network call
    (oversize, unsupported format).

    Parameters
    ----------
    item_id:
        The identifier of the item being tracked.
    """

    VALID_TRANSITIONS: dict[UploadStatus, set[UploadStatus]] = {
        UploadStatus.PENDING: {UploadStatus.UPLOADING, UploadStatus.ERROR},
        UploadStatus.UPLOADING: {UploadStatus.COMPLETED, UploadStatus.ERROR},
        UploadStatus.COMPLETED: set(),
        UploadStatus.ERROR: set(),
    }

    def __init__(self, item_id: str) -> None:
        self.item_id: str = item_id
        self.state: UploadStatus = UploadStatus.PENDING

    @property
    def terminal(self) -> bool:
        return not self.VALID_TRANSITIONS[self.state]

    def transition(self, new_state: UploadStatus) -> None:
        """Attempt to transition to *new_state*.

        Raises
        ------
        ValueError
            If the transition from the current state to *new_state* is
            not valid.
        """
        allowed = self.VALID_TRANSITIONS.get(self.state, set())

        if new_state not in allowed:
            raise ValueError(
                f"Invalid state transition: {self.state.value} -> {new_state.value} "
                f"for item {self.item_id}. "
                f"Allowed transitions from {self.state.value}: "
                f"{{{', '.join(sorted(s.value for s in allowed))}}}"
            )

        self.state = new_state
