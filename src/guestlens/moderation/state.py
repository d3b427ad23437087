"""Review state machine for guest-submitted images."""

from __future__ import annotations

from guestlens.errors import GuestlensModerationConflictError
from guestlens.models import ReviewState


class ReviewStateMachine:
    """Finite state machine for one image under review.

    Valid transitions::

        UNREVIEWED -> APPROVED | REJECTED
        APPROVED   -> (terminal)
        REJECTED   -> (terminal)

    Parameters
    ----------
    image_id:
        The image being reviewed.
    """

    VALID_TRANSITIONS: dict[ReviewState, set[ReviewState]] = {
        ReviewState.UNREVIEWED: {ReviewState.APPROVED, ReviewState.REJECTED},
        ReviewState.APPROVED: set(),
        ReviewState.REJECTED: set(),
    }

    def __init__(self, image_id: str, state: ReviewState = ReviewState.UNREVIEWED) -> None:
        self.image_id: str = image_id
        self.state: ReviewState = state

    @property
    def terminal(self) -> bool:
        return not self.VALID_TRANSITIONS[self.state]

    def transition(self, new_state: ReviewState) -> None:
        """Attempt to transition to *new_state*.

        Raises
        ------
        GuestlensModerationConflictError
            If the image has already been decided.
        ValueError
            For any other invalid transition.
        """
        allowed = self.VALID_TRANSITIONS.get(self.state, set())

        if new_state not in allowed:
            if self.terminal:
                raise GuestlensModerationConflictError(
                    message=(
                        f"Image {self.image_id} is already {self.state.value}; "
                        f"cannot mark it {new_state.value}"
                    ),
                    context={
                        "image_id": self.image_id,
                        "current_state": self.state.value,
                        "requested_state": new_state.value,
                    },
                )
            raise ValueError(
                f"Invalid review transition: {self.state.value} -> {new_state.value} "
                f"for image {self.image_id}"
            )

        self.state = new_state
