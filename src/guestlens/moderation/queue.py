"""Moderation queue: the admin's review backlog of guest submissions.

The backend is the source of truth for which images are unreviewed; the
queue is a local, ordered view of that backlog plus the decisions made
through it.  Decisions advance optimistically: the image leaves the queue
before the backend confirms.  When the backend call fails the queue
re-reads the backlog and re-queues the image if it is still unreviewed.
An image the backlog no longer lists had its decision applied, so the
decision is recorded as if the call had succeeded.

A rejection deletes the stored object only after the backend confirmed
the rejection, by its response or by the re-read backlog, so a failed or repeated decision never deletes a photo
that is still referenced.
"""

from __future__ import annotations

from typing import Any

from guestlens.auth.session import require_session
from guestlens.backend_api.images import ImageAPI
from guestlens.config import GuestlensConfig
from guestlens.errors import (
    GuestlensError,
    GuestlensModerationConflictError,
    GuestlensNotFoundError,
    GuestlensValidationError,
)
from guestlens.models import AdminSession, DecisionResult, GalleryImage, ReviewState, SwipeDirection
from guestlens.observability import get_logger
from guestlens.observability.metrics import resolve_metrics
from guestlens.storage.base import ObjectStore

from .state import ReviewStateMachine

log = get_logger("guestlens.moderation")


class ModerationQueue:
    """Ordered review queue with a single in-view slot.

    Parameters
    ----------
    api:
        The backend :class:`ImageAPI`.
    store:
        Object store; rejected images are deleted from it.
    config:
        Supplies ``moderation_order`` and the metrics hook.
    session:
        Default admin session for every operation.  Each operation also
        accepts an explicit ``session=``.
    """

    def __init__(
        self,
        api: ImageAPI,
        store: ObjectStore,
        config: GuestlensConfig,
        session: AdminSession | None = None,
        metrics: Any | None = None,
    ) -> None:
        self._api = api
        self._store = store
        self._session = session
        self._newest_first = config.moderation_order == "newest_first"
        self._metrics = resolve_metrics(metrics if metrics is not None else config.metrics)
        self._queue: list[GalleryImage] = []
        self._current: GalleryImage | None = None
        self._decisions: dict[str, ReviewStateMachine] = {}
        self._in_flight: set[str] = set()

    # -- views -------------------------------------------------------------

    @property
    def current(self) -> GalleryImage | None:
        """The image in the in-view slot, if any."""
        return self._current

    @property
    def remaining(self) -> list[GalleryImage]:
        """Queued images not yet presented, in review order."""
        return list(self._queue)

    @property
    def pending_count(self) -> int:
        return len(self._queue) + (1 if self._current is not None else 0)

    @property
    def decided(self) -> dict[str, ReviewState]:
        return {image_id: m.state for image_id, m in self._decisions.items()}

    # -- queue management --------------------------------------------------

    async def load(self, *, session: AdminSession | None = None) -> list[GalleryImage]:
        """Fetch the unreviewed backlog and rebuild the queue."""
        self._require(session)
        backlog = await self._api.list_unapproved()
        self._sync(backlog)
        log.info(
            "Moderation queue loaded",
            extra={"extra_fields": {"pending": self.pending_count}},
        )
        return self.remaining

    def present(self) -> GalleryImage | None:
        """Move the next queued image into the in-view slot and return it.

        Returns the already-presented image while one is in view, and
        ``None`` when the queue is empty.
        """
        if self._current is None and self._queue:
            self._current = self._queue.pop(0)
        return self._current

    def abandon(self, image_id: str | None = None) -> bool:
        """Return the in-view image to its ordered place in the queue.

        Returns ``False`` when nothing (or a different image) is in view.
        """
        current = self._current
        if current is None or (image_id is not None and current.image_id != image_id):
            return False
        self._current = None
        self._enqueue(current)
        return True

    # -- decisions ---------------------------------------------------------

    async def decide(
        self,
        image_id: str,
        approve: bool,
        *,
        session: AdminSession | None = None,
    ) -> DecisionResult:
        """Approve or reject *image_id*.

        Raises
        ------
        GuestlensAuthError
            Without a valid admin session; the queue is left untouched.
        GuestlensModerationConflictError
            If the image was already decided or a decision is in flight.
        GuestlensNotFoundError
            If the image is not in this queue.
        GuestlensError
            Whatever the backend decision call raised, after the queue has
            been reconciled with the backend.  A decision the backend did
            apply is recorded in :attr:`decided` before the error propagates.
        """
        admin = self._require(session)
        target = ReviewState.APPROVED if approve else ReviewState.REJECTED

        if image_id in self._decisions:
            self._decisions[image_id].transition(target)
        if image_id in self._in_flight:
            raise GuestlensModerationConflictError(
                message=f"A decision for image {image_id} is already in progress",
                context={"image_id": image_id, "requested_state": target.value},
            )

        image = self._take(image_id)
        self._in_flight.add(image_id)
        try:
            action = await self._api.decide(image_id, approve)
        except GuestlensError as exc:
            self._in_flight.discard(image_id)
            log.warning(
                "Moderation decision failed",
                extra={
                    "extra_fields": {
                        "image_id": image_id,
                        "approve": approve,
                        "error_code": exc.code,
                        "error": exc.message,
                    }
                },
            )
            if await self._reconcile(image):
                # The backend no longer lists the image: the decision landed.
                await self._record(image, target, "reconciled", admin)
            raise
        self._in_flight.discard(image_id)
        return await self._record(image, target, action, admin)

    async def approve(
        self,
        image_id: str | None = None,
        *,
        session: AdminSession | None = None,
    ) -> DecisionResult:
        """Approve *image_id* (default: the in-view image)."""
        return await self.decide(self._target_id(image_id), True, session=session)

    async def reject(
        self,
        image_id: str | None = None,
        *,
        session: AdminSession | None = None,
    ) -> DecisionResult:
        """Reject *image_id* (default: the in-view image)."""
        return await self.decide(self._target_id(image_id), False, session=session)

    async def swipe(
        self,
        direction: SwipeDirection | str,
        *,
        session: AdminSession | None = None,
    ) -> DecisionResult:
        """Decide the in-view image: right approves, left rejects."""
        gesture = SwipeDirection(direction)
        return await self.decide(
            self._target_id(None),
            gesture is SwipeDirection.RIGHT,
            session=session,
        )

    # -- internals ---------------------------------------------------------

    def _require(self, session: AdminSession | None) -> AdminSession:
        return require_session(session if session is not None else self._session)

    def _target_id(self, image_id: str | None) -> str:
        if image_id is not None:
            return image_id
        if self._current is None:
            raise GuestlensValidationError(
                message="No image is being reviewed",
                context={"field": "image_id", "reason": "There is no photo to review."},
            )
        return self._current.image_id

    def _ordered(self, images: list[GalleryImage]) -> list[GalleryImage]:
        return sorted(
            images,
            key=lambda img: (img.created_at, img.image_id),
            reverse=self._newest_first,
        )

    def _enqueue(self, image: GalleryImage) -> None:
        self._queue = self._ordered([*self._queue, image])

    def _take(self, image_id: str) -> GalleryImage:
        if self._current is not None and self._current.image_id == image_id:
            image, self._current = self._current, None
            return image
        for index, image in enumerate(self._queue):
            if image.image_id == image_id:
                return self._queue.pop(index)
        raise GuestlensNotFoundError(
            message=f"Image {image_id} is not in the moderation queue",
            context={"path": "moderation_queue", "image_id": image_id},
        )

    def _sync(self, backlog: list[GalleryImage]) -> None:
        backlog_ids = {img.image_id for img in backlog}
        if self._current is not None and self._current.image_id not in backlog_ids:
            self._current = None
        skip = set(self._decisions) | self._in_flight
        if self._current is not None:
            skip.add(self._current.image_id)

        fresh: dict[str, GalleryImage] = {}
        for img in backlog:
            if not img.approved and img.image_id not in skip:
                fresh.setdefault(img.image_id, img)
        self._queue = self._ordered(list(fresh.values()))
        self._metrics.gauge("guestlens.moderation_queue_depth", self.pending_count)

    async def _reconcile(self, image: GalleryImage) -> bool:
        """Re-read the backlog after a failed decision.

        Returns ``True`` when the backend no longer lists *image*, meaning
        the decision was applied even though its response was lost.
        """
        try:
            backlog = await self._api.list_unapproved()
        except GuestlensError as exc:
            log.warning(
                "Could not re-read backlog; re-queueing image",
                extra={"extra_fields": {"image_id": image.image_id, "error": exc.message}},
            )
            self._enqueue(image)
            return False
        self._sync(backlog)
        return not any(img.image_id == image.image_id and not img.approved for img in backlog)

    async def _record(
        self,
        image: GalleryImage,
        target: ReviewState,
        action: str,
        admin: AdminSession,
    ) -> DecisionResult:
        image_id = image.image_id
        machine = ReviewStateMachine(image_id)
        machine.transition(target)
        self._decisions[image_id] = machine

        storage_deleted: bool | None = None
        if target is ReviewState.REJECTED:
            storage_deleted = await self._delete_object(image)

        self._metrics.increment(
            "guestlens.moderation_decisions_total",
            tags={"decision": target.value},
        )
        self._metrics.gauge("guestlens.moderation_queue_depth", self.pending_count)
        log.info(
            "Moderation decision recorded",
            extra={
                "extra_fields": {
                    "image_id": image_id,
                    "decision": target.value,
                    "admin_id": admin.admin_id,
                    "storage_deleted": storage_deleted,
                }
            },
        )
        return DecisionResult(
            image_id=image_id,
            state=target,
            action=action,
            storage_deleted=storage_deleted,
        )

    async def _delete_object(self, image: GalleryImage) -> bool:
        try:
            return await self._store.delete(image.url)
        except GuestlensError as exc:
            log.warning(
                "Rejected image could not be deleted from storage",
                extra={
                    "extra_fields": {
                        "image_id": image.image_id,
                        "url": image.url,
                        "error_code": exc.code,
                        "error": exc.message,
                    }
                },
            )
            return False
