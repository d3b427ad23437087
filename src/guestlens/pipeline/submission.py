"""Submission pipeline: from selected files to registered, unapproved photos.

Stages, in order:

1. Validate the request (at least one item, a category).
2. Per item, concurrently: size check, normalise, transcode.  A failure is
   confined to its item.
3. Upload the survivors in sequential chunks.
4. Once every upload has resolved, register the stored URLs in one call.

An item only reaches ``completed`` when its photo is both stored and
registered.  Photos stored but not registered end in ``error`` with a
:class:`GuestlensRegistrationError`, and their storage objects are removed
in the background when ``config.cleanup_orphans`` is set.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from guestlens.config import GuestlensConfig
from guestlens.errors import (
    GuestlensError,
    GuestlensRegistrationError,
    GuestlensUploadError,
    GuestlensValidationError,
)
from guestlens.image.normalize import normalize
from guestlens.image.transcode import transcode
from guestlens.image.validate import check_size
from guestlens.models import RegistrationResult, UploadRequest, UploadStatus
from guestlens.observability import get_logger
from guestlens.storage.base import ObjectStore

from .items import UploadableItem, UploadSession
from .registrar import MetadataRegistrar
from .upload import UploadCoordinator

log = get_logger("guestlens.submission")


@dataclass
class SubmissionResult:
    """Outcome of one submission.

    Attributes
    ----------
    items:
        The submitted items, in their final states.
    registration:
        The registrar's result, or ``None`` when nothing was registered.
    failures:
        ``(filename, user-facing message)`` for every failed item, in
        submission order.  Guests often send several photos with the same
        name, so this is a list rather than a mapping.
    warning:
        Set for a partial success ("2 of 3 photos uploaded ...").
    """

    items: list[UploadableItem]
    registration: RegistrationResult | None = None
    failures: list[tuple[str, str]] = field(default_factory=list)
    warning: str | None = None

    @property
    def registered(self) -> bool:
        return self.registration is not None

    @property
    def pending_approval(self) -> bool:
        return self.registered

    @property
    def total_success(self) -> int:
        return sum(1 for i in self.items if i.status is UploadStatus.COMPLETED)

    @property
    def total_failed(self) -> int:
        return sum(1 for i in self.items if i.status is UploadStatus.ERROR)


class SubmissionPipeline:
    """Run a batch of :class:`UploadableItem` through the full pipeline.

    Parameters
    ----------
    config:
        SDK configuration.
    coordinator:
        Uploads encoded images to storage.
    registrar:
        Registers stored URLs with the backend.
    store:
        Used to delete orphaned objects after a failed registration.
    """

    def __init__(
        self,
        config: GuestlensConfig,
        coordinator: UploadCoordinator,
        registrar: MetadataRegistrar,
        store: ObjectStore,
    ) -> None:
        self._config = config
        self._coordinator = coordinator
        self._registrar = registrar
        self._store = store
        self._background: set[asyncio.Task[Any]] = set()

    async def submit(
        self,
        items: Sequence[UploadableItem],
        category_id: str,
        *,
        require_all: bool = False,
        path_prefix: str | None = None,
    ) -> SubmissionResult:
        """Process, upload and register *items* under *category_id*.

        Parameters
        ----------
        items:
            Pending items to submit.
        category_id:
            Target category.
        require_all:
            Register nothing unless every item was stored.
        path_prefix:
            Storage prefix; defaults to ``config.guest_upload_prefix``.

        Raises
        ------
        GuestlensValidationError
            If *items* has no pending item or *category_id* is blank.
        """
        pending = [i for i in items if i.status is UploadStatus.PENDING]
        if not pending:
            raise GuestlensValidationError(
                message="No pending photos to submit",
                context={"field": "items", "reason": "Please select at least one photo."},
            )
        if not category_id or not category_id.strip():
            raise GuestlensValidationError(
                message="A category is required",
                context={"field": "category_id", "reason": "Please choose a category."},
            )

        log.info(
            "Submission started",
            extra={"extra_fields": {"items": len(pending), "category_id": category_id}},
        )

        # 2. Prepare concurrently.
        prepared = await asyncio.gather(*(self._prepare(item) for item in pending))
        ready = [(item, req) for item, req in zip(pending, prepared) if req is not None]

        if require_all and len(ready) < len(pending):
            self._block_all(ready, "other photos in this batch could not be processed")
            return self._finish(pending, None)

        # 3. Upload.
        for item, _req in ready:
            item.mark_uploading()
        batch = await self._coordinator.upload([req for _item, req in ready], path_prefix)

        stored: list[tuple[UploadableItem, str]] = []
        for (item, _req), outcome in zip(ready, batch.outcomes):
            if outcome.success and outcome.url:
                stored.append((item, outcome.url))
            elif outcome.error is not None:
                item.mark_failed(outcome.error)

        if not stored:
            return self._finish(pending, None)

        if require_all and batch.total_failed:
            urls = [url for _item, url in stored]
            for item, _url in stored:
                item.mark_failed(self._blocked_error(item, "other photos in this batch failed to upload"))
            self._cleanup_orphans(urls)
            return self._finish(pending, None)

        # 4. Register.
        urls = [url for _item, url in stored]
        try:
            registration = await self._registrar.register(urls, category_id)
        except GuestlensRegistrationError as exc:
            for item, url in stored:
                item.mark_failed(
                    GuestlensRegistrationError(
                        message=f"{item.filename} was saved to storage but not registered",
                        context={
                            "filename": item.filename,
                            "orphaned_urls": [url],
                            "category_id": category_id,
                        },
                        cause=exc,
                    )
                )
            self._cleanup_orphans(urls)
            return self._finish(pending, None)

        for item, url in stored:
            item.mark_completed(url)
        return self._finish(pending, registration)

    async def submit_session(
        self,
        session: UploadSession,
        category_id: str,
        **kwargs: Any,
    ) -> SubmissionResult:
        """Submit the pending items of *session*, freezing it meanwhile."""
        with session.submission() as items:
            return await self.submit(items, category_id, **kwargs)

    async def drain(self) -> None:
        """Wait for background orphan cleanup to finish."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # -- internals ---------------------------------------------------------

    async def _prepare(self, item: UploadableItem) -> UploadRequest | None:
        config = self._config
        try:
            check_size(item.filename, item.source.size_bytes, config.max_upload_bytes)
            normalized = await asyncio.to_thread(normalize, item.source, config)
            encoded = await asyncio.to_thread(
                transcode,
                normalized.data,
                max_dimension=config.max_dimension,
                quality=config.webp_quality,
                filename=item.filename,
            )
        except GuestlensError as exc:
            exc.context.setdefault("filename", item.filename)
            log.info(
                "Photo rejected before upload",
                extra={"extra_fields": {"filename": item.filename, "error_code": exc.code}},
            )
            item.mark_failed(exc)
            return None
        return UploadRequest(payload=encoded, filename=normalized.name, item_id=item.item_id)

    @staticmethod
    def _blocked_error(item: UploadableItem, reason: str) -> GuestlensUploadError:
        return GuestlensUploadError(
            message=f"{item.filename} was not submitted because {reason}",
            context={"filename": item.filename},
        )

    def _block_all(self, ready: list[tuple[UploadableItem, UploadRequest]], reason: str) -> None:
        for item, _req in ready:
            item.mark_failed(self._blocked_error(item, reason))

    def _cleanup_orphans(self, urls: list[str]) -> None:
        if not self._config.cleanup_orphans or not urls:
            return
        task = asyncio.get_running_loop().create_task(self._delete_orphans(list(urls)))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _delete_orphans(self, urls: list[str]) -> None:
        for url in urls:
            try:
                await self._store.delete(url)
            except GuestlensError as exc:
                log.warning(
                    "Orphan cleanup failed",
                    extra={"extra_fields": {"url": url, "error_code": exc.code, "error": exc.message}},
                )
            else:
                log.info("Removed orphaned upload", extra={"extra_fields": {"url": url}})

    def _finish(
        self,
        items: list[UploadableItem],
        registration: RegistrationResult | None,
    ) -> SubmissionResult:
        failures = [
            (item.filename, item.error_message or "Upload failed.")
            for item in items
            if item.status is UploadStatus.ERROR
        ]
        result = SubmissionResult(items=list(items), registration=registration, failures=failures)
        if registration is not None and failures:
            result.warning = (
                f"{result.total_success} of {len(items)} photos uploaded; "
                f"{result.total_failed} could not be uploaded."
            )
        log.info(
            "Submission finished",
            extra={
                "extra_fields": {
                    "items": len(items),
                    "completed": result.total_success,
                    "failed": result.total_failed,
                    "registered": result.registered,
                }
            },
        )
        return result
