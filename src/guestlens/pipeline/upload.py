"""Upload coordinator: size gate, storage keys, chunked sequential uploads.

Requests are sent to the object store in chunks of
``config.upload_chunk_size``.  Chunks go one after another; the items
inside a chunk are put concurrently.  A chunk is retried under the shared
:class:`RetryPolicy` and only its not-yet-stored items are re-sent, each
under the key it was first assigned.  One chunk failing never discards
the results of earlier chunks.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Sequence
from typing import Any

from guestlens.backend_api.retries import RetryPolicy, retry_async
from guestlens.config import GuestlensConfig
from guestlens.errors import (
    GuestlensError,
    GuestlensImageSizeError,
    GuestlensNetworkError,
    GuestlensStorageError,
)
from guestlens.image.validate import check_size
from guestlens.models import UploadBatchResult, UploadOutcome, UploadRequest
from guestlens.observability import get_logger
from guestlens.observability.metrics import resolve_metrics
from guestlens.storage.base import ObjectStore, build_object_key
from guestlens.utils.chunk import chunk_items

log = get_logger("guestlens.upload")


async def put_with_timeout(
    store: ObjectStore,
    data: bytes,
    key: str,
    content_type: str,
    timeout: float,
    filename: str,
) -> str:
    """Store one object, turning a hung ``put`` into a retryable network error."""
    try:
        return await asyncio.wait_for(store.put(data, key, content_type), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise GuestlensNetworkError(
            message=f"Timed out storing {filename}",
            context={"url": key, "timeout": True},
            cause=exc,
        ) from exc


class UploadCoordinator:
    """Move encoded images into object storage.

    Parameters
    ----------
    store:
        Destination :class:`ObjectStore`.
    config:
        Supplies the size limit, chunk size, attempts and timeout.
    metrics:
        Optional metrics hook; defaults to ``config.metrics``.
    """

    def __init__(
        self,
        store: ObjectStore,
        config: GuestlensConfig,
        metrics: Any | None = None,
    ) -> None:
        self._store = store
        self._config = config
        self._metrics = resolve_metrics(metrics if metrics is not None else config.metrics)
        self._policy = RetryPolicy.from_config(config, max_attempts=config.upload_max_attempts)

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def upload(
        self,
        requests: Sequence[UploadRequest],
        path_prefix: str | None = None,
    ) -> UploadBatchResult:
        """Upload *requests* and report a per-item outcome.

        Outcomes are returned in the order of *requests*.  Oversize
        payloads fail with :class:`GuestlensImageSizeError` before any
        network call.
        """
        prefix = path_prefix if path_prefix is not None else self._config.guest_upload_prefix
        outcomes: list[UploadOutcome | None] = [None] * len(requests)
        sendable: list[tuple[int, UploadRequest, str]] = []

        for index, req in enumerate(requests):
            try:
                check_size(req.filename, req.payload.size_bytes, self._config.max_upload_bytes)
            except GuestlensImageSizeError as exc:
                outcomes[index] = self._failed(req, exc)
                continue
            key = build_object_key(prefix, req.filename, req.payload.extension)
            sendable.append((index, req, key))

        chunks = chunk_items(sendable, self._config.upload_chunk_size)
        for chunk_no, chunk in enumerate(chunks, start=1):
            stored: dict[int, str] = {}
            fatal: dict[int, GuestlensError] = {}
            try:
                await retry_async(
                    self._policy,
                    functools.partial(self._send_chunk, chunk, stored, fatal),
                    op="upload_chunk",
                    on_retry=self._count_retry,
                )
            except Exception as exc:
                log.warning(
                    "Upload chunk failed",
                    extra={
                        "extra_fields": {
                            "op": "upload",
                            "chunk": chunk_no,
                            "chunks": len(chunks),
                            "error": str(exc),
                        }
                    },
                )
                for index, req, key in chunk:
                    if index not in stored and index not in fatal:
                        fatal[index] = GuestlensStorageError(
                            message=f"Could not store {req.filename}: {exc}",
                            context={"filename": req.filename, "key": key, "transient": True},
                            cause=exc,
                        )

            for index, req, key in chunk:
                if index in stored:
                    outcomes[index] = self._succeeded(req, key, stored[index])
                else:
                    outcomes[index] = self._failed(req, fatal[index])

            log.info(
                "Upload chunk finished",
                extra={
                    "extra_fields": {
                        "op": "upload",
                        "chunk": chunk_no,
                        "chunks": len(chunks),
                        "items": len(chunk),
                        "stored": len(stored),
                    }
                },
            )

        return UploadBatchResult(outcomes=[o for o in outcomes if o is not None])

    # -- internals ---------------------------------------------------------

    async def _put(self, req: UploadRequest, key: str) -> str:
        return await put_with_timeout(
            self._store,
            req.payload.data,
            key,
            req.payload.mime_type,
            self._config.upload_timeout_seconds,
            req.filename,
        )

    async def _send_chunk(
        self,
        chunk: list[tuple[int, UploadRequest, str]],
        stored: dict[int, str],
        fatal: dict[int, GuestlensError],
    ) -> None:
        todo = [entry for entry in chunk if entry[0] not in stored and entry[0] not in fatal]
        results = await asyncio.gather(
            *(self._put(req, key) for _index, req, key in todo),
            return_exceptions=True,
        )

        transient: list[Exception] = []
        for (index, req, key), result in zip(todo, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                if self._policy.classify(result):
                    transient.append(result)
                elif isinstance(result, GuestlensError):
                    fatal[index] = result
                else:
                    fatal[index] = GuestlensStorageError(
                        message=f"Could not store {req.filename}: {result}",
                        context={"filename": req.filename, "key": key, "transient": False},
                        cause=result,
                    )
            else:
                stored[index] = result

        if transient:
            raise transient[0]

    def _count_retry(self, attempt: int, exc: BaseException, delay: float) -> None:
        self._metrics.increment("guestlens.retries_total", tags={"op": "upload_chunk"})

    def _succeeded(self, req: UploadRequest, key: str, url: str) -> UploadOutcome:
        self._metrics.increment("guestlens.upload_success_total")
        return UploadOutcome(filename=req.filename, success=True, item_id=req.item_id, url=url, key=key)

    def _failed(self, req: UploadRequest, error: GuestlensError) -> UploadOutcome:
        self._metrics.increment(
            "guestlens.upload_failure_total",
            tags={"code": str(error.code)},
        )
        if "filename" not in error.context:
            error.context["filename"] = req.filename
        return UploadOutcome(filename=req.filename, success=False, item_id=req.item_id, error=error)
