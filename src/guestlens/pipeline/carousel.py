"""Carousel manager: admin-curated homepage slides.

Carousel images skip moderation.  Adding one transcodes the photo
(optionally cropped), stores it under ``config.carousel_upload_prefix``
and registers it; a failed registration deletes the just-stored object so
nothing is orphaned.
"""

from __future__ import annotations

import asyncio
from typing import Any

from guestlens.auth.session import require_session
from guestlens.backend_api.carousel import CarouselAPI
from guestlens.backend_api.retries import RetryPolicy, retry_async
from guestlens.config import GuestlensConfig
from guestlens.errors import GuestlensError, GuestlensRegistrationError
from guestlens.image.normalize import normalize
from guestlens.image.transcode import transcode
from guestlens.image.validate import check_size
from guestlens.models import AdminSession, CarouselImage, CropBox, SourceFile
from guestlens.observability import get_logger
from guestlens.storage.base import ObjectStore, build_object_key

from .upload import put_with_timeout

log = get_logger("guestlens.carousel")


class CarouselManager:
    """List, add and delete homepage carousel images.

    Parameters
    ----------
    api:
        The backend :class:`CarouselAPI`.
    store:
        Object store holding the slide images.
    config:
        SDK configuration.
    """

    def __init__(self, api: CarouselAPI, store: ObjectStore, config: GuestlensConfig) -> None:
        self._api = api
        self._store = store
        self._config = config
        self._policy = RetryPolicy.from_config(config, max_attempts=config.upload_max_attempts)

    async def list(self) -> list[CarouselImage]:
        return await self._api.list()

    async def add(
        self,
        source: SourceFile,
        session: AdminSession | None,
        crop: CropBox | None = None,
    ) -> CarouselImage:
        """Transcode, store and register *source* as a carousel slide.

        Raises
        ------
        GuestlensAuthError
            Without a valid admin session (nothing is uploaded).
        GuestlensImageError
            If the file is too large or cannot be processed.
        GuestlensRegistrationError
            If the backend rejects the new slide; the stored object has
            already been deleted (``context["cleaned_up"]``).
        """
        require_session(session)
        config = self._config

        check_size(source.name, source.size_bytes, config.max_upload_bytes)
        normalized = await asyncio.to_thread(normalize, source, config)
        encoded = await asyncio.to_thread(
            transcode,
            normalized.data,
            crop=crop,
            max_dimension=config.max_dimension,
            quality=config.webp_quality,
            filename=source.name,
        )

        key = build_object_key(config.carousel_upload_prefix, normalized.name, encoded.extension)
        url = await retry_async(
            self._policy,
            lambda: put_with_timeout(
                self._store,
                encoded.data,
                key,
                encoded.mime_type,
                config.upload_timeout_seconds,
                source.name,
            ),
            op="carousel_upload",
        )

        try:
            image = await self._api.add(url)
        except GuestlensError as exc:
            cleaned_up = await self._delete_object(url)
            raise GuestlensRegistrationError(
                message=f"Carousel image {source.name} could not be registered: {exc.message}",
                context={
                    "filename": source.name,
                    "orphaned_urls": [] if cleaned_up else [url],
                    "cleaned_up": cleaned_up,
                },
                cause=exc,
            ) from exc

        log.info(
            "Carousel image added",
            extra={"extra_fields": {"carousel_id": image.carousel_id, "key": key}},
        )
        return image

    async def delete(self, image: CarouselImage, session: AdminSession | None) -> bool:
        """Delete a carousel slide.

        The storage object goes first; a storage failure is logged and the
        backend record is deleted regardless.

        Returns
        -------
        bool
            Whether the storage object was deleted.
        """
        require_session(session)
        storage_deleted = await self._delete_object(image.url)
        await self._api.delete(image.carousel_id)
        log.info(
            "Carousel image deleted",
            extra={
                "extra_fields": {
                    "carousel_id": image.carousel_id,
                    "storage_deleted": storage_deleted,
                }
            },
        )
        return storage_deleted

    async def _delete_object(self, url: str) -> bool:
        try:
            return await self._store.delete(url)
        except GuestlensError as exc:
            log.warning(
                "Storage delete failed",
                extra={"extra_fields": {"url": url, "error_code": exc.code, "error": exc.message}},
            )
            return False
