"""Asynchronous guestlens client.

:class:`GuestlensClient` wires the transport, object store and pipeline
components together from one :class:`GuestlensConfig` and exposes the
guest and admin operations of the wedding gallery.

Usage::

    import asyncio
    from guestlens import GuestlensClient, GuestlensConfig, SourceFile

    async def main():
        config = GuestlensConfig.from_env()
        async with GuestlensClient(config) as client:
            await client.categories.refresh()
            session = client.new_upload_session()
            session.add(SourceFile.from_path("IMG_0001.HEIC"))
            result = await client.submit(session, client.categories.categories[0].category_id)
            print(result.total_success, result.failures)

    asyncio.run(main())
"""

from __future__ import annotations

import dataclasses
from typing import Any

from guestlens.auth.csrf import CsrfGuard
from guestlens.auth.session import SessionGate
from guestlens.backend_api.admin import AdminAuthAPI
from guestlens.backend_api.carousel import CarouselAPI
from guestlens.backend_api.categories import CategoryAPI
from guestlens.backend_api.images import ImageAPI
from guestlens.backend_api.transport import BackendTransport
from guestlens.config import GuestlensConfig
from guestlens.errors import GuestlensValidationError
from guestlens.models import AdminSession, GalleryImage
from guestlens.moderation.queue import ModerationQueue
from guestlens.observability.metrics import resolve_metrics
from guestlens.pipeline.carousel import CarouselManager
from guestlens.pipeline.categories import CategoryResolver
from guestlens.pipeline.items import UploadableItem, UploadSession
from guestlens.pipeline.registrar import MetadataRegistrar
from guestlens.pipeline.submission import SubmissionPipeline, SubmissionResult
from guestlens.pipeline.upload import UploadCoordinator
from guestlens.storage.base import ObjectStore
from guestlens.storage.gateway import HttpStorageGateway
from guestlens.storage.s3 import S3ObjectStore


class GuestlensClient:
    """Asynchronous wedding gallery client.

    Parameters
    ----------
    config:
        SDK configuration.  When omitted, one is built from *kwargs*.
    store:
        Object store override.  Defaults to :class:`S3ObjectStore` when
        ``s3_bucket`` and ``s3_region`` are configured, otherwise to the
        backend's :class:`HttpStorageGateway`.
    **kwargs:
        Forwarded to :class:`GuestlensConfig` (or applied on top of
        *config*).
    """

    def __init__(
        self,
        config: GuestlensConfig | None = None,
        *,
        store: ObjectStore | None = None,
        **kwargs: Any,
    ) -> None:
        if config is None:
            config = GuestlensConfig(**kwargs)
        elif kwargs:
            config = dataclasses.replace(config, **kwargs)
        self._config = config
        metrics = resolve_metrics(config.metrics)

        self._transport = BackendTransport(config)
        self._images = ImageAPI(self._transport)
        self._admin = AdminAuthAPI(self._transport)
        self._store = store if store is not None else self._default_store()

        self._categories = CategoryResolver(CategoryAPI(self._transport))
        self._pipeline = SubmissionPipeline(
            config,
            UploadCoordinator(self._store, config, metrics),
            MetadataRegistrar(self._images, metrics),
            self._store,
        )
        self._carousel = CarouselManager(CarouselAPI(self._transport), self._store, config)
        self._sessions = SessionGate(config)
        self._csrf = CsrfGuard(config)

    def _default_store(self) -> ObjectStore:
        if self._config.s3_bucket and self._config.s3_region:
            return S3ObjectStore.from_config(self._config)
        return HttpStorageGateway(self._transport)

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def config(self) -> GuestlensConfig:
        return self._config

    @property
    def store(self) -> ObjectStore:
        return self._store

    @property
    def categories(self) -> CategoryResolver:
        return self._categories

    @property
    def carousel(self) -> CarouselManager:
        return self._carousel

    @property
    def pipeline(self) -> SubmissionPipeline:
        return self._pipeline

    @property
    def sessions(self) -> SessionGate:
        return self._sessions

    @property
    def csrf(self) -> CsrfGuard:
        return self._csrf

    # ------------------------------------------------------------------
    # Guest operations
    # ------------------------------------------------------------------

    def new_upload_session(self) -> UploadSession:
        return UploadSession()

    async def submit(
        self,
        items: UploadSession | list[UploadableItem],
        category_id: str | None = None,
        *,
        require_all: bool = False,
    ) -> SubmissionResult:
        """Submit photos into *category_id* (default: the active category).

        Passing an :class:`UploadSession` freezes it for the duration.
        """
        target = category_id if category_id is not None else self._categories.active_id
        if not target:
            raise GuestlensValidationError(
                message="A category is required",
                context={"field": "category_id", "reason": "Please choose a category."},
            )
        if isinstance(items, UploadSession):
            return await self._pipeline.submit_session(items, target, require_all=require_all)
        return await self._pipeline.submit(items, target, require_all=require_all)

    async def list_gallery(self, category_id: str) -> list[GalleryImage]:
        """Approved images of one category, newest first."""
        images = await self._images.list_by_category(category_id)
        visible = [img for img in images if img.approved]
        return sorted(visible, key=lambda img: img.created_at, reverse=True)

    async def list_all_images(self) -> list[GalleryImage]:
        """Every registered image, approved or not."""
        return await self._images.list_all()

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    async def login(self, username: str, password: str) -> str:
        """Check admin credentials and return a session token for the cookie."""
        identity = await self._admin.login(username, password)
        return self._sessions.issue(identity.admin_id, identity.username)

    def authenticate(
        self,
        cookie_value: str | None,
        *,
        csrf_header: str | None = None,
        csrf_cookie: str | None = None,
        require_csrf: bool = True,
    ) -> AdminSession:
        """Verify a request's session cookie (and CSRF tokens).

        Raises
        ------
        GuestlensAuthError
            If the session cookie is missing, invalid or expired.
        GuestlensCsrfError
            If *require_csrf* and the CSRF tokens are missing or differ.
        """
        session = self._sessions.verify(cookie_value)
        if require_csrf:
            self._csrf.verify(csrf_header, csrf_cookie)
        return session

    def moderation(self, session: AdminSession | None = None) -> ModerationQueue:
        """A new moderation queue bound to *session*."""
        return ModerationQueue(self._images, self._store, self._config, session=session)

    # ------------------------------------------------------------------
    # Resource management
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Finish background cleanup and close the HTTP transport."""
        await self._pipeline.drain()
        await self._transport.close()

    async def __aenter__(self) -> GuestlensClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
