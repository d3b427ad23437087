"""Metadata registrar: record uploaded URLs against a category.

New records are created unapproved; they only appear in the public
gallery once an admin approves them.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from guestlens.backend_api.images import ImageAPI
from guestlens.errors import GuestlensError, GuestlensRegistrationError, GuestlensValidationError
from guestlens.models import RegistrationResult
from guestlens.observability import get_logger
from guestlens.observability.metrics import resolve_metrics

log = get_logger("guestlens.registrar")


class MetadataRegistrar:
    """Register stored photos with the backend.

    The registrar never deletes storage objects: when registration fails
    the URLs are reported as orphaned and cleanup is the caller's call.

    Parameters
    ----------
    api:
        The backend :class:`ImageAPI`.
    metrics:
        Optional metrics hook.
    """

    def __init__(self, api: ImageAPI, metrics: Any | None = None) -> None:
        self._api = api
        self._metrics = resolve_metrics(metrics)

    async def register(self, urls: Sequence[str], category_id: str) -> RegistrationResult:
        """Create one unapproved image record per URL.

        Raises
        ------
        GuestlensValidationError
            If *urls* is empty or *category_id* is blank (no request is
            sent).
        GuestlensRegistrationError
            If the backend call fails; ``context["orphaned_urls"]`` lists
            the URLs now stored without metadata.
        """
        url_list = [u for u in urls if u]
        if not url_list:
            raise GuestlensValidationError(
                message="No uploaded URLs to register",
                context={"field": "urls", "reason": "No photos were uploaded."},
            )
        if not category_id or not category_id.strip():
            raise GuestlensValidationError(
                message="A category is required to register photos",
                context={"field": "category_id", "reason": "Please choose a category."},
            )

        try:
            created = await self._api.add(url_list, category_id)
        except GuestlensError as exc:
            self._metrics.increment("guestlens.registration_failure_total")
            log.error(
                "Registration failed after upload",
                extra={
                    "extra_fields": {
                        "category_id": category_id,
                        "orphaned": len(url_list),
                        "error_code": exc.code,
                        "error": exc.message,
                    }
                },
            )
            raise GuestlensRegistrationError(
                message=(
                    f"{len(url_list)} photo(s) were saved to storage but could not be "
                    f"registered: {exc.message}"
                ),
                context={"orphaned_urls": url_list, "category_id": category_id},
                cause=exc,
            ) from exc

        if created != len(url_list):
            log.warning(
                "Backend created a different number of records than requested",
                extra={"extra_fields": {"requested": len(url_list), "created": created}},
            )

        return RegistrationResult(
            category_id=category_id,
            urls=url_list,
            created_count=created,
            pending_approval=True,
        )
