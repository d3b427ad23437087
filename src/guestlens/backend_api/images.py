"""Image metadata API wrappers for the wedding backend.

Covers the image lifecycle on the backend side:

1. **Add** -- register uploaded URLs against a category (unapproved).
2. **List** -- approved images of one category, all images, or the
   unapproved backlog.
3. **Decide** -- approve an image, or reject it (the backend deletes the
   record).
"""

from __future__ import annotations

from typing import Any

from guestlens.errors import GuestlensSchemaError
from guestlens.models import GalleryImage, require_list

from .transport import BackendTransport


def _parse_images(data: dict[str, Any], model: str) -> list[GalleryImage]:
    return [GalleryImage.from_payload(raw) for raw in require_list(data, "images", model)]


class ImageAPI:
    """Async wrapper for the image endpoints.

    Parameters
    ----------
    transport:
        A configured :class:`BackendTransport` instance.
    """

    ADD_PATH = "/api/wedding/addimages"
    LIST_PATH = "/api/wedding/lstimages"
    LIST_ALL_PATH = "/api/wedding/lstallimgs"
    LIST_UNAPPROVED_PATH = "/api/wedding/unprvdimgs"
    DECIDE_PATH = "/api/wedding/apprvimg"

    def __init__(self, transport: BackendTransport) -> None:
        self._transport = transport

    async def add(self, urls: list[str], category_id: str) -> int:
        """Register *urls* under *category_id*.

        Returns
        -------
        int
            The number of records the backend created.
        """
        data = await self._transport.post(
            self.ADD_PATH,
            {"imageURLs": list(urls), "catID": category_id},
        )
        count = data.get("createdCount")
        if isinstance(count, bool) or not isinstance(count, int):
            raise GuestlensSchemaError(
                message="addimages response is missing an integer 'createdCount'",
                context={"model": "ImageAdd", "field": "createdCount", "payload": data},
            )
        return count

    async def list_by_category(self, category_id: str) -> list[GalleryImage]:
        """Return the images of one category as the backend reports them."""
        data = await self._transport.post(self.LIST_PATH, {"catID": category_id})
        return _parse_images(data, "ImageList")

    async def list_all(self) -> list[GalleryImage]:
        data = await self._transport.post(self.LIST_ALL_PATH)
        return _parse_images(data, "ImageList")

    async def list_unapproved(self) -> list[GalleryImage]:
        data = await self._transport.post(self.LIST_UNAPPROVED_PATH)
        return _parse_images(data, "ImageList")

    async def decide(self, image_id: str, approve: bool) -> str:
        """Approve or reject *image_id*.  Returns the backend's ``action``."""
        data = await self._transport.post(
            self.DECIDE_PATH,
            {"imageID": image_id, "approve": approve},
        )
        action = data.get("action")
        if not isinstance(action, str):
            raise GuestlensSchemaError(
                message="apprvimg response is missing 'action'",
                context={"model": "ImageDecision", "field": "action", "payload": data},
            )
        return action
