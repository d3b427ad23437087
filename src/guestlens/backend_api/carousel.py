"""Homepage carousel API wrappers for the wedding backend."""

from __future__ import annotations

from guestlens.errors import GuestlensBackendError, GuestlensSchemaError
from guestlens.models import CarouselImage, require_list

from .transport import BackendTransport


class CarouselAPI:
    """Async wrapper for the carousel endpoints.

    Parameters
    ----------
    transport:
        A configured :class:`BackendTransport` instance.
    """

    LIST_PATH = "/api/wedding/lstcarouselimg"
    ADD_PATH = "/api/wedding/addcarouselimg"
    DELETE_PATH = "/api/wedding/delcarouselimg"

    def __init__(self, transport: BackendTransport) -> None:
        self._transport = transport

    async def list(self) -> list[CarouselImage]:
        data = await self._transport.post(self.LIST_PATH)
        return [
            CarouselImage.from_payload(raw)
            for raw in require_list(data, "carouselImages", "CarouselList")
        ]

    async def add(self, url: str) -> CarouselImage:
        """Register *url* as a carousel slide and return the new record."""
        data = await self._transport.post(self.ADD_PATH, {"imageURL": url})
        carousel_id = data.get("carouselID")
        if isinstance(carousel_id, bool) or not isinstance(carousel_id, (str, int)):
            raise GuestlensSchemaError(
                message="addcarouselimg response is missing 'carouselID'",
                context={"model": "CarouselAdd", "field": "carouselID", "payload": data},
            )
        return CarouselImage(carousel_id=str(carousel_id), url=url)

    async def delete(self, carousel_id: str) -> None:
        data = await self._transport.post(self.DELETE_PATH, {"carouselID": carousel_id})
        if data.get("success") is not True:
            raise GuestlensBackendError(
                message=f"Backend refused to delete carousel image {carousel_id}",
                context={"path": self.DELETE_PATH, "body": data},
            )
