"""Category API wrappers for the wedding backend."""

from __future__ import annotations

from typing import Any

from guestlens.errors import GuestlensSchemaError
from guestlens.models import Category, require_list

from .transport import BackendTransport


class CategoryAPI:
    """Async wrapper for the category endpoints.

    Parameters
    ----------
    transport:
        A configured :class:`BackendTransport` instance.
    """

    LIST_PATH = "/api/wedding/getcategories"
    CREATE_PATH = "/api/wedding/createcategory"

    def __init__(self, transport: BackendTransport) -> None:
        self._transport = transport

    async def list(self) -> list[Category]:
        """Return every category of the wedding, in backend order."""
        data = await self._transport.post(self.LIST_PATH)
        return [Category.from_payload(raw) for raw in require_list(data, "categories", "CategoryList")]

    async def create(self, name: str) -> str:
        """Create a category named *name* and return its new identifier.

        The backend does not deduplicate names; two calls with the same
        name produce two categories.
        """
        data: dict[str, Any] = await self._transport.post(self.CREATE_PATH, {"catName": name})
        new_id = data.get("id")
        if isinstance(new_id, bool) or not isinstance(new_id, (str, int)) or not str(new_id).strip():
            raise GuestlensSchemaError(
                message="createcategory response is missing 'id'",
                context={"model": "CategoryCreate", "field": "id", "payload": data},
            )
        return str(new_id).strip()
