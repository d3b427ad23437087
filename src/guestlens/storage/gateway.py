"""Backend-mediated object storage.

The browser never holds storage credentials; uploads are posted to the
backend's storage endpoints as data URIs and the backend writes to the
bucket.
"""

from __future__ import annotations

import base64

from guestlens.backend_api.transport import BackendTransport
from guestlens.errors import GuestlensSchemaError, GuestlensStorageError
from guestlens.observability import get_logger

log = get_logger("guestlens.storage")


class HttpStorageGateway:
    """:class:`~guestlens.storage.ObjectStore` backed by the backend API.

    Writes are sent with ``retry=False``: the upload coordinator owns
    retries for storage puts.

    Parameters
    ----------
    transport:
        A configured :class:`BackendTransport` instance.
    """

    def __init__(self, transport: BackendTransport) -> None:
        self._transport = transport
        self._config = transport.config

    async def put(self, data: bytes, key: str, content_type: str) -> str:
        encoded = base64.b64encode(data).decode("ascii")
        body = {
            "key": key,
            "contentType": content_type,
            "image": f"data:{content_type};base64,{encoded}",
        }
        result = await self._transport.post(
            self._config.storage_upload_path,
            body,
            retry=False,
            timeout=self._config.upload_timeout_seconds,
        )
        url = result.get("url")
        if not isinstance(url, str) or not url:
            raise GuestlensSchemaError(
                message="storage upload response is missing 'url'",
                context={"model": "StoragePut", "field": "url", "payload": result},
            )
        log.debug(
            "Stored object",
            extra={"extra_fields": {"key": key, "bytes": len(data)}},
        )
        return url

    async def delete(self, url: str) -> bool:
        result = await self._transport.post(
            self._config.storage_delete_path,
            {"fileUrl": url},
        )
        if result.get("success") is not True:
            raise GuestlensStorageError(
                message=f"Storage refused to delete {url}",
                context={"url": url, "transient": False},
            )
        return True
