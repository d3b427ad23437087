"""Direct S3 object storage via boto3.

boto3 is synchronous; each call runs in ``asyncio.to_thread`` so the event
loop keeps serving other uploads.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from guestlens.errors import GuestlensStorageError, GuestlensValidationError
from guestlens.observability import get_logger

from .base import key_from_url, public_url

if TYPE_CHECKING:
    from guestlens.config import GuestlensConfig

log = get_logger("guestlens.storage")

# S3 error codes worth retrying.
_TRANSIENT_CODES = frozenset({
    "InternalError",
    "RequestTimeout",
    "ServiceUnavailable",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
})


def _is_transient_client_error(exc: ClientError) -> bool:
    error = exc.response.get("Error", {})
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
    return error.get("Code") in _TRANSIENT_CODES or status >= 500


class S3ObjectStore:
    """:class:`~guestlens.storage.ObjectStore` writing straight to a bucket.

    Parameters
    ----------
    bucket:
        Bucket name.
    region:
        Bucket region; part of the public URL.
    client:
        Optional pre-built boto3 S3 client.  Credentials otherwise come
        from the standard AWS environment.
    """

    def __init__(self, bucket: str, region: str, client: Any | None = None) -> None:
        if not bucket or not region:
            raise GuestlensValidationError(
                message="S3 storage requires both a bucket and a region",
                context={"field": "s3_bucket", "value": bucket},
            )
        self.bucket = bucket
        self.region = region
        self._client = client or boto3.client("s3", region_name=region)

    @classmethod
    def from_config(cls, config: GuestlensConfig, client: Any | None = None) -> S3ObjectStore:
        return cls(config.s3_bucket or "", config.s3_region or "", client=client)

    async def put(self, data: bytes, key: str, content_type: str) -> str:
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except ClientError as exc:
            raise GuestlensStorageError(
                message=f"S3 rejected upload of {key}: {exc}",
                context={"key": key, "transient": _is_transient_client_error(exc)},
                cause=exc,
            ) from exc
        except BotoCoreError as exc:
            raise GuestlensStorageError(
                message=f"S3 upload of {key} failed: {exc}",
                context={"key": key, "transient": True},
                cause=exc,
            ) from exc
        return public_url(self.bucket, self.region, key)

    @property
    def host(self) -> str:
        return urlparse(public_url(self.bucket, self.region, "")).netloc

    async def delete(self, url: str) -> bool:
        """Delete the object behind *url*.

        Returns ``False`` without touching the bucket when *url* is not an
        object URL of this bucket.
        """
        if urlparse(url).netloc.lower() != self.host.lower():
            log.warning(
                "Refusing to delete an object outside this bucket",
                extra={"extra_fields": {"url": url, "bucket": self.bucket}},
            )
            return False
        key = key_from_url(url)
        if not key:
            log.warning(
                "Could not determine storage key from URL",
                extra={"extra_fields": {"url": url}},
            )
            return False
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise GuestlensStorageError(
                message=f"S3 delete of {key} failed: {exc}",
                context={"key": key, "url": url, "transient": isinstance(exc, BotoCoreError)},
                cause=exc,
            ) from exc
        log.info("Deleted object", extra={"extra_fields": {"key": key}})
        return True
