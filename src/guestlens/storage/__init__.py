"""Object storage for uploaded photos."""

from __future__ import annotations

from .base import ObjectStore, build_object_key, key_from_url, public_url
from .gateway import HttpStorageGateway
from .s3 import S3ObjectStore

__all__ = [
    "HttpStorageGateway",
    "ObjectStore",
    "S3ObjectStore",
    "build_object_key",
    "key_from_url",
    "public_url",
]
