"""Shared test fixtures for the guestlens test suite."""

from __future__ import annotations

import io
import itertools
import json
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest
from PIL import Image

from guestlens.client import GuestlensClient
from guestlens.config import GuestlensConfig
from guestlens.storage.base import key_from_url

BUCKET_URL = "https://wedding-photos.s3.eu-west-1.amazonaws.com"


# ---------------------------------------------------------------------------
# In-memory object store
# ---------------------------------------------------------------------------

class InMemoryObjectStore:
    """ObjectStore fake that keeps objects in a dict.

    ``fail_next`` holds exceptions raised by the next puts, one per call.
    ``fail_matching`` maps a key substring to an exception raised on every
    put whose key contains it.
    """

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.put_calls: list[str] = []
        self.deleted: list[str] = []
        self.fail_next: list[Exception] = []
        self.fail_matching: dict[str, Exception] = {}
        self.delete_error: Exception | None = None

    async def put(self, data: bytes, key: str, content_type: str) -> str:
        self.put_calls.append(key)
        for marker, exc in self.fail_matching.items():
            if marker in key:
                raise exc
        if self.fail_next:
            raise self.fail_next.pop(0)
        self.objects[key] = (data, content_type)
        return f"{BUCKET_URL}/{key}"

    async def delete(self, url: str) -> bool:
        self.deleted.append(url)
        if self.delete_error is not None:
            raise self.delete_error
        key = key_from_url(url)
        if key is None:
            return False
        return self.objects.pop(key, None) is not None

    def has_url(self, url: str) -> bool:
        return key_from_url(url) in self.objects


# ---------------------------------------------------------------------------
# Fake wedding backend
# ---------------------------------------------------------------------------

class FakeBackend:
    """In-process wedding backend served through ``httpx.MockTransport``.

    ``fail_paths`` maps a path to the HTTP status returned for it.
    """

    def __init__(self, wedding_id: str = "wed-42", auth_key: str = "test-auth-key-1234") -> None:
        self.wedding_id = wedding_id
        self.auth_key = auth_key
        self.categories: list[dict[str, Any]] = []
        self.images: list[dict[str, Any]] = []
        self.carousel: list[dict[str, Any]] = []
        self.admins = {"bride": ("s3cret-pass", "1")}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.fail_paths: dict[str, int] = {}
        self._ids = itertools.count(1)
        self._clock = datetime(2025, 6, 14, 18, 0, tzinfo=timezone.utc)

    def _next_id(self) -> str:
        return str(next(self._ids))

    def _stamp(self) -> str:
        self._clock += timedelta(minutes=1)
        return self._clock.isoformat()

    def add_category(self, name: str) -> str:
        cat_id = self._next_id()
        self.categories.append({"catID": cat_id, "catName": name})
        return cat_id

    def add_image(self, url: str, category_id: str, approved: bool = False) -> str:
        image_id = self._next_id()
        self.images.append({
            "imageID": image_id,
            "imageURL": url,
            "categoryId": category_id,
            "approval": approved,
            "createdAt": self._stamp(),
        })
        return image_id

    def paths_called(self) -> list[str]:
        return [path for path, _body in self.calls]

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content or b"{}")
        self.calls.append((path, body))

        if path in self.fail_paths:
            return httpx.Response(self.fail_paths[path], json={"issue": "forced failure"})
        if body.get("wedId") != self.wedding_id or body.get("wedauthkey") != self.auth_key:
            return httpx.Response(401, json={"issue": "bad wedding credentials"})

        if path == "/api/wedding/getcategories":
            return httpx.Response(200, json={"categories": list(self.categories)})
        if path == "/api/wedding/createcategory":
            return httpx.Response(200, json={"id": self.add_category(body["catName"])})
        if path == "/api/wedding/addimages":
            for url in body["imageURLs"]:
                self.add_image(url, body["catID"])
            return httpx.Response(200, json={"createdCount": len(body["imageURLs"])})
        if path == "/api/wedding/lstimages":
            rows = [img for img in self.images if img["categoryId"] == body["catID"]]
            return httpx.Response(200, json={"images": rows})
        if path == "/api/wedding/lstallimgs":
            return httpx.Response(200, json={"images": list(self.images)})
        if path == "/api/wedding/unprvdimgs":
            rows = [img for img in self.images if not img["approval"]]
            return httpx.Response(200, json={"images": rows})
        if path == "/api/wedding/apprvimg":
            return self._decide(body)
        if path == "/api/wedding/lstcarouselimg":
            return httpx.Response(200, json={"carouselImages": list(self.carousel)})
        if path == "/api/wedding/addcarouselimg":
            carousel_id = self._next_id()
            self.carousel.append({"carouselID": carousel_id, "imageURL": body["imageURL"]})
            return httpx.Response(200, json={"carouselID": carousel_id})
        if path == "/api/wedding/delcarouselimg":
            before = len(self.carousel)
            self.carousel = [c for c in self.carousel if c["carouselID"] != body["carouselID"]]
            return httpx.Response(200, json={"success": len(self.carousel) < before})
        if path == "/api/wedadmin/login":
            return self._login(body)
        return httpx.Response(404, json={"issue": f"no route {path}"})

    def _decide(self, body: dict[str, Any]) -> httpx.Response:
        for img in self.images:
            if img["imageID"] == body["imageID"]:
                if body["approve"]:
                    img["approval"] = True
                    return httpx.Response(200, json={"action": "approved"})
                self.images.remove(img)
                return httpx.Response(200, json={"action": "deleted"})
        return httpx.Response(404, json={"issue": "Image not found"})

    def _login(self, body: dict[str, Any]) -> httpx.Response:
        entry = self.admins.get(body.get("admnUsrName"))
        if entry is None or entry[0] != body.get("admnUsrPwd"):
            return httpx.Response(200, json={"loginStatus": False, "issue": "Invalid credentials"})
        return httpx.Response(200, json={
            "loginStatus": True,
            "adminInfo": {"id": entry[1], "admnUsrName": body["admnUsrName"]},
        })


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def config() -> GuestlensConfig:
    """Test configuration with zero retry delays."""
    return GuestlensConfig(
        backend_url="http://localhost:8080",
        wedding_id="wed-42",
        auth_key="test-auth-key-1234",
        session_secret="test-session-secret-0123456789abcdef",
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        retry_jitter=False,
    )


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def client(config: GuestlensConfig, store: InMemoryObjectStore, backend: FakeBackend):
    """A GuestlensClient wired to the fake backend and in-memory store."""
    gl = GuestlensClient(config, store=store)
    await gl._transport._client.aclose()
    gl._transport._client = httpx.AsyncClient(
        base_url=config.backend_url,
        transport=httpx.MockTransport(backend.handler),
    )
    yield gl
    await gl.close()


@pytest.fixture
def make_image():
    """Factory returning encoded image bytes built with Pillow."""

    def _make(
        fmt: str = "JPEG",
        size: tuple[int, int] = (64, 48),
        mode: str = "RGB",
        color: Any = (200, 120, 80),
        **save_kwargs: Any,
    ) -> bytes:
        if mode == "RGBA" and len(color) == 3:
            color = (*color, 128)
        img = Image.new(mode, size, color)
        buf = io.BytesIO()
        img.save(buf, format=fmt, **save_kwargs)
        return buf.getvalue()

    return _make
