"""GuestlensClient wiring, guest operations and admin authentication."""

from __future__ import annotations

import pytest

from guestlens import GuestlensClient, SourceFile
from guestlens.errors import (
    GuestlensAuthError,
    GuestlensCsrfError,
    GuestlensError,
    GuestlensValidationError,
)
from guestlens.models import ReviewState
from guestlens.storage import HttpStorageGateway, S3ObjectStore

# =========================================================================
# Construction
# =========================================================================


class TestConstruction:
    async def test_kwargs_build_config(self):
        async with GuestlensClient(wedding_id="wed-1", auth_key="k") as gl:
            assert gl.config.wedding_id == "wed-1"

    async def test_kwargs_override_config(self, config):
        async with GuestlensClient(config, moderation_order="newest_first") as gl:
            assert gl.config.moderation_order == "newest_first"
            assert gl.config.wedding_id == "wed-42"
        assert config.moderation_order == "oldest_first"

    async def test_default_store_is_gateway(self, config):
        async with GuestlensClient(config) as gl:
            assert isinstance(gl.store, HttpStorageGateway)

    async def test_s3_store_when_bucket_configured(self, config):
        async with GuestlensClient(config, s3_bucket="wedding-photos", s3_region="eu-west-1") as gl:
            assert isinstance(gl.store, S3ObjectStore)
            assert gl.store.bucket == "wedding-photos"

    async def test_explicit_store(self, config, store):
        async with GuestlensClient(config, store=store) as gl:
            assert gl.store is store


# =========================================================================
# Guest operations
# =========================================================================


class TestGuestOperations:
    async def test_submit_uses_active_category(self, client, backend, store, make_image):
        party = backend.add_category("Party")
        await client.categories.refresh()
        client.categories.select(party)

        session = client.new_upload_session()
        session.add(SourceFile(name="IMG_1.jpg", data=make_image("JPEG")))
        result = await client.submit(session)

        assert result.total_success == 1
        assert result.pending_approval
        assert [img["categoryId"] for img in backend.images] == [party]
        assert backend.images[0]["approval"] is False
        assert store.has_url(backend.images[0]["imageURL"])

    async def test_submit_without_category(self, client, make_image):
        session = client.new_upload_session()
        session.add(SourceFile(name="IMG_1.jpg", data=make_image("JPEG")))
        with pytest.raises(GuestlensValidationError) as exc_info:
            await client.submit(session)
        assert exc_info.value.user_message == "Please choose a category."

    async def test_gallery_shows_approved_newest_first(self, client, backend):
        cat = backend.add_category("Ceremony")
        other = backend.add_category("Dinner")
        first = backend.add_image("https://b/1.webp", cat, approved=True)
        backend.add_image("https://b/2.webp", cat, approved=False)
        third = backend.add_image("https://b/3.webp", cat, approved=True)
        backend.add_image("https://b/4.webp", other, approved=True)

        gallery = await client.list_gallery(cat)
        assert [img.image_id for img in gallery] == [third, first]

    async def test_list_all_images(self, client, backend):
        cat = backend.add_category("Ceremony")
        backend.add_image("https://b/1.webp", cat, approved=True)
        backend.add_image("https://b/2.webp", cat)
        images = await client.list_all_images()
        assert [img.approved for img in images] == [True, False]

    async def test_credentials_sent_with_every_call(self, client, backend):
        await client.categories.refresh()
        _path, body = backend.calls[-1]
        assert body["wedId"] == "wed-42"
        assert body["wedauthkey"] == "test-auth-key-1234"


# =========================================================================
# Admin authentication
# =========================================================================


class TestAdminAuth:
    async def test_login_then_authenticate(self, client):
        token = await client.login("bride", "s3cret-pass")
        session = client.authenticate(token, csrf_header="t0k", csrf_cookie="t0k")
        assert session.admin_id == "1"
        assert session.username == "bride"
        assert not session.expired

    async def test_wrong_password(self, client):
        with pytest.raises(GuestlensAuthError) as exc_info:
            await client.login("bride", "nope")
        assert exc_info.value.context["reason"] == "Invalid credentials"

    async def test_login_never_retried(self, client, backend):
        backend.fail_paths["/api/wedadmin/login"] = 503
        with pytest.raises(GuestlensError):
            await client.login("bride", "s3cret-pass")
        assert backend.paths_called().count("/api/wedadmin/login") == 1

    async def test_authenticate_without_cookie(self, client):
        with pytest.raises(GuestlensAuthError):
            client.authenticate(None, require_csrf=False)

    async def test_authenticate_csrf_mismatch(self, client):
        token = await client.login("bride", "s3cret-pass")
        with pytest.raises(GuestlensCsrfError):
            client.authenticate(token, csrf_header="a", csrf_cookie="b")

    async def test_authenticate_csrf_optional_for_reads(self, client):
        token = await client.login("bride", "s3cret-pass")
        assert client.authenticate(token, require_csrf=False).username == "bride"

    async def test_moderation_queue_bound_to_session(self, client, backend, store):
        cat = backend.add_category("Ceremony")
        url = await store.put(b"x", "user_images/k.webp", "image/webp")
        image_id = backend.add_image(url, cat)

        token = await client.login("bride", "s3cret-pass")
        queue = client.moderation(client.authenticate(token, require_csrf=False))
        await queue.load()
        result = await queue.reject(image_id)

        assert result.state is ReviewState.REJECTED
        assert backend.images == []
        assert not store.has_url(url)
