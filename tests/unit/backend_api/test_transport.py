"""Unit tests for guestlens/backend_api/transport.py.

Covers:
- _parse_retry_after
- _raise_for_status
- _dump_payload / _emit_debug_dump
- BackendTransport.request (credentials, success, 4xx errors, retry logic)
- BackendTransport.close / context manager
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from guestlens.backend_api.transport import (
    BackendTransport,
    _dump_payload,
    _parse_retry_after,
    _raise_for_status,
)
from guestlens.config import GuestlensConfig
from guestlens.errors import (
    GuestlensAuthError,
    GuestlensConflictError,
    GuestlensCsrfError,
    GuestlensNetworkError,
    GuestlensNotFoundError,
    GuestlensPermissionError,
    GuestlensRetryExhaustedError,
    GuestlensSchemaError,
    GuestlensValidationError,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_response(
    status_code: int = 200,
    body: dict | list | None = None,
    headers: dict | None = None,
    content: bytes | None = None,
) -> httpx.Response:
    """Build a minimal httpx.Response with a request attached."""
    if content is None:
        content = json.dumps(body).encode() if body is not None else b""
    resp = httpx.Response(status_code, content=content, headers=headers or {})
    resp.request = httpx.Request("POST", "http://localhost:8080/api/wedding/test")
    return resp


def make_config(**overrides) -> GuestlensConfig:
    """Return a GuestlensConfig tuned for fast, deterministic tests."""
    defaults = dict(
        wedding_id="wed-42",
        auth_key="test-auth-key-1234",
        retry_max_attempts=3,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        retry_jitter=False,
    )
    defaults.update(overrides)
    return GuestlensConfig(**defaults)


# ---------------------------------------------------------------------------
# _parse_retry_after
# ---------------------------------------------------------------------------

class TestParseRetryAfter:
    def test_numeric(self):
        assert _parse_retry_after(make_response(headers={"retry-after": "5"})) == 5.0

    def test_invalid(self):
        assert _parse_retry_after(make_response(headers={"retry-after": "soon"})) is None

    def test_missing(self):
        assert _parse_retry_after(make_response()) is None


# ---------------------------------------------------------------------------
# _raise_for_status
# ---------------------------------------------------------------------------

class TestRaiseForStatus:
    @pytest.mark.parametrize(
        ("status", "error_cls"),
        [
            (400, GuestlensValidationError),
            (401, GuestlensAuthError),
            (403, GuestlensPermissionError),
            (404, GuestlensNotFoundError),
            (409, GuestlensConflictError),
            (422, GuestlensValidationError),
        ],
    )
    def test_status_mapping(self, status, error_cls):
        with pytest.raises(error_cls) as exc_info:
            _raise_for_status(make_response(status, {"issue": "nope"}), "POST", "/x")
        assert exc_info.value.context["status_code"] == status

    def test_403_csrf_body(self):
        resp = make_response(403, {"issue": "Invalid CSRF token"})
        with pytest.raises(GuestlensCsrfError):
            _raise_for_status(resp, "POST", "/x")

    def test_backend_issue_in_message(self):
        resp = make_response(400, {"issue": "Image ID is required"})
        with pytest.raises(GuestlensValidationError, match="Image ID is required"):
            _raise_for_status(resp, "POST", "/api/wedding/apprvimg")

    def test_non_json_body(self):
        resp = make_response(404, content=b"<html>Not Found</html>")
        with pytest.raises(GuestlensNotFoundError, match="Not Found"):
            _raise_for_status(resp, "POST", "/x")


# ---------------------------------------------------------------------------
# Debug dumps
# ---------------------------------------------------------------------------

class TestDumpPayload:
    def test_redacts_auth_key(self, capsys):
        _dump_payload("POST", "/x", {"wedauthkey": "super-secret-key", "catID": "7"}, 200, {"ok": True})
        err = capsys.readouterr().err
        assert "super-secret-key" not in err
        assert '"catID": "7"' in err

    async def test_request_emits_dump_when_enabled(self, capsys):
        transport = BackendTransport(make_config(debug_dump_payload=True))
        with patch.object(transport._client, "request", AsyncMock(return_value=make_response(200, {"a": 1}))):
            await transport.post("/x")
        err = capsys.readouterr().err
        assert '"response_status": 200' in err
        assert "test-auth-key-1234" not in err
        await transport.close()


# ---------------------------------------------------------------------------
# BackendTransport.request
# ---------------------------------------------------------------------------

class TestRequest:
    async def test_credentials_injected(self):
        transport = BackendTransport(make_config())
        mock = AsyncMock(return_value=make_response(200, {"categories": []}))
        with patch.object(transport._client, "request", mock):
            result = await transport.post("/api/wedding/getcategories")
        assert result == {"categories": []}
        method, path = mock.call_args.args
        assert (method, path) == ("POST", "/api/wedding/getcategories")
        assert mock.call_args.kwargs["json"] == {"wedId": "wed-42", "wedauthkey": "test-auth-key-1234"}
        await transport.close()

    async def test_body_merged_with_credentials(self):
        transport = BackendTransport(make_config())
        mock = AsyncMock(return_value=make_response(200, {"id": "9"}))
        with patch.object(transport._client, "request", mock):
            await transport.post("/api/wedding/createcategory", {"catName": "Dance"})
        assert mock.call_args.kwargs["json"]["catName"] == "Dance"
        assert mock.call_args.kwargs["json"]["wedId"] == "wed-42"
        await transport.close()

    async def test_credentials_can_be_omitted(self):
        transport = BackendTransport(make_config())
        mock = AsyncMock(return_value=make_response(200, {}))
        with patch.object(transport._client, "request", mock):
            await transport.post("/x", {"a": 1}, credentials=False)
        assert mock.call_args.kwargs["json"] == {"a": 1}
        await transport.close()

    async def test_per_request_timeout(self):
        transport = BackendTransport(make_config())
        mock = AsyncMock(return_value=make_response(200, {}))
        with patch.object(transport._client, "request", mock):
            await transport.post("/x", timeout=30.0)
        assert mock.call_args.kwargs["timeout"] == httpx.Timeout(30.0)
        await transport.close()

    async def test_empty_body_returns_empty_dict(self):
        transport = BackendTransport(make_config())
        with patch.object(transport._client, "request", AsyncMock(return_value=make_response(204))):
            assert await transport.post("/x") == {}
        await transport.close()

    async def test_non_object_body_is_schema_error(self):
        transport = BackendTransport(make_config())
        with patch.object(transport._client, "request", AsyncMock(return_value=make_response(200, [1, 2]))):
            with pytest.raises(GuestlensSchemaError):
                await transport.post("/x")
        await transport.close()

    async def test_non_json_success_is_schema_error(self):
        transport = BackendTransport(make_config())
        resp = make_response(200, content=b"OK")
        with patch.object(transport._client, "request", AsyncMock(return_value=resp)):
            with pytest.raises(GuestlensSchemaError):
                await transport.post("/x")
        await transport.close()

    async def test_4xx_not_retried(self):
        transport = BackendTransport(make_config())
        mock = AsyncMock(return_value=make_response(401, {"issue": "Unauthorized"}))
        with patch.object(transport._client, "request", mock):
            with pytest.raises(GuestlensAuthError):
                await transport.post("/x")
        assert mock.await_count == 1
        await transport.close()

    async def test_5xx_retried_then_succeeds(self):
        transport = BackendTransport(make_config())
        mock = AsyncMock(side_effect=[make_response(503), make_response(200, {"ok": True})])
        with patch.object(transport._client, "request", mock):
            assert await transport.post("/x") == {"ok": True}
        assert mock.await_count == 2
        await transport.close()

    async def test_429_honours_retry_after(self):
        transport = BackendTransport(make_config())
        mock = AsyncMock(side_effect=[
            make_response(429, headers={"retry-after": "0"}),
            make_response(200, {"ok": True}),
        ])
        with patch.object(transport._client, "request", mock):
            assert await transport.post("/x") == {"ok": True}
        await transport.close()

    async def test_retry_exhausted(self):
        transport = BackendTransport(make_config(retry_max_attempts=2))
        mock = AsyncMock(return_value=make_response(500))
        with patch.object(transport._client, "request", mock):
            with pytest.raises(GuestlensRetryExhaustedError) as exc_info:
                await transport.post("/x")
        assert exc_info.value.context == {"attempts": 2, "last_status_code": 500}
        assert mock.await_count == 2
        await transport.close()

    async def test_retry_false_sends_once(self):
        transport = BackendTransport(make_config())
        mock = AsyncMock(return_value=make_response(503))
        with patch.object(transport._client, "request", mock):
            with pytest.raises(GuestlensRetryExhaustedError):
                await transport.post("/x", retry=False)
        assert mock.await_count == 1
        await transport.close()

    async def test_network_error_retried_then_raised(self):
        transport = BackendTransport(make_config())
        mock = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch.object(transport._client, "request", mock):
            with pytest.raises(GuestlensNetworkError) as exc_info:
                await transport.post("/x")
        assert mock.await_count == 3
        assert exc_info.value.context["timeout"] is False
        await transport.close()

    async def test_timeout_marked(self):
        transport = BackendTransport(make_config(retry_max_attempts=1))
        with patch.object(transport._client, "request", AsyncMock(side_effect=httpx.ReadTimeout("slow"))):
            with pytest.raises(GuestlensNetworkError) as exc_info:
                await transport.post("/x")
        assert exc_info.value.context["timeout"] is True
        await transport.close()

    async def test_metrics_emitted(self):
        metrics = MagicMock()
        transport = BackendTransport(make_config(metrics=metrics))
        mock = AsyncMock(side_effect=[make_response(502), make_response(200, {})])
        with patch.object(transport._client, "request", mock):
            await transport.post("/x")
        names = [c.args[0] for c in metrics.increment.call_args_list]
        assert names.count("guestlens.requests_total") == 2
        assert names.count("guestlens.retries_total") == 1
        metrics.timing.assert_called()
        await transport.close()


class TestLifecycle:
    async def test_context_manager_closes_client(self):
        async with BackendTransport(make_config()) as transport:
            client = transport._client
        assert client.is_closed
