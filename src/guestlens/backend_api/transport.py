"""Async HTTP transport for the wedding backend API.

Every backend call goes through :meth:`BackendTransport.request`, which
handles the full request lifecycle:

1. Merge the wedding credentials (``wedId`` / ``wedauthkey``) into the
   JSON body.
2. Send the HTTP request with the per-request (or default) timeout.
3. On ``2xx`` -- return the parsed JSON response.
4. On ``429`` -- honour ``Retry-After``, sleep, and retry.
5. On ``5xx`` / network error -- exponential backoff and retry.
6. On non-retryable ``4xx`` -- raise the appropriate typed error immediately.
7. On max attempts exceeded -- raise :class:`GuestlensRetryExhaustedError`.

Callers that manage retries themselves (the upload coordinator) pass
``retry=False`` to get exactly one attempt.
"""

from __future__ import annotations

import asyncio
import json as _json
import sys
import time
from typing import Any

import httpx

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
from guestlens.observability import get_logger
from guestlens.observability.metrics import resolve_metrics

from .retries import _RETRYABLE_STATUSES, NO_RETRY, RetryPolicy, should_retry

log = get_logger("guestlens.transport")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_retry_after(response: httpx.Response) -> float | None:
    """Extract the ``Retry-After`` header value as a float, or ``None``."""
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def _error_text(response: httpx.Response, body: Any) -> str:
    if isinstance(body, dict):
        for key in ("issue", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.text[:500]


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise the appropriate :class:`GuestlensError` subclass for 4xx codes
    that should **not** be retried.
    """
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = {}

    backend_message = _error_text(response, body)

    if status == 400:
        raise GuestlensValidationError(
            message=f"Validation error on {method} {path}: {backend_message}",
            context={"status_code": status, "path": path, "body": body},
        )
    if status == 401:
        raise GuestlensAuthError(
            message=f"Authentication failed on {method} {path}: {backend_message}",
            context={"status_code": status, "path": path},
        )
    if status == 403:
        if "csrf" in backend_message.lower():
            raise GuestlensCsrfError(
                message=f"CSRF check failed on {method} {path}: {backend_message}",
                context={"status_code": status, "reason": backend_message},
            )
        raise GuestlensPermissionError(
            message=f"Permission denied on {method} {path}: {backend_message}",
            context={"status_code": status, "operation": f"{method} {path}"},
        )
    if status == 404:
        raise GuestlensNotFoundError(
            message=f"Resource not found on {method} {path}: {backend_message}",
            context={"status_code": status, "path": path},
        )
    if status == 409:
        raise GuestlensConflictError(
            message=f"Conflict on {method} {path}: {backend_message}",
            context={"status_code": status, "path": path},
        )

    # Generic client error -- raise as validation error.
    raise GuestlensValidationError(
        message=f"Client error {status} on {method} {path}: {backend_message}",
        context={"status_code": status, "path": path, "body": body},
    )


def _dump_payload(
    method: str,
    url: str,
    payload: dict | None,
    response_status: int | None,
    response_body: Any | None,
) -> None:
    """Write a redacted debug dump of the request/response to stderr."""
    from guestlens.utils.redact import redact

    dump: dict[str, Any] = {
        "method": method,
        "url": url,
    }
    if payload is not None:
        dump["request_body"] = payload
    if response_status is not None:
        dump["response_status"] = response_status
    if response_body is not None:
        dump["response_body"] = response_body
    print(
        _json.dumps(redact(dump), indent=2, default=str),
        file=sys.stderr,
    )


def _emit_debug_dump(
    config: GuestlensConfig,
    method: str,
    response: httpx.Response,
    json_payload: Any,
) -> None:
    """Emit a redacted debug dump of request/response if enabled."""
    if not config.debug_dump_payload:
        return
    try:
        resp_body = response.json()
    except ValueError:
        resp_body = response.text[:1000]
    _dump_payload(
        method, str(response.url), json_payload,
        response.status_code, resp_body,
    )


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class BackendTransport:
    """Asynchronous HTTP transport with credential injection and retries.

    Parameters
    ----------
    config:
        A :class:`GuestlensConfig` instance controlling all transport
        behaviour.
    """

    def __init__(self, config: GuestlensConfig) -> None:
        self._config = config
        self._policy = RetryPolicy.from_config(config)
        self._metrics = resolve_metrics(config.metrics)

        proxy: httpx.URL | str | None = config.http_proxy
        self._client = httpx.AsyncClient(
            base_url=config.backend_url,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=proxy,
        )

    @property
    def config(self) -> GuestlensConfig:
        return self._config

    def _with_credentials(self, body: dict[str, Any] | None) -> dict[str, Any]:
        merged: dict[str, Any] = {
            "wedId": self._config.wedding_id,
            "wedauthkey": self._config.auth_key,
        }
        if body:
            merged.update(body)
        return merged

    # -- public API --------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        *,
        retry: bool = True,
        timeout: float | None = None,
        credentials: bool = True,
    ) -> dict:
        """Execute an HTTP request against the backend.

        Parameters
        ----------
        method:
            HTTP method (``POST`` for every wedding endpoint).
        path:
            API path relative to ``backend_url`` (e.g.
            ``/api/wedding/getcategories``).
        body:
            JSON body.  ``wedId`` and ``wedauthkey`` are merged in unless
            *credentials* is ``False``.
        retry:
            ``False`` sends exactly one attempt; the caller owns retries.
        timeout:
            Per-request timeout in seconds.  Defaults to
            ``config.timeout_seconds``.

        Returns
        -------
        dict
            Parsed JSON response body (``{}`` for empty responses).

        Raises
        ------
        GuestlensAuthError
            On 401 responses.
        GuestlensPermissionError
            On 403 responses (:class:`GuestlensCsrfError` when the backend
            reports a CSRF failure).
        GuestlensNotFoundError
            On 404 responses.
        GuestlensValidationError
            On 400 and other non-retryable 4xx responses.
        GuestlensConflictError
            On 409 responses.
        GuestlensRetryExhaustedError
            When all retry attempts have been exhausted.
        GuestlensNetworkError
            On transport-level failures after exhausting retries.
        GuestlensSchemaError
            When a 2xx response body is not a JSON object.
        """
        policy = self._policy if retry else NO_RETRY
        max_attempts = policy.max_attempts
        last_status: int | None = None

        json_payload = self._with_credentials(body) if credentials else (body or {})
        kwargs: dict[str, Any] = {"json": json_payload}
        if timeout is not None:
            kwargs["timeout"] = httpx.Timeout(timeout)

        for attempt in range(max_attempts):
            # 1. Send request
            t0 = time.monotonic()
            try:
                response = await self._client.request(method, path, **kwargs)
                elapsed_ms = (time.monotonic() - t0) * 1000
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                last_status = None
                delay = self._handle_network_exception(
                    policy, method, path, exc, attempt,
                )
                await asyncio.sleep(delay)
                continue

            # 2. Process response
            last_status = response.status_code

            self._metrics.increment(
                "guestlens.requests_total",
                tags={"method": method, "path": path, "status": str(response.status_code)},
            )
            self._metrics.timing(
                "guestlens.request_duration_ms",
                elapsed_ms,
                tags={"method": method, "path": path, "status": str(response.status_code)},
            )

            _emit_debug_dump(self._config, method, response, json_payload)

            # 2a. Success
            if 200 <= response.status_code < 300:
                return self._parse_success(response, method, path)

            # 2b. Non-retryable error -- raise immediately.
            if response.status_code not in _RETRYABLE_STATUSES:
                _raise_for_status(response, method, path)

            # 2c. Retryable, but can we still retry?
            if not should_retry(response.status_code, None, attempt, max_attempts):
                break

            # 2d. Prepare and execute retry.
            retry_after: float | None = None
            reason = "server_error"

            if response.status_code == 429:
                retry_after = _parse_retry_after(response)
                reason = "rate_limited"
                log.warning(
                    "Rate limited by backend",
                    extra={
                        "extra_fields": {
                            "op": "request",
                            "method": method,
                            "path": path,
                            "status_code": 429,
                            "retry_after": retry_after,
                            "attempt": attempt + 1,
                        }
                    },
                )

            delay = policy.delay_for(attempt, retry_after)
            self._metrics.increment(
                "guestlens.retries_total",
                tags={"method": method, "path": path, "reason": reason},
            )
            await asyncio.sleep(delay)
            continue

        # 3. All attempts exhausted.
        raise GuestlensRetryExhaustedError(
            message=(
                f"All {max_attempts} attempts exhausted for {method} {path} "
                f"(last status: {last_status})"
            ),
            context={"attempts": max_attempts, "last_status_code": last_status},
        )

    async def post(self, path: str, body: dict[str, Any] | None = None, **kwargs: Any) -> dict:
        """Shorthand for ``request("POST", path, body, **kwargs)``."""
        return await self.request("POST", path, body, **kwargs)

    async def close(self) -> None:
        """Close the underlying async HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> BackendTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # -- internals ---------------------------------------------------------

    @staticmethod
    def _parse_success(response: httpx.Response, method: str, path: str) -> dict:
        if response.status_code == 204 or not response.content:
            return {}
        try:
            result = response.json()
        except ValueError as exc:
            raise GuestlensSchemaError(
                message=f"Non-JSON response body on {method} {path}",
                context={"path": path, "status_code": response.status_code},
                cause=exc,
            ) from exc
        if not isinstance(result, dict):
            raise GuestlensSchemaError(
                message=f"Expected a JSON object from {method} {path}",
                context={"path": path, "payload": result},
            )
        return result

    def _handle_network_exception(
        self,
        policy: RetryPolicy,
        method: str,
        path: str,
        exc: Exception,
        attempt: int,
    ) -> float:
        """Return the backoff delay if the request should be retried.

        Raises :class:`GuestlensNetworkError` once retries are exhausted.
        """
        self._metrics.increment(
            "guestlens.requests_total",
            tags={"method": method, "path": path, "status": "error"},
        )
        log.warning(
            "Request network error",
            extra={
                "extra_fields": {
                    "op": "request",
                    "method": method,
                    "path": path,
                    "attempt": attempt + 1,
                    "error": str(exc),
                }
            },
        )
        if should_retry(None, exc, attempt, policy.max_attempts):
            self._metrics.increment(
                "guestlens.retries_total",
                tags={"method": method, "path": path, "reason": "network_error"},
            )
            return policy.delay_for(attempt)
        raise GuestlensNetworkError(
            message=f"Network error on {method} {path}: {exc}",
            context={
                "url": path,
                "attempt": attempt + 1,
                "timeout": isinstance(exc, httpx.TimeoutException),
            },
            cause=exc,
        ) from exc
