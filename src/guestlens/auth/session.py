"""Admin session tokens.

An admin session is an HS256 JWT carried in an HTTP-only cookie::

    {"sub": "<admin id>", "user": "<username>", "iat": ..., "exp": ...}

:class:`SessionGate` issues and verifies these tokens; every admin-only
operation in the SDK takes the resulting :class:`AdminSession` and checks
it with :func:`require_session` before touching any state.
"""

from __future__ import annotations

import time
from typing import Any

import jwt

from guestlens.config import GuestlensConfig
from guestlens.errors import GuestlensAuthError, GuestlensValidationError
from guestlens.models import AdminSession
from guestlens.observability import get_logger

log = get_logger("guestlens.auth")

_ALGORITHM = "HS256"


def require_session(session: AdminSession | None) -> AdminSession:
    """Return *session* if it is present and unexpired.

    Raises
    ------
    GuestlensAuthError
        When *session* is missing or expired.
    """
    if not isinstance(session, AdminSession):
        raise GuestlensAuthError(
            message="An admin session is required",
            context={"reason": "missing"},
        )
    if session.expired:
        raise GuestlensAuthError(
            message=f"Admin session for {session.username} has expired",
            context={"reason": "expired"},
        )
    return session


class SessionGate:
    """Issue and verify admin session tokens.

    Parameters
    ----------
    config:
        Supplies ``session_secret``, ``session_ttl_seconds`` and the
        cookie settings.
    """

    def __init__(self, config: GuestlensConfig) -> None:
        self._config = config

    @property
    def cookie_name(self) -> str:
        return self._config.session_cookie_name

    def _secret(self) -> str:
        if not self._config.session_secret:
            raise GuestlensValidationError(
                message="session_secret must be configured to use admin sessions",
                context={"field": "session_secret"},
            )
        return self._config.session_secret

    def issue(self, admin_id: str, username: str, *, now: float | None = None) -> str:
        """Return a signed session token for the given admin."""
        issued_at = int(now if now is not None else time.time())
        payload: dict[str, Any] = {
            "sub": str(admin_id),
            "user": username,
            "iat": issued_at,
            "exp": issued_at + self._config.session_ttl_seconds,
        }
        token = jwt.encode(payload, self._secret(), algorithm=_ALGORITHM)
        log.info(
            "Issued admin session",
            extra={"extra_fields": {"admin_id": str(admin_id), "ttl_s": self._config.session_ttl_seconds}},
        )
        return token

    def verify(self, token: str | None) -> AdminSession:
        """Decode *token* into an :class:`AdminSession`.

        Raises
        ------
        GuestlensAuthError
            If the token is missing, malformed, wrongly signed or expired.
        """
        if not token:
            raise GuestlensAuthError(
                message="No admin session cookie",
                context={"reason": "missing"},
            )
        try:
            claims = jwt.decode(
                token,
                self._secret(),
                algorithms=[_ALGORITHM],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise GuestlensAuthError(
                message="Admin session has expired",
                context={"reason": "expired"},
                cause=exc,
            ) from exc
        except jwt.InvalidTokenError as exc:
            raise GuestlensAuthError(
                message=f"Invalid admin session token: {exc}",
                context={"reason": "invalid"},
                cause=exc,
            ) from exc

        return AdminSession(
            admin_id=str(claims["sub"]),
            username=str(claims.get("user", "")),
            issued_at=float(claims["iat"]),
            expires_at=float(claims["exp"]),
        )

    def cookie_settings(self, token: str) -> dict[str, Any]:
        """Keyword arguments for setting the session cookie on a response."""
        return {
            "key": self._config.session_cookie_name,
            "value": token,
            "httponly": True,
            "secure": self._config.session_cookie_secure,
            "samesite": "lax",
            "path": "/",
            "max_age": self._config.session_ttl_seconds,
        }

    def clear_cookie_settings(self) -> dict[str, Any]:
        """Keyword arguments that expire the session cookie (logout)."""
        return {
            "key": self._config.session_cookie_name,
            "value": "",
            "httponly": True,
            "secure": self._config.session_cookie_secure,
            "samesite": "lax",
            "path": "/",
            "max_age": 0,
        }
