"""Double-submit CSRF protection for state-changing admin requests.

The web layer sets a random token in a readable cookie; the admin UI
echoes it in a request header.  A request is accepted only when both are
present and equal.
"""

from __future__ import annotations

import hmac
import secrets
from collections.abc import Mapping
from typing import Any

from guestlens.config import GuestlensConfig
from guestlens.errors import GuestlensCsrfError
from guestlens.observability import get_logger

log = get_logger("guestlens.auth")


class CsrfGuard:
    """Issue and check CSRF tokens.

    Parameters
    ----------
    config:
        Supplies ``csrf_header_name`` and ``csrf_cookie_name``.
    """

    def __init__(self, config: GuestlensConfig) -> None:
        self.header_name = config.csrf_header_name
        self.cookie_name = config.csrf_cookie_name
        self._secure = config.session_cookie_secure

    @staticmethod
    def new_token() -> str:
        return secrets.token_urlsafe(32)

    def verify(self, header_token: str | None, cookie_token: str | None) -> None:
        """Raise unless both tokens are present and identical.

        Raises
        ------
        GuestlensCsrfError
            With ``context["reason"]`` of ``"missing"`` or ``"mismatch"``.
        """
        if not header_token or not cookie_token:
            log.warning("CSRF verification failed: missing token")
            raise GuestlensCsrfError(
                message="Missing CSRF token in header or cookie",
                context={"reason": "missing"},
            )
        if not hmac.compare_digest(header_token.encode("utf-8"), cookie_token.encode("utf-8")):
            log.warning("CSRF verification failed: token mismatch")
            raise GuestlensCsrfError(
                message="CSRF header token does not match cookie",
                context={"reason": "mismatch"},
            )

    def verify_request(self, headers: Mapping[str, str], cookies: Mapping[str, str]) -> None:
        """Check the tokens of an incoming request.

        Header lookup is case-insensitive.
        """
        wanted = self.header_name.lower()
        header_token = next(
            (value for name, value in headers.items() if name.lower() == wanted),
            None,
        )
        self.verify(header_token, cookies.get(self.cookie_name))

    def cookie_settings(self, token: str) -> dict[str, Any]:
        """Keyword arguments for setting the CSRF cookie.

        Not HTTP-only: the admin UI must read it to echo the header.
        """
        return {
            "key": self.cookie_name,
            "value": token,
            "httponly": False,
            "secure": self._secure,
            "samesite": "strict",
            "path": "/",
        }
