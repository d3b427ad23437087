"""Admin credential check against the wedding backend."""

from __future__ import annotations

from dataclasses import dataclass

from guestlens.errors import GuestlensAuthError, GuestlensSchemaError, GuestlensValidationError

from .transport import BackendTransport


@dataclass(frozen=True)
class AdminIdentity:
    """The admin account the backend confirmed."""

    admin_id: str
    username: str


class AdminAuthAPI:
    """Async wrapper for ``/api/wedadmin/login``.

    Parameters
    ----------
    transport:
        A configured :class:`BackendTransport` instance.
    """

    LOGIN_PATH = "/api/wedadmin/login"

    def __init__(self, transport: BackendTransport) -> None:
        self._transport = transport

    async def login(self, username: str, password: str) -> AdminIdentity:
        """Check *username* / *password* with the backend.

        Raises
        ------
        GuestlensValidationError
            If either credential is blank (no request is sent).
        GuestlensAuthError
            If the backend rejects the credentials.
        """
        if not username.strip() or not password:
            raise GuestlensValidationError(
                message="Username and password are required",
                context={"field": "credentials", "reason": "Enter your username and password."},
            )

        # Never retried: repeated failures may lock the account.
        data = await self._transport.post(
            self.LOGIN_PATH,
            {"admnUsrName": username, "admnUsrPwd": password},
            retry=False,
        )
        if not data.get("loginStatus"):
            raise GuestlensAuthError(
                message="Invalid credentials",
                context={"reason": data.get("issue") or "login rejected"},
            )

        info = data.get("adminInfo")
        if not isinstance(info, dict) or "id" not in info:
            raise GuestlensSchemaError(
                message="login response is missing 'adminInfo.id'",
                context={"model": "AdminLogin", "field": "adminInfo", "payload": data},
            )
        return AdminIdentity(
            admin_id=str(info["id"]),
            username=str(info.get("admnUsrName") or username),
        )
