"""Admin session and CSRF helpers."""

from __future__ import annotations

from .csrf import CsrfGuard
from .session import SessionGate, require_session

__all__ = [
    "CsrfGuard",
    "SessionGate",
    "require_session",
]
