"""Caller identity for API requests.

LaterStack runs behind an authenticating edge (the identity provider's session
middleware or a proxy) which forwards the signed-in user's identity-provider id
in a request header. No header means no session.
"""

from dataclasses import dataclass

from fastapi import Request

from laterstack.config import get_settings
from laterstack.errors import Unauthenticated


@dataclass(frozen=True)
class CallerSession:
    """An authenticated caller."""

    external_id: str


def get_caller_session(request: Request) -> CallerSession | None:
    """FastAPI dependency: the caller's session, or None if unauthenticated."""
    header = get_settings().auth_user_header
    external_id = (request.headers.get(header) or "").strip()
    if not external_id:
        return None
    return CallerSession(external_id=external_id)


def require_session(session: CallerSession | None) -> CallerSession:
    """Raise Unauthenticated if there is no caller session."""
    if session is None or not session.external_id:
        raise Unauthenticated()
    return session
