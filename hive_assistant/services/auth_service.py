"""
hive_assistant/services/auth_service.py
---------------------------------------
Bearer-token verification for incoming requests.

The token is checked against Supabase Auth; failures are mapped to a
specific 401 reason so clients can tell an expired session from a bad one.

Import
------
    from hive_assistant.services.auth_service import verify_bearer, supabase_user_id
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from hive_assistant.supabase.supabase_client import create_anon_client

logger = logging.getLogger(__name__)

FetchUser = Callable[[str], Awaitable[Optional[str]]]


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    token: str


class AuthError(Exception):
    def __init__(self, detail: str, status_code: int = 401):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


def _reason(error: Exception) -> str:
    message = str(error).lower()
    if "expired" in message:
        return "Token expired"
    if "signature" in message:
        return "Invalid token signature"
    return "Invalid token"


async def supabase_user_id(token: str) -> Optional[str]:
    """Resolve the user id behind an access token via the Supabase Auth API."""
    client = await create_anon_client()
    res = await client.auth.get_user(token)
    if res is None or res.user is None:
        return None
    return res.user.id


async def verify_bearer(header: Optional[str], fetch_user: FetchUser = supabase_user_id) -> AuthContext:
    if not header:
        raise AuthError("Missing Authorization header")

    scheme, sep, token = header.partition(" ")
    if scheme != "Bearer" or not sep:
        raise AuthError("Invalid Authorization header format")

    token = token.strip()
    if not token:
        raise AuthError("Empty token")

    try:
        user_id = await fetch_user(token)
    except Exception as e:
        logger.warning("Token verification failed: %s", e)
        raise AuthError(_reason(e)) from e

    if not user_id:
        raise AuthError("Invalid token")
    return AuthContext(user_id=user_id, token=token)
