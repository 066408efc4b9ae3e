from __future__ import annotations

import pytest

from hive_assistant.services.auth_service import AuthContext, AuthError, verify_bearer


def _fetcher(result=None, error=None):
    seen = []

    async def fetch(token):
        seen.append(token)
        if error is not None:
            raise error
        return result

    return fetch, seen


@pytest.mark.asyncio
async def test_valid_token_resolves_user():
    fetch, seen = _fetcher("user-ada")

    ctx = await verify_bearer("Bearer abc.def", fetch)

    assert ctx == AuthContext(user_id="user-ada", token="abc.def")
    assert seen == ["abc.def"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "header, reason",
    [
        (None, "Missing Authorization header"),
        ("", "Missing Authorization header"),
        ("Basic abc", "Invalid Authorization header format"),
        ("bearer abc", "Invalid Authorization header format"),
        ("Bearer", "Invalid Authorization header format"),
        ("Bearer    ", "Empty token"),
    ],
)
async def test_malformed_headers_are_rejected_before_lookup(header, reason):
    fetch, seen = _fetcher("user-ada")

    with pytest.raises(AuthError) as exc:
        await verify_bearer(header, fetch)

    assert exc.value.detail == reason
    assert exc.value.status_code == 401
    assert seen == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, reason",
    [
        (RuntimeError("JWT expired"), "Token expired"),
        (RuntimeError("invalid JWT signature"), "Invalid token signature"),
        (RuntimeError("malformed"), "Invalid token"),
    ],
)
async def test_lookup_errors_map_to_reasons(error, reason):
    fetch, _ = _fetcher(error=error)

    with pytest.raises(AuthError) as exc:
        await verify_bearer("Bearer tok", fetch)

    assert exc.value.detail == reason


@pytest.mark.asyncio
async def test_unknown_user_is_invalid():
    fetch, _ = _fetcher(None)

    with pytest.raises(AuthError) as exc:
        await verify_bearer("Bearer tok", fetch)

    assert exc.value.detail == "Invalid token"
