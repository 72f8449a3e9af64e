from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from apps.api.core.security import InvalidTokenError
from apps.api.dependencies.auth import get_current_user, role_required
from apps.api.services.users import Role

from tests.factories import make_account


def _request(user=None):
    return SimpleNamespace(state=SimpleNamespace(user=user) if user else SimpleNamespace())


@pytest.mark.asyncio
async def test_role_required_allows_authorized_user():
    dependency = role_required(Role.ADMIN)
    user = make_account("alice", role=Role.ADMIN)
    result = await dependency(user)  # type: ignore[arg-type]
    assert result.id == "alice"


@pytest.mark.asyncio
async def test_role_required_rejects_unauthorized_user():
    dependency = role_required(Role.ADMIN)
    user = make_account("bob")
    with pytest.raises(HTTPException) as exc:
        await dependency(user)  # type: ignore[arg-type]

    assert exc.value.status_code == 403
    assert exc.value.detail == "Admin access required"


@pytest.mark.asyncio
async def test_get_current_user_resolves_and_caches():
    service = AsyncMock()
    service.resolve_token = AsyncMock(return_value=make_account("alice"))
    request = _request()
    credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="token")

    user = await get_current_user(credentials, request, service)  # type: ignore[arg-type]
    again = await get_current_user(credentials, request, service)  # type: ignore[arg-type]

    assert user.id == "alice"
    assert again is user
    service.resolve_token.assert_awaited_once_with("token")


@pytest.mark.asyncio
async def test_get_current_user_without_credentials():
    with pytest.raises(HTTPException) as exc:
        await get_current_user(None, _request(), AsyncMock())  # type: ignore[arg-type]

    assert exc.value.status_code == 401
    assert exc.value.detail == "No token provided"
    assert exc.value.headers == {"WWW-Authenticate": "Bearer"}


@pytest.mark.asyncio
async def test_get_current_user_with_invalid_token():
    service = AsyncMock()
    service.resolve_token = AsyncMock(side_effect=InvalidTokenError("Invalid token"))
    credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="bad")

    with pytest.raises(HTTPException) as exc:
        await get_current_user(credentials, _request(), service)  # type: ignore[arg-type]

    assert exc.value.status_code == 401
    assert exc.value.detail == "Invalid token"
