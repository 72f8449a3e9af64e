from __future__ import annotations

import pytest

from apps.api.core.errors import InvalidCredentialsError
from apps.api.core.security import InvalidTokenError, TokenSigner
from apps.api.services.users import EmailAlreadyRegisteredError, Role, UserNotFoundError, UserService


@pytest.mark.asyncio
async def test_register_creates_user_role_and_token(user_service: UserService, signer: TokenSigner):
    result = await user_service.register(email="A@X.com", name="Alice", password="pw123456")

    assert result.user.email == "a@x.com"
    assert result.user.role == Role.USER
    assert signer.verify(result.token) == result.user.id


@pytest.mark.asyncio
async def test_register_rejects_duplicate_email(user_service: UserService):
    await user_service.register(email="a@x.com", name="Alice", password="pw123456")

    with pytest.raises(EmailAlreadyRegisteredError) as exc:
        await user_service.register(email="a@x.com", name="Other", password="pw123456")

    assert exc.value.status_code == 400
    assert str(exc.value) == "Email already registered"


@pytest.mark.asyncio
async def test_register_stores_hash_not_password(user_service: UserService, user_repository):
    await user_service.register(email="a@x.com", name="Alice", password="pw123456")

    found = await user_repository.get_user_with_hash("a@x.com")
    assert found is not None
    assert found[1] != "pw123456"
    assert found[1].startswith("bcrypt_sha256$")


@pytest.mark.asyncio
async def test_login_succeeds_and_is_case_insensitive(user_service: UserService):
    registered = await user_service.register(email="a@x.com", name="Alice", password="pw123456")

    result = await user_service.login(email="A@x.com", password="pw123456")

    assert result.user.id == registered.user.id
    assert result.token


@pytest.mark.asyncio
@pytest.mark.parametrize("email,password", [("a@x.com", "wrong-password"), ("nobody@x.com", "pw123456")])
async def test_login_failures_are_undifferentiated(user_service: UserService, email: str, password: str):
    await user_service.register(email="a@x.com", name="Alice", password="pw123456")

    with pytest.raises(InvalidCredentialsError) as exc:
        await user_service.login(email=email, password=password)

    assert str(exc.value) == "Invalid credentials"
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_resolve_token_returns_account(user_service: UserService):
    registered = await user_service.register(email="a@x.com", name="Alice", password="pw123456")

    user = await user_service.resolve_token(registered.token)

    assert user is not None
    assert user.id == registered.user.id


@pytest.mark.asyncio
async def test_resolve_token_for_missing_user_returns_none(user_service: UserService, signer: TokenSigner):
    assert await user_service.resolve_token(signer.issue("ghost")) is None


@pytest.mark.asyncio
async def test_resolve_token_rejects_bad_token(user_service: UserService):
    with pytest.raises(InvalidTokenError):
        await user_service.resolve_token("garbage")


@pytest.mark.asyncio
async def test_get_user_and_list_users(user_service: UserService, admin, reporter):
    assert (await user_service.get_user(reporter.id)).email == "reporter@example.com"
    with pytest.raises(UserNotFoundError):
        await user_service.get_user("missing")

    users = await user_service.list_users()
    assert {user.id for user in users} == {admin.id, reporter.id}
