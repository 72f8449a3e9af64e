import logging
from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from apps.api.core.security import InvalidTokenError
from apps.api.services.users import Role, UserAccount, UserService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


async def get_user_service(request: Request) -> UserService:
    service = getattr(request.app.state, "user_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="User service is not available")
    return service


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    request: Request,
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserAccount:
    """Resolve the bearer token on the request to the account that owns it."""

    cached = getattr(request.state, "user", None)
    if isinstance(cached, UserAccount):
        return cached

    if credentials is None:
        raise HTTPException(status_code=401, detail="No token provided", headers=_BEARER_CHALLENGE)

    try:
        user = await service.resolve_token(credentials.credentials)
    except InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail="Invalid token", headers=_BEARER_CHALLENGE) from exc
    if user is None:
        raise HTTPException(status_code=401, detail="User not found", headers=_BEARER_CHALLENGE)

    request.state.user = user
    return user


def role_required(role: Role) -> Callable[[UserAccount], Awaitable[UserAccount]]:
    """Dependency factory ensuring the current user has the requested role."""

    async def dependency(user: Annotated[UserAccount, Depends(get_current_user)]) -> UserAccount:
        if not user.has_role(role):
            logger.warning("User %s lacks role %s", user.id, role.value)
            raise HTTPException(status_code=403, detail=f"{role.value.capitalize()} access required")
        return user

    return dependency


require_admin = role_required(Role.ADMIN)

CurrentUser = Annotated[UserAccount, Depends(get_current_user)]
AdminUser = Annotated[UserAccount, Depends(require_admin)]
