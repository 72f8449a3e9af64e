from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from apps.api.api.schemas import CamelModel, UserModel
from apps.api.dependencies.auth import AdminUser, CurrentUser, get_user_service
from apps.api.services.users import UserNotFoundError, UserService

router = APIRouter(prefix="/users", tags=["users"])

UserServiceDep = Annotated[UserService, Depends(get_user_service)]


class UserEnvelope(CamelModel):
    user: UserModel


class UserListEnvelope(CamelModel):
    users: list[UserModel]


@router.get("", response_model=UserListEnvelope, summary="List all users")
async def list_users(service: UserServiceDep, _: AdminUser) -> UserListEnvelope:
    users = await service.list_users()
    return UserListEnvelope(users=[UserModel.model_validate(item) for item in users])


@router.get("/{user_id}", response_model=UserEnvelope)
async def get_user(user_id: str, service: UserServiceDep, user: CurrentUser) -> UserEnvelope:
    if not user.is_admin and user.id != user_id:
        raise HTTPException(status_code=403, detail="Access denied")
    try:
        found = await service.get_user(user_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return UserEnvelope(user=UserModel.model_validate(found))
