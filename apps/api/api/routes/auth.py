from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import EmailStr, Field

from apps.api.api.schemas import CamelModel, UserModel
from apps.api.core.errors import InvalidCredentialsError
from apps.api.dependencies.auth import CurrentUser, get_user_service
from apps.api.services.users import AuthResult, EmailAlreadyRegisteredError, UserService

router = APIRouter(prefix="/auth", tags=["auth"])

UserServiceDep = Annotated[UserService, Depends(get_user_service)]


class RegisterRequest(CamelModel):
    email: EmailStr
    name: str = Field(..., min_length=2, max_length=255)
    password: str = Field(..., min_length=6)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class AuthResponse(CamelModel):
    message: str
    user: UserModel
    token: str


class CurrentUserResponse(CamelModel):
    user: UserModel


def _to_response(message: str, result: AuthResult) -> AuthResponse:
    return AuthResponse(message=message, user=UserModel.model_validate(result.user), token=result.token)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, service: UserServiceDep) -> AuthResponse:
    try:
        result = await service.register(email=payload.email, name=payload.name, password=payload.password)
    except EmailAlreadyRegisteredError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return _to_response("Registration successful", result)


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, service: UserServiceDep) -> AuthResponse:
    try:
        result = await service.login(email=payload.email, password=payload.password)
    except InvalidCredentialsError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return _to_response("Login successful", result)


@router.get("/me", response_model=CurrentUserResponse)
async def me(user: CurrentUser) -> CurrentUserResponse:
    return CurrentUserResponse(user=UserModel.model_validate(user))
