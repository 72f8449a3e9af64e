from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field

from apps.api.api.schemas import CamelModel
from apps.api.dependencies.auth import AdminUser
from apps.api.dependencies.services import get_category_service
from apps.api.services.categories import CategoryNameTakenError, CategoryNotFoundError, CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])

CategoryServiceDep = Annotated[CategoryService, Depends(get_category_service)]

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class CategoryCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None)
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)


class CategoryUpdateRequest(CamelModel):
    name: str = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None)
    color: str = Field(default=None, pattern=HEX_COLOR_PATTERN)


class CategoryModel(CamelModel):
    id: str
    name: str
    description: str | None
    color: str
    created_at: datetime


class CategoryEnvelope(CamelModel):
    category: CategoryModel


class CategoryListEnvelope(CamelModel):
    categories: list[CategoryModel]


class CategoryDeletedEnvelope(CamelModel):
    message: str
    category: CategoryModel


@router.get("", response_model=CategoryListEnvelope, summary="Public list of categories")
async def list_categories(service: CategoryServiceDep) -> CategoryListEnvelope:
    categories = await service.list_categories()
    return CategoryListEnvelope(categories=[CategoryModel.model_validate(item) for item in categories])


@router.post("", response_model=CategoryEnvelope, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreateRequest,
    service: CategoryServiceDep,
    _: AdminUser,
) -> CategoryEnvelope:
    try:
        category = await service.create_category(
            name=payload.name,
            description=payload.description,
            color=payload.color,
        )
    except CategoryNameTakenError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return CategoryEnvelope(category=CategoryModel.model_validate(category))


@router.put("/{category_id}", response_model=CategoryEnvelope)
async def update_category(
    category_id: str,
    payload: CategoryUpdateRequest,
    service: CategoryServiceDep,
    _: AdminUser,
) -> CategoryEnvelope:
    changes = payload.model_dump(include=payload.model_fields_set)
    try:
        category = await service.update_category(category_id, changes)
    except (CategoryNotFoundError, CategoryNameTakenError) as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return CategoryEnvelope(category=CategoryModel.model_validate(category))


@router.delete("/{category_id}", response_model=CategoryDeletedEnvelope)
async def delete_category(category_id: str, service: CategoryServiceDep, _: AdminUser) -> CategoryDeletedEnvelope:
    try:
        category = await service.delete_category(category_id)
    except CategoryNotFoundError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return CategoryDeletedEnvelope(message="Category deleted", category=CategoryModel.model_validate(category))
