from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from apps.api.core.errors import ConflictError, NotFoundError
from apps.api.services.database import ensure_aware
from packages.db.models import CategoryTable

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_COLOR = "#6366f1"


@dataclass(slots=True)
class Category:
    id: str
    name: str
    description: str | None
    color: str
    created_at: datetime


class CategoryNotFoundError(NotFoundError):
    """Raised when an operation targets a non-existent category."""


class CategoryNameTakenError(ConflictError):
    """Raised when a category name is already in use."""


class CategoryRepository:
    """Persistence helper wrapping the ``categories`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_categories(self) -> Sequence[Category]:
        async with self._session_factory() as session:
            result = await session.execute(select(CategoryTable).order_by(CategoryTable.name.asc()))
            return [self._table_to_category(row) for row in result.scalars().all()]

    async def get_category(self, category_id: str) -> Category | None:
        async with self._session_factory() as session:
            row = await session.get(CategoryTable, category_id)
        return self._table_to_category(row) if row is not None else None

    async def get_by_name(self, name: str) -> Category | None:
        async with self._session_factory() as session:
            result = await session.execute(select(CategoryTable).where(CategoryTable.name == name).limit(1))
            row = result.scalars().first()
        return self._table_to_category(row) if row is not None else None

    async def create_category(self, *, name: str, description: str | None, color: str) -> Category:
        row = CategoryTable(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            color=color,
            created_at=datetime.now(timezone.utc),
        )
        async with self._session_factory() as session:
            async with session.begin():
                session.add(row)
        return self._table_to_category(row)

    async def update_category(self, category_id: str, changes: Mapping[str, Any]) -> Category | None:
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(CategoryTable, category_id)
                if row is None:
                    return None
                for field_name, value in changes.items():
                    setattr(row, field_name, value)
            return self._table_to_category(row)

    async def delete_category(self, category_id: str) -> Category | None:
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(CategoryTable, category_id)
                if row is None:
                    return None
                deleted = self._table_to_category(row)
                await session.delete(row)
        return deleted

    @staticmethod
    def _table_to_category(row: CategoryTable) -> Category:
        return Category(
            id=row.id,
            name=row.name,
            description=row.description,
            color=row.color,
            created_at=ensure_aware(row.created_at),
        )


class CategoryService:
    """CRUD over ticket categories; writes are admin-gated at the route layer."""

    def __init__(self, repository: CategoryRepository) -> None:
        self._repository = repository

    async def list_categories(self) -> Sequence[Category]:
        return await self._repository.list_categories()

    async def create_category(
        self, *, name: str, description: str | None = None, color: str | None = None
    ) -> Category:
        if await self._repository.get_by_name(name) is not None:
            raise CategoryNameTakenError(f"Category '{name}' already exists")
        try:
            category = await self._repository.create_category(
                name=name,
                description=description,
                color=color or DEFAULT_CATEGORY_COLOR,
            )
        except IntegrityError as exc:
            raise CategoryNameTakenError(f"Category '{name}' already exists") from exc
        logger.info("Created category %s (%s)", category.id, category.name)
        return category

    async def update_category(self, category_id: str, changes: Mapping[str, Any]) -> Category:
        name = changes.get("name")
        if name is not None:
            existing = await self._repository.get_by_name(name)
            if existing is not None and existing.id != category_id:
                raise CategoryNameTakenError(f"Category '{name}' already exists")
        try:
            updated = await self._repository.update_category(category_id, changes)
        except IntegrityError as exc:
            raise CategoryNameTakenError(f"Category '{name}' already exists") from exc
        if updated is None:
            raise CategoryNotFoundError("Category not found")
        return updated

    async def delete_category(self, category_id: str) -> Category:
        deleted = await self._repository.delete_category(category_id)
        if deleted is None:
            raise CategoryNotFoundError("Category not found")
        logger.info("Deleted category %s", category_id)
        return deleted
