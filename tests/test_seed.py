from __future__ import annotations

import pytest

from apps.api.seed import SEED_CATEGORIES, SEED_USERS, seed_database
from apps.api.services.database import Database
from apps.api.services.users import Role, UserService


@pytest.mark.asyncio
async def test_seed_creates_accounts_and_categories(database: Database, user_service: UserService):
    created = await seed_database(database)

    assert created == {"users": len(SEED_USERS), "categories": len(SEED_CATEGORIES)}
    result = await user_service.login(email="admin@example.com", password="admin123")
    assert result.user.role == Role.ADMIN


@pytest.mark.asyncio
async def test_seed_skips_existing_records(database: Database):
    await seed_database(database)

    assert await seed_database(database) == {"users": 0, "categories": 0}
