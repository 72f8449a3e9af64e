"""Populate a fresh database with demo accounts and the default categories.

Run with ``python -m apps.api.seed``. Records that already exist are left
untouched, so the command is safe to repeat.
"""

from __future__ import annotations

import asyncio
import logging

from apps.api.core.config import Settings, get_settings
from apps.api.core.logging import configure_logging
from apps.api.core.security import hash_password
from apps.api.services.categories import CategoryRepository
from apps.api.services.database import Database
from apps.api.services.users import Role, UserRepository

logger = logging.getLogger(__name__)

SEED_USERS: tuple[tuple[str, str, str, Role], ...] = (
    ("admin@example.com", "Admin User", "admin123", Role.ADMIN),
    ("user@example.com", "Regular User", "user123", Role.USER),
)

SEED_CATEGORIES: tuple[tuple[str, str, str], ...] = (
    ("Bug Report", "Report a bug or issue", "#ef4444"),
    ("Feature Request", "Request a new feature", "#22c55e"),
    ("Support", "General support questions", "#3b82f6"),
    ("Other", "Other inquiries", "#6b7280"),
)


async def seed_database(database: Database) -> dict[str, int]:
    """Insert missing seed records and return how many of each were created."""

    created = {"users": 0, "categories": 0}
    users = UserRepository(database.session_factory)
    for email, name, password, role in SEED_USERS:
        if await users.email_exists(email):
            logger.info("User %s already exists, skipping", email)
            continue
        password_hash = await asyncio.to_thread(hash_password, password)
        await users.create_user(email=email, name=name, password_hash=password_hash, role=role)
        created["users"] += 1
        logger.info("Created %s account %s", role.value, email)

    categories = CategoryRepository(database.session_factory)
    for name, description, color in SEED_CATEGORIES:
        if await categories.get_by_name(name) is not None:
            logger.info("Category %s already exists, skipping", name)
            continue
        await categories.create_category(name=name, description=description, color=color)
        created["categories"] += 1
        logger.info("Created category %s", name)
    return created


async def run(settings: Settings) -> dict[str, int]:
    database = Database(settings.database_url, echo=settings.database_echo)
    try:
        await database.ensure_schema()
        return await seed_database(database)
    finally:
        await database.close()


def main() -> None:
    settings = get_settings()
    configure_logging(settings)
    created = asyncio.run(run(settings))
    logger.info("Seeding finished: %d users, %d categories created", created["users"], created["categories"])


if __name__ == "__main__":
    main()
