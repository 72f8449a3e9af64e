from __future__ import annotations

import pytest
import pytest_asyncio

from apps.api.core.security import TokenSigner, hash_password
from apps.api.services.categories import CategoryRepository, CategoryService
from apps.api.services.database import Database
from apps.api.services.users import Role, UserAccount, UserRepository, UserService
from apps.api.tickets import TicketRepository, TicketService

TEST_SECRET = "test-secret-key"


@pytest.fixture
def signer() -> TokenSigner:
    return TokenSigner(TEST_SECRET, 7 * 24 * 60 * 60)


@pytest_asyncio.fixture
async def database():
    db = Database("sqlite:///:memory:")
    await db.ensure_schema()
    try:
        yield db
    finally:
        await db.close()


@pytest.fixture
def user_repository(database: Database) -> UserRepository:
    return UserRepository(database.session_factory)


@pytest.fixture
def user_service(user_repository: UserRepository, signer: TokenSigner) -> UserService:
    return UserService(user_repository, signer=signer)


@pytest.fixture
def category_service(database: Database) -> CategoryService:
    return CategoryService(CategoryRepository(database.session_factory))


@pytest.fixture
def ticket_repository(database: Database) -> TicketRepository:
    return TicketRepository(database.session_factory)


@pytest.fixture
def ticket_service(ticket_repository: TicketRepository) -> TicketService:
    return TicketService(ticket_repository)


@pytest.fixture(scope="session")
def password_hash() -> str:
    return hash_password("password123")


@pytest_asyncio.fixture
async def admin(user_repository: UserRepository, password_hash: str) -> UserAccount:
    return await user_repository.create_user(
        email="admin@example.com", name="Admin", password_hash=password_hash, role=Role.ADMIN
    )


@pytest_asyncio.fixture
async def reporter(user_repository: UserRepository, password_hash: str) -> UserAccount:
    return await user_repository.create_user(
        email="reporter@example.com", name="Reporter", password_hash=password_hash, role=Role.USER
    )


@pytest_asyncio.fixture
async def outsider(user_repository: UserRepository, password_hash: str) -> UserAccount:
    return await user_repository.create_user(
        email="outsider@example.com", name="Outsider", password_hash=password_hash, role=Role.USER
    )
