from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from apps.api.core.errors import ConflictError, InvalidCredentialsError, NotFoundError
from apps.api.core.security import TokenSigner, hash_password, verify_password
from apps.api.services.database import ensure_aware
from packages.db.models import UserTable

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Supported roles."""

    USER = "user"
    ADMIN = "admin"


@dataclass(slots=True)
class UserAccount:
    """Public view of a registered user; never carries the password hash."""

    id: str
    email: str
    name: str
    role: Role
    created_at: datetime
    updated_at: datetime

    def has_role(self, role: Role) -> bool:
        return self.role == role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class UserNotFoundError(NotFoundError):
    """Raised when a user id does not resolve to an account."""


class EmailAlreadyRegisteredError(ConflictError):
    """Raised when registering an email that already has an account."""


@dataclass(slots=True)
class AuthResult:
    user: UserAccount
    token: str


class UserRepository:
    """Persistence helper wrapping the ``users`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_user(self, *, email: str, name: str, password_hash: str, role: Role) -> UserAccount:
        now = datetime.now(timezone.utc)
        row = UserTable(
            id=str(uuid.uuid4()),
            email=email,
            name=name,
            password_hash=password_hash,
            role=role.value,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            async with session.begin():
                session.add(row)
        return self._table_to_user(row)

    async def get_user(self, user_id: str) -> UserAccount | None:
        async with self._session_factory() as session:
            row = await session.get(UserTable, user_id)
        return self._table_to_user(row) if row is not None else None

    async def get_user_with_hash(self, email: str) -> tuple[UserAccount, str] | None:
        async with self._session_factory() as session:
            result = await session.execute(select(UserTable).where(UserTable.email == email).limit(1))
            row = result.scalars().first()
        if row is None:
            return None
        return self._table_to_user(row), row.password_hash

    async def email_exists(self, email: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(select(UserTable.id).where(UserTable.email == email).limit(1))
            return result.first() is not None

    async def list_users(self) -> Sequence[UserAccount]:
        async with self._session_factory() as session:
            result = await session.execute(select(UserTable).order_by(UserTable.created_at.asc()))
            return [self._table_to_user(row) for row in result.scalars().all()]

    @staticmethod
    def _table_to_user(row: UserTable) -> UserAccount:
        return UserAccount(
            id=row.id,
            email=row.email,
            name=row.name,
            role=Role(row.role),
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at),
        )


class UserService:
    """Registration, login and user lookups."""

    def __init__(self, repository: UserRepository, *, signer: TokenSigner) -> None:
        self._repository = repository
        self._signer = signer

    async def register(self, *, email: str, name: str, password: str) -> AuthResult:
        email = email.lower()
        if await self._repository.email_exists(email):
            raise EmailAlreadyRegisteredError("Email already registered")
        try:
            user = await self._repository.create_user(
                email=email,
                name=name,
                password_hash=await asyncio.to_thread(hash_password, password),
                role=Role.USER,
            )
        except IntegrityError as exc:
            raise EmailAlreadyRegisteredError("Email already registered") from exc
        logger.info("Registered user %s", user.id)
        return AuthResult(user=user, token=self._signer.issue(user.id))

    async def login(self, *, email: str, password: str) -> AuthResult:
        found = await self._repository.get_user_with_hash(email.lower())
        if found is None or not await asyncio.to_thread(verify_password, password, found[1]):
            logger.warning("Rejected login attempt for %s", email)
            raise InvalidCredentialsError()
        user = found[0]
        return AuthResult(user=user, token=self._signer.issue(user.id))

    async def resolve_token(self, token: str) -> UserAccount | None:
        """Return the account a bearer token belongs to, or ``None`` if it no longer exists.

        Raises :class:`~apps.api.core.security.InvalidTokenError` for bad tokens.
        """

        user_id = self._signer.verify(token)
        return await self._repository.get_user(user_id)

    async def get_user(self, user_id: str) -> UserAccount:
        user = await self._repository.get_user(user_id)
        if user is None:
            raise UserNotFoundError("User not found")
        return user

    async def list_users(self) -> Sequence[UserAccount]:
        return await self._repository.list_users()

