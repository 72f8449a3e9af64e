"""SQLModel table definitions for the ticket report data layer."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


def _uuid_str() -> str:
    """Generate a random UUID string."""

    return str(uuid.uuid4())


class UserTable(SQLModel, table=True):
    """Registered accounts, either regular users or administrators."""

    __tablename__ = "users"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True))
    name: str = Field(sa_column=Column(String(255), nullable=False))
    password_hash: str = Field(sa_column=Column(String(255), nullable=False))
    role: str = Field(default="user", sa_column=Column(String(20), nullable=False, default="user"))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class CategoryTable(SQLModel, table=True):
    """Ticket categories managed by administrators."""

    __tablename__ = "categories"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    name: str = Field(sa_column=Column(String(100), nullable=False, unique=True))
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    color: str = Field(default="#6366f1", sa_column=Column(String(7), nullable=False, default="#6366f1"))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketTable(SQLModel, table=True):
    """Support tickets submitted by users."""

    __tablename__ = "tickets"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    title: str = Field(sa_column=Column(String(255), nullable=False))
    description: str = Field(sa_column=Column(Text, nullable=False))
    status: str = Field(default="open", sa_column=Column(String(20), nullable=False, default="open"))
    priority: str = Field(default="medium", sa_column=Column(String(20), nullable=False, default="medium"))
    category_id: str | None = Field(
        default=None,
        sa_column=Column(String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True),
    )
    reporter_id: str = Field(
        sa_column=Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    )
    assignee_id: str | None = Field(
        default=None, sa_column=Column(String(36), ForeignKey("users.id"), nullable=True)
    )
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketTimelineTable(SQLModel, table=True):
    """Append-only history of ticket changes."""

    __tablename__ = "ticket_timeline"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    ticket_id: str = Field(
        sa_column=Column(
            String(36), ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    user_id: str = Field(sa_column=Column(String(36), ForeignKey("users.id"), nullable=False))
    type: str = Field(sa_column=Column(String(50), nullable=False))
    old_value: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    new_value: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
