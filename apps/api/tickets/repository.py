from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator, Mapping, Sequence

from sqlalchemy import case
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased
from sqlmodel import select

from apps.api.services.database import ensure_aware
from packages.db.models import CategoryTable, TicketTable, TicketTimelineTable, UserTable

from .models import Ticket, TicketDetail, TicketSummary, TimelineEntry, TimelineEvent, UserRef
from .state import TicketPriority, TicketStatus, TimelineEventType
from .timeline import WATCHED_FIELDS

# Events written by the same update share a timestamp; break ties in declaration order.
_SAME_INSTANT_ORDER = {item.event_type.value: index for index, item in enumerate(WATCHED_FIELDS)}


class TicketRepository:
    """Persistence helper wrapping ``tickets`` and ``ticket_timeline``.

    Methods taking a ``session`` run inside a caller-owned :meth:`transaction`;
    the others open a short-lived session of their own.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    async def insert_ticket(self, session: AsyncSession, ticket: Ticket) -> None:
        session.add(
            TicketTable(
                id=ticket.id,
                title=ticket.title,
                description=ticket.description,
                status=ticket.status.value,
                priority=ticket.priority.value,
                category_id=ticket.category_id,
                reporter_id=ticket.reporter_id,
                assignee_id=ticket.assignee_id,
                created_at=ticket.created_at,
                updated_at=ticket.updated_at,
            )
        )
        await session.flush()

    async def add_timeline_events(self, session: AsyncSession, events: Sequence[TimelineEvent]) -> None:
        if not events:
            return
        session.add_all(
            [
                TicketTimelineTable(
                    id=event.id,
                    ticket_id=event.ticket_id,
                    user_id=event.user_id,
                    type=event.type.value,
                    old_value=event.old_value,
                    new_value=event.new_value,
                    created_at=event.created_at,
                )
                for event in events
            ]
        )
        await session.flush()

    async def lock_ticket(self, session: AsyncSession, ticket_id: str) -> Ticket | None:
        """Load a ticket and hold its row lock until the transaction ends.

        SQLite has no row locks and ignores ``FOR UPDATE``.
        """

        result = await session.execute(
            select(TicketTable).where(TicketTable.id == ticket_id).with_for_update()
        )
        row = result.scalars().first()
        return self._table_to_ticket(row) if row is not None else None

    async def apply_changes(
        self,
        session: AsyncSession,
        ticket_id: str,
        changes: Mapping[str, Any],
        *,
        updated_at: datetime,
    ) -> Ticket | None:
        row = await session.get(TicketTable, ticket_id)
        if row is None:
            return None
        for field_name, value in changes.items():
            setattr(row, field_name, value.value if isinstance(value, Enum) else value)
        row.updated_at = updated_at
        await session.flush()
        return self._table_to_ticket(row)

    async def delete_ticket(self, session: AsyncSession, ticket_id: str) -> Ticket | None:
        row = await session.get(TicketTable, ticket_id)
        if row is None:
            return None
        deleted = self._table_to_ticket(row)
        await session.delete(row)
        await session.flush()
        return deleted

    async def category_exists(self, session: AsyncSession, category_id: str) -> bool:
        return await session.get(CategoryTable, category_id) is not None

    async def user_exists(self, session: AsyncSession, user_id: str) -> bool:
        return await session.get(UserTable, user_id) is not None

    async def get_ticket(self, ticket_id: str) -> Ticket | None:
        async with self._session_factory() as session:
            row = await session.get(TicketTable, ticket_id)
        return self._table_to_ticket(row) if row is not None else None

    async def list_tickets(self, *, reporter_id: str | None = None) -> Sequence[TicketSummary]:
        statement = (
            select(
                TicketTable,
                CategoryTable.name.label("category_name"),
                CategoryTable.color.label("category_color"),
                UserTable.name.label("reporter_name"),
                UserTable.email.label("reporter_email"),
            )
            .outerjoin(CategoryTable, TicketTable.category_id == CategoryTable.id)
            .outerjoin(UserTable, TicketTable.reporter_id == UserTable.id)
            .order_by(TicketTable.created_at.desc())
        )
        if reporter_id is not None:
            statement = statement.where(TicketTable.reporter_id == reporter_id)

        async with self._session_factory() as session:
            result = await session.execute(statement)
            rows = result.all()

        summaries: list[TicketSummary] = []
        for row in rows:
            ticket = self._table_to_ticket(row[0])
            summaries.append(
                TicketSummary(
                    **_ticket_fields(ticket),
                    category_name=row.category_name,
                    category_color=row.category_color,
                    reporter_name=row.reporter_name,
                    reporter_email=row.reporter_email,
                )
            )
        return summaries

    async def get_ticket_detail(self, ticket_id: str) -> TicketDetail | None:
        reporter = aliased(UserTable)
        assignee = aliased(UserTable)
        statement = (
            select(
                TicketTable,
                CategoryTable.name.label("category_name"),
                CategoryTable.color.label("category_color"),
                reporter.id.label("reporter_ref_id"),
                reporter.name.label("reporter_name"),
                reporter.email.label("reporter_email"),
                assignee.id.label("assignee_ref_id"),
                assignee.name.label("assignee_name"),
                assignee.email.label("assignee_email"),
            )
            .outerjoin(CategoryTable, TicketTable.category_id == CategoryTable.id)
            .outerjoin(reporter, TicketTable.reporter_id == reporter.id)
            .outerjoin(assignee, TicketTable.assignee_id == assignee.id)
            .where(TicketTable.id == ticket_id)
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
            row = result.first()
        if row is None:
            return None

        ticket = self._table_to_ticket(row[0])
        return TicketDetail(
            **_ticket_fields(ticket),
            category_name=row.category_name,
            category_color=row.category_color,
            reporter=_user_ref(row.reporter_ref_id, row.reporter_name, row.reporter_email),
            assignee=_user_ref(row.assignee_ref_id, row.assignee_name, row.assignee_email),
        )

    async def list_timeline(self, ticket_id: str) -> Sequence[TimelineEntry]:
        same_instant_rank = case(
            _SAME_INSTANT_ORDER,
            value=TicketTimelineTable.type,
            else_=len(_SAME_INSTANT_ORDER),
        )
        statement = (
            select(TicketTimelineTable, UserTable.name.label("user_name"))
            .outerjoin(UserTable, TicketTimelineTable.user_id == UserTable.id)
            .where(TicketTimelineTable.ticket_id == ticket_id)
            .order_by(TicketTimelineTable.created_at.desc(), same_instant_rank.asc())
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
            rows = result.all()
        return [self._table_to_entry(row[0], row.user_name) for row in rows]

    @staticmethod
    def _table_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            id=row.id,
            title=row.title,
            description=row.description,
            status=TicketStatus(row.status),
            priority=TicketPriority(row.priority),
            category_id=row.category_id,
            reporter_id=row.reporter_id,
            assignee_id=row.assignee_id,
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at),
        )

    @staticmethod
    def _table_to_entry(row: TicketTimelineTable, user_name: str | None) -> TimelineEntry:
        return TimelineEntry(
            id=row.id,
            ticket_id=row.ticket_id,
            user_id=row.user_id,
            type=TimelineEventType(row.type),
            old_value=row.old_value,
            new_value=row.new_value,
            created_at=ensure_aware(row.created_at),
            user_name=user_name,
        )


def _ticket_fields(ticket: Ticket) -> dict[str, Any]:
    return {
        "id": ticket.id,
        "title": ticket.title,
        "description": ticket.description,
        "status": ticket.status,
        "priority": ticket.priority,
        "category_id": ticket.category_id,
        "reporter_id": ticket.reporter_id,
        "assignee_id": ticket.assignee_id,
        "created_at": ticket.created_at,
        "updated_at": ticket.updated_at,
    }


def _user_ref(user_id: str | None, name: str | None, email: str | None) -> UserRef | None:
    if user_id is None:
        return None
    return UserRef(id=user_id, name=name or "", email=email or "")
