from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Sequence

from apps.api.core.errors import ForbiddenError, NotFoundError
from apps.api.services.users import UserAccount

from .models import AdminUpdate, Ticket, TicketDetail, TicketSummary, TicketUpdate, TimelineEntry
from .repository import TicketRepository
from .state import TicketPriority, TicketStatus
from .timeline import creation_event, derive_change_events

logger = logging.getLogger(__name__)


class TicketNotFoundError(NotFoundError):
    """Raised when a ticket could not be located."""


class TicketAccessDeniedError(ForbiddenError):
    """Raised when the actor is neither an admin nor the ticket's reporter."""


class ReferenceNotFoundError(NotFoundError):
    """Raised when a ticket names a category or assignee that does not exist."""


class TicketService:
    """High level orchestration for ticket lifecycle operations."""

    def __init__(self, repository: TicketRepository) -> None:
        self._repository = repository

    async def create_ticket(
        self,
        *,
        title: str,
        description: str,
        actor: UserAccount,
        priority: TicketPriority = TicketPriority.MEDIUM,
        category_id: str | None = None,
    ) -> Ticket:
        now = datetime.now(timezone.utc)
        ticket = Ticket(
            id=str(uuid.uuid4()),
            title=title,
            description=description,
            status=TicketStatus.OPEN,
            priority=priority,
            category_id=category_id,
            reporter_id=actor.id,
            assignee_id=None,
            created_at=now,
            updated_at=now,
        )
        async with self._repository.transaction() as session:
            if category_id is not None and not await self._repository.category_exists(session, category_id):
                raise ReferenceNotFoundError("Category not found")
            await self._repository.insert_ticket(session, ticket)
            await self._repository.add_timeline_events(session, [creation_event(ticket, actor_id=actor.id)])
        logger.info("Ticket %s created by %s", ticket.id, actor.id)
        return ticket

    async def list_tickets(self, actor: UserAccount) -> Sequence[TicketSummary]:
        reporter_id = None if actor.is_admin else actor.id
        return await self._repository.list_tickets(reporter_id=reporter_id)

    async def get_ticket(self, ticket_id: str, actor: UserAccount) -> TicketDetail:
        detail = await self._repository.get_ticket_detail(ticket_id)
        if detail is None:
            raise TicketNotFoundError("Ticket not found")
        self._ensure_access(detail, actor)
        return detail

    async def update_ticket(self, ticket_id: str, update: TicketUpdate, actor: UserAccount) -> Ticket:
        """Apply ``update`` and record a timeline event per audited field that changed.

        The read of the current state, the write and the event inserts share one
        transaction, so events are always derived from the state being replaced.
        """

        if isinstance(update, AdminUpdate) and not actor.is_admin:
            raise TicketAccessDeniedError("Access denied")

        changes = update.supplied()
        async with self._repository.transaction() as session:
            current = await self._repository.lock_ticket(session, ticket_id)
            if current is None:
                raise TicketNotFoundError("Ticket not found")
            self._ensure_access(current, actor)
            # Stamped once the row lock is held so concurrent updates stay in order.
            now = datetime.now(timezone.utc)

            category_id = changes.get("category_id")
            if category_id is not None and not await self._repository.category_exists(session, category_id):
                raise ReferenceNotFoundError("Category not found")
            assignee_id = changes.get("assignee_id")
            if assignee_id is not None and not await self._repository.user_exists(session, assignee_id):
                raise ReferenceNotFoundError("Assignee not found")

            events = derive_change_events(current, changes, actor_id=actor.id, at=now)
            updated = await self._repository.apply_changes(session, ticket_id, changes, updated_at=now)
            if updated is None:
                raise TicketNotFoundError("Ticket not found")
            await self._repository.add_timeline_events(session, events)

        if events:
            logger.info(
                "Ticket %s updated by %s: %s",
                ticket_id,
                actor.id,
                ", ".join(event.type.value for event in events),
            )
        return updated

    async def delete_ticket(self, ticket_id: str, actor: UserAccount) -> Ticket:
        if not actor.is_admin:
            raise TicketAccessDeniedError("Admin access required")
        async with self._repository.transaction() as session:
            deleted = await self._repository.delete_ticket(session, ticket_id)
        if deleted is None:
            raise TicketNotFoundError("Ticket not found")
        logger.info("Ticket %s deleted by %s", ticket_id, actor.id)
        return deleted

    async def get_timeline(self, ticket_id: str, actor: UserAccount) -> Sequence[TimelineEntry]:
        ticket = await self._repository.get_ticket(ticket_id)
        if ticket is None:
            return []
        self._ensure_access(ticket, actor)
        return await self._repository.list_timeline(ticket_id)

    @staticmethod
    def _ensure_access(ticket: Ticket, actor: UserAccount) -> None:
        if actor.is_admin or ticket.reporter_id == actor.id:
            return
        logger.warning("User %s denied access to ticket %s", actor.id, ticket.id)
        raise TicketAccessDeniedError("Access denied")
