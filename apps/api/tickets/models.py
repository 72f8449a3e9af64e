from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Union

from .state import TicketPriority, TicketStatus, TimelineEventType


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a support ticket entry."""

    id: str
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    category_id: str | None
    reporter_id: str
    assignee_id: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class TicketSummary(Ticket):
    """List row: the ticket joined with its category and reporter."""

    category_name: str | None
    category_color: str | None
    reporter_name: str | None
    reporter_email: str | None


@dataclass(slots=True)
class UserRef:
    id: str
    name: str
    email: str


@dataclass(slots=True)
class TicketDetail(Ticket):
    """Single ticket view with full reporter and assignee identities."""

    category_name: str | None
    category_color: str | None
    reporter: UserRef | None
    assignee: UserRef | None


@dataclass(slots=True)
class TimelineEvent:
    """History entry describing the creation of a ticket or one field change."""

    id: str
    ticket_id: str
    user_id: str
    type: TimelineEventType
    old_value: str | None
    new_value: str | None
    created_at: datetime


@dataclass(slots=True)
class TimelineEntry(TimelineEvent):
    """Timeline event enriched with the acting user's display name."""

    user_name: str | None


class _Unset(Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset.UNSET
"""Marks an update field the caller did not supply, as opposed to an explicit ``None``."""


@dataclass(frozen=True, slots=True)
class _TicketUpdate:
    def supplied(self) -> dict[str, Any]:
        """Return only the fields the caller supplied."""

        values = {item.name: getattr(self, item.name) for item in fields(self)}
        return {name: value for name, value in values.items() if value is not UNSET}


@dataclass(frozen=True, slots=True)
class ReporterUpdate(_TicketUpdate):
    """Changes a non-admin reporter is allowed to make to their own ticket."""

    title: str | _Unset = UNSET
    description: str | _Unset = UNSET


@dataclass(frozen=True, slots=True)
class AdminUpdate(_TicketUpdate):
    """Changes an administrator may make to any ticket.

    ``category_id`` and ``assignee_id`` accept ``None`` to clear the reference.
    """

    title: str | _Unset = UNSET
    description: str | _Unset = UNSET
    status: TicketStatus | _Unset = UNSET
    priority: TicketPriority | _Unset = UNSET
    category_id: str | None | _Unset = UNSET
    assignee_id: str | None | _Unset = UNSET


TicketUpdate = Union[ReporterUpdate, AdminUpdate]
