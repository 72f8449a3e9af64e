"""Ticket lifecycle: domain models, timeline derivation, persistence and service."""

from .models import AdminUpdate, ReporterUpdate, Ticket, TicketDetail, TicketSummary, TimelineEntry, TimelineEvent
from .repository import TicketRepository
from .service import ReferenceNotFoundError, TicketAccessDeniedError, TicketNotFoundError, TicketService
from .state import TicketPriority, TicketStatus, TimelineEventType
from .timeline import WATCHED_FIELDS, derive_change_events

__all__ = [
    "AdminUpdate",
    "ReporterUpdate",
    "Ticket",
    "TicketDetail",
    "TicketSummary",
    "TimelineEntry",
    "TimelineEvent",
    "TicketRepository",
    "ReferenceNotFoundError",
    "TicketAccessDeniedError",
    "TicketNotFoundError",
    "TicketService",
    "TicketPriority",
    "TicketStatus",
    "TimelineEventType",
    "WATCHED_FIELDS",
    "derive_change_events",
]
