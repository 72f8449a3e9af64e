from __future__ import annotations

from enum import Enum


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TimelineEventType(str, Enum):
    """Kinds of entries recorded on a ticket's timeline."""

    CREATED = "created"
    STATUS_CHANGE = "status_change"
    PRIORITY_CHANGE = "priority_change"
    ASSIGNEE_CHANGE = "assignee_change"
    CATEGORY_CHANGE = "category_change"
    COMMENTED = "commented"
