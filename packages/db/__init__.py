"""Database models and utilities."""

from .models import CategoryTable, TicketTable, TicketTimelineTable, UserTable

__all__ = [
    "CategoryTable",
    "TicketTable",
    "TicketTimelineTable",
    "UserTable",
]
