from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

STATUS_LABELS = {
    "open": "Open",
    "in_progress": "In progress",
    "resolved": "Resolved",
    "closed": "Closed",
}

PRIORITY_LABELS = {
    "low": "Low",
    "medium": "Medium",
    "high": "High",
    "urgent": "Urgent",
}


def status_label(value: str | None) -> str:
    return STATUS_LABELS.get(value or "", value or "-")


def priority_label(value: str | None) -> str:
    return PRIORITY_LABELS.get(value or "", value or "-")


def describe_event(event: Mapping[str, Any]) -> str:
    """Human readable sentence for one timeline entry."""

    event_type = event.get("type")
    old_value = event.get("oldValue")
    new_value = event.get("newValue")
    if event_type == "created":
        return "Ticket created"
    if event_type == "status_change":
        return f"Changed status from {status_label(old_value)} to {status_label(new_value)}"
    if event_type == "priority_change":
        return f"Changed priority from {priority_label(old_value)} to {priority_label(new_value)}"
    if event_type == "assignee_change":
        return "Assigned the ticket" if new_value else "Unassigned the ticket"
    if event_type == "category_change":
        return "Changed category" if new_value else "Removed the category"
    if event_type == "commented":
        return "Commented"
    return "Performed an action"


def _parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_relative_date(value: str | datetime, *, now: datetime | None = None) -> str:
    """Render a timestamp as "5 minutes ago", "yesterday" and so on.

    Timestamps slightly in the future (clock drift up to five minutes) read as
    "just now"; anything older than a month falls back to the calendar date.
    """

    moment = _parse_timestamp(value)
    current = now or datetime.now(timezone.utc)
    seconds = int((current - moment).total_seconds())

    if seconds < 0:
        if abs(seconds) < 300:
            return "just now"
        return moment.strftime("%b %d, %Y")
    if seconds < 60:
        return "just now"

    minutes = seconds // 60
    if minutes < 60:
        return "1 minute ago" if minutes == 1 else f"{minutes} minutes ago"

    hours = minutes // 60
    if hours < 24:
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"

    days = hours // 24
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        weeks = days // 7
        return "1 week ago" if weeks == 1 else f"{weeks} weeks ago"
    return moment.strftime("%b %d, %Y")
