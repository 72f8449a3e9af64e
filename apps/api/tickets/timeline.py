"""Derivation of timeline events from ticket changes.

Which fields are audited, and the event each one produces, is declared once in
:data:`WATCHED_FIELDS`; :func:`derive_change_events` applies that table to the
ticket as it was before an update and the changes being written.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Sequence

from .models import Ticket, TimelineEvent
from .state import TimelineEventType


@dataclass(frozen=True, slots=True)
class WatchedField:
    field: str
    event_type: TimelineEventType


# Table order is also the order of events produced by one update.
WATCHED_FIELDS: tuple[WatchedField, ...] = (
    WatchedField("status", TimelineEventType.STATUS_CHANGE),
    WatchedField("priority", TimelineEventType.PRIORITY_CHANGE),
    WatchedField("assignee_id", TimelineEventType.ASSIGNEE_CHANGE),
    WatchedField("category_id", TimelineEventType.CATEGORY_CHANGE),
)


def timeline_value(value: Any) -> str | None:
    """Render a field value the way it is stored in ``old_value``/``new_value``."""

    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def creation_event(ticket: Ticket, *, actor_id: str) -> TimelineEvent:
    return TimelineEvent(
        id=str(uuid.uuid4()),
        ticket_id=ticket.id,
        user_id=actor_id,
        type=TimelineEventType.CREATED,
        old_value=None,
        new_value=None,
        created_at=ticket.created_at,
    )


def derive_change_events(
    before: Ticket,
    changes: Mapping[str, Any],
    *,
    actor_id: str,
    at: datetime,
    watched: Sequence[WatchedField] = WATCHED_FIELDS,
) -> list[TimelineEvent]:
    """Return one event per watched field that ``changes`` supplies with a new value.

    Fields absent from ``changes`` and fields written with their current value
    produce nothing.
    """

    events: list[TimelineEvent] = []
    for item in watched:
        if item.field not in changes:
            continue
        old_value = timeline_value(getattr(before, item.field))
        new_value = timeline_value(changes[item.field])
        if old_value == new_value:
            continue
        events.append(
            TimelineEvent(
                id=str(uuid.uuid4()),
                ticket_id=before.id,
                user_id=actor_id,
                type=item.event_type,
                old_value=old_value,
                new_value=new_value,
                created_at=at,
            )
        )
    return events
