from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field

from apps.api.api.schemas import CamelModel
from apps.api.core.errors import ServiceError
from apps.api.dependencies.auth import AdminUser, CurrentUser
from apps.api.dependencies.services import get_ticket_service
from apps.api.services.users import UserAccount
from apps.api.tickets.models import UNSET, AdminUpdate, ReporterUpdate, TicketUpdate
from apps.api.tickets.service import (
    ReferenceNotFoundError,
    TicketAccessDeniedError,
    TicketNotFoundError,
    TicketService,
)
from apps.api.tickets.state import TicketPriority, TicketStatus, TimelineEventType

router = APIRouter(prefix="/tickets", tags=["tickets"])

TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]


class TicketCreateRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    priority: TicketPriority = Field(default=TicketPriority.MEDIUM)
    category_id: str | None = Field(default=None, min_length=1, max_length=36)


class TicketUpdateRequest(CamelModel):
    """Partial update; only keys present in the request body are applied.

    ``categoryId`` and ``assigneeId`` may be sent as ``null`` to clear them, the
    other fields may not.
    """

    title: str = Field(default=None, min_length=1, max_length=255)
    description: str = Field(default=None, min_length=1)
    status: TicketStatus = Field(default=None)
    priority: TicketPriority = Field(default=None)
    category_id: str | None = Field(default=None, min_length=1, max_length=36)
    assignee_id: str | None = Field(default=None, min_length=1, max_length=36)

    def _supplied(self, name: str):
        return getattr(self, name) if name in self.model_fields_set else UNSET

    def for_actor(self, actor: UserAccount) -> TicketUpdate:
        """Build the typed update the actor's role entitles them to.

        Fields outside a reporter's allowance are dropped, not rejected.
        """

        if actor.is_admin:
            return AdminUpdate(
                title=self._supplied("title"),
                description=self._supplied("description"),
                status=self._supplied("status"),
                priority=self._supplied("priority"),
                category_id=self._supplied("category_id"),
                assignee_id=self._supplied("assignee_id"),
            )
        return ReporterUpdate(title=self._supplied("title"), description=self._supplied("description"))


class TicketModel(CamelModel):
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


class TicketSummaryModel(TicketModel):
    category_name: str | None
    category_color: str | None
    reporter_name: str | None
    reporter_email: str | None


class UserRefModel(CamelModel):
    id: str
    name: str
    email: str


class TicketDetailModel(TicketModel):
    category_name: str | None
    category_color: str | None
    reporter: UserRefModel | None
    assignee: UserRefModel | None


class TimelineEntryModel(CamelModel):
    id: str
    type: TimelineEventType
    old_value: str | None
    new_value: str | None
    created_at: datetime
    user_id: str
    user_name: str | None


class TicketEnvelope(CamelModel):
    ticket: TicketModel


class TicketDetailEnvelope(CamelModel):
    ticket: TicketDetailModel


class TicketListEnvelope(CamelModel):
    tickets: list[TicketSummaryModel]


class TicketDeletedEnvelope(CamelModel):
    message: str
    ticket: TicketModel


class TimelineEnvelope(CamelModel):
    timeline: list[TimelineEntryModel]


def _http_error(exc: ServiceError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))


@router.get("", response_model=TicketListEnvelope, summary="List tickets visible to the caller")
async def list_tickets(service: TicketServiceDep, user: CurrentUser) -> TicketListEnvelope:
    tickets = await service.list_tickets(user)
    return TicketListEnvelope(tickets=[TicketSummaryModel.model_validate(item) for item in tickets])


@router.post("", response_model=TicketEnvelope, status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep, user: CurrentUser) -> TicketEnvelope:
    try:
        ticket = await service.create_ticket(
            title=payload.title,
            description=payload.description,
            priority=payload.priority,
            category_id=payload.category_id,
            actor=user,
        )
    except ReferenceNotFoundError as exc:
        raise _http_error(exc) from exc
    return TicketEnvelope(ticket=TicketModel.model_validate(ticket))


@router.get("/{ticket_id}", response_model=TicketDetailEnvelope)
async def get_ticket(ticket_id: str, service: TicketServiceDep, user: CurrentUser) -> TicketDetailEnvelope:
    try:
        detail = await service.get_ticket(ticket_id, user)
    except (TicketNotFoundError, TicketAccessDeniedError) as exc:
        raise _http_error(exc) from exc
    return TicketDetailEnvelope(ticket=TicketDetailModel.model_validate(detail))


@router.put("/{ticket_id}", response_model=TicketEnvelope)
async def update_ticket(
    ticket_id: str,
    payload: TicketUpdateRequest,
    service: TicketServiceDep,
    user: CurrentUser,
) -> TicketEnvelope:
    try:
        ticket = await service.update_ticket(ticket_id, payload.for_actor(user), user)
    except (TicketNotFoundError, TicketAccessDeniedError, ReferenceNotFoundError) as exc:
        raise _http_error(exc) from exc
    return TicketEnvelope(ticket=TicketModel.model_validate(ticket))


@router.delete("/{ticket_id}", response_model=TicketDeletedEnvelope)
async def delete_ticket(ticket_id: str, service: TicketServiceDep, user: AdminUser) -> TicketDeletedEnvelope:
    try:
        deleted = await service.delete_ticket(ticket_id, user)
    except (TicketNotFoundError, TicketAccessDeniedError) as exc:
        raise _http_error(exc) from exc
    return TicketDeletedEnvelope(message="Ticket deleted", ticket=TicketModel.model_validate(deleted))


@router.get("/{ticket_id}/timeline", response_model=TimelineEnvelope)
async def get_ticket_timeline(ticket_id: str, service: TicketServiceDep, user: CurrentUser) -> TimelineEnvelope:
    try:
        entries = await service.get_timeline(ticket_id, user)
    except TicketAccessDeniedError as exc:
        raise _http_error(exc) from exc
    return TimelineEnvelope(timeline=[TimelineEntryModel.model_validate(entry) for entry in entries])
