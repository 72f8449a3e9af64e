from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from apps.api.dependencies.auth import get_current_user
from apps.api.dependencies.services import get_ticket_service
from apps.api.main import create_app
from apps.api.services.users import Role
from apps.api.tickets import (
    AdminUpdate,
    ReferenceNotFoundError,
    ReporterUpdate,
    TicketAccessDeniedError,
    TicketNotFoundError,
    TicketPriority,
    TicketStatus,
    TimelineEventType,
)
from apps.api.tickets.models import Ticket, TicketDetail, TicketSummary, TimelineEntry, UserRef, UNSET

from tests.factories import make_account


def _make_ticket(**overrides) -> Ticket:
    now = datetime.now(timezone.utc)
    values = dict(
        id="ticket-1",
        title="Crash on save",
        description="Editor crashes",
        status=TicketStatus.OPEN,
        priority=TicketPriority.MEDIUM,
        category_id=None,
        reporter_id="user-1",
        assignee_id=None,
        created_at=now,
        updated_at=now,
    )
    values.update(overrides)
    return Ticket(**values)


@pytest.fixture
def ticket_client():
    app = create_app()
    service = AsyncMock()
    state = {"user": make_account("user-1")}

    async def override_service():
        return service

    app.dependency_overrides[get_ticket_service] = override_service
    app.dependency_overrides[get_current_user] = lambda: state["user"]

    client = TestClient(app)
    try:
        yield client, service, state
    finally:
        app.dependency_overrides.clear()


def test_create_ticket_returns_created_envelope(ticket_client):
    client, service, _ = ticket_client
    service.create_ticket = AsyncMock(return_value=_make_ticket(priority=TicketPriority.HIGH))

    response = client.post(
        "/tickets",
        json={"title": "Crash on save", "description": "Editor crashes", "priority": "high"},
    )

    assert response.status_code == 201
    body = response.json()["ticket"]
    assert body["id"] == "ticket-1"
    assert body["reporterId"] == "user-1"
    assert body["categoryId"] is None
    kwargs = service.create_ticket.await_args.kwargs
    assert kwargs["priority"] == TicketPriority.HIGH
    assert kwargs["actor"].id == "user-1"


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "", "description": "Body"},
        {"title": "x" * 256, "description": "Body"},
        {"title": "Title", "description": ""},
        {"title": "Title"},
        {"title": "Title", "description": "Body", "priority": "critical"},
    ],
)
def test_create_ticket_validation_errors(ticket_client, payload):
    client, service, _ = ticket_client
    service.create_ticket = AsyncMock()

    response = client.post("/tickets", json=payload)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["message"] == "Validation failed"
    assert error["statusCode"] == 400
    assert error["details"]
    service.create_ticket.assert_not_awaited()


def test_create_ticket_with_unknown_category_is_not_found(ticket_client):
    client, service, _ = ticket_client
    service.create_ticket = AsyncMock(side_effect=ReferenceNotFoundError("Category not found"))

    response = client.post("/tickets", json={"title": "T", "description": "D", "categoryId": "missing"})

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Category not found"


def test_list_tickets_returns_enriched_rows(ticket_client):
    client, service, _ = ticket_client
    ticket = _make_ticket(category_id="cat-1")
    summary = TicketSummary(
        id=ticket.id,
        title=ticket.title,
        description=ticket.description,
        status=ticket.status,
        priority=ticket.priority,
        category_id=ticket.category_id,
        reporter_id=ticket.reporter_id,
        assignee_id=None,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
        category_name="Bug",
        category_color="#ef4444",
        reporter_name="User",
        reporter_email="user-1@example.com",
    )
    service.list_tickets = AsyncMock(return_value=[summary])

    response = client.get("/tickets")

    assert response.status_code == 200
    rows = response.json()["tickets"]
    assert rows[0]["categoryName"] == "Bug"
    assert rows[0]["reporterEmail"] == "user-1@example.com"


def test_get_ticket_returns_detail(ticket_client):
    client, service, _ = ticket_client
    ticket = _make_ticket(assignee_id="admin-1")
    detail = TicketDetail(
        id=ticket.id,
        title=ticket.title,
        description=ticket.description,
        status=ticket.status,
        priority=ticket.priority,
        category_id=None,
        reporter_id=ticket.reporter_id,
        assignee_id="admin-1",
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
        category_name=None,
        category_color=None,
        reporter=UserRef(id="user-1", name="User", email="user-1@example.com"),
        assignee=UserRef(id="admin-1", name="Admin", email="admin@example.com"),
    )
    service.get_ticket = AsyncMock(return_value=detail)

    response = client.get("/tickets/ticket-1")

    assert response.status_code == 200
    body = response.json()["ticket"]
    assert body["reporter"] == {"id": "user-1", "name": "User", "email": "user-1@example.com"}
    assert body["assignee"]["name"] == "Admin"


@pytest.mark.parametrize(
    "error,status_code,message",
    [
        (TicketNotFoundError("Ticket not found"), 404, "Ticket not found"),
        (TicketAccessDeniedError("Access denied"), 403, "Access denied"),
    ],
)
def test_get_ticket_maps_service_errors(ticket_client, error, status_code, message):
    client, service, _ = ticket_client
    service.get_ticket = AsyncMock(side_effect=error)

    response = client.get("/tickets/ticket-1")

    assert response.status_code == status_code
    assert response.json()["error"]["message"] == message


def test_reporter_update_drops_admin_only_fields(ticket_client):
    client, service, _ = ticket_client
    service.update_ticket = AsyncMock(return_value=_make_ticket(title="New"))

    response = client.put(
        "/tickets/ticket-1",
        json={"title": "New", "status": "closed", "priority": "urgent", "assigneeId": "user-1"},
    )

    assert response.status_code == 200
    assert response.json()["ticket"]["title"] == "New"
    update = service.update_ticket.await_args.args[1]
    assert isinstance(update, ReporterUpdate)
    assert update.supplied() == {"title": "New"}


def test_admin_update_keeps_explicit_nulls(ticket_client):
    client, service, state = ticket_client
    state["user"] = make_account("admin-1", role=Role.ADMIN)
    service.update_ticket = AsyncMock(return_value=_make_ticket(status=TicketStatus.IN_PROGRESS))

    response = client.put(
        "/tickets/ticket-1",
        json={"status": "in_progress", "categoryId": None},
    )

    assert response.status_code == 200
    update = service.update_ticket.await_args.args[1]
    assert isinstance(update, AdminUpdate)
    assert update.supplied() == {"status": TicketStatus.IN_PROGRESS, "category_id": None}
    assert update.assignee_id is UNSET


@pytest.mark.parametrize("payload", [{"status": None}, {"title": ""}, {"status": "reopened"}])
def test_update_validation_errors(ticket_client, payload):
    client, service, state = ticket_client
    state["user"] = make_account("admin-1", role=Role.ADMIN)
    service.update_ticket = AsyncMock()

    response = client.put("/tickets/ticket-1", json=payload)

    assert response.status_code == 400
    service.update_ticket.assert_not_awaited()


def test_delete_ticket_requires_admin(ticket_client):
    client, service, _ = ticket_client
    service.delete_ticket = AsyncMock()

    response = client.delete("/tickets/ticket-1")

    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Admin access required"
    service.delete_ticket.assert_not_awaited()


def test_delete_ticket_returns_deleted_ticket(ticket_client):
    client, service, state = ticket_client
    state["user"] = make_account("admin-1", role=Role.ADMIN)
    service.delete_ticket = AsyncMock(return_value=_make_ticket())

    response = client.delete("/tickets/ticket-1")

    assert response.status_code == 200
    assert response.json()["message"] == "Ticket deleted"
    assert response.json()["ticket"]["id"] == "ticket-1"


def test_timeline_endpoint_serialises_entries(ticket_client):
    client, service, _ = ticket_client
    entry = TimelineEntry(
        id="event-1",
        ticket_id="ticket-1",
        user_id="admin-1",
        type=TimelineEventType.STATUS_CHANGE,
        old_value="open",
        new_value="in_progress",
        created_at=datetime.now(timezone.utc),
        user_name="Admin",
    )
    service.get_timeline = AsyncMock(return_value=[entry])

    response = client.get("/tickets/ticket-1/timeline")

    assert response.status_code == 200
    event = response.json()["timeline"][0]
    assert event["type"] == "status_change"
    assert event["oldValue"] == "open"
    assert event["newValue"] == "in_progress"
    assert event["userName"] == "Admin"
    assert "ticketId" not in event
