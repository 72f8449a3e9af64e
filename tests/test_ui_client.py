from datetime import datetime, timedelta, timezone

import httpx
import pytest

from apps.api.ui import api as api_module
from apps.api.ui.api import APIError, TicketsAPIClient
from apps.api.ui.utils import describe_event, format_relative_date, priority_label, status_label


@pytest.fixture
def recorded(monkeypatch):
    calls: list[dict] = []
    responses: list[httpx.Response] = []

    def fake_request(method, url, **kwargs):
        calls.append({"method": method, "url": url, **kwargs})
        response = responses.pop(0)
        response.request = httpx.Request(method, url)
        return response

    monkeypatch.setattr(api_module.httpx, "request", fake_request)
    return calls, responses


def test_client_sends_bearer_token_and_unwraps_envelope(recorded):
    calls, responses = recorded
    responses.append(httpx.Response(200, json={"tickets": [{"id": "t-1"}]}))
    client = TicketsAPIClient(base_url="http://api.local/", token="tok")

    tickets = client.list_tickets()

    assert tickets == [{"id": "t-1"}]
    assert calls[0]["url"] == "http://api.local/tickets"
    assert calls[0]["headers"]["Authorization"] == "Bearer tok"


def test_client_raises_api_error_from_envelope(recorded):
    _, responses = recorded
    responses.append(
        httpx.Response(403, json={"error": {"message": "Access denied", "statusCode": 403, "timestamp": "x"}})
    )
    client = TicketsAPIClient(base_url="http://api.local")

    with pytest.raises(APIError) as exc:
        client.get_ticket("t-1")

    assert exc.value.status_code == 403
    assert str(exc.value) == "[403] Access denied"


def test_update_ticket_sends_partial_body(recorded):
    calls, responses = recorded
    responses.append(httpx.Response(200, json={"ticket": {"id": "t-1", "status": "closed"}}))
    client = TicketsAPIClient(base_url="http://api.local", token="tok")

    ticket = client.update_ticket("t-1", {"status": "closed", "assigneeId": None})

    assert ticket["status"] == "closed"
    assert calls[0]["method"] == "PUT"
    assert calls[0]["json"] == {"status": "closed", "assigneeId": None}


def test_create_ticket_omits_empty_category(recorded):
    calls, responses = recorded
    responses.append(httpx.Response(201, json={"ticket": {"id": "t-1"}}))
    client = TicketsAPIClient(base_url="http://api.local", token="tok")

    client.create_ticket(title="T", description="D")

    assert calls[0]["json"] == {"title": "T", "description": "D", "priority": "medium"}


def test_labels_and_event_descriptions():
    assert status_label("in_progress") == "In progress"
    assert priority_label("urgent") == "Urgent"
    assert status_label(None) == "-"
    assert describe_event({"type": "created"}) == "Ticket created"
    assert (
        describe_event({"type": "status_change", "oldValue": "open", "newValue": "resolved"})
        == "Changed status from Open to Resolved"
    )
    assert describe_event({"type": "assignee_change", "newValue": None}) == "Unassigned the ticket"


def test_format_relative_date():
    now = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
    assert format_relative_date(now - timedelta(seconds=30), now=now) == "just now"
    assert format_relative_date(now + timedelta(minutes=2), now=now) == "just now"
    assert format_relative_date(now - timedelta(minutes=1), now=now) == "1 minute ago"
    assert format_relative_date(now - timedelta(hours=5), now=now) == "5 hours ago"
    assert format_relative_date(now - timedelta(days=1, hours=2), now=now) == "yesterday"
    assert format_relative_date(now - timedelta(days=15), now=now) == "2 weeks ago"
    assert format_relative_date("2024-01-02T03:04:05Z", now=now) == "Jan 02, 2024"
