from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request

from apps.api.services.categories import CategoryService
from apps.api.tickets.service import TicketService


def _from_state(request: Request, attribute: str, label: str) -> Any:
    service = getattr(request.app.state, attribute, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{label} service is not available")
    return service


async def get_ticket_service(request: Request) -> TicketService:
    return _from_state(request, "ticket_service", "Ticket")


async def get_category_service(request: Request) -> CategoryService:
    return _from_state(request, "category_service", "Category")
