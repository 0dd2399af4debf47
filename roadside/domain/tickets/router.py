"""Ticket router - FastAPI endpoints for ticket operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import ADMIN, SUPER_ADMIN, User
from ...rbac import require_roles
from .schemas import (
    ServiceRequestCreate,
    ServiceRequestResponse,
    TermsUpdate,
    TicketCreate,
    TicketResponse,
    TicketUpdate,
)
from .service import TicketService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["Tickets"])


def get_ticket_service(db: Session = Depends(get_db)) -> TicketService:
    """Dependency injection for TicketService"""
    return TicketService(db)


# ============================================================================
# LISTING & STATS
# ============================================================================


@router.get("")
async def get_tickets(
    page: int = Query(1),
    limit: int = Query(10),
    search: str = Query(""),
    sortField: str = Query("createdAt"),
    sort: int = Query(-1),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    """Paginated tickets, scoped to the caller's organization unless admin"""
    return service.list_tickets(
        current_user, page, limit, search, sortField, sort, startDate, endDate, status
    )


@router.get("/combined")
async def get_combined_tickets(
    page: int = Query(1),
    limit: int = Query(10),
    search: str = Query(""),
    sortField: str = Query("createdAt"),
    sort: int = Query(-1),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    """Tickets across all organizations the agent belongs to"""
    return service.list_combined_tickets(
        current_user, page, limit, search, sortField, sort, startDate, endDate, status
    )


@router.get("/stats")
async def get_ticket_stats(
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    return service.get_stats(current_user)


# ============================================================================
# TERMS
# ============================================================================


@router.get("/terms/{client_id}")
async def get_ticket_terms(
    client_id: int,
    service: TicketService = Depends(get_ticket_service),
):
    """Ticket submission terms shown to a client's drivers"""
    return service.get_terms(client_id)


@router.put("/terms")
async def update_ticket_terms(
    data: TermsUpdate,
    current_user: User = Depends(require_roles(SUPER_ADMIN, ADMIN)),
    service: TicketService = Depends(get_ticket_service),
):
    logger.info(f"📝 Terms update for client {data.clientId} by user {current_user.id}")
    return service.update_terms(data.clientId, data.content)


# ============================================================================
# SERVICE REQUESTS
# ============================================================================


@router.post("/requests/{request_id}/approve", response_model=TicketResponse)
async def approve_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    """Accept a mechanic's offer and assign them to the ticket"""
    return await service.approve_request(request_id)


@router.post("/requests/{request_id}/decline")
async def decline_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    request = service.decline_request(request_id)
    return {
        "success": True,
        "message": "Request declined successfully",
        "data": {"request": ServiceRequestResponse.model_validate(request)},
    }


@router.post("/{ticket_id}/requests", response_model=ServiceRequestResponse, status_code=201)
async def create_service_request(
    ticket_id: int,
    data: ServiceRequestCreate,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    return service.create_service_request(ticket_id, data)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.post("", response_model=TicketResponse, status_code=201)
async def create_ticket(
    data: TicketCreate,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    return await service.create_ticket(data, current_user)


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    return service.get_ticket(ticket_id, current_user)


@router.patch("/{ticket_id}", response_model=TicketResponse)
async def update_ticket(
    ticket_id: int,
    data: TicketUpdate,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    return await service.update_ticket(ticket_id, data, current_user)


@router.delete("/{ticket_id}")
async def delete_ticket(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    return service.delete_ticket(ticket_id, current_user)
