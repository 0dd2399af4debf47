"""Ticket service - Business logic for ticket operations"""

import logging
import re
from datetime import datetime, timedelta
from typing import Optional, Union

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import get_user_organization
from ...models import Mechanic, Organization, ServiceRequest, Ticket, User
from ...services import twilio_service
from ...services.geocoding_service import build_address, geocode_address, get_driving_time
from ...shared.pagination import empty_page, paginate_query
from ...shared.validators import as_naive_utc, normalize_cell_number, parse_policy_date
from .repository import ACTIVE_STATUSES, INACTIVE_STATUSES, TicketRepository, ticket_search_columns
from .schemas import ServiceRequestCreate, TicketCreate, TicketResponse, TicketUpdate

logger = logging.getLogger(__name__)

DEFAULT_TERMS = (
    "By Submitting this ticket you acknowledge and approve that we can go find urgent assistance "
    "unrestrained by the regular confines of our contract"
)


def parse_eta(value, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Turn a mechanic's ETA into a timestamp.

    Accepts an ISO date string, or a duration such as "2 hours", "1 hr 30 min", "1 day".
    Returns None for anything else.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return as_naive_utc(value)

    text = str(value).strip()
    try:
        return as_naive_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    lowered = text.lower()
    minutes = 0
    day = re.search(r"(\d+)\s*day", lowered)
    if day:
        minutes += int(day.group(1)) * 24 * 60
    hour = re.search(r"(\d+)\s*(?:hour|hr)", lowered)
    if hour:
        minutes += int(hour.group(1)) * 60
    minute = re.search(r"(\d+)\s*min", lowered)
    if minute:
        minutes += int(minute.group(1))

    if minutes > 0:
        return (now or datetime.utcnow()) + timedelta(minutes=minutes)
    return None


def clean_comments(comments: Optional[list]) -> list:
    """Trim comment text and drop empty comments"""
    cleaned = []
    for comment in comments or []:
        text = comment.get("text") if isinstance(comment, dict) else None
        if not isinstance(text, str) or not text.strip():
            continue
        cleaned.append({**comment, "text": text.strip()})
    return cleaned


def parse_date_param(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return as_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}") from e


def serialize_ticket(ticket: Ticket) -> dict:
    return TicketResponse.model_validate(ticket).model_dump(mode="json")


class TicketService:
    """Service layer for ticket business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TicketRepository()

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_tickets(
        self,
        user: User,
        page=1,
        limit=10,
        search: str = "",
        sort_field: str = "createdAt",
        sort: int = -1,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        status: Optional[str] = None,
    ) -> dict:
        """Admins see every ticket; everyone else sees their organization's"""
        org_ids = None
        if not user.is_admin:
            org = get_user_organization(self.db, user)
            if not org:
                raise HTTPException(status_code=404, detail="User organization not found")
            org_ids = [org.id]

        query = self.repo.search_query(
            self.db,
            organization_ids=org_ids,
            search=search,
            search_fields=ticket_search_columns(extended=True),
            include_org_names=user.is_admin,
            status=status,
            start_date=parse_date_param(start_date),
            end_date=parse_date_param(end_date),
            sort_field=sort_field,
            sort=sort,
        )
        tickets = paginate_query(query, page, limit, serializer=serialize_ticket)
        return {"tickets": tickets, "totalTicketCount": self.repo.count_tickets(self.db, org_ids)}

    def list_combined_tickets(
        self,
        user: User,
        page=1,
        limit=10,
        search: str = "",
        sort_field: str = "createdAt",
        sort: int = -1,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        status: Optional[str] = None,
    ) -> dict:
        """Tickets across every organization the agent is linked to"""
        org_ids = self.repo.get_agent_organization_ids(self.db, user.id)
        if not org_ids:
            logger.info(f"ℹ️ Agent {user.id} is not linked to any organizations")
            page_number = page if isinstance(page, int) and page > 0 else 1
            limit_number = limit if isinstance(limit, int) and limit > 0 else 10
            return {"tickets": empty_page(page_number, limit_number), "totalTicketCount": 0}

        query = self.repo.search_query(
            self.db,
            organization_ids=org_ids,
            search=search,
            search_fields=ticket_search_columns(extended=False),
            status=status,
            start_date=parse_date_param(start_date),
            end_date=parse_date_param(end_date),
            sort_field=sort_field,
            sort=1 if sort == 1 else -1,
        )
        tickets = paginate_query(query, page, limit, serializer=serialize_ticket)
        return {"tickets": tickets, "totalTicketCount": tickets["totalDocs"]}

    def get_stats(self, user: User, today: Optional[datetime] = None) -> dict:
        """Last 7 days of ticket counts plus active/inactive totals"""
        org_ids = None
        if not user.is_admin:
            org = get_user_organization(self.db, user)
            org_ids = [org.id] if org else []

        today = (today or datetime.utcnow()).date()
        days = [today - timedelta(days=i) for i in range(6, -1, -1)]
        since = datetime.combine(days[0], datetime.min.time())

        counts = {}
        for created_at in self.repo.get_created_since(self.db, since, org_ids):
            if created_at:
                counts[created_at.date()] = counts.get(created_at.date(), 0) + 1

        return {
            "countsByDate": [{"date": d.isoformat(), "count": counts.get(d, 0)} for d in days],
            "ticketStatusCounts": {
                "active": self.repo.count_by_statuses(self.db, ACTIVE_STATUSES, org_ids),
                "inactive": self.repo.count_by_statuses(self.db, INACTIVE_STATUSES, org_ids),
            },
            "totalTicketDocs": self.repo.count_tickets(self.db, org_ids),
        }

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def get_ticket(self, ticket_id: int, user: Optional[User] = None) -> Ticket:
        ticket = self.repo.get_ticket_by_id(self.db, ticket_id)
        if not ticket:
            raise HTTPException(status_code=404, detail="Ticket not found")
        if user and not user.is_admin:
            org = get_user_organization(self.db, user)
            if not org or org.id != ticket.organization_id:
                raise HTTPException(status_code=404, detail="Ticket not found")
        return ticket

    def resolve_subcontractor(self, value: Union[int, str, None]) -> Optional[Mechanic]:
        """Find the assigned mechanic by ID or by name"""
        if value is None or value == "":
            return None

        if isinstance(value, int) or str(value).strip().isdigit():
            mechanic = self.repo.get_mechanic(self.db, int(value))
            if not mechanic:
                raise HTTPException(status_code=400, detail=f"No mechanic found with ID {value}")
            return mechanic

        name = str(value).strip()
        mechanic = self.repo.find_mechanic_by_name(self.db, name)
        if not mechanic:
            raise HTTPException(
                status_code=400, detail=f'No user found matching "{name}" for assigned_subcontractor'
            )
        return mechanic

    async def estimate_arrival(self, mechanic: Mechanic, coord: Optional[dict]) -> Optional[datetime]:
        """Driving-time ETA from the mechanic's location to the breakdown"""
        if not coord:
            return None

        if mechanic.latitude is None or mechanic.longitude is None:
            address = build_address(
                mechanic.street_address or mechanic.address,
                mechanic.city,
                mechanic.state,
                mechanic.country,
                mechanic.zipcode,
            )
            location = await geocode_address(address)
            if not location:
                logger.warning(f"⚠️ Unable to geocode mechanic {mechanic.id} address, skipping ETA")
                return None
            mechanic.latitude = location["latitude"]
            mechanic.longitude = location["longitude"]
            self.db.commit()

        travel = await get_driving_time(
            {"latitude": mechanic.latitude, "longitude": mechanic.longitude}, coord
        )
        if not travel:
            return None
        return datetime.utcnow() + timedelta(seconds=travel["seconds"])

    async def create_ticket(
        self,
        data: TicketCreate,
        user: Optional[User] = None,
        organization: Optional[Organization] = None,
        assigned_by_ai: bool = False,
    ) -> Ticket:
        """Create a ticket for the caller's organization (or an explicit one for AI calls)"""
        org = organization or (get_user_organization(self.db, user) if user else None)
        if not org:
            raise HTTPException(status_code=404, detail="Client organization not found")

        if data.policy_number and not data.policy_expiration_date:
            raise HTTPException(status_code=400, detail="Policy expiration date is required")

        if data.policy_expiration_date:
            expires = parse_policy_date(data.policy_expiration_date)
            if expires and expires < datetime.utcnow():
                raise HTTPException(status_code=400, detail="The policy is expired. Cannot create the ticket.")

        if not data.current_cell_number:
            raise HTTPException(status_code=400, detail="Current cell number is required")
        if not data.vehicle_make:
            raise HTTPException(status_code=400, detail="Vehicle make is required")
        if not data.vehicle_model:
            raise HTTPException(status_code=400, detail="Vehicle model is required")

        payload = data.model_dump(exclude={"assigned_subcontractor", "coord"}, exclude_none=True)
        payload["current_cell_number"] = normalize_cell_number(data.current_cell_number)
        payload["comments"] = clean_comments(data.comments)
        coord = data.coord.model_dump() if data.coord else None

        mechanic = self.resolve_subcontractor(data.assigned_subcontractor)
        if mechanic:
            payload["assigned_subcontractor_id"] = mechanic.id
            payload["status"] = "assigned"
            payload["estimated_eta"] = await self.estimate_arrival(mechanic, coord)

        ticket = self.repo.create_ticket(
            self.db,
            organization_id=org.id,
            client_id=user.id if user else org.owner_id,
            coord=coord,
            assigned_by_ai=assigned_by_ai,
            **payload,
        )
        logger.info(f"✅ Ticket {ticket.id} created for organization {org.id}")
        return ticket

    async def update_ticket(self, ticket_id: int, data: TicketUpdate, user: User) -> Ticket:
        ticket = self.get_ticket(ticket_id, user)

        updates = data.model_dump(exclude_unset=True, exclude={"assigned_subcontractor", "coord"})
        if "comments" in updates:
            updates["comments"] = clean_comments(updates["comments"])
        if updates.get("current_cell_number"):
            updates["current_cell_number"] = normalize_cell_number(updates["current_cell_number"])
        if data.coord is not None:
            updates["coord"] = data.coord.model_dump()

        if "assigned_subcontractor" in data.model_fields_set:
            mechanic = self.resolve_subcontractor(data.assigned_subcontractor)
            updates["assigned_subcontractor_id"] = mechanic.id if mechanic else None
            if mechanic:
                updates.setdefault("status", "assigned")

        return self.repo.update_ticket(self.db, ticket, **updates)

    def delete_ticket(self, ticket_id: int, user: User) -> dict:
        ticket = self.get_ticket(ticket_id, user)
        self.repo.delete_ticket(self.db, ticket)
        logger.info(f"🗑️ Ticket {ticket_id} deleted by user {user.id}")
        return {"message": "Ticket deleted successfully"}

    # ------------------------------------------------------------------
    # Service requests (mechanic offers)
    # ------------------------------------------------------------------

    def create_service_request(self, ticket_id: int, data: ServiceRequestCreate) -> ServiceRequest:
        ticket = self.repo.get_ticket_by_id(self.db, ticket_id)
        if not ticket:
            raise HTTPException(status_code=404, detail="Ticket not found")
        if not self.repo.get_mechanic(self.db, data.mechanic_id):
            raise HTTPException(status_code=404, detail="Mechanic not found")

        request = self.repo.create_request(
            self.db,
            ticket_id=ticket_id,
            mechanic_id=data.mechanic_id,
            services=data.services,
            total_cost=data.total_cost,
            eta=data.eta,
            notes=data.notes,
            status="wait",
        )
        logger.info(f"📥 Service request {request.id} recorded for ticket {ticket_id}")
        return request

    def _get_request(self, request_id: int) -> ServiceRequest:
        request = self.repo.get_request(self.db, request_id)
        if not request:
            raise HTTPException(status_code=404, detail="Request not found")
        return request

    def decline_request(self, request_id: int) -> ServiceRequest:
        request = self._get_request(request_id)
        if request.status != "declined":
            request.status = "declined"
            self.db.commit()
            self.db.refresh(request)
        return request

    async def approve_request(self, request_id: int, now: Optional[datetime] = None) -> Ticket:
        """Accept one offer, decline the competing ones and assign the mechanic"""
        request = self._get_request(request_id)
        request.status = "agreed"
        declined = self.repo.decline_other_requests(self.db, request)

        ticket = request.ticket
        ticket.assigned_subcontractor_id = request.mechanic_id
        if request.services:
            ticket.services = request.services
        eta = parse_eta(request.eta, now)
        if eta:
            ticket.eta = eta
        ticket.status = "assigned"
        self.db.commit()
        self.db.refresh(ticket)
        logger.info(f"✅ Request {request_id} approved for ticket {ticket.id} ({declined} others declined)")

        await self._notify_assigned_mechanic(ticket, request.mechanic)
        return ticket

    async def _notify_assigned_mechanic(self, ticket: Ticket, mechanic: Optional[Mechanic]) -> None:
        if not mechanic:
            return
        phone = mechanic.mobile_number or mechanic.business_number or mechanic.office_num
        if not phone:
            logger.warning(f"⚠️ Mechanic {mechanic.id} has no phone number for assignment SMS")
            return

        body = f"Congrats {mechanic.display_name}, you got the job (ticket #{ticket.id})."
        if ticket.coord:
            body += (
                " Directions to the breakdown location: "
                f"https://www.google.com/maps?q={ticket.coord['latitude']},{ticket.coord['longitude']}"
            )
        body += f" Driver contact: {ticket.current_cell_number}. Please reply Y to confirm."

        success, _, error, _ = await twilio_service.send_sms(phone, body)
        if not success:
            logger.warning(f"⚠️ Assignment SMS to mechanic {mechanic.id} failed: {error}")

    # ------------------------------------------------------------------
    # Terms
    # ------------------------------------------------------------------

    def _terms_owner(self, client_id: int) -> tuple[Optional[int], int]:
        client = self.db.get(User, client_id)
        org = get_user_organization(self.db, client) if client else None
        return (org.id if org else None), client_id

    def get_terms(self, client_id: int) -> dict:
        organization_id, user_id = self._terms_owner(client_id)
        terms = self.repo.get_terms(self.db, organization_id, user_id)
        owner = organization_id if organization_id is not None else user_id
        if not terms:
            return {
                "success": True,
                "data": {"content": DEFAULT_TERMS, "createdAt": None, "updatedAt": None, "client": owner},
            }
        return {
            "success": True,
            "data": {
                "id": terms.id,
                "content": terms.content,
                "createdAt": terms.created_at,
                "updatedAt": terms.updated_at,
                "client": owner,
            },
        }

    def update_terms(self, client_id: int, content: Optional[str]) -> dict:
        if not isinstance(content, str) or not content.strip():
            raise HTTPException(status_code=400, detail="Content is required")

        organization_id, user_id = self._terms_owner(client_id)
        terms = self.repo.upsert_terms(self.db, organization_id, user_id, content.strip())
        return {
            "success": True,
            "data": {
                "id": terms.id,
                "content": terms.content,
                "client": organization_id if organization_id is not None else user_id,
                "createdAt": terms.created_at,
                "updatedAt": terms.updated_at,
            },
        }
