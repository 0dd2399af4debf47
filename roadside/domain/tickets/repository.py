"""Ticket repository - Database operations for tickets, service requests and terms"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session

from ...models import (
    Mechanic,
    Organization,
    OrganizationMember,
    ServiceRequest,
    Ticket,
    TicketTerms,
)
from ...shared.validators import LIKE_ESCAPE, like_pattern

# Query-string sort fields accepted by the list endpoints
SORT_COLUMNS = {
    "createdAt": Ticket.created_at,
    "created_at": Ticket.created_at,
    "updatedAt": Ticket.updated_at,
    "updated_at": Ticket.updated_at,
    "status": Ticket.status,
    "policy_number": Ticket.policy_number,
    "insured_name": Ticket.insured_name,
    "eta": Ticket.eta,
}

ACTIVE_STATUSES = ("assigned", "inprogress", "dispatched", "in-progress")
INACTIVE_STATUSES = ("cancelled", "completed")


class TicketRepository:
    """Repository for ticket database operations"""

    @staticmethod
    def search_query(
        db: Session,
        organization_ids: Optional[list[int]] = None,
        search: Optional[str] = None,
        search_fields: Optional[list] = None,
        include_org_names: bool = False,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        sort_field: str = "createdAt",
        sort: int = -1,
    ):
        """Build the filtered and sorted ticket query used by the list endpoints"""
        query = db.query(Ticket)

        if organization_ids is not None:
            query = query.filter(Ticket.organization_id.in_(organization_ids))

        if search:
            pattern = like_pattern(search)
            clauses = [column.ilike(pattern, escape=LIKE_ESCAPE) for column in search_fields or []]
            if include_org_names:
                org_ids = db.query(Organization.id).filter(
                    Organization.company_name.ilike(pattern, escape=LIKE_ESCAPE)
                )
                clauses.append(Ticket.organization_id.in_(org_ids))
            query = query.filter(or_(*clauses))

        if start_date and end_date:
            query = query.filter(Ticket.created_at >= start_date, Ticket.created_at <= end_date)

        if status:
            query = query.filter(Ticket.status == status)

        column = SORT_COLUMNS.get(sort_field, Ticket.created_at)
        order = column.asc() if sort == 1 else column.desc()
        return query.order_by(order, Ticket.id.desc() if sort != 1 else Ticket.id.asc())

    @staticmethod
    def count_tickets(db: Session, organization_ids: Optional[list[int]] = None) -> int:
        query = db.query(Ticket)
        if organization_ids is not None:
            query = query.filter(Ticket.organization_id.in_(organization_ids))
        return query.count()

    @staticmethod
    def get_ticket_by_id(db: Session, ticket_id: int) -> Optional[Ticket]:
        return db.query(Ticket).filter(Ticket.id == ticket_id).first()

    @staticmethod
    def create_ticket(db: Session, **ticket_data) -> Ticket:
        ticket = Ticket(**ticket_data)
        db.add(ticket)
        db.commit()
        db.refresh(ticket)
        return ticket

    @staticmethod
    def update_ticket(db: Session, ticket: Ticket, **updates) -> Ticket:
        for key, value in updates.items():
            if hasattr(ticket, key):
                setattr(ticket, key, value)
        db.commit()
        db.refresh(ticket)
        return ticket

    @staticmethod
    def delete_ticket(db: Session, ticket: Ticket) -> None:
        db.delete(ticket)
        db.commit()

    @staticmethod
    def get_created_since(db: Session, since: datetime, organization_ids: Optional[list[int]] = None) -> list:
        query = db.query(Ticket.created_at).filter(Ticket.created_at >= since)
        if organization_ids is not None:
            query = query.filter(Ticket.organization_id.in_(organization_ids))
        return [row[0] for row in query.all()]

    @staticmethod
    def count_by_statuses(db: Session, statuses: tuple, organization_ids: Optional[list[int]] = None) -> int:
        query = db.query(Ticket).filter(Ticket.status.in_(statuses))
        if organization_ids is not None:
            query = query.filter(Ticket.organization_id.in_(organization_ids))
        return query.count()

    # Organization lookups
    @staticmethod
    def get_agent_organization_ids(db: Session, user_id: int) -> list[int]:
        """Organizations the user owns or is a member of"""
        owned = [o.id for o in db.query(Organization.id).filter(Organization.owner_id == user_id).all()]
        member = [
            m.organization_id
            for m in db.query(OrganizationMember.organization_id)
            .filter(OrganizationMember.user_id == user_id, OrganizationMember.status != "denied")
            .all()
        ]
        return sorted(set(owned + member))

    # Mechanic lookups
    @staticmethod
    def get_mechanic(db: Session, mechanic_id: int) -> Optional[Mechanic]:
        return db.query(Mechanic).filter(Mechanic.id == mechanic_id).first()

    @staticmethod
    def find_mechanic_by_name(db: Session, name: str) -> Optional[Mechanic]:
        """A single token matches first or last name; otherwise the last token is the last name"""
        parts = name.split()
        if len(parts) == 1:
            return (
                db.query(Mechanic)
                .filter(or_(Mechanic.first_name == parts[0], Mechanic.last_name == parts[0]))
                .first()
            )
        last_name = parts.pop()
        first_name = " ".join(parts)
        return (
            db.query(Mechanic)
            .filter(Mechanic.first_name == first_name, Mechanic.last_name == last_name)
            .first()
        )

    # Service request methods
    @staticmethod
    def create_request(db: Session, **request_data) -> ServiceRequest:
        request = ServiceRequest(**request_data)
        db.add(request)
        db.commit()
        db.refresh(request)
        return request

    @staticmethod
    def get_request(db: Session, request_id: int) -> Optional[ServiceRequest]:
        return db.query(ServiceRequest).filter(ServiceRequest.id == request_id).first()

    @staticmethod
    def decline_other_requests(db: Session, request: ServiceRequest) -> int:
        return (
            db.query(ServiceRequest)
            .filter(
                ServiceRequest.ticket_id == request.ticket_id,
                ServiceRequest.id != request.id,
                ServiceRequest.status != "declined",
            )
            .update({"status": "declined"}, synchronize_session="fetch")
        )

    # Terms methods
    @staticmethod
    def get_terms(db: Session, organization_id: Optional[int], user_id: Optional[int]) -> Optional[TicketTerms]:
        if organization_id is not None:
            return db.query(TicketTerms).filter(TicketTerms.organization_id == organization_id).first()
        return db.query(TicketTerms).filter(TicketTerms.user_id == user_id).first()

    @staticmethod
    def upsert_terms(
        db: Session, organization_id: Optional[int], user_id: Optional[int], content: str
    ) -> TicketTerms:
        terms = TicketRepository.get_terms(db, organization_id, user_id)
        if not terms:
            terms = TicketTerms(
                organization_id=organization_id,
                user_id=None if organization_id is not None else user_id,
                content=content,
            )
            db.add(terms)
        else:
            terms.content = content
        db.commit()
        db.refresh(terms)
        return terms


def ticket_search_columns(extended: bool = True) -> list:
    """Columns matched by the free-text ticket search"""
    columns = [
        Ticket.policy_number,
        Ticket.insured_name,
        Ticket.vehicle_type,
        Ticket.current_address,
    ]
    if extended:
        columns += [
            Ticket.vehicle_model,
            Ticket.vehicle_year,
            Ticket.vehicle_color,
            Ticket.vehicle_make,
            Ticket.breakdown_reason_text,
            # Labels and keys live inside the JSON list
            cast(Ticket.breakdown_reason, String),
            Ticket.status,
        ]
    return columns
