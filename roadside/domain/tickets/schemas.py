"""Ticket domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, field_validator

TICKET_STATUSES = (
    "created",
    "recieved",
    "assigned",
    "dispatched",
    "in-progress",
    "cancelled",
    "completed",
    "archived",
)


class Coord(BaseModel):
    latitude: float
    longitude: float


class TicketBase(BaseModel):
    policy_number: Optional[str] = None
    policy_expiration_date: Optional[str] = None
    policy_address: Optional[str] = None
    insured_name: Optional[str] = None
    agency_name: Optional[str] = None
    current_address: Optional[str] = None
    coord: Optional[Coord] = None
    cell_country_code: Optional[dict] = None
    breakdown_address: Optional[dict] = None
    tow_destination: Optional[dict] = None
    vehicle_type: Optional[str] = None
    vehicle_color: Optional[str] = None
    vehicle_year: Optional[str] = None
    license_plate_no: Optional[str] = None
    breakdown_reason_text: Optional[str] = None
    breakdown_reason: Optional[list[dict]] = None
    services: Optional[list[dict]] = None
    comments: Optional[list[dict]] = None
    # Mechanic ID or "First Last" name
    assigned_subcontractor: Optional[Union[int, str]] = None
    scheduled_time: Optional[datetime] = None
    claim_number: Optional[str] = None
    notes: Optional[str] = None
    is_special: Optional[bool] = None

    @field_validator("vehicle_year", mode="before")
    @classmethod
    def year_as_string(cls, v):
        return str(v) if v is not None else v


class TicketCreate(TicketBase):
    """Schema for creating a ticket; required fields are checked by the service for clearer errors"""

    current_cell_number: Optional[str] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None


class TicketUpdate(TicketBase):
    current_cell_number: Optional[str] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    status: Optional[str] = None
    convo_status: Optional[str] = None
    eta: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in TICKET_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(TICKET_STATUSES)}")
        return v


class ServiceRequestCreate(BaseModel):
    mechanic_id: int
    services: list[Any] = []
    total_cost: Optional[float] = None
    eta: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("eta", mode="before")
    @classmethod
    def eta_as_string(cls, v):
        return str(v) if v is not None else v


class ServiceRequestResponse(BaseModel):
    id: int
    ticket_id: int
    mechanic_id: int
    services: Optional[list[Any]] = None
    total_cost: Optional[float] = None
    eta: Optional[str] = None
    notes: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TicketResponse(BaseModel):
    id: int
    organization_id: int
    client_id: Optional[int] = None
    policy_number: Optional[str] = None
    policy_expiration_date: Optional[str] = None
    policy_address: Optional[str] = None
    insured_name: Optional[str] = None
    agency_name: Optional[str] = None
    current_address: Optional[str] = None
    coord: Optional[dict] = None
    current_cell_number: str
    cell_country_code: Optional[dict] = None
    breakdown_address: Optional[dict] = None
    tow_destination: Optional[dict] = None
    vehicle_type: Optional[str] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_color: Optional[str] = None
    vehicle_year: Optional[str] = None
    license_plate_no: Optional[str] = None
    status: str
    convo_status: Optional[str] = None
    breakdown_reason_text: Optional[str] = None
    breakdown_reason: Optional[list[dict]] = None
    services: Optional[list[Any]] = None
    comments: Optional[list[dict]] = None
    assigned_subcontractor_id: Optional[int] = None
    scheduled_time: Optional[datetime] = None
    eta: Optional[datetime] = None
    estimated_eta: Optional[datetime] = None
    claim_number: Optional[str] = None
    notes: Optional[str] = None
    assigned_by_ai: bool = False
    is_special: bool = False
    requests: list[ServiceRequestResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TermsUpdate(BaseModel):
    """Custom ticket terms for a client (user ID)"""

    clientId: int
    content: Optional[str] = None
