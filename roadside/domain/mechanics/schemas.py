"""Mechanic domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email

PROVIDER_TYPES = ("mechanic", "service_provider")


class MechanicFields(BaseModel):
    companyName: Optional[str] = None
    businessName: Optional[str] = None
    email2: Optional[str] = None
    businessNumber: Optional[str] = None
    officeNum: Optional[str] = None
    address: Optional[str] = None
    streetAddress: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None
    isPrimary: Optional[bool] = None
    services: Optional[list] = None
    tags: Optional[list[str]] = None
    specialty: Optional[list[str]] = None
    providerType: Optional[str] = None

    @field_validator("providerType")
    @classmethod
    def validate_provider_type(cls, v):
        if v is not None and v not in PROVIDER_TYPES:
            raise ValueError(f"Provider type must be one of: {', '.join(PROVIDER_TYPES)}")
        return v

    @field_validator("email2")
    @classmethod
    def validate_secondary_email(cls, v):
        return validate_email(v)


class MechanicCreate(MechanicFields):
    """Required fields are checked by the service so missing ones are reported by name"""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    mobileNumber: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_primary_email(cls, v):
        return validate_email(v)


class MechanicUpdate(MechanicFields):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    mobileNumber: Optional[str] = None
    isAccepted: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def validate_primary_email(cls, v):
        return validate_email(v)


class BlacklistRequest(BaseModel):
    reason: Optional[str] = None


class MechanicResponse(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None
    business_name: Optional[str] = None
    email: Optional[str] = None
    email_2: Optional[str] = None
    mobile_number: Optional[str] = None
    business_number: Optional[str] = None
    office_num: Optional[str] = None
    address: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_accepted: bool
    is_primary: bool
    services: Optional[list] = None
    tags: Optional[list] = None
    specialty: Optional[list] = None
    provider_type: str
    client_ids: Optional[list] = None
    created_by_manual: bool
    web_agent_id: Optional[str] = None
    organization_ids: list[int] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
