"""Organization domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

ORGANIZATION_TYPES = ("fleet", "insurance", "owner_operator")
ORGANIZATION_STATUSES = ("pending", "verified", "denied", "deactivated")
MEMBER_STATUSES = ("approved", "pending", "denied")


class OrganizationCreate(BaseModel):
    companyName: Optional[str] = None
    companyWebsite: Optional[str] = None
    companyAddress: Optional[str] = None
    businessEntityType: Optional[str] = None
    organizationType: Optional[str] = None
    # Admins may create an organization on behalf of a client
    clientId: Optional[int] = None

    @field_validator("organizationType")
    @classmethod
    def validate_type(cls, v):
        if v is not None and v not in ORGANIZATION_TYPES:
            raise ValueError(f"Organization type must be one of: {', '.join(ORGANIZATION_TYPES)}")
        return v


class OrganizationUpdate(BaseModel):
    companyName: Optional[str] = None
    companyWebsite: Optional[str] = None
    companyAddress: Optional[str] = None
    businessEntityType: Optional[str] = None
    organizationType: Optional[str] = None
    urlSlug: Optional[str] = None
    contacts: Optional[list[dict]] = None
    permissions: Optional[dict] = None
    inboundAi: Optional[bool] = None
    outboundAi: Optional[bool] = None
    aiPhoneNumber: Optional[str] = None
    marketingPhoneNumber: Optional[str] = None

    @field_validator("organizationType")
    @classmethod
    def validate_type(cls, v):
        if v is not None and v not in ORGANIZATION_TYPES:
            raise ValueError(f"Organization type must be one of: {', '.join(ORGANIZATION_TYPES)}")
        return v


class StatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in ORGANIZATION_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(ORGANIZATION_STATUSES)}")
        return v


class MemberAdd(BaseModel):
    userId: int
    status: str = "approved"

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in MEMBER_STATUSES:
            raise ValueError(f"Member status must be one of: {', '.join(MEMBER_STATUSES)}")
        return v


class UpsertPoliciesUpdate(BaseModel):
    shouldUpsertPolicies: bool


class BulkUpsertPoliciesUpdate(BaseModel):
    organizationIds: list[int]
    shouldUpsertPolicies: bool


class MarketingUpdate(BaseModel):
    hasMarketingEnabled: bool


class MemberResponse(BaseModel):
    id: int
    user_id: int
    status: str
    added_by_id: Optional[int] = None
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrganizationResponse(BaseModel):
    id: int
    owner_id: int
    company_name: Optional[str] = None
    company_website: Optional[str] = None
    company_address: Optional[str] = None
    business_entity_type: Optional[str] = None
    organization_type: Optional[str] = None
    url_slug: Optional[str] = None
    contacts: Optional[list] = None
    permissions: Optional[dict] = None
    status: str
    is_verified: bool
    inbound_ai: bool
    outbound_ai: bool
    should_upsert_policies: bool
    has_marketing_enabled: bool
    inbound_assistant_id: Optional[str] = None
    outbound_assistant_id: Optional[str] = None
    ai_phone_number: Optional[str] = None
    marketing_agents: Optional[dict] = None
    marketing_phone_number: Optional[str] = None
    ai_setup_status: str
    ai_setup_error: Optional[str] = None
    members: list[MemberResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
