"""Campaign domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_lead_phone

CampaignStatus = Literal["draft", "active", "paused", "completed"]
LeadStatus = Literal["active", "inactive", "contacted", "do_not_contact", "completed"]


class CampaignMessage(BaseModel):
    id: Optional[str] = None
    message: str = Field(..., min_length=1)
    nextContactHourInterval: int = Field(1, ge=1)


class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    organizationId: Optional[int] = None
    messagesList: list[CampaignMessage] = []


class CampaignUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[CampaignStatus] = None
    messagesList: Optional[list[CampaignMessage]] = None


class CampaignMessagesAdd(BaseModel):
    messages: list[CampaignMessage]


class CampaignResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    organization_id: int
    is_active: bool
    status: str
    messages_list: list = []
    created_by_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LeadCreate(BaseModel):
    name: str = Field(..., min_length=1)
    phoneNumber: str
    notes: Optional[str] = None

    @field_validator("phoneNumber")
    @classmethod
    def check_phone(cls, v):
        return validate_lead_phone(v)


class LeadBulkCreate(BaseModel):
    leads: list[LeadCreate]


class LeadUpdate(BaseModel):
    name: Optional[str] = None
    phoneNumber: Optional[str] = None
    status: Optional[LeadStatus] = None
    notes: Optional[str] = None

    @field_validator("phoneNumber")
    @classmethod
    def check_phone(cls, v):
        return validate_lead_phone(v) if v is not None else v


class LeadResponse(BaseModel):
    id: int
    campaign_id: int
    organization_id: int
    name: str
    phone_number: str
    status: str
    last_contacted_at: Optional[datetime] = None
    contact_attempts: int = 0
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SequenceCreate(BaseModel):
    campaignId: int
    campaignLeadId: int
    message: str = Field(..., min_length=1)
    sequenceOrder: int = Field(..., ge=1)
    status: Literal["sent", "failed", "delivered"] = "sent"
    messageId: Optional[str] = None
    sentAt: Optional[datetime] = None
    nextScheduledAt: Optional[datetime] = None


class SequenceUpdate(BaseModel):
    message: Optional[str] = None
    status: Optional[Literal["sent", "failed", "delivered"]] = None
    sentAt: Optional[datetime] = None
    nextScheduledAt: Optional[datetime] = None


class SequenceResponse(BaseModel):
    id: int
    campaign_id: int
    campaign_lead_id: int
    organization_id: int
    message: str
    sequence_order: int
    status: str
    sent_at: Optional[datetime] = None
    message_type: str
    message_id: Optional[str] = None
    next_scheduled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
