"""Campaign service - campaigns, leads and messaging sequences"""

import logging
import uuid
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import get_user_organization
from ...models import User
from ...models_campaigns import Campaign, CampaignLead, CampaignMessagingSequence
from ...shared.pagination import paginate_query
from .repository import CampaignRepository
from .schemas import (
    CampaignCreate,
    CampaignMessage,
    CampaignResponse,
    CampaignUpdate,
    LeadCreate,
    LeadResponse,
    LeadUpdate,
    SequenceCreate,
    SequenceResponse,
    SequenceUpdate,
)
from .timer import CampaignTimerService

logger = logging.getLogger(__name__)


def serialize_campaign(campaign: Campaign) -> dict:
    return CampaignResponse.model_validate(campaign).model_dump(mode="json")


def serialize_lead(lead: CampaignLead) -> dict:
    return LeadResponse.model_validate(lead).model_dump(mode="json")


def serialize_sequence(sequence: CampaignMessagingSequence) -> dict:
    return SequenceResponse.model_validate(sequence).model_dump(mode="json")


def message_entries(messages: list[CampaignMessage]) -> list[dict]:
    return [
        {
            "id": m.id or uuid.uuid4().hex,
            "message": m.message,
            "nextContactHourInterval": m.nextContactHourInterval,
        }
        for m in messages
    ]


class CampaignService:
    """Service layer for SMS campaigns"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CampaignRepository()

    def _organization_id(self, user: User) -> Optional[int]:
        organization = get_user_organization(self.db, user)
        return organization.id if organization else None

    def _check_organization(self, organization_id: int, user: User) -> None:
        if not user.is_admin and organization_id != self._organization_id(user):
            raise HTTPException(status_code=403, detail="Access to this campaign denied")

    def get_campaign(self, campaign_id: int, user: User) -> Campaign:
        campaign = self.repo.get_by_id(self.db, campaign_id)
        if not campaign:
            raise HTTPException(status_code=404, detail="Campaign not found")
        self._check_organization(campaign.organization_id, user)
        return campaign

    def list_campaigns(self, organization_id: int, user: User, page=1, limit=10, status: Optional[str] = None) -> dict:
        self._check_organization(organization_id, user)
        query = self.repo.list_query(self.db, organization_id, status)
        return paginate_query(query, page, limit, serializer=serialize_campaign)

    def create_campaign(self, data: CampaignCreate, user: User) -> Campaign:
        organization_id = data.organizationId if user.is_admin and data.organizationId else self._organization_id(user)
        if organization_id is None:
            raise HTTPException(status_code=400, detail="User must belong to an organization")

        campaign = Campaign(
            name=data.name.strip(),
            description=data.description,
            organization_id=organization_id,
            messages_list=message_entries(data.messagesList),
            created_by_id=user.id,
        )
        campaign = self.repo.save(self.db, campaign)
        logger.info(f"✅ Campaign '{campaign.name}' created for organization {organization_id}")
        return campaign

    def update_campaign(self, campaign_id: int, data: CampaignUpdate, user: User) -> Campaign:
        campaign = self.get_campaign(campaign_id, user)
        if data.name is not None:
            campaign.name = data.name.strip()
        if data.description is not None:
            campaign.description = data.description
        if data.status is not None:
            campaign.status = data.status
        if data.messagesList is not None:
            campaign.messages_list = message_entries(data.messagesList)
        return self.repo.save(self.db, campaign)

    def delete_campaign(self, campaign_id: int, user: User) -> dict:
        self.repo.delete(self.db, self.get_campaign(campaign_id, user))
        return {"message": "Campaign deleted successfully"}

    def add_messages(self, campaign_id: int, messages: list[CampaignMessage], user: User) -> Campaign:
        if not messages:
            raise HTTPException(status_code=400, detail="Messages array is required and cannot be empty")
        campaign = self.get_campaign(campaign_id, user)
        campaign.messages_list = list(campaign.messages_list or []) + message_entries(messages)
        return self.repo.save(self.db, campaign)

    async def set_active(self, campaign_id: int, is_active: bool, user: User) -> Campaign:
        campaign = self.get_campaign(campaign_id, user)
        if is_active and not campaign.messages_list:
            raise HTTPException(status_code=400, detail="Campaign must have at least one message before activation")

        campaign.is_active = is_active
        campaign.status = "active" if is_active else "paused"
        campaign = self.repo.save(self.db, campaign)

        if is_active:
            logger.info(f"🚀 Campaign {campaign.id} activated - processing immediately")
            await CampaignTimerService(self.db).process_campaign(campaign)
        return campaign

    def get_stats(self, campaign_id: int, user: User) -> dict:
        campaign = self.get_campaign(campaign_id, user)
        leads = self.repo.count_leads_by_status(self.db, campaign.id)
        messages = self.repo.count_messages_by_status(self.db, campaign.id)
        total_leads = sum(leads.values())
        total_messages = sum(messages.values())
        return {
            "campaign": {
                "id": campaign.id,
                "name": campaign.name,
                "status": campaign.status,
                "isActive": campaign.is_active,
                "messagesCount": len(campaign.messages_list or []),
            },
            "leads": {
                "total": total_leads,
                "active": leads.get("active", 0),
                "contacted": leads.get("contacted", 0),
                "completed": leads.get("completed", 0),
                "inactive": total_leads - leads.get("active", 0) - leads.get("contacted", 0) - leads.get("completed", 0),
            },
            "messages": {
                "total": total_messages,
                "sent": messages.get("sent", 0),
                "delivered": messages.get("delivered", 0),
                "failed": messages.get("failed", 0),
            },
        }

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------

    def _new_lead(self, campaign: Campaign, data: LeadCreate) -> CampaignLead:
        return CampaignLead(
            campaign_id=campaign.id,
            organization_id=campaign.organization_id,
            name=data.name.strip(),
            phone_number=data.phoneNumber,
            notes=data.notes,
        )

    async def _send_first_messages(self, campaign: Campaign, leads: list[CampaignLead]) -> None:
        if not (campaign.is_active and campaign.status == "active" and campaign.messages_list):
            return
        timer = CampaignTimerService(self.db)
        for lead in leads:
            result = await timer.process_lead(campaign, lead)
            if not result["success"]:
                logger.warning(f"⚠️ First message to lead {lead.id} not sent: {result.get('error')}")

    def list_leads(self, campaign_id: int, user: User, page=1, limit=10, status: Optional[str] = None) -> dict:
        campaign = self.get_campaign(campaign_id, user)
        return paginate_query(self.repo.leads_query(self.db, campaign.id, status), page, limit, serializer=serialize_lead)

    async def add_lead(self, campaign_id: int, data: LeadCreate, user: User) -> CampaignLead:
        campaign = self.get_campaign(campaign_id, user)
        lead = self.repo.save(self.db, self._new_lead(campaign, data))
        await self._send_first_messages(campaign, [lead])
        self.db.refresh(lead)
        return lead

    async def add_leads(self, campaign_id: int, leads: list[LeadCreate], user: User) -> list[CampaignLead]:
        if not leads:
            raise HTTPException(status_code=400, detail="Leads data array is required and cannot be empty")
        campaign = self.get_campaign(campaign_id, user)
        created = self.repo.add_leads(self.db, [self._new_lead(campaign, data) for data in leads])
        logger.info(f"📋 Added {len(created)} leads to campaign {campaign.id}")

        await self._send_first_messages(campaign, created)
        for lead in created:
            self.db.refresh(lead)
        return created

    def _get_lead(self, lead_id: int, user: User) -> CampaignLead:
        lead = self.repo.get_lead(self.db, lead_id)
        if not lead:
            raise HTTPException(status_code=404, detail="Lead not found")
        self._check_organization(lead.organization_id, user)
        return lead

    def update_lead(self, lead_id: int, data: LeadUpdate, user: User) -> CampaignLead:
        lead = self._get_lead(lead_id, user)
        if data.name is not None:
            lead.name = data.name.strip()
        if data.phoneNumber is not None:
            lead.phone_number = data.phoneNumber
        if data.status is not None:
            lead.status = data.status
        if data.notes is not None:
            lead.notes = data.notes
        return self.repo.save(self.db, lead)

    def delete_lead(self, lead_id: int, user: User) -> dict:
        self.repo.delete(self.db, self._get_lead(lead_id, user))
        return {"message": "Lead deleted successfully"}

    # ------------------------------------------------------------------
    # Messaging sequences
    # ------------------------------------------------------------------

    def list_sequences(self, campaign_id: int, user: User, page=1, limit=10, lead_id: Optional[int] = None) -> dict:
        campaign = self.get_campaign(campaign_id, user)
        query = self.repo.sequences_query(self.db, campaign.id, lead_id)
        return paginate_query(query, page, limit, serializer=serialize_sequence)

    def create_sequence(self, data: SequenceCreate, user: User) -> CampaignMessagingSequence:
        campaign = self.get_campaign(data.campaignId, user)
        lead = self.repo.get_lead(self.db, data.campaignLeadId)
        if not lead or lead.campaign_id != campaign.id:
            raise HTTPException(status_code=404, detail="Lead not found")

        sequence = CampaignMessagingSequence(
            campaign_id=campaign.id,
            campaign_lead_id=lead.id,
            organization_id=campaign.organization_id,
            message=data.message,
            sequence_order=data.sequenceOrder,
            status=data.status,
            message_id=data.messageId,
            sent_at=data.sentAt,
            next_scheduled_at=data.nextScheduledAt,
        )
        return self.repo.save(self.db, sequence)

    def update_sequence(self, sequence_id: int, data: SequenceUpdate, user: User) -> CampaignMessagingSequence:
        sequence = self.repo.get_sequence(self.db, sequence_id)
        if not sequence:
            raise HTTPException(status_code=404, detail="Messaging sequence not found")
        self._check_organization(sequence.organization_id, user)

        if data.message is not None:
            sequence.message = data.message
        if data.status is not None:
            sequence.status = data.status
        if data.sentAt is not None:
            sequence.sent_at = data.sentAt
        if data.nextScheduledAt is not None:
            sequence.next_scheduled_at = data.nextScheduledAt
        return self.repo.save(self.db, sequence)
