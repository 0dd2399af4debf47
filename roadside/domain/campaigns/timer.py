"""
Campaign timer
Sends each lead the next message of its campaign once the previous message's
contact interval has passed
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models_campaigns import Campaign, CampaignLead, CampaignMessagingSequence
from ...services import twilio_service
from .repository import TIMER_LEAD_STATUSES, CampaignRepository

logger = logging.getLogger(__name__)


def _interval_hours(message: dict) -> int:
    return message.get("nextContactHourInterval") or 1


def is_lead_ready(lead: CampaignLead, messages: list[dict], now: datetime) -> bool:
    """Whether a lead is due its next message"""
    if lead.status not in TIMER_LEAD_STATUSES or not messages:
        return False
    if lead.last_contacted_at is None:
        return True

    index = lead.contact_attempts or 0
    if index >= len(messages):
        return False
    return lead.last_contacted_at <= now - timedelta(hours=_interval_hours(messages[index]))


def has_received_all(lead: CampaignLead, messages: list[dict]) -> bool:
    return lead.status in TIMER_LEAD_STATUSES and (lead.contact_attempts or 0) >= len(messages)


class CampaignTimerService:
    """Runs the follow-up schedule for running campaigns"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CampaignRepository()

    async def process_lead(self, campaign: Campaign, lead: CampaignLead, now: Optional[datetime] = None) -> dict:
        now = now or datetime.utcnow()
        messages = campaign.messages_list or []
        attempt = (lead.contact_attempts or 0) + 1

        if attempt > len(messages):
            lead.status = "completed"
            lead.notes = "All messages sent"
            self.repo.save(self.db, lead)
            return {"success": True, "leadId": lead.id, "completed": True, "messageSent": False}

        message = messages[attempt - 1]
        sent, sid, error, code = await twilio_service.send_sms(lead.phone_number, message["message"])

        if not sent:
            if twilio_service.is_invalid_number_error(code):
                lead.status = "inactive"
                lead.notes = f"Invalid number: {error}"
                self.repo.save(self.db, lead)
                logger.warning(f"⚠️ Lead {lead.id} disabled, invalid number: {error}")
            else:
                logger.error(f"❌ SMS to lead {lead.id} failed: {error}")
            return {"success": False, "leadId": lead.id, "messageSent": False, "error": error}

        lead.contact_attempts = attempt
        lead.last_contacted_at = now
        lead.status = "contacted"
        self.db.add(lead)
        self.db.add(
            CampaignMessagingSequence(
                campaign_id=campaign.id,
                campaign_lead_id=lead.id,
                organization_id=lead.organization_id,
                message=message["message"],
                sequence_order=attempt,
                status="sent",
                sent_at=now,
                message_type="sms",
                message_id=sid,
                next_scheduled_at=now + timedelta(hours=_interval_hours(message)),
            )
        )
        self.db.commit()

        logger.info(f"📱 Message {attempt} sent to lead {lead.id} (campaign {campaign.id})")
        return {
            "success": True,
            "leadId": lead.id,
            "contactAttempt": attempt,
            "messageSent": True,
            "messageContent": message["message"],
            "messageSid": sid,
        }

    async def process_campaign(self, campaign: Campaign, now: Optional[datetime] = None) -> dict:
        now = now or datetime.utcnow()
        if not campaign.is_active or campaign.status != "active":
            return {"success": False, "campaignId": campaign.id, "reason": "Campaign not found or not active"}

        messages = campaign.messages_list or []
        leads = self.repo.get_timer_leads(self.db, campaign.id)
        due = [lead for lead in leads if is_lead_ready(lead, messages, now) or has_received_all(lead, messages)]

        results = []
        for lead in due:
            results.append(await self.process_lead(campaign, lead, now))

        sent = sum(1 for r in results if r.get("messageSent"))
        errors = sum(1 for r in results if not r["success"])
        return {
            "success": True,
            "campaignId": campaign.id,
            "campaignName": campaign.name,
            "processed": len(results),
            "sent": sent,
            "errors": errors,
            "leadResults": results,
        }

    async def process_campaign_by_id(self, campaign_id: int) -> dict:
        campaign = self.repo.get_by_id(self.db, campaign_id)
        if not campaign:
            raise HTTPException(status_code=404, detail="Campaign not found")
        return await self.process_campaign(campaign)

    async def process_all(self, now: Optional[datetime] = None) -> dict:
        now = now or datetime.utcnow()
        campaigns = self.repo.get_running(self.db)
        if not campaigns:
            return {"success": True, "message": "No active campaigns found", "processed": 0, "results": []}

        logger.info(f"🔄 Campaign timer: {len(campaigns)} active campaigns")
        results = []
        for campaign in campaigns:
            try:
                results.append(await self.process_campaign(campaign, now))
            except Exception as e:
                self.db.rollback()
                logger.error(f"❌ Error processing campaign {campaign.id}: {str(e)}")
                results.append({"success": False, "campaignId": campaign.id, "error": str(e)})

        summary = {
            "success": True,
            "campaignsProcessed": len(campaigns),
            "totalProcessed": sum(r.get("processed", 0) for r in results),
            "totalSent": sum(r.get("sent", 0) for r in results),
            "totalErrors": sum(r.get("errors", 0) if r["success"] else 1 for r in results),
            "results": results,
        }
        logger.info(
            f"✅ Campaign timer done - processed {summary['totalProcessed']}, "
            f"sent {summary['totalSent']}, errors {summary['totalErrors']}"
        )
        return summary

    def stats(self, now: Optional[datetime] = None) -> dict:
        now = now or datetime.utcnow()
        campaigns = self.repo.get_running(self.db)
        ready = sum(
            1
            for campaign in campaigns
            for lead in self.repo.get_timer_leads(self.db, campaign.id)
            if is_lead_ready(lead, campaign.messages_list or [], now)
        )
        return {
            "activeCampaigns": len(campaigns),
            "totalLeads": self.repo.count_timer_leads(self.db),
            "readyLeads": ready,
            "recentMessages": self.repo.count_sent_since(self.db, now - timedelta(hours=1)),
            "nextProcessingInfo": "Based on individual message nextContactHourInterval settings",
        }
