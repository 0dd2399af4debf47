"""Campaign repository"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models_campaigns import Campaign, CampaignLead, CampaignMessagingSequence

# Lead statuses the follow-up timer still works on
TIMER_LEAD_STATUSES = ("active", "contacted")


class CampaignRepository:
    """Repository for campaign, lead and messaging sequence database operations"""

    @staticmethod
    def list_query(db: Session, organization_id: Optional[int] = None, status: Optional[str] = None):
        query = db.query(Campaign)
        if organization_id is not None:
            query = query.filter(Campaign.organization_id == organization_id)
        if status:
            query = query.filter(Campaign.status == status)
        return query.order_by(Campaign.created_at.desc(), Campaign.id.desc())

    @staticmethod
    def get_by_id(db: Session, campaign_id: int) -> Optional[Campaign]:
        return db.query(Campaign).filter(Campaign.id == campaign_id).first()

    @staticmethod
    def get_running(db: Session) -> list[Campaign]:
        return (
            db.query(Campaign)
            .filter(Campaign.is_active.is_(True), Campaign.status == "active")
            .order_by(Campaign.id)
            .all()
        )

    @staticmethod
    def save(db: Session, obj):
        db.add(obj)
        db.commit()
        db.refresh(obj)
        return obj

    @staticmethod
    def delete(db: Session, obj) -> None:
        db.delete(obj)
        db.commit()

    # Leads

    @staticmethod
    def leads_query(db: Session, campaign_id: int, status: Optional[str] = None):
        query = db.query(CampaignLead).filter(CampaignLead.campaign_id == campaign_id)
        if status:
            query = query.filter(CampaignLead.status == status)
        return query.order_by(CampaignLead.created_at.desc(), CampaignLead.id.desc())

    @staticmethod
    def get_lead(db: Session, lead_id: int) -> Optional[CampaignLead]:
        return db.query(CampaignLead).filter(CampaignLead.id == lead_id).first()

    @staticmethod
    def get_timer_leads(db: Session, campaign_id: int) -> list[CampaignLead]:
        return (
            db.query(CampaignLead)
            .filter(CampaignLead.campaign_id == campaign_id, CampaignLead.status.in_(TIMER_LEAD_STATUSES))
            .order_by(CampaignLead.id)
            .all()
        )

    @staticmethod
    def add_leads(db: Session, leads: list[CampaignLead]) -> list[CampaignLead]:
        db.add_all(leads)
        db.commit()
        for lead in leads:
            db.refresh(lead)
        return leads

    @staticmethod
    def count_leads_by_status(db: Session, campaign_id: int) -> dict:
        rows = (
            db.query(CampaignLead.status, func.count(CampaignLead.id))
            .filter(CampaignLead.campaign_id == campaign_id)
            .group_by(CampaignLead.status)
            .all()
        )
        return dict(rows)

    @staticmethod
    def count_timer_leads(db: Session) -> int:
        return db.query(CampaignLead).filter(CampaignLead.status.in_(TIMER_LEAD_STATUSES)).count()

    # Messaging sequences

    @staticmethod
    def sequences_query(db: Session, campaign_id: int, lead_id: Optional[int] = None):
        query = db.query(CampaignMessagingSequence).filter(CampaignMessagingSequence.campaign_id == campaign_id)
        if lead_id is not None:
            query = query.filter(CampaignMessagingSequence.campaign_lead_id == lead_id)
        return query.order_by(CampaignMessagingSequence.created_at.desc(), CampaignMessagingSequence.id.desc())

    @staticmethod
    def get_sequence(db: Session, sequence_id: int) -> Optional[CampaignMessagingSequence]:
        return db.query(CampaignMessagingSequence).filter(CampaignMessagingSequence.id == sequence_id).first()

    @staticmethod
    def count_messages_by_status(db: Session, campaign_id: int) -> dict:
        rows = (
            db.query(CampaignMessagingSequence.status, func.count(CampaignMessagingSequence.id))
            .filter(CampaignMessagingSequence.campaign_id == campaign_id)
            .group_by(CampaignMessagingSequence.status)
            .all()
        )
        return dict(rows)

    @staticmethod
    def count_sent_since(db: Session, since: datetime) -> int:
        return db.query(CampaignMessagingSequence).filter(CampaignMessagingSequence.sent_at >= since).count()
