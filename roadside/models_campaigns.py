"""
SMS Campaign Models
Campaigns, their enrolled leads and the log of messages sent to each lead
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    is_active = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default="draft", nullable=False)  # draft, active, paused, completed
    # Ordered message templates: [{"id", "message", "nextContactHourInterval"}]
    messages_list = Column(JSON, default=list, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    leads = relationship("CampaignLead", back_populates="campaign", cascade="all, delete-orphan")


class CampaignLead(Base):
    __tablename__ = "campaign_leads"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone_number = Column(String(30), nullable=False, index=True)
    # active, inactive, contacted, do_not_contact, completed
    status = Column(String(20), default="active", nullable=False, index=True)
    last_contacted_at = Column(DateTime, nullable=True)
    contact_attempts = Column(Integer, default=0, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    campaign = relationship("Campaign", back_populates="leads")


class CampaignMessagingSequence(Base):
    """Track each message sent to a lead"""

    __tablename__ = "campaign_messaging_sequences"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    campaign_lead_id = Column(Integer, ForeignKey("campaign_leads.id", ondelete="CASCADE"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    message = Column(Text, nullable=False)
    sequence_order = Column(Integer, nullable=False)
    status = Column(String(20), default="sent", nullable=False)  # sent, failed, delivered
    sent_at = Column(DateTime, nullable=True)
    message_type = Column(String(20), default="sms", nullable=False)
    message_id = Column(String(100), nullable=True)  # Twilio message SID
    next_scheduled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)
