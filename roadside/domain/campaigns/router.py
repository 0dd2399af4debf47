"""Campaign routers - campaign management and the follow-up timer"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import ADMIN, SUPER_ADMIN, User
from ...rbac import require_roles
from .schemas import (
    CampaignCreate,
    CampaignMessagesAdd,
    CampaignUpdate,
    LeadBulkCreate,
    LeadCreate,
    LeadUpdate,
    SequenceCreate,
    SequenceUpdate,
)
from .service import CampaignService, serialize_campaign, serialize_lead, serialize_sequence
from .timer import CampaignTimerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])
timer_router = APIRouter(prefix="/campaign-timer", tags=["Campaign Timer"])


def get_campaign_service(db: Session = Depends(get_db)) -> CampaignService:
    """Dependency injection for CampaignService"""
    return CampaignService(db)


def get_timer_service(db: Session = Depends(get_db)) -> CampaignTimerService:
    return CampaignTimerService(db)


# ============================================================================
# CAMPAIGNS
# ============================================================================


@router.post("", status_code=201)
async def create_campaign(
    data: CampaignCreate,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = service.create_campaign(data, current_user)
    return {"success": True, "message": "Campaign created successfully", "data": serialize_campaign(campaign)}


@router.get("/organization/{organization_id}")
async def list_campaigns(
    organization_id: int,
    page: int = Query(1),
    limit: int = Query(10),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"success": True, "data": service.list_campaigns(organization_id, current_user, page, limit, status)}


# Static paths before /{campaign_id}


@router.post("/messaging-sequences", status_code=201)
async def create_messaging_sequence(
    data: SequenceCreate,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    sequence = service.create_sequence(data, current_user)
    return {"success": True, "message": "Messaging sequence created", "data": serialize_sequence(sequence)}


@router.put("/messaging-sequences/{sequence_id}")
async def update_messaging_sequence(
    sequence_id: int,
    data: SequenceUpdate,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    sequence = service.update_sequence(sequence_id, data, current_user)
    return {"success": True, "message": "Messaging sequence updated", "data": serialize_sequence(sequence)}


@router.put("/leads/{lead_id}")
async def update_lead(
    lead_id: int,
    data: LeadUpdate,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    lead = service.update_lead(lead_id, data, current_user)
    return {"success": True, "message": "Lead updated successfully", "data": serialize_lead(lead)}


@router.delete("/leads/{lead_id}")
async def delete_lead(
    lead_id: int,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"success": True, **service.delete_lead(lead_id, current_user)}


@router.get("/{campaign_id}")
async def get_campaign(
    campaign_id: int,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"success": True, "data": serialize_campaign(service.get_campaign(campaign_id, current_user))}


@router.put("/{campaign_id}")
async def update_campaign(
    campaign_id: int,
    data: CampaignUpdate,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = service.update_campaign(campaign_id, data, current_user)
    return {"success": True, "message": "Campaign updated successfully", "data": serialize_campaign(campaign)}


@router.delete("/{campaign_id}")
async def delete_campaign(
    campaign_id: int,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"success": True, **service.delete_campaign(campaign_id, current_user)}


@router.post("/{campaign_id}/messages")
async def add_messages(
    campaign_id: int,
    data: CampaignMessagesAdd,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = service.add_messages(campaign_id, data.messages, current_user)
    return {"success": True, "message": "Messages added successfully", "data": serialize_campaign(campaign)}


@router.post("/{campaign_id}/activate")
async def activate_campaign(
    campaign_id: int,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = await service.set_active(campaign_id, True, current_user)
    return {"success": True, "message": "Campaign activated successfully", "data": serialize_campaign(campaign)}


@router.post("/{campaign_id}/deactivate")
async def deactivate_campaign(
    campaign_id: int,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = await service.set_active(campaign_id, False, current_user)
    return {"success": True, "message": "Campaign deactivated successfully", "data": serialize_campaign(campaign)}


@router.get("/{campaign_id}/stats")
async def get_campaign_stats(
    campaign_id: int,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"success": True, "data": service.get_stats(campaign_id, current_user)}


# ============================================================================
# LEADS
# ============================================================================


@router.get("/{campaign_id}/leads")
async def list_leads(
    campaign_id: int,
    page: int = Query(1),
    limit: int = Query(10),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"success": True, "data": service.list_leads(campaign_id, current_user, page, limit, status)}


@router.post("/{campaign_id}/leads", status_code=201)
async def add_lead(
    campaign_id: int,
    data: LeadCreate,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    lead = await service.add_lead(campaign_id, data, current_user)
    return {"success": True, "message": "Lead added successfully", "data": serialize_lead(lead)}


@router.post("/{campaign_id}/leads/bulk", status_code=201)
async def add_leads(
    campaign_id: int,
    data: LeadBulkCreate,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    leads = await service.add_leads(campaign_id, data.leads, current_user)
    return {
        "success": True,
        "message": f"{len(leads)} leads added successfully",
        "data": [serialize_lead(lead) for lead in leads],
    }


@router.get("/{campaign_id}/messaging-sequences")
async def list_messaging_sequences(
    campaign_id: int,
    page: int = Query(1),
    limit: int = Query(10),
    leadId: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"success": True, "data": service.list_sequences(campaign_id, current_user, page, limit, leadId)}


# ============================================================================
# CAMPAIGN TIMER
# ============================================================================


@timer_router.post("/process")
async def process_active_campaigns(
    _: User = Depends(require_roles(SUPER_ADMIN, ADMIN)),
    timer: CampaignTimerService = Depends(get_timer_service),
):
    """Run one timer pass now (the worker cron does this on a schedule)"""
    return await timer.process_all()


@timer_router.post("/process/{campaign_id}")
async def process_campaign(
    campaign_id: int,
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
    timer: CampaignTimerService = Depends(get_timer_service),
):
    service.get_campaign(campaign_id, current_user)
    return await timer.process_campaign_by_id(campaign_id)


@timer_router.get("/health")
async def timer_health():
    return {"success": True, "status": "healthy", "service": "campaign-timer", "timestamp": datetime.utcnow().isoformat()}


@timer_router.get("/stats")
async def timer_stats(
    current_user: User = Depends(get_current_user),
    timer: CampaignTimerService = Depends(get_timer_service),
):
    return {"success": True, "data": timer.stats()}
