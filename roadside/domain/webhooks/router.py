"""
Webhook router - VAPI server URLs for inbound, outbound, marketing and web calls,
plus the tool endpoints the voice assistant calls mid-conversation.

VAPI treats any non-2xx answer as a dropped call, so handler failures are
logged and answered with a spoken error instead of an HTTP error.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from . import responses
from .service import WebhookService, first_tool_call

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["Webhooks"])


def get_webhook_service(db: Session = Depends(get_db)) -> WebhookService:
    """Dependency injection for WebhookService"""
    return WebhookService(db)


def _failed(service: WebhookService, hook: str, e: Exception) -> dict:
    service.db.rollback()
    logger.error(f"❌ {hook} webhook failed: {str(e)}")
    return responses.error_response()


# ============================================================
# Call hooks
# ============================================================


@router.post("/inbound-hook")
async def inbound_hook(event: dict = Body(default={}), service: WebhookService = Depends(get_webhook_service)):
    try:
        return service.inbound(event)
    except Exception as e:
        return _failed(service, "Inbound", e)


@router.post("/outbound-hook")
@router.post("/call-mechanics")
async def outbound_hook(event: dict = Body(default={}), service: WebhookService = Depends(get_webhook_service)):
    try:
        return service.outbound(event)
    except Exception as e:
        return _failed(service, "Outbound", e)


@router.post("/marketing-inbound-hook")
async def marketing_inbound_hook(
    event: dict = Body(default={}), service: WebhookService = Depends(get_webhook_service)
):
    try:
        return service.marketing_inbound(event)
    except Exception as e:
        return _failed(service, "Marketing inbound", e)


@router.post("/marketing-outbound-hook")
async def marketing_outbound_hook(
    event: dict = Body(default={}), service: WebhookService = Depends(get_webhook_service)
):
    try:
        return service.marketing_outbound(event)
    except Exception as e:
        return _failed(service, "Marketing outbound", e)


@router.post("/marketing-web-hook")
async def marketing_web_hook(event: dict = Body(default={}), service: WebhookService = Depends(get_webhook_service)):
    try:
        return service.marketing_web(event)
    except Exception as e:
        return _failed(service, "Marketing web", e)


# ============================================================
# Assistant tools
# ============================================================


@router.post("/create-ticket")
async def create_ticket_tool(event: dict = Body(default={}), service: WebhookService = Depends(get_webhook_service)):
    try:
        return await service.create_ticket(event)
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Create-ticket tool failed: {str(e)}")
        tool_call_id, _ = first_tool_call(event)
        return responses.tool_result(tool_call_id, {"success": False, "message": "Failed to create ticket"})


@router.post("/policies/validate")
async def validate_policy_tool(event: dict = Body(default={}), service: WebhookService = Depends(get_webhook_service)):
    try:
        return service.validate_policy(event)
    except Exception as e:
        logger.error(f"❌ Policy validation tool failed: {str(e)}")
        tool_call_id, _ = first_tool_call(event)
        return responses.tool_result(tool_call_id, {"exists": False, "expired": None, "message": "Validation failed"})


# ============================================================
# Web calls
# ============================================================


@router.get("/create-call")
async def create_call(
    mechanicId: Optional[int] = Query(None),
    organizationId: Optional[int] = Query(None),
    isOrg: bool = Query(False),
    service: WebhookService = Depends(get_webhook_service),
):
    """Public - the widget asks which web agent to start"""
    return {"success": True, "data": service.web_agent(mechanicId, organizationId, isOrg)}


@router.get("/health")
async def webhook_health():
    return {
        "success": True,
        "message": "Webhook service is running",
        "timestamp": datetime.utcnow().isoformat(),
        "endpoints": [
            "/webhook/inbound-hook",
            "/webhook/outbound-hook",
            "/webhook/call-mechanics",
            "/webhook/marketing-inbound-hook",
            "/webhook/marketing-outbound-hook",
            "/webhook/marketing-web-hook",
            "/webhook/create-ticket",
            "/webhook/policies/validate",
            "/webhook/create-call",
        ],
    }
