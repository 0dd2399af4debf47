"""VAPI settings router"""

import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import CallSettingsUpdate
from .service import VapiSettingsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vapi", tags=["VAPI Settings"])


def get_vapi_settings_service(db: Session = Depends(get_db)) -> VapiSettingsService:
    """Dependency injection for VapiSettingsService"""
    return VapiSettingsService(db)


# ============================================================================
# BY ASSISTANT ID
# ============================================================================


@router.get("/assistant/{assistant_id}/settings")
async def get_assistant_settings(
    assistant_id: str,
    current_user: User = Depends(get_current_user),
    service: VapiSettingsService = Depends(get_vapi_settings_service),
):
    service.check_access(current_user, assistant_id)
    return {
        "success": True,
        "data": await service.get_settings(assistant_id),
        "message": "VAPI assistant call settings retrieved successfully",
    }


@router.patch("/assistant/{assistant_id}/settings")
async def update_assistant_settings(
    assistant_id: str,
    data: CallSettingsUpdate,
    current_user: User = Depends(get_current_user),
    service: VapiSettingsService = Depends(get_vapi_settings_service),
):
    service.check_access(current_user, assistant_id)
    return await service.update_settings(assistant_id, data.model_dump(exclude_unset=True))


@router.patch("/assistant/{assistant_id}/settings/{category}")
async def update_assistant_setting_category(
    assistant_id: str,
    category: str,
    settings: dict = Body(default={}),
    current_user: User = Depends(get_current_user),
    service: VapiSettingsService = Depends(get_vapi_settings_service),
):
    service.check_access(current_user, assistant_id)
    return await service.update_category(assistant_id, category, settings)


# ============================================================================
# BY ORGANIZATION ASSISTANT (inbound / outbound)
# ============================================================================


@router.get("/organization/{direction}/settings")
async def get_organization_assistant_settings(
    direction: str,
    current_user: User = Depends(get_current_user),
    service: VapiSettingsService = Depends(get_vapi_settings_service),
):
    assistant_id = service.resolve_assistant_id(current_user, direction)
    return {
        "success": True,
        "assistantId": assistant_id,
        "data": await service.get_settings(assistant_id),
        "message": "VAPI assistant call settings retrieved successfully",
    }


@router.patch("/organization/{direction}/settings")
async def update_organization_assistant_settings(
    direction: str,
    data: CallSettingsUpdate,
    current_user: User = Depends(get_current_user),
    service: VapiSettingsService = Depends(get_vapi_settings_service),
):
    assistant_id = service.resolve_assistant_id(current_user, direction)
    return await service.update_settings(assistant_id, data.model_dump(exclude_unset=True))


@router.patch("/organization/{direction}/settings/{category}")
async def update_organization_setting_category(
    direction: str,
    category: str,
    settings: dict = Body(default={}),
    current_user: User = Depends(get_current_user),
    service: VapiSettingsService = Depends(get_vapi_settings_service),
):
    assistant_id = service.resolve_assistant_id(current_user, direction)
    return await service.update_category(assistant_id, category, settings)
