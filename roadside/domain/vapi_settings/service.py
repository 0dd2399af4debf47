"""VAPI settings service - read and update assistant call settings"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import get_user_organization
from ...models import Organization, User
from ...services import vapi_service
from ...services.vapi_service import VapiError
from . import settings_mapper

logger = logging.getLogger(__name__)


def organization_assistant_ids(organization: Organization) -> set[str]:
    agents = organization.marketing_agents or {}
    ids = {organization.inbound_assistant_id, organization.outbound_assistant_id, *agents.values()}
    return {i for i in ids if i and isinstance(i, str)}


class VapiSettingsService:
    """Service layer for VAPI assistant settings"""

    def __init__(self, db: Session):
        self.db = db

    def _organization(self, user: User) -> Organization:
        organization = get_user_organization(self.db, user)
        if not organization:
            raise HTTPException(status_code=404, detail="User organization not found")
        return organization

    def resolve_assistant_id(self, user: User, direction: str) -> str:
        """Inbound or outbound assistant of the caller's organization"""
        if direction not in ("inbound", "outbound"):
            raise HTTPException(status_code=400, detail="Direction must be inbound or outbound")
        organization = self._organization(user)
        assistant_id = (
            organization.inbound_assistant_id if direction == "inbound" else organization.outbound_assistant_id
        )
        if not assistant_id:
            raise HTTPException(status_code=404, detail=f"No {direction} assistant configured for this organization")
        return assistant_id

    def check_access(self, user: User, assistant_id: str) -> None:
        if user.is_admin:
            return
        if assistant_id not in organization_assistant_ids(self._organization(user)):
            raise HTTPException(status_code=403, detail="Access to this assistant denied")

    async def get_settings(self, assistant_id: str) -> dict:
        try:
            assistant = await vapi_service.get_assistant(assistant_id)
        except VapiError as e:
            raise HTTPException(status_code=502, detail=f"Failed to retrieve VAPI assistant call settings: {e}") from e
        return settings_mapper.from_vapi_assistant(assistant)

    async def _apply(self, assistant_id: str, update: dict, label: str) -> dict:
        logger.info(f"🔄 Updating VAPI assistant {assistant_id} {label}: {update}")
        try:
            assistant = await vapi_service.update_assistant(assistant_id, update)
        except VapiError as e:
            raise HTTPException(status_code=502, detail=f"Failed to update VAPI assistant {label}: {e}") from e
        return {
            "success": True,
            "data": assistant,
            "message": f"VAPI assistant {label} updated successfully",
            "updatedSettings": update,
        }

    async def update_settings(self, assistant_id: str, settings: dict) -> dict:
        return await self._apply(assistant_id, settings_mapper.to_vapi_update(settings), "call settings")

    async def update_category(self, assistant_id: str, category: str, settings: dict) -> dict:
        try:
            update = settings_mapper.category_update(category, settings)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return await self._apply(assistant_id, update, f"{category} settings")
