"""Widget service - one embeddable widget per organization"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import get_user_organization
from ...cache import cache, invalidate_public_widget, public_widget_key
from ...models import Organization, OrganizationWidget, User
from ..organizations.service import OrganizationService
from .repository import WidgetRepository
from .schemas import WidgetCreate, WidgetResponse, WidgetUpdate

logger = logging.getLogger(__name__)

PUBLIC_WIDGET_TTL = 300


def serialize_widget(widget: OrganizationWidget) -> dict:
    return WidgetResponse.model_validate(widget).model_dump(mode="json")


def public_widget_payload(widget: OrganizationWidget, organization: Organization) -> dict:
    """What the embed script needs - no owner or audit fields"""
    agents = organization.marketing_agents or {}
    return {
        "id": widget.id,
        "organizationId": organization.id,
        "companyName": organization.company_name,
        "name": widget.name,
        "widgetType": widget.widget_type,
        "config": widget.config or {},
        "allowedOrigins": widget.allowed_origins or [],
        "webAgentId": agents.get("web"),
    }


class WidgetService:
    """Service layer for organization widgets"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WidgetRepository()

    def _resolve_organization(self, organization_id: Optional[int], user: User) -> Organization:
        if organization_id is not None and user.is_admin:
            organization = self.db.get(Organization, organization_id)
        else:
            organization = get_user_organization(self.db, user)
            if organization and organization_id is not None and organization.id != organization_id:
                raise HTTPException(status_code=403, detail="Access to this organization denied")
        if not organization:
            raise HTTPException(status_code=404, detail="Organization not found")
        return organization

    def get_widget(self, widget_id: int, user: User) -> OrganizationWidget:
        widget = self.repo.get_by_id(self.db, widget_id)
        if not widget:
            raise HTTPException(status_code=404, detail="Widget not found")
        if not user.is_admin:
            organization = get_user_organization(self.db, user)
            if not organization or organization.id != widget.organization_id:
                raise HTTPException(status_code=403, detail="Access to this widget denied")
        return widget

    async def create_widget(self, data: WidgetCreate, user: User) -> OrganizationWidget:
        organization = self._resolve_organization(data.organizationId, user)
        if self.repo.get_by_organization(self.db, organization.id):
            raise HTTPException(
                status_code=400, detail="A widget already exists for this Organization. Please update it instead."
            )

        if data.widgetType == "marketing" and not organization.has_marketing_enabled:
            await OrganizationService(self.db).set_marketing(organization, True)
            logger.info(f"✅ Marketing enabled for organization {organization.id}")

        widget = OrganizationWidget(
            organization_id=organization.id,
            name=data.name or f"{organization.company_name or 'Organization'} Widget",
            widget_type=data.widgetType,
            config=data.config,
            allowed_origins=data.allowedOrigins,
            is_active=data.isActive,
            created_by_id=user.id,
        )
        widget = self.repo.save(self.db, widget)
        invalidate_public_widget(organization.id)
        return widget

    def get_organization_widget(self, organization_id: Optional[int], user: User) -> Optional[OrganizationWidget]:
        organization = self._resolve_organization(organization_id, user)
        return self.repo.get_by_organization(self.db, organization.id)

    def update_widget(self, widget_id: int, data: WidgetUpdate, user: User) -> OrganizationWidget:
        widget = self.get_widget(widget_id, user)
        fields = {
            "name": "name",
            "widgetType": "widget_type",
            "config": "config",
            "allowedOrigins": "allowed_origins",
            "isActive": "is_active",
        }
        for key, value in data.model_dump(exclude_none=True).items():
            setattr(widget, fields[key], value)
        widget = self.repo.save(self.db, widget)
        invalidate_public_widget(widget.organization_id)
        return widget

    def delete_widget(self, widget_id: int, user: User) -> dict:
        widget = self.get_widget(widget_id, user)
        organization_id = widget.organization_id
        self.repo.delete(self.db, widget)
        invalidate_public_widget(organization_id)
        return {"message": "Widget deleted successfully"}

    def toggle_widget(self, widget_id: int, user: User) -> OrganizationWidget:
        widget = self.get_widget(widget_id, user)
        widget.is_active = not widget.is_active
        widget = self.repo.save(self.db, widget)
        invalidate_public_widget(widget.organization_id)
        logger.info(f"🔄 Widget {widget.id} {'activated' if widget.is_active else 'deactivated'}")
        return widget

    def get_public_widget(self, organization_id: int) -> dict:
        """Active widget for the embed script, cached in Redis"""
        key = public_widget_key(organization_id)
        cached = cache.get(key)
        if cached:
            return cached

        widget = self.repo.get_by_organization(self.db, organization_id, active_only=True)
        organization = self.db.get(Organization, organization_id)
        if not widget or not organization:
            raise HTTPException(status_code=404, detail="Widget not found")

        payload = public_widget_payload(widget, organization)
        cache.set(key, payload, ttl=PUBLIC_WIDGET_TTL)
        return payload
