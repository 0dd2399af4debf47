"""Widget router - organization widgets plus the public embed endpoint"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import WidgetCreate, WidgetUpdate
from .service import WidgetService, serialize_widget

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organization-widgets", tags=["Widgets"])

public_widget_limit = create_rate_limiter(limit=60, window_seconds=60, key_prefix="widget_public")


def get_widget_service(db: Session = Depends(get_db)) -> WidgetService:
    """Dependency injection for WidgetService"""
    return WidgetService(db)


@router.post("", status_code=201)
async def create_widget(
    data: WidgetCreate,
    current_user: User = Depends(get_current_user),
    service: WidgetService = Depends(get_widget_service),
):
    widget = await service.create_widget(data, current_user)
    return {"success": True, "message": "Widget created successfully", "data": serialize_widget(widget)}


@router.get("/organization")
async def get_organization_widget(
    organizationId: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: WidgetService = Depends(get_widget_service),
):
    widget = service.get_organization_widget(organizationId, current_user)
    return {"success": True, "data": serialize_widget(widget) if widget else None}


@router.get("/organization/{organization_id}/open")
async def get_public_widget(
    organization_id: int,
    _: None = Depends(public_widget_limit),
    service: WidgetService = Depends(get_widget_service),
):
    """Public, unauthenticated - used by the embed script"""
    return {"success": True, "data": service.get_public_widget(organization_id)}


@router.get("/{widget_id}")
async def get_widget(
    widget_id: int,
    current_user: User = Depends(get_current_user),
    service: WidgetService = Depends(get_widget_service),
):
    return {"success": True, "data": serialize_widget(service.get_widget(widget_id, current_user))}


@router.put("/{widget_id}")
async def update_widget(
    widget_id: int,
    data: WidgetUpdate,
    current_user: User = Depends(get_current_user),
    service: WidgetService = Depends(get_widget_service),
):
    widget = service.update_widget(widget_id, data, current_user)
    return {"success": True, "message": "Widget updated successfully", "data": serialize_widget(widget)}


@router.delete("/{widget_id}")
async def delete_widget(
    widget_id: int,
    current_user: User = Depends(get_current_user),
    service: WidgetService = Depends(get_widget_service),
):
    return service.delete_widget(widget_id, current_user)


@router.patch("/{widget_id}/toggle")
async def toggle_widget(
    widget_id: int,
    current_user: User = Depends(get_current_user),
    service: WidgetService = Depends(get_widget_service),
):
    widget = service.toggle_widget(widget_id, current_user)
    return {"success": True, "message": "Widget status toggled", "data": serialize_widget(widget)}
