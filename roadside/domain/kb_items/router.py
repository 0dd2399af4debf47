"""KB item router - FastAPI endpoints for knowledge-base items"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import KbItemCreate, KbItemUpdate
from .service import KbItemService, serialize_kb_item

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/kb-items", tags=["Knowledge Base"])


def get_kb_item_service(db: Session = Depends(get_db)) -> KbItemService:
    """Dependency injection for KbItemService"""
    return KbItemService(db)


@router.post("", status_code=201)
async def create_kb_item(
    data: KbItemCreate,
    current_user: User = Depends(get_current_user),
    service: KbItemService = Depends(get_kb_item_service),
):
    item = await service.create_item(data, current_user)
    return {"success": True, "message": "KbItem created successfully", "data": serialize_kb_item(item)}


@router.get("")
async def list_kb_items(
    page: int = Query(1),
    limit: int = Query(10),
    type: Optional[str] = Query(None),
    status: str = Query("active"),
    organization: Optional[int] = Query(None),
    mechanic: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    sort_by: str = Query("createdAt"),
    sort_order: str = Query("desc"),
    current_user: User = Depends(get_current_user),
    service: KbItemService = Depends(get_kb_item_service),
):
    data = service.list_items(page, limit, status, type, organization, mechanic, search, sort_by, sort_order)
    return {"success": True, "message": "KbItems retrieved successfully", "data": data}


@router.get("/organization/{organization_id}")
async def list_organization_kb_items(
    organization_id: int,
    page: int = Query(1),
    limit: int = Query(10),
    sort_by: str = Query("createdAt"),
    sort_order: str = Query("desc"),
    current_user: User = Depends(get_current_user),
    service: KbItemService = Depends(get_kb_item_service),
):
    data = service.list_items(page, limit, organization_id=organization_id, sort_by=sort_by, sort_order=sort_order)
    return {"success": True, "message": "Organization kbItems retrieved successfully", "data": data}


@router.get("/mechanic/{mechanic_id}")
async def list_mechanic_kb_items(
    mechanic_id: int,
    page: int = Query(1),
    limit: int = Query(10),
    sort_by: str = Query("createdAt"),
    sort_order: str = Query("desc"),
    current_user: User = Depends(get_current_user),
    service: KbItemService = Depends(get_kb_item_service),
):
    data = service.list_items(page, limit, mechanic_id=mechanic_id, sort_by=sort_by, sort_order=sort_order)
    return {"success": True, "message": "Mechanic kbItems retrieved successfully", "data": data}


@router.get("/{item_id}")
async def get_kb_item(
    item_id: int,
    current_user: User = Depends(get_current_user),
    service: KbItemService = Depends(get_kb_item_service),
):
    return {"success": True, "message": "KbItem retrieved successfully", "data": serialize_kb_item(service.get_item(item_id))}


@router.put("/{item_id}")
async def update_kb_item(
    item_id: int,
    data: KbItemUpdate,
    current_user: User = Depends(get_current_user),
    service: KbItemService = Depends(get_kb_item_service),
):
    item = service.update_item(item_id, data)
    return {"success": True, "message": "KbItem updated successfully", "data": serialize_kb_item(item)}


@router.delete("/{item_id}")
async def delete_kb_item(
    item_id: int,
    current_user: User = Depends(get_current_user),
    service: KbItemService = Depends(get_kb_item_service),
):
    item = await service.delete_item(item_id)
    return {"success": True, "message": "KbItem deleted successfully", "data": serialize_kb_item(item)}
