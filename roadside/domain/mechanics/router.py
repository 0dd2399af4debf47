"""Mechanic router - FastAPI endpoints for mechanics and service providers"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import BlacklistRequest, MechanicCreate, MechanicResponse, MechanicUpdate
from .service import MechanicService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mechanics", tags=["Mechanics"])


def get_mechanic_service(db: Session = Depends(get_db)) -> MechanicService:
    """Dependency injection for MechanicService"""
    return MechanicService(db)


@router.get("")
async def list_mechanics(
    page: int = Query(1),
    limit: int = Query(10),
    search: str = Query(""),
    sortField: str = Query("createdAt"),
    sort: int = Query(-1),
    blacklist: bool = Query(True, description="Hide mechanics blacklisted by your organization"),
    providerType: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: MechanicService = Depends(get_mechanic_service),
):
    data = service.list_mechanics(current_user, page, limit, search, sortField, sort, blacklist, providerType)
    return {"success": True, "data": data}


@router.post("", response_model=MechanicResponse, status_code=201)
async def create_mechanic(
    data: MechanicCreate,
    current_user: User = Depends(get_current_user),
    service: MechanicService = Depends(get_mechanic_service),
):
    return await service.create_mechanic(data, current_user)


@router.get("/{mechanic_id}", response_model=MechanicResponse)
async def get_mechanic(
    mechanic_id: int,
    current_user: User = Depends(get_current_user),
    service: MechanicService = Depends(get_mechanic_service),
):
    return service.get_mechanic(mechanic_id, current_user)


@router.patch("/{mechanic_id}", response_model=MechanicResponse)
async def update_mechanic(
    mechanic_id: int,
    data: MechanicUpdate,
    current_user: User = Depends(get_current_user),
    service: MechanicService = Depends(get_mechanic_service),
):
    return await service.update_mechanic(mechanic_id, data, current_user)


@router.delete("/{mechanic_id}")
async def delete_mechanic(
    mechanic_id: int,
    current_user: User = Depends(get_current_user),
    service: MechanicService = Depends(get_mechanic_service),
):
    return service.delete_mechanic(mechanic_id, current_user)


# ============================================================================
# BLACKLIST
# ============================================================================


@router.post("/{mechanic_id}/blacklist")
async def blacklist_mechanic(
    mechanic_id: int,
    data: BlacklistRequest,
    current_user: User = Depends(get_current_user),
    service: MechanicService = Depends(get_mechanic_service),
):
    return {"success": True, "data": service.blacklist_mechanic(mechanic_id, current_user, data.reason)}


@router.delete("/{mechanic_id}/blacklist")
async def unblacklist_mechanic(
    mechanic_id: int,
    current_user: User = Depends(get_current_user),
    service: MechanicService = Depends(get_mechanic_service),
):
    return {"success": True, "data": service.unblacklist_mechanic(mechanic_id, current_user)}
