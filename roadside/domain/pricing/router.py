"""Pricing router - priced services and quote calculation"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import PricingRequest, ServiceCreate, ServiceUpdate, StatePrice
from .service import PricingService, serialize_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["Services"])


def get_pricing_service(db: Session = Depends(get_db)) -> PricingService:
    """Dependency injection for PricingService"""
    return PricingService(db)


@router.post("/calculate-pricing")
async def calculate_pricing(
    data: PricingRequest,
    current_user: User = Depends(get_current_user),
    service: PricingService = Depends(get_pricing_service),
):
    """Price the selected services (plus towing) and compare against the offered amount"""
    return service.calculate_pricing(data, current_user)


@router.get("")
async def list_services(
    current_user: User = Depends(get_current_user),
    service: PricingService = Depends(get_pricing_service),
):
    services = service.list_services(current_user)
    return {"message": "Services retrieved successfully", "data": [serialize_service(s) for s in services]}


@router.post("", status_code=201)
async def create_service(
    data: ServiceCreate,
    current_user: User = Depends(get_current_user),
    service: PricingService = Depends(get_pricing_service),
):
    created = service.create_service(data, current_user)
    return {"message": "Service created successfully", "data": serialize_service(created)}


@router.get("/{service_id}")
async def get_service(
    service_id: int,
    current_user: User = Depends(get_current_user),
    service: PricingService = Depends(get_pricing_service),
):
    return {"message": "Service retrieved successfully", "data": serialize_service(service.get_service(service_id, current_user))}


@router.put("/{service_id}")
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    current_user: User = Depends(get_current_user),
    service: PricingService = Depends(get_pricing_service),
):
    updated = service.update_service(service_id, data, current_user)
    return {"message": "Service updated successfully", "data": serialize_service(updated)}


@router.delete("/{service_id}")
async def delete_service(
    service_id: int,
    current_user: User = Depends(get_current_user),
    service: PricingService = Depends(get_pricing_service),
):
    return service.delete_service(service_id, current_user)


@router.post("/{service_id}/states")
async def add_state_price(
    service_id: int,
    data: StatePrice,
    current_user: User = Depends(get_current_user),
    service: PricingService = Depends(get_pricing_service),
):
    updated = service.add_state_price(service_id, data, current_user)
    return {"message": "State added to service successfully", "data": serialize_service(updated)}


@router.delete("/{service_id}/states/{state}")
async def delete_state_price(
    service_id: int,
    state: str,
    current_user: User = Depends(get_current_user),
    service: PricingService = Depends(get_pricing_service),
):
    updated = service.delete_state_price(service_id, state, current_user)
    return {"message": "State deleted from service successfully", "data": serialize_service(updated)}
