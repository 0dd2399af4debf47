"""Vehicle classification router"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import StateRate, StateRateUpdate, VehicleClassificationUpsert
from .service import VehicleClassificationService, serialize_classification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicle-classifications", tags=["Vehicle Classifications"])


def get_vehicle_classification_service(db: Session = Depends(get_db)) -> VehicleClassificationService:
    """Dependency injection for VehicleClassificationService"""
    return VehicleClassificationService(db)


def _ok(message: str, classification) -> dict:
    return {"success": True, "message": message, "data": serialize_classification(classification)}


@router.post("")
async def upsert_vehicle_classification(
    data: VehicleClassificationUpsert,
    current_user: User = Depends(get_current_user),
    service: VehicleClassificationService = Depends(get_vehicle_classification_service),
):
    classification = service.upsert(data, current_user)
    label = "Organization" if data.organizationId else "System default"
    return _ok(f"{label} vehicle classification saved successfully", classification)


@router.get("")
async def list_vehicle_classifications(
    current_user: User = Depends(get_current_user),
    service: VehicleClassificationService = Depends(get_vehicle_classification_service),
):
    return {"success": True, "data": [serialize_classification(c) for c in service.list_all()]}


@router.get("/system-default")
async def get_system_default(
    current_user: User = Depends(get_current_user),
    service: VehicleClassificationService = Depends(get_vehicle_classification_service),
):
    return _ok("System default vehicle classification retrieved", service.get_system_default())


@router.get("/organization/{organization_id}")
async def get_for_organization(
    organization_id: int,
    current_user: User = Depends(get_current_user),
    service: VehicleClassificationService = Depends(get_vehicle_classification_service),
):
    return _ok("Vehicle classification retrieved", service.get_for_organization(organization_id))


@router.delete("")
async def delete_system_default(
    current_user: User = Depends(get_current_user),
    service: VehicleClassificationService = Depends(get_vehicle_classification_service),
):
    return service.delete(None, current_user)


# ============================================================================
# STATE ENTRIES (system default)
# ============================================================================


@router.post("/system-default/states")
async def add_system_default_state(
    data: StateRate,
    current_user: User = Depends(get_current_user),
    service: VehicleClassificationService = Depends(get_vehicle_classification_service),
):
    return _ok("State added to vehicle classification successfully", service.add_state(None, data, current_user))


@router.put("/system-default/states/{state}")
async def update_system_default_state(
    state: str,
    data: StateRateUpdate,
    current_user: User = Depends(get_current_user),
    service: VehicleClassificationService = Depends(get_vehicle_classification_service),
):
    classification = service.update_state(None, state, data, current_user)
    return _ok("State updated in vehicle classification successfully", classification)


@router.delete("/system-default/states/{state}")
async def delete_system_default_state(
    state: str,
    current_user: User = Depends(get_current_user),
    service: VehicleClassificationService = Depends(get_vehicle_classification_service),
):
    classification = service.delete_state(None, state, current_user)
    return _ok("State deleted from vehicle classification successfully", classification)


# ============================================================================
# ORGANIZATION ROUTES
# ============================================================================


@router.delete("/{organization_id}")
async def delete_organization_classification(
    organization_id: int,
    current_user: User = Depends(get_current_user),
    service: VehicleClassificationService = Depends(get_vehicle_classification_service),
):
    return service.delete(organization_id, current_user)


@router.post("/{organization_id}/states")
async def add_organization_state(
    organization_id: int,
    data: StateRate,
    current_user: User = Depends(get_current_user),
    service: VehicleClassificationService = Depends(get_vehicle_classification_service),
):
    classification = service.add_state(organization_id, data, current_user)
    return _ok("State added to vehicle classification successfully", classification)


@router.put("/{organization_id}/states/{state}")
async def update_organization_state(
    organization_id: int,
    state: str,
    data: StateRateUpdate,
    current_user: User = Depends(get_current_user),
    service: VehicleClassificationService = Depends(get_vehicle_classification_service),
):
    classification = service.update_state(organization_id, state, data, current_user)
    return _ok("State updated in vehicle classification successfully", classification)


@router.delete("/{organization_id}/states/{state}")
async def delete_organization_state(
    organization_id: int,
    state: str,
    current_user: User = Depends(get_current_user),
    service: VehicleClassificationService = Depends(get_vehicle_classification_service),
):
    classification = service.delete_state(organization_id, state, current_user)
    return _ok("State deleted from vehicle classification successfully", classification)
