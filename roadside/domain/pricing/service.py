"""Pricing service - service CRUD and quote calculation with optional towing"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import get_user_organization
from ...models import Service, User, VehicleClassification
from ...shared.validators import WEIGHT_CLASSES
from ..vehicle_classifications.repository import VehicleClassificationRepository
from .repository import ServiceRepository
from .schemas import PricingRequest, ServiceCreate, ServiceResponse, ServiceUpdate, StatePrice, WeightPrice

logger = logging.getLogger(__name__)

FREE_TOWING_MILES = 5


def serialize_service(service: Service) -> dict:
    return ServiceResponse.model_validate(service).model_dump(mode="json")


def _check_weight_prices(prices: list[WeightPrice], where: str = "") -> list[dict]:
    types = [p.type for p in prices]
    duplicates = sorted({t for t in types if types.count(t) > 1})
    if duplicates:
        raise HTTPException(
            status_code=400, detail=f"Duplicate weight classifications found{where}: {', '.join(duplicates)}"
        )
    return [{"type": p.type, "price": p.price} for p in prices]


def _check_state_prices(states: list[StatePrice]) -> list[dict]:
    names = [s.state for s in states]
    duplicates = sorted({s for s in names if names.count(s) > 1})
    if duplicates:
        raise HTTPException(status_code=400, detail=f"Duplicate states found: {', '.join(duplicates)}")

    entries = []
    for entry in states:
        if not entry.weight_classification:
            raise HTTPException(
                status_code=400,
                detail=f"At least one weight_classification is required for state-specific pricing in state '{entry.state}'",
            )
        entries.append(
            {
                "state": entry.state,
                "weight_classification": _check_weight_prices(entry.weight_classification, f" in state '{entry.state}'"),
            }
        )
    return entries


def service_price(service: Service, state: str, vehicle_type: Optional[str] = None) -> float:
    """
    Price of one service for a state.

    The state table replaces the base table when the state is listed. With a vehicle type
    the matching weight class is used (falling back to the base table); without one the
    lowest price applies.
    """
    base = {e["type"]: e["price"] for e in service.weight_classification or []}
    table = base
    for entry in service.states_specific_price or []:
        if entry.get("state") == state:
            table = {e["type"]: e["price"] for e in entry.get("weight_classification") or []}
            break

    if vehicle_type:
        price = table.get(vehicle_type, base.get(vehicle_type))
        return float(price or 0)
    return float(min(table.values())) if table else 0.0


def towing_rate(classification: VehicleClassification, state: str) -> float:
    for entry in classification.states_specific or []:
        if entry.get("state") == state:
            return float(entry.get("ratePerMile") or 0)
    return float(classification.rate_per_mile or 0)


class PricingService:
    """Service layer for priced services"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ServiceRepository()

    def _organization_id(self, user: User) -> Optional[int]:
        org = get_user_organization(self.db, user)
        return org.id if org else None

    def list_services(self, user: User) -> list[Service]:
        organization_id = self._organization_id(user)
        if organization_id is None and not user.is_admin:
            raise HTTPException(status_code=400, detail="User must belong to an organization to view services")
        return self.repo.accessible_query(self.db, organization_id).order_by(Service.name).all()

    def get_service(self, service_id: int, user: User) -> Service:
        service = self.repo.get_by_id(self.db, service_id)
        organization_id = self._organization_id(user)
        accessible = service and (
            service.organization_id is None or service.organization_id == organization_id or user.is_admin
        )
        if not accessible:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    def _get_own_service(self, service_id: int, user: User) -> Service:
        service = self.get_service(service_id, user)
        if user.is_admin:
            return service
        if service.organization_id is None or service.organization_id != self._organization_id(user):
            raise HTTPException(status_code=403, detail="Only your organization's services can be modified")
        return service

    def create_service(self, data: ServiceCreate, user: User) -> Service:
        if user.is_admin:
            organization_id = data.organizationId
        else:
            organization_id = self._organization_id(user)
            if organization_id is None:
                raise HTTPException(status_code=400, detail="User must belong to an organization")

        service = Service(
            name=data.name,
            description=data.description,
            organization_id=organization_id,
            weight_classification=_check_weight_prices(data.weight_classification),
            states_specific_price=_check_state_prices(data.statesSpecificPrice),
        )
        service = self.repo.save(self.db, service)
        logger.info(f"✅ Service '{service.name}' created ({organization_id or 'system'})")
        return service

    def update_service(self, service_id: int, data: ServiceUpdate, user: User) -> Service:
        service = self._get_own_service(service_id, user)
        if data.name is not None:
            service.name = data.name.strip()
        if data.description is not None:
            service.description = data.description
        if data.weight_classification is not None:
            service.weight_classification = _check_weight_prices(data.weight_classification)
        if data.statesSpecificPrice is not None:
            service.states_specific_price = _check_state_prices(data.statesSpecificPrice)
        return self.repo.save(self.db, service)

    def delete_service(self, service_id: int, user: User) -> dict:
        self.repo.delete(self.db, self._get_own_service(service_id, user))
        return {"message": "Service deleted successfully"}

    def add_state_price(self, service_id: int, data: StatePrice, user: User) -> Service:
        service = self._get_own_service(service_id, user)
        entries = list(service.states_specific_price or [])
        if any(e["state"] == data.state for e in entries):
            raise HTTPException(status_code=400, detail=f"State '{data.state}' already exists for this service")
        service.states_specific_price = entries + _check_state_prices([data])
        return self.repo.save(self.db, service)

    def delete_state_price(self, service_id: int, state: str, user: User) -> Service:
        service = self._get_own_service(service_id, user)
        state = state.strip().upper()
        entries = [e for e in service.states_specific_price or [] if e["state"] != state]
        if len(entries) == len(service.states_specific_price or []):
            raise HTTPException(status_code=404, detail="State not found in service")
        service.states_specific_price = entries
        return self.repo.save(self.db, service)

    # ------------------------------------------------------------------
    # Quote calculation
    # ------------------------------------------------------------------

    def calculate_pricing(self, data: PricingRequest, user: User) -> dict:
        if not data.services:
            raise HTTPException(status_code=400, detail="Services array is required and cannot be empty")
        if data.amount is None:
            raise HTTPException(status_code=400, detail="Amount is required")
        if data.amount < 0:
            raise HTTPException(status_code=400, detail="Amount must be >= 0")
        if not data.state or not data.state.strip():
            raise HTTPException(status_code=400, detail="State is required")
        state = data.state.strip().upper()

        if data.vehicleType is not None and data.vehicleType not in WEIGHT_CLASSES:
            raise HTTPException(
                status_code=400, detail=f"Invalid vehicle type. Valid types: {', '.join(WEIGHT_CLASSES)}"
            )

        organization_id = self._organization_id(user)
        if data.isTowing:
            if not data.vehicleType:
                raise HTTPException(
                    status_code=400,
                    detail="Valid vehicle type is required when towing is enabled (light_duty, medium_duty, heavy_duty)",
                )
            if data.milesToCover is None or data.milesToCover < 0:
                raise HTTPException(
                    status_code=400, detail="Miles to cover is required and must be >= 0 when towing is enabled"
                )
            if organization_id is None:
                raise HTTPException(status_code=400, detail="Organization is required for towing calculations")

        try:
            ids = [int(s) for s in data.services]
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail="Service ids must be integers") from None

        found = self.repo.get_accessible_by_ids(self.db, ids, organization_id)
        found_ids = {s.id for s in found}
        missing = [str(i) for i in ids if i not in found_ids]
        if missing:
            raise HTTPException(status_code=404, detail=f"Services not found or not accessible: {', '.join(missing)}")

        priced = [
            {"id": s.id, "name": s.name, "price": service_price(s, state, data.vehicleType)} for s in found
        ]
        service_total = round(sum(p["price"] for p in priced), 2)

        towing_cost = 0.0
        towing_details = None
        if data.isTowing:
            classifications = VehicleClassificationRepository()
            classification = classifications.get_for_organization(
                self.db, organization_id
            ) or classifications.get_for_organization(self.db, None)
            if not classification:
                raise HTTPException(status_code=404, detail="Vehicle classification not found")

            rate = towing_rate(classification, state)
            billable = max(0.0, data.milesToCover - FREE_TOWING_MILES)
            towing_cost = round(billable * rate, 2)
            towing_details = {
                "vehicleType": data.vehicleType,
                "milesToCover": data.milesToCover,
                "freeMiles": FREE_TOWING_MILES,
                "billableMiles": billable,
                "ratePerMile": rate,
                "towingCost": towing_cost,
            }

        total = round(service_total + towing_cost, 2)
        return {
            "serviceTotal": service_total,
            "towingCost": towing_cost,
            "total": total,
            "amount": data.amount,
            "state": state,
            "isAcceptable": data.amount <= total,
            "services": priced,
            "towingDetails": towing_details,
        }
