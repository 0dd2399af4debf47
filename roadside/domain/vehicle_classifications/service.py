"""Vehicle classification service - towing rates per organization with a system default"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import get_user_organization
from ...models import Organization, User, VehicleClassification
from ...shared.validators import normalize_state
from .repository import VehicleClassificationRepository
from .schemas import StateRate, StateRateUpdate, VehicleClassificationResponse, VehicleClassificationUpsert

logger = logging.getLogger(__name__)


def serialize_classification(classification: VehicleClassification) -> dict:
    data = VehicleClassificationResponse.model_validate(classification).model_dump(mode="json")
    data["isSystemDefault"] = classification.organization_id is None
    return data


def _state_entry(rate: StateRate) -> dict:
    return {
        "state": rate.state,
        "returnMileageThreshold": rate.returnMileageThreshold,
        "ratePerMile": rate.ratePerMile,
    }


class VehicleClassificationService:
    """Service layer for vehicle classification business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = VehicleClassificationRepository()

    def _check_write_access(self, organization_id: Optional[int], user: User) -> None:
        if user.is_admin:
            return
        if organization_id is None:
            raise HTTPException(status_code=403, detail="Only admins can change the system default")
        org = get_user_organization(self.db, user)
        if not org or org.id != organization_id:
            raise HTTPException(status_code=403, detail="Access to this organization denied")

    def _require(self, organization_id: Optional[int]) -> VehicleClassification:
        classification = self.repo.get_for_organization(self.db, organization_id)
        if not classification:
            raise HTTPException(status_code=404, detail="Vehicle classification not found")
        return classification

    def upsert(self, data: VehicleClassificationUpsert, user: User) -> VehicleClassification:
        organization_id = data.organizationId
        self._check_write_access(organization_id, user)
        if organization_id is not None and not self.db.get(Organization, organization_id):
            raise HTTPException(status_code=404, detail="Organization not found")

        states = [s.state for s in data.statesSpecific]
        duplicates = sorted({s for s in states if states.count(s) > 1})
        if duplicates:
            raise HTTPException(status_code=400, detail=f"Duplicate states found: {', '.join(duplicates)}")

        classification = self.repo.get_for_organization(self.db, organization_id) or VehicleClassification(
            organization_id=organization_id
        )
        classification.return_mileage_threshold = data.returnMileageThreshold
        classification.rate_per_mile = data.ratePerMile
        classification.states_specific = [_state_entry(s) for s in data.statesSpecific]

        classification = self.repo.save(self.db, classification)
        logger.info(f"✅ Vehicle classification saved for {organization_id or 'system default'}")
        return classification

    def get_for_organization(self, organization_id: int) -> VehicleClassification:
        """Organization's rates, falling back to the system default"""
        classification = self.repo.get_for_organization(self.db, organization_id) or self.repo.get_for_organization(
            self.db, None
        )
        if not classification:
            raise HTTPException(status_code=404, detail="Vehicle classification not found")
        return classification

    def get_system_default(self) -> VehicleClassification:
        classification = self.repo.get_for_organization(self.db, None)
        if not classification:
            raise HTTPException(status_code=404, detail="System default vehicle classification not found")
        return classification

    def list_all(self) -> list[VehicleClassification]:
        return self.repo.list_all(self.db)

    def delete(self, organization_id: Optional[int], user: User) -> dict:
        self._check_write_access(organization_id, user)
        self.repo.delete(self.db, self._require(organization_id))
        return {"message": "Vehicle classification deleted successfully"}

    # ------------------------------------------------------------------
    # State entries
    # ------------------------------------------------------------------

    def add_state(self, organization_id: Optional[int], rate: StateRate, user: User) -> VehicleClassification:
        self._check_write_access(organization_id, user)
        classification = self._require(organization_id)
        entries = list(classification.states_specific or [])
        if any(e["state"] == rate.state for e in entries):
            raise HTTPException(
                status_code=400, detail=f"State '{rate.state}' already exists for this vehicle classification"
            )
        classification.states_specific = entries + [_state_entry(rate)]
        return self.repo.save(self.db, classification)

    def update_state(
        self, organization_id: Optional[int], state: str, data: StateRateUpdate, user: User
    ) -> VehicleClassification:
        self._check_write_access(organization_id, user)
        classification = self._require(organization_id)
        state = normalize_state(state)

        entries = [dict(e) for e in classification.states_specific or []]
        for entry in entries:
            if entry["state"] == state:
                entry["returnMileageThreshold"] = data.returnMileageThreshold
                entry["ratePerMile"] = data.ratePerMile
                break
        else:
            raise HTTPException(status_code=404, detail="State not found in vehicle classification")

        classification.states_specific = entries
        return self.repo.save(self.db, classification)

    def delete_state(self, organization_id: Optional[int], state: str, user: User) -> VehicleClassification:
        self._check_write_access(organization_id, user)
        classification = self._require(organization_id)
        state = normalize_state(state)

        entries = [e for e in classification.states_specific or [] if e["state"] != state]
        if len(entries) == len(classification.states_specific or []):
            raise HTTPException(status_code=404, detail="State not found in vehicle classification")

        classification.states_specific = entries
        return self.repo.save(self.db, classification)
