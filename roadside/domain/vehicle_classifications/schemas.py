"""Vehicle classification schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import normalize_state


class StateRate(BaseModel):
    state: str
    returnMileageThreshold: float = Field(0, ge=0)
    ratePerMile: float = Field(0, ge=0)

    @field_validator("state")
    @classmethod
    def validate_state(cls, v):
        return normalize_state(v)


class VehicleClassificationUpsert(BaseModel):
    organizationId: Optional[int] = None
    returnMileageThreshold: float = Field(0, ge=0)
    ratePerMile: float = Field(0, ge=0)
    statesSpecific: list[StateRate] = []


class StateRateUpdate(BaseModel):
    returnMileageThreshold: float = Field(..., ge=0)
    ratePerMile: float = Field(..., ge=0)


class VehicleClassificationResponse(BaseModel):
    id: int
    organization_id: Optional[int] = None
    return_mileage_threshold: float
    rate_per_mile: float
    states_specific: list = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
