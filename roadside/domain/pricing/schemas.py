"""Pricing schemas - services, weight-class prices and quote requests"""

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import normalize_state

WeightClass = Literal["light_duty", "medium_duty", "heavy_duty"]


class WeightPrice(BaseModel):
    type: WeightClass
    price: float = Field(..., ge=0)


class StatePrice(BaseModel):
    state: str
    weight_classification: list[WeightPrice]

    @field_validator("state")
    @classmethod
    def validate_state(cls, v):
        return normalize_state(v)


class ServiceCreate(BaseModel):
    name: str
    description: Optional[str] = None
    organizationId: Optional[int] = None
    weight_classification: list[WeightPrice] = []
    statesSpecificPrice: list[StatePrice] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    weight_classification: Optional[list[WeightPrice]] = None
    statesSpecificPrice: Optional[list[StatePrice]] = None


class ServiceResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    organization_id: Optional[int] = None
    weight_classification: list = []
    states_specific_price: list = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PricingRequest(BaseModel):
    services: Optional[list[Union[int, str]]] = None
    amount: Optional[float] = None
    state: Optional[str] = None
    vehicleType: Optional[str] = None
    milesToCover: Optional[float] = 0
    isTowing: bool = False
