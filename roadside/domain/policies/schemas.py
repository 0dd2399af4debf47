"""Policy domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


def _check_date(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    try:
        datetime.strptime(v.strip(), "%m/%d/%Y")
    except ValueError as e:
        raise ValueError("Dates must use the MM/DD/YYYY format") from e
    return v.strip()


class PolicyFields(BaseModel):
    insured_first_name: Optional[str] = None
    insured_last_name: Optional[str] = None
    policy_effective_date: Optional[str] = None
    policy_expiration_date: Optional[str] = None
    risk_address_line_1: Optional[str] = None
    risk_address_city: Optional[str] = None
    risk_address_state: Optional[str] = None
    risk_address_zip_code: Optional[str] = None
    agency_name: Optional[str] = None
    vehicles: Optional[list[dict]] = None

    @field_validator("policy_effective_date", "policy_expiration_date")
    @classmethod
    def validate_dates(cls, v):
        return _check_date(v)


class PolicyCreate(PolicyFields):
    policy_number: str

    @field_validator("policy_number")
    @classmethod
    def validate_number(cls, v):
        if not v or not v.strip():
            raise ValueError("Policy number is required")
        return v.strip()


class PolicyUpdate(PolicyFields):
    pass


class PolicyValidateRequest(BaseModel):
    policy_number: Optional[str] = None


class PolicyResponse(BaseModel):
    id: int
    organization_id: int
    policy_number: str
    insured_first_name: Optional[str] = None
    insured_last_name: Optional[str] = None
    policy_effective_date: Optional[str] = None
    policy_expiration_date: Optional[str] = None
    risk_address_line_1: Optional[str] = None
    risk_address_city: Optional[str] = None
    risk_address_state: Optional[str] = None
    risk_address_zip_code: Optional[str] = None
    address: Optional[str] = None
    agency_name: Optional[str] = None
    vehicles: Optional[list] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
