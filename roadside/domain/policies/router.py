"""Policy router - FastAPI endpoints for policy operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import PolicyCreate, PolicyResponse, PolicyUpdate, PolicyValidateRequest
from .service import PolicyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/policies", tags=["Policies"])


def get_policy_service(db: Session = Depends(get_db)) -> PolicyService:
    """Dependency injection for PolicyService"""
    return PolicyService(db)


@router.get("")
async def list_policies(
    page: int = Query(1),
    limit: int = Query(10),
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: PolicyService = Depends(get_policy_service),
):
    return service.list_policies(current_user, page, limit, search)


@router.post("", response_model=PolicyResponse, status_code=201)
async def create_policy(
    data: PolicyCreate,
    current_user: User = Depends(get_current_user),
    service: PolicyService = Depends(get_policy_service),
):
    return service.create_policy(data, current_user)


@router.post("/validate")
async def validate_policy(
    data: PolicyValidateRequest,
    current_user: User = Depends(get_current_user),
    service: PolicyService = Depends(get_policy_service),
):
    """Check whether a policy exists and is still in force"""
    return service.validate_policy(data.policy_number)


@router.get("/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: int,
    current_user: User = Depends(get_current_user),
    service: PolicyService = Depends(get_policy_service),
):
    return service.get_policy(policy_id, current_user)


@router.patch("/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: int,
    data: PolicyUpdate,
    current_user: User = Depends(get_current_user),
    service: PolicyService = Depends(get_policy_service),
):
    return service.update_policy(policy_id, data, current_user)


@router.delete("/{policy_id}")
async def delete_policy(
    policy_id: int,
    current_user: User = Depends(get_current_user),
    service: PolicyService = Depends(get_policy_service),
):
    return service.delete_policy(policy_id, current_user)
