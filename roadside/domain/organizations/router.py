"""Organization router - FastAPI endpoints for organization operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import ADMIN, SUPER_ADMIN, User
from ...rbac import require_roles
from .schemas import (
    BulkUpsertPoliciesUpdate,
    MarketingUpdate,
    MemberAdd,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationUpdate,
    StatusUpdate,
    UpsertPoliciesUpdate,
)
from .service import OrganizationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations", tags=["Organizations"])

require_admin = require_roles(SUPER_ADMIN, ADMIN)


def get_organization_service(db: Session = Depends(get_db)) -> OrganizationService:
    """Dependency injection for OrganizationService"""
    return OrganizationService(db)


# ============================================================================
# COLLECTION ROUTES
# ============================================================================


@router.get("")
async def list_organizations(
    page: int = Query(1),
    limit: int = Query(10),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.list_organizations(page, limit, status, search)


@router.post("", response_model=OrganizationResponse, status_code=201)
async def create_organization(
    data: OrganizationCreate,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.create_organization(data, current_user)


@router.get("/me", response_model=OrganizationResponse)
async def get_my_organization(
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    """Organization owned by the caller"""
    return service.get_by_owner(current_user)


@router.get("/by-policy/{policy_number}")
async def get_organization_by_policy(
    policy_number: str,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.get_by_policy_number(policy_number)


@router.put("/upsert-policies/bulk")
async def bulk_set_upsert_policies(
    data: BulkUpsertPoliciesUpdate,
    current_user: User = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.bulk_set_should_upsert(data.organizationIds, data.shouldUpsertPolicies)


# ============================================================================
# SINGLE ORGANIZATION
# ============================================================================


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(
    organization_id: int,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.get_accessible_organization(organization_id, current_user)


@router.patch("/{organization_id}", response_model=OrganizationResponse)
async def update_organization(
    organization_id: int,
    data: OrganizationUpdate,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.update_organization(organization_id, data, current_user)


@router.delete("/{organization_id}")
async def delete_organization(
    organization_id: int,
    current_user: User = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.delete_organization(organization_id)


@router.patch("/{organization_id}/status")
async def set_organization_status(
    organization_id: int,
    data: StatusUpdate,
    current_user: User = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    """Verify, deny, deactivate or reset an organization"""
    return await service.set_status(organization_id, data.status)


@router.post("/{organization_id}/retry-ai-setup")
async def retry_ai_setup(
    organization_id: int,
    current_user: User = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    return await service.retry_ai_setup(organization_id)


@router.put("/{organization_id}/marketing", response_model=OrganizationResponse)
async def set_marketing(
    organization_id: int,
    data: MarketingUpdate,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    organization = service.get_owned_organization(organization_id, current_user)
    return await service.set_marketing(organization, data.hasMarketingEnabled)


@router.get("/{organization_id}/upsert-policies")
async def get_upsert_policies(
    organization_id: int,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    service.get_accessible_organization(organization_id, current_user)
    return service.get_should_upsert(organization_id)


@router.put("/{organization_id}/upsert-policies")
async def set_upsert_policies(
    organization_id: int,
    data: UpsertPoliciesUpdate,
    current_user: User = Depends(require_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.set_should_upsert(organization_id, data.shouldUpsertPolicies)


# ============================================================================
# MEMBERS
# ============================================================================


@router.get("/{organization_id}/members")
async def list_members(
    organization_id: int,
    page: int = Query(1),
    perPage: int = Query(10),
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.list_members(organization_id, current_user, page, perPage)


@router.post("/{organization_id}/members", response_model=OrganizationResponse)
async def add_member(
    organization_id: int,
    data: MemberAdd,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.add_member(organization_id, data.userId, data.status, current_user)


@router.delete("/{organization_id}/members/{user_id}", response_model=OrganizationResponse)
async def remove_member(
    organization_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.remove_member(organization_id, user_id, current_user)
